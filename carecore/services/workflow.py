"""
Session workflow: the state machine for one monitoring encounter.

    idle -> acquiring -> classified -> resolved
                             |
                             +-> escalating -> resolved

Any non-terminal state can be cancelled. Each encounter gets a fresh
instance; nothing is persisted until the encounter resolves, so a cancelled
encounter leaves no score record, task or solution behind.

The engine does not stop two encounters for the same resident from running
at once; the shell must allow at most one open workflow per resident.
"""

from enum import Enum

import structlog

from carecore.config import ClinicalPolicy, get_config
from carecore.domain.errors import (
    CareCoreError,
    CriticalValueError,
    InvalidInputError,
    ResidentNotFoundError,
    SignalLostError,
    WorkflowStateError,
)
from carecore.domain.models import (
    CaptureTag,
    EncounterSummary,
    EscalationReport,
    InterventionPlan,
    Reading,
    ScoreRecord,
    SignalQuality,
    Solution,
    SolutionType,
    Task,
    Tier,
)
from carecore.services.classifier import classify, diagnosis_for, score_change
from carecore.services.compliance import audit_compliance, unverified_audit
from carecore.services.ports import ProductCatalog, ResidentRepository
from carecore.services.recommender import InterventionRecommender, drop_percentage
from carecore.services.result import Result
from carecore.services.tasks import generate_plan_tasks, generate_tasks
from carecore.services.vitals import assess_signal, find_critical_values

logger = structlog.get_logger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    CLASSIFIED = "classified"
    ESCALATING = "escalating"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({WorkflowState.RESOLVED, WorkflowState.CANCELLED})


class SessionWorkflow:
    """
    Drives one encounter from acquisition to resolution.

    Design principles:
    - Transitions only in the documented order (WorkflowStateError otherwise)
    - Expected bedside failures come back as Result errors, not exceptions
    - All persistence goes through the injected repository, at resolution only
    - Observable (one structured log event per transition)
    """

    def __init__(
        self,
        repository: ResidentRepository,
        catalog: ProductCatalog,
        policy: ClinicalPolicy | None = None,
    ) -> None:
        self.repository = repository
        self.policy = policy or get_config().policy
        self.recommender = InterventionRecommender(catalog)
        self.state = WorkflowState.IDLE
        self.logger = logger.bind(component="session_workflow")

        self.resident_id: str | None = None
        self.capture_tag: CaptureTag | None = None
        self._clear_derived_state()

    def _clear_derived_state(self) -> None:
        self.reading: Reading | None = None
        self.tier: Tier | None = None
        self.signal_quality: SignalQuality | None = None
        self.tasks: list[Task] = []
        self.pending_fault: CriticalValueError | None = None
        self.escalation: EscalationReport | None = None
        self.summary: EncounterSummary | None = None
        self._previous: ScoreRecord | None = None
        self._reference: ScoreRecord | None = None

    def _require(self, operation: str, *allowed: WorkflowState) -> None:
        if self.state not in allowed:
            raise WorkflowStateError(operation, self.state.value)

    def _transition(self, target: WorkflowState, **context: object) -> None:
        self.logger.info(
            "workflow_transition",
            from_state=self.state.value,
            to_state=target.value,
            **context,
        )
        self.state = target

    # -- idle -> acquiring -------------------------------------------------

    def start(self, resident_id: str, capture_tag: CaptureTag = CaptureTag.ROUTINE) -> None:
        """Open the encounter for a resident and fix what the reading is for."""
        self._require("start an encounter", WorkflowState.IDLE)

        if self.repository.get_resident(resident_id) is None:
            raise ResidentNotFoundError(resident_id)

        self.resident_id = resident_id
        self.capture_tag = CaptureTag(capture_tag)
        self.logger = self.logger.bind(resident_id=resident_id)
        self._transition(WorkflowState.ACQUIRING, capture_tag=self.capture_tag.value)

    # -- acquiring -> classified -------------------------------------------

    def submit_reading(self, reading: Reading) -> Result[Tier, CareCoreError]:
        """
        Accept a completed reading.

        Returns:
            Result[Tier, CareCoreError]: The tier on success. On a critical value
            or a lost signal the error is returned and the workflow stays in
            ``acquiring``; a critical value must be acknowledged before anything
            else happens.
        """
        self._require("submit a reading", WorkflowState.ACQUIRING)
        if self.pending_fault is not None:
            raise WorkflowStateError(
                "submit a reading", self.state.value, "acknowledge the critical value first"
            )
        if reading.resident_id != self.resident_id:
            raise InvalidInputError(
                f"Reading belongs to {reading.resident_id}, encounter is for {self.resident_id}",
                field="resident_id",
                value=reading.resident_id,
            )
        if reading.capture_tag is not self.capture_tag:
            raise InvalidInputError(
                f"Reading tagged {reading.capture_tag.value}, encounter started as "
                f"{self.capture_tag.value if self.capture_tag else None}",
                field="capture_tag",
                value=reading.capture_tag.value,
            )

        signal = assess_signal(reading, self.policy)
        if signal is SignalQuality.DISCONNECTED:
            self.logger.warning("reading_rejected_signal_lost")
            return Result.err(SignalLostError(reading.resident_id))

        violations = find_critical_values(reading, self.policy)
        if violations:
            self.pending_fault = CriticalValueError(reading.resident_id, violations)
            return Result.err(self.pending_fault)

        if signal is SignalQuality.WEAK:
            self.logger.info("weak_signal", perfusion_index=reading.perfusion_index)

        history = self.repository.list_score_records(reading.resident_id)
        self._previous = history[-1] if history else None
        if self.capture_tag is CaptureTag.RECHECK:
            self._reference = self._find_reference(history)

        self.reading = reading
        self.signal_quality = signal
        self.tier = classify(reading.score, self.policy)
        self.tasks = generate_tasks(self.tier, is_recheck=self.capture_tag is CaptureTag.RECHECK)

        self._transition(
            WorkflowState.CLASSIFIED,
            score=reading.score,
            tier=self.tier.value,
            task_count=len(self.tasks),
        )
        return Result.ok(self.tier)

    def acknowledge_fault(self, acknowledged_by: str) -> None:
        """Record that a caregiver has seen the critical value and checked on the resident."""
        self._require("acknowledge a fault", WorkflowState.ACQUIRING)
        if self.pending_fault is None:
            raise WorkflowStateError(
                "acknowledge a fault", self.state.value, "no critical value is pending"
            )

        self.logger.warning(
            "critical_value_acknowledged",
            acknowledged_by=acknowledged_by,
            violations=[str(v) for v in self.pending_fault.violations],
        )
        self.pending_fault = None

    @staticmethod
    def _find_reference(history: list[ScoreRecord]) -> ScoreRecord | None:
        """Latest baseline record, falling back to the latest record of any kind."""
        for record in reversed(history):
            if record.capture_tag is CaptureTag.BASELINE:
                return record
        return history[-1] if history else None

    # -- derived outcome ---------------------------------------------------

    @property
    def improvement(self) -> int | None:
        """Points gained over the re-check reference, None when not comparable."""
        if self.reading is None or self._reference is None:
            return None
        return self.reading.score - self._reference.score

    @property
    def is_failed_recheck(self) -> bool:
        improvement = self.improvement
        return improvement is not None and improvement <= 0

    @property
    def notable_improvement(self) -> bool:
        improvement = self.improvement
        return improvement is not None and improvement >= self.policy.notable_improvement_points

    # -- classified -> escalating | resolved -------------------------------

    def proceed(self) -> WorkflowState:
        """
        Move on from a classified reading.

        A failed re-check with an active plan escalates; everything else resolves.
        """
        self._require("proceed", WorkflowState.CLASSIFIED)

        if self.is_failed_recheck and self._reference is not None:
            plan = self.repository.get_intervention_plan(self.resident_id or "")
            if plan is not None:
                self._escalate(plan, self._reference)
                return self.state
            self.logger.info("failed_recheck_without_plan")

        self._resolve()
        return self.state

    def _classified_reading(self, operation: str) -> Reading:
        if self.reading is None:
            raise WorkflowStateError(operation, self.state.value, "no classified reading")
        return self.reading

    def _escalate(self, plan: InterventionPlan, reference: ScoreRecord) -> None:
        reading = self._classified_reading("escalate")

        completions = self.repository.list_task_completions(
            plan.resident_id, plan.plan_id, plan.compliance_window_days
        )
        audit = (
            audit_compliance(completions, self.policy)
            if completions
            else unverified_audit(self.policy)
        )

        drop = reference.score - reading.score
        solutions = self.recommender.recommend(drop, reference.score, audit, plan)

        self.escalation = EscalationReport(
            reference_score=reference.score,
            current_score=reading.score,
            score_drop=drop,
            drop_percentage=drop_percentage(drop, reference.score),
            current_plan=plan,
            audit=audit,
            solutions=solutions,
        )
        self._transition(
            WorkflowState.ESCALATING,
            score_drop=drop,
            compliance_rate=audit.rate,
            default_solution=solutions[0].type.value,
        )

    # -- escalating -> resolved --------------------------------------------

    def confirm(self, solution_id: str | None = None) -> EncounterSummary:
        """
        Adopt a Solution as the new plan; None takes the default (first) one.

        The score record is written before the plan is replaced, so a failed
        write leaves the resident's active plan untouched.
        """
        self._require("confirm a solution", WorkflowState.ESCALATING)
        if self.escalation is None:
            raise WorkflowStateError("confirm a solution", self.state.value, "no escalation report")

        solutions = self.escalation.solutions
        if solution_id is None:
            chosen = solutions[0]
        else:
            chosen = next((s for s in solutions if s.solution_id == solution_id), None)
            if chosen is None:
                raise InvalidInputError(
                    f"Solution {solution_id} was not offered", field="solution_id", value=solution_id
                )

        new_plan = self._plan_from(chosen, self.escalation.current_plan)
        return self._resolve(
            tasks=generate_plan_tasks(new_plan),
            confirmed_solution=chosen,
            new_plan=new_plan,
            confirmation_message=self._confirmation_message(chosen, new_plan),
        )

    def _plan_from(self, solution: Solution, current: InterventionPlan) -> InterventionPlan:
        if solution.type is SolutionType.UPGRADE:
            if solution.stock is not None and not solution.is_preferred:
                self.logger.warning("unavailable_upgrade_confirmed", sku=solution.sku)
            return InterventionPlan(
                resident_id=current.resident_id,
                name=solution.product or current.name,
                sku=solution.sku,
                compliance_window_days=self.policy.compliance_window_days,
                origin=solution.type,
            )

        multiplier = current.dose_multiplier
        if solution.type is SolutionType.INCREASE_DOSE:
            multiplier *= 2
        return InterventionPlan(
            resident_id=current.resident_id,
            name=current.name,
            sku=current.sku,
            dose_multiplier=multiplier,
            compliance_window_days=self.policy.compliance_window_days,
            origin=solution.type,
        )

    @staticmethod
    def _confirmation_message(solution: Solution, plan: InterventionPlan) -> str:
        if solution.type is SolutionType.UPGRADE:
            return f"Switched to {plan.name}; the caregiver task list has been updated"
        if solution.type is SolutionType.REINFORCE_COMPLIANCE:
            return "Reminder sent to the responsible caregiver"
        return f"Dose increased to {plan.dose_multiplier}x the usual daily dose"

    def _resolve(
        self,
        tasks: list[Task] | None = None,
        confirmed_solution: Solution | None = None,
        new_plan: InterventionPlan | None = None,
        confirmation_message: str | None = None,
    ) -> EncounterSummary:
        reading = self._classified_reading("resolve")
        if self.tier is None or self.capture_tag is None or self.signal_quality is None:
            raise WorkflowStateError("resolve", self.state.value, "no classified reading")

        record = ScoreRecord(
            resident_id=reading.resident_id,
            score=reading.score,
            tier=self.tier,
            capture_tag=self.capture_tag,
            recorded_at=reading.captured_at,
            reference_id=self._reference.record_id if self._reference else None,
        )
        self.repository.append_score_record(record)

        if new_plan is not None:
            self.repository.set_intervention_plan(new_plan)
            self.logger.info(
                "intervention_plan_replaced",
                solution=confirmed_solution.type.value if confirmed_solution else None,
                previous_plan=self.escalation.current_plan.plan_id if self.escalation else None,
                new_plan=new_plan.plan_id,
            )

        if tasks is not None:
            self.tasks = tasks

        notable = self.notable_improvement
        if notable:
            self.logger.info(
                "notable_improvement",
                reference_score=self._reference.score if self._reference else None,
                score=reading.score,
                improvement=self.improvement,
            )

        self.summary = EncounterSummary(
            resident_id=reading.resident_id,
            capture_tag=self.capture_tag,
            score_record=record,
            tier=self.tier,
            diagnosis=diagnosis_for(self.tier),
            tasks=list(self.tasks),
            signal_quality=self.signal_quality,
            score_change=score_change(reading.score, self._previous),
            reference_score=self._reference.score if self._reference else None,
            improvement=self.improvement,
            notable_improvement=notable,
            escalation=self.escalation,
            confirmed_solution=confirmed_solution,
            new_plan=new_plan,
            confirmation_message=confirmation_message,
        )
        self._transition(
            WorkflowState.RESOLVED,
            score=record.score,
            tier=record.tier.value,
            notable_improvement=notable,
        )
        return self.summary

    # -- cancellation ------------------------------------------------------

    def cancel(self) -> None:
        """Abandon the encounter and discard everything derived so far."""
        if self.state in TERMINAL_STATES:
            raise WorkflowStateError("cancel", self.state.value, "encounter already finished")
        if self.pending_fault is not None:
            raise WorkflowStateError(
                "cancel", self.state.value, "acknowledge the critical value first"
            )

        self._clear_derived_state()
        self._transition(WorkflowState.CANCELLED)
