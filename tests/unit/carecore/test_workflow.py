"""
Tests for the encounter state machine.

Testing philosophy:
- Drive the workflow the way the shell does, through the public transitions
- Use the in-memory repository instead of mocks
- Check what was (and was not) persisted after each ending
"""

from datetime import UTC, datetime, timedelta

import pytest

from adapters.memory import LIQUID_CALCIUM, InMemoryProductCatalog, InMemoryResidentRepository
from carecore.domain.errors import (
    CriticalValueError,
    InvalidInputError,
    ResidentNotFoundError,
    SignalLostError,
    WorkflowStateError,
)
from carecore.domain.models import (
    CaptureTag,
    InterventionPlan,
    SignalQuality,
    SolutionType,
    TaskKind,
    TaskOrigin,
    Tier,
)
from carecore.services.workflow import SessionWorkflow, WorkflowState


@pytest.fixture
def workflow(
    repository: InMemoryResidentRepository, catalog: InMemoryProductCatalog
) -> SessionWorkflow:
    return SessionWorkflow(repository, catalog)


def _give_plan(
    repository: InMemoryResidentRepository, completed: int, total: int = 7
) -> InterventionPlan:
    plan = InterventionPlan(resident_id="r-1", name="Calcium tablets", sku="SKU-014")
    repository.set_intervention_plan(plan)
    for index in range(total):
        repository.record_task_completion(plan.plan_id, index < completed)
    return plan


class TestRoutineEncounter:
    def test_starts_idle(self, workflow: SessionWorkflow) -> None:
        assert workflow.state is WorkflowState.IDLE
        assert workflow.tasks == []

    def test_risk_reading_resolves_with_medication_tasks(
        self, workflow: SessionWorkflow, repository: InMemoryResidentRepository, make_reading
    ) -> None:
        workflow.start("r-1", CaptureTag.ROUTINE)
        assert workflow.state is WorkflowState.ACQUIRING

        result = workflow.submit_reading(make_reading(score=62))
        assert result.is_ok()
        assert result.unwrap() is Tier.RISK
        assert workflow.state is WorkflowState.CLASSIFIED
        assert [t.kind for t in workflow.tasks] == [TaskKind.MEDICATION, TaskKind.MEDICATION]

        assert workflow.proceed() is WorkflowState.RESOLVED
        summary = workflow.summary
        assert summary is not None
        assert summary.tier is Tier.RISK
        assert summary.notable_improvement is False
        assert summary.escalation is None
        assert summary.signal_quality is SignalQuality.GOOD

        history = repository.list_score_records("r-1")
        assert [r.score for r in history] == [62]
        assert history[0].record_id == summary.score_record.record_id

    def test_score_change_against_last_record(
        self, workflow: SessionWorkflow, repository: InMemoryResidentRepository, make_reading, make_record
    ) -> None:
        repository.append_score_record(make_record("r-1", 67, CaptureTag.ROUTINE))

        workflow.start("r-1")
        workflow.submit_reading(make_reading(score=72))
        workflow.proceed()

        assert workflow.summary is not None
        assert workflow.summary.score_change == 5
        # not a re-check, so no reference comparison
        assert workflow.summary.improvement is None

    def test_weak_signal_is_reported_not_blocking(
        self, workflow: SessionWorkflow, make_reading
    ) -> None:
        workflow.start("r-1")
        assert workflow.submit_reading(make_reading(perfusion_index=0.3)).is_ok()
        workflow.proceed()

        assert workflow.summary is not None
        assert workflow.summary.signal_quality is SignalQuality.WEAK


class TestRecheck:
    def test_notable_improvement_resolves_without_escalation(
        self, workflow: SessionWorkflow, repository: InMemoryResidentRepository, make_reading, make_record
    ) -> None:
        baseline = make_record("r-1", 62, CaptureTag.BASELINE, days_ago=14)
        repository.append_score_record(baseline)
        _give_plan(repository, completed=7)

        workflow.start("r-1", CaptureTag.RECHECK)
        workflow.submit_reading(make_reading(score=78, capture_tag=CaptureTag.RECHECK))
        assert workflow.improvement == 16
        assert workflow.notable_improvement is True

        assert workflow.proceed() is WorkflowState.RESOLVED
        summary = workflow.summary
        assert summary is not None
        assert summary.notable_improvement is True
        assert summary.reference_score == 62
        assert summary.improvement == 16
        assert summary.escalation is None
        # standard subhealth tasks, tagged as re-check
        assert [t.kind for t in summary.tasks] == [TaskKind.NUTRITION, TaskKind.NUTRITION]
        assert {t.origin for t in summary.tasks} == {TaskOrigin.RECHECK}
        assert summary.score_record.reference_id == baseline.record_id

    def test_small_improvement_is_not_notable(
        self, workflow: SessionWorkflow, repository: InMemoryResidentRepository, make_reading, make_record
    ) -> None:
        repository.append_score_record(make_record("r-1", 62))

        workflow.start("r-1", CaptureTag.RECHECK)
        workflow.submit_reading(make_reading(score=71, capture_tag=CaptureTag.RECHECK))
        workflow.proceed()

        assert workflow.summary is not None
        assert workflow.summary.notable_improvement is False
        assert workflow.state is WorkflowState.RESOLVED

    def test_reference_prefers_latest_baseline(
        self, workflow: SessionWorkflow, repository: InMemoryResidentRepository, make_reading, make_record
    ) -> None:
        repository.append_score_record(make_record("r-1", 62, CaptureTag.BASELINE, days_ago=21))
        repository.append_score_record(make_record("r-1", 75, CaptureTag.ROUTINE, days_ago=7))

        workflow.start("r-1", CaptureTag.RECHECK)
        workflow.submit_reading(make_reading(score=70, capture_tag=CaptureTag.RECHECK))

        # compared to the baseline 62, not the routine 75
        assert workflow.improvement == 8
        assert workflow.is_failed_recheck is False

    def test_recheck_without_history_resolves(
        self, workflow: SessionWorkflow, make_reading
    ) -> None:
        workflow.start("r-1", CaptureTag.RECHECK)
        workflow.submit_reading(make_reading(score=60, capture_tag=CaptureTag.RECHECK))

        assert workflow.proceed() is WorkflowState.RESOLVED
        assert workflow.summary is not None
        assert workflow.summary.improvement is None

    def test_failed_recheck_without_plan_resolves(
        self, workflow: SessionWorkflow, repository: InMemoryResidentRepository, make_reading, make_record
    ) -> None:
        repository.append_score_record(make_record("r-1", 80))

        workflow.start("r-1", CaptureTag.RECHECK)
        workflow.submit_reading(make_reading(score=65, capture_tag=CaptureTag.RECHECK))

        assert workflow.is_failed_recheck is True
        assert workflow.proceed() is WorkflowState.RESOLVED


class TestEscalation:
    @pytest.fixture
    def escalating(
        self,
        workflow: SessionWorkflow,
        repository: InMemoryResidentRepository,
        catalog: InMemoryProductCatalog,
        make_reading,
        make_record,
    ) -> SessionWorkflow:
        catalog.register_upgrade("Calcium tablets", LIQUID_CALCIUM)
        repository.append_score_record(make_record("r-1", 80, CaptureTag.BASELINE, days_ago=14))
        _give_plan(repository, completed=7)

        workflow.start("r-1", CaptureTag.RECHECK)
        workflow.submit_reading(make_reading(score=65, capture_tag=CaptureTag.RECHECK))
        assert workflow.proceed() is WorkflowState.ESCALATING
        return workflow

    def test_escalation_report(self, escalating: SessionWorkflow) -> None:
        report = escalating.escalation
        assert report is not None
        assert report.reference_score == 80
        assert report.current_score == 65
        assert report.score_drop == 15
        assert report.drop_percentage == 18.8
        assert report.audit.passed is True
        assert [s.type for s in report.solutions] == [
            SolutionType.UPGRADE,
            SolutionType.INCREASE_DOSE,
        ]

    def test_nothing_persisted_while_escalating(
        self, escalating: SessionWorkflow, repository: InMemoryResidentRepository
    ) -> None:
        # only the seeded baseline
        assert [r.score for r in repository.list_score_records("r-1")] == [80]
        plan = repository.get_intervention_plan("r-1")
        assert plan is not None and plan.name == "Calcium tablets"

    def test_confirm_default_upgrades_the_plan(
        self, escalating: SessionWorkflow, repository: InMemoryResidentRepository
    ) -> None:
        summary = escalating.confirm()

        assert escalating.state is WorkflowState.RESOLVED
        assert summary.confirmed_solution is not None
        assert summary.confirmed_solution.type is SolutionType.UPGRADE
        assert summary.new_plan is not None
        assert summary.new_plan.name == "Liquid calcium"
        assert summary.confirmation_message is not None
        assert "Liquid calcium" in summary.confirmation_message

        active = repository.get_intervention_plan("r-1")
        assert active == summary.new_plan
        # tasks replaced by the new plan's tasks
        assert [t.origin for t in summary.tasks] == [TaskOrigin.PLAN]
        assert "Liquid calcium" in summary.tasks[0].description
        assert [r.score for r in repository.list_score_records("r-1")] == [80, 65]

    def test_confirm_dose_increase(
        self, escalating: SessionWorkflow, repository: InMemoryResidentRepository
    ) -> None:
        summary = escalating.confirm(SolutionType.INCREASE_DOSE.value)

        assert summary.new_plan is not None
        assert summary.new_plan.name == "Calcium tablets"
        assert summary.new_plan.dose_multiplier == 2
        assert summary.new_plan.origin is SolutionType.INCREASE_DOSE

    def test_confirm_unknown_solution(self, escalating: SessionWorkflow) -> None:
        with pytest.raises(InvalidInputError):
            escalating.confirm("not-offered")
        assert escalating.state is WorkflowState.ESCALATING

    def test_cancel_while_escalating_keeps_old_plan(
        self, escalating: SessionWorkflow, repository: InMemoryResidentRepository
    ) -> None:
        escalating.cancel()

        assert escalating.state is WorkflowState.CANCELLED
        assert escalating.escalation is None
        assert escalating.tasks == []
        plan = repository.get_intervention_plan("r-1")
        assert plan is not None and plan.name == "Calcium tablets"
        assert [r.score for r in repository.list_score_records("r-1")] == [80]


def test_failed_history_write_keeps_the_current_plan(
    workflow: SessionWorkflow,
    repository: InMemoryResidentRepository,
    catalog: InMemoryProductCatalog,
    make_reading,
    make_record,
) -> None:
    catalog.register_upgrade("Calcium tablets", LIQUID_CALCIUM)
    repository.append_score_record(make_record("r-1", 80, CaptureTag.BASELINE, days_ago=14))
    plan = _give_plan(repository, completed=7)

    # captured before the latest record, so the append-only history rejects it
    stale = make_reading(score=65, capture_tag=CaptureTag.RECHECK).model_copy(
        update={"captured_at": datetime.now(UTC) - timedelta(days=30)}
    )
    workflow.start("r-1", CaptureTag.RECHECK)
    workflow.submit_reading(stale)
    assert workflow.proceed() is WorkflowState.ESCALATING

    with pytest.raises(ValueError, match="append-only"):
        workflow.confirm()

    assert workflow.state is WorkflowState.ESCALATING
    assert repository.get_intervention_plan("r-1") == plan
    assert [r.score for r in repository.list_score_records("r-1")] == [80]
    assert {t.origin for t in workflow.tasks} == {TaskOrigin.RECHECK}

    workflow.cancel()
    assert workflow.state is WorkflowState.CANCELLED


def test_poor_adherence_escalates_to_reinforcement(
    workflow: SessionWorkflow,
    repository: InMemoryResidentRepository,
    catalog: InMemoryProductCatalog,
    make_reading,
    make_record,
) -> None:
    catalog.register_upgrade("Calcium tablets", LIQUID_CALCIUM)
    repository.append_score_record(make_record("r-1", 80))
    plan = _give_plan(repository, completed=9, total=20)

    workflow.start("r-1", CaptureTag.RECHECK)
    workflow.submit_reading(make_reading(score=80, capture_tag=CaptureTag.RECHECK))
    workflow.proceed()

    report = workflow.escalation
    assert report is not None
    assert report.audit.rate == 45.0
    assert [s.type for s in report.solutions] == [SolutionType.REINFORCE_COMPLIANCE]
    assert "45" in report.solutions[0].description

    summary = workflow.confirm()
    assert summary.new_plan is not None
    assert summary.new_plan.name == plan.name
    assert summary.new_plan.dose_multiplier == 1
    assert [t.kind for t in summary.tasks] == [TaskKind.MEDICATION, TaskKind.CARE_ACTIVITY]


def test_empty_adherence_window_counts_as_unverified(
    workflow: SessionWorkflow,
    repository: InMemoryResidentRepository,
    make_reading,
    make_record,
) -> None:
    repository.append_score_record(make_record("r-1", 80))
    _give_plan(repository, completed=0, total=0)

    workflow.start("r-1", CaptureTag.RECHECK)
    workflow.submit_reading(make_reading(score=70, capture_tag=CaptureTag.RECHECK))
    workflow.proceed()

    assert workflow.escalation is not None
    assert workflow.escalation.audit.passed is False
    assert workflow.escalation.solutions[0].type is SolutionType.REINFORCE_COMPLIANCE


class TestFaults:
    def test_critical_value_blocks_and_requires_acknowledgement(
        self, workflow: SessionWorkflow, make_reading
    ) -> None:
        workflow.start("r-1")
        result = workflow.submit_reading(make_reading(spo2=85.0))

        assert result.is_err()
        fault = result.unwrap_err()
        assert isinstance(fault, CriticalValueError)
        assert fault.code == "CRITICAL_VALUE"
        assert workflow.state is WorkflowState.ACQUIRING
        assert workflow.tier is None

        with pytest.raises(WorkflowStateError):
            workflow.submit_reading(make_reading())
        with pytest.raises(WorkflowStateError):
            workflow.cancel()

        workflow.acknowledge_fault("nurse-7")
        assert workflow.pending_fault is None
        assert workflow.submit_reading(make_reading(score=75)).is_ok()

    def test_acknowledge_without_fault(self, workflow: SessionWorkflow) -> None:
        workflow.start("r-1")
        with pytest.raises(WorkflowStateError):
            workflow.acknowledge_fault("nurse-7")

    def test_lost_signal_keeps_acquiring(self, workflow: SessionWorkflow, make_reading) -> None:
        workflow.start("r-1")
        result = workflow.submit_reading(make_reading(perfusion_index=0.0))

        assert isinstance(result.unwrap_err(), SignalLostError)
        assert workflow.state is WorkflowState.ACQUIRING
        assert workflow.pending_fault is None
        assert workflow.submit_reading(make_reading()).is_ok()

    def test_unknown_resident(self, workflow: SessionWorkflow) -> None:
        with pytest.raises(ResidentNotFoundError):
            workflow.start("nobody")
        assert workflow.state is WorkflowState.IDLE

    def test_reading_for_another_resident(self, workflow: SessionWorkflow, make_reading) -> None:
        workflow.start("r-1")
        with pytest.raises(InvalidInputError):
            workflow.submit_reading(make_reading(resident_id="r-2"))

    def test_reading_with_a_different_tag(self, workflow: SessionWorkflow, make_reading) -> None:
        workflow.start("r-1", CaptureTag.BASELINE)
        with pytest.raises(InvalidInputError):
            workflow.submit_reading(make_reading(capture_tag=CaptureTag.ROUTINE))


class TestTransitionOrder:
    def test_cannot_proceed_before_classification(self, workflow: SessionWorkflow) -> None:
        with pytest.raises(WorkflowStateError):
            workflow.proceed()
        workflow.start("r-1")
        with pytest.raises(WorkflowStateError):
            workflow.proceed()

    def test_cannot_confirm_without_escalation(
        self, workflow: SessionWorkflow, make_reading
    ) -> None:
        workflow.start("r-1")
        workflow.submit_reading(make_reading())
        with pytest.raises(WorkflowStateError):
            workflow.confirm()

    def test_cannot_submit_before_start(self, workflow: SessionWorkflow, make_reading) -> None:
        with pytest.raises(WorkflowStateError):
            workflow.submit_reading(make_reading())

    def test_resolved_is_terminal(self, workflow: SessionWorkflow, make_reading) -> None:
        workflow.start("r-1")
        workflow.submit_reading(make_reading())
        workflow.proceed()

        with pytest.raises(WorkflowStateError):
            workflow.cancel()
        with pytest.raises(WorkflowStateError):
            workflow.start("r-1")


class TestCancellation:
    def test_cancel_mid_acquisition_leaves_nothing(
        self, workflow: SessionWorkflow, repository: InMemoryResidentRepository
    ) -> None:
        workflow.start("r-1", CaptureTag.RECHECK)
        workflow.cancel()

        assert workflow.state is WorkflowState.CANCELLED
        assert workflow.tasks == []
        assert workflow.escalation is None
        assert workflow.summary is None
        assert repository.list_score_records("r-1") == []

    def test_cancel_after_classification_discards_tasks(
        self, workflow: SessionWorkflow, repository: InMemoryResidentRepository, make_reading
    ) -> None:
        workflow.start("r-1")
        workflow.submit_reading(make_reading(score=62))
        assert workflow.tasks

        workflow.cancel()

        assert workflow.tasks == []
        assert workflow.tier is None
        assert workflow.reading is None
        assert repository.list_score_records("r-1") == []

    def test_cancel_from_idle(self, workflow: SessionWorkflow) -> None:
        workflow.cancel()
        assert workflow.state is WorkflowState.CANCELLED
