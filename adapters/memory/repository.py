"""
In-memory implementations of the engine's ports.

Used by tests and by the demo script. Each instance owns its own state, so
two repositories never share residents or history.
"""

from collections import defaultdict
from datetime import UTC, date, datetime, timedelta

import structlog

from carecore.domain.models import (
    InterventionPlan,
    ProductOffer,
    Resident,
    ScoreRecord,
)

logger = structlog.get_logger(__name__)


class InMemoryResidentRepository:
    """Dictionary-backed ResidentRepository."""

    def __init__(self, residents: list[Resident] | None = None) -> None:
        self._residents: dict[str, Resident] = {r.resident_id: r for r in residents or []}
        self._history: defaultdict[str, list[ScoreRecord]] = defaultdict(list)
        self._plans: dict[str, InterventionPlan] = {}
        # plan_id -> [(day, completed)]
        self._completions: defaultdict[str, list[tuple[date, bool]]] = defaultdict(list)
        self.logger = logger.bind(component="in_memory_repository")

    def add_resident(self, resident: Resident) -> None:
        self._residents[resident.resident_id] = resident

    def get_resident(self, resident_id: str) -> Resident | None:
        return self._residents.get(resident_id)

    def list_residents(self) -> list[Resident]:
        return list(self._residents.values())

    def list_score_records(self, resident_id: str) -> list[ScoreRecord]:
        return list(self._history[resident_id])

    def latest_score(self, resident_id: str) -> int | None:
        history = self._history.get(resident_id)
        return history[-1].score if history else None

    def append_score_record(self, record: ScoreRecord) -> None:
        history = self._history[record.resident_id]
        if history and record.recorded_at < history[-1].recorded_at:
            raise ValueError("Score history is append-only and time ordered")
        history.append(record)
        self.logger.info(
            "score_record_appended", resident_id=record.resident_id, score=record.score
        )

    def get_intervention_plan(self, resident_id: str) -> InterventionPlan | None:
        return self._plans.get(resident_id)

    def set_intervention_plan(self, plan: InterventionPlan) -> None:
        if plan.resident_id not in self._residents:
            raise KeyError(f"Unknown resident: {plan.resident_id}")
        self._plans[plan.resident_id] = plan
        self.logger.info("intervention_plan_set", resident_id=plan.resident_id, plan=plan.name)

    def record_task_completion(
        self, plan_id: str, completed: bool, on: date | None = None
    ) -> None:
        """Adherence ledger entry written by the shell when a task is checked off (or missed)."""
        self._completions[plan_id].append((on or datetime.now(UTC).date(), completed))

    def list_task_completions(self, resident_id: str, plan_id: str, days: int) -> list[bool]:
        plan = self._plans.get(resident_id)
        if plan is None or plan.plan_id != plan_id:
            return []
        since = datetime.now(UTC).date() - timedelta(days=days)
        return [done for day, done in self._completions[plan_id] if day > since]


class InMemoryProductCatalog:
    """ProductCatalog keyed by the name of the product being replaced."""

    def __init__(self, upgrades: dict[str, ProductOffer] | None = None) -> None:
        self._upgrades: dict[str, ProductOffer] = dict(upgrades or {})

    def register_upgrade(self, current_name: str, offer: ProductOffer) -> None:
        self._upgrades[current_name] = offer

    def upgrade_for(self, plan: InterventionPlan) -> ProductOffer | None:
        return self._upgrades.get(plan.name)
