"""
Ports the engine calls through.

Why Protocol over ABC: Structural typing, easier mocking, less coupling.
The shell injects concrete implementations; tests inject in-memory fakes.
"""

from typing import Protocol

from carecore.domain.models import (
    CaptureTag,
    InterventionPlan,
    ProductOffer,
    Reading,
    Resident,
    ScoreRecord,
)
from carecore.services.result import Result


class ResidentRepository(Protocol):
    """Resident records, score history, plans and the adherence ledger."""

    def get_resident(self, resident_id: str) -> Resident | None:
        """Return the resident, or None when unknown."""
        ...

    def list_score_records(self, resident_id: str) -> list[ScoreRecord]:
        """Score history ordered oldest first."""
        ...

    def append_score_record(self, record: ScoreRecord) -> None:
        """Append a record; history is never rewritten."""
        ...

    def get_intervention_plan(self, resident_id: str) -> InterventionPlan | None:
        ...

    def set_intervention_plan(self, plan: InterventionPlan) -> None:
        """Replace the resident's active plan."""
        ...

    def list_task_completions(self, resident_id: str, plan_id: str, days: int) -> list[bool]:
        """
        Completion flags of the plan's tasks over the last ``days`` days.

        Returns:
            list[bool]: One entry per scheduled task, True when it was done.
        """
        ...


class ProductCatalog(Protocol):
    """Supply-chain view of what can replace the current intervention."""

    def upgrade_for(self, plan: InterventionPlan) -> ProductOffer | None:
        """Higher-potency replacement for the plan's product, if any."""
        ...


class ReadingSource(Protocol):
    """
    Where completed readings come from (a pulse oximeter, a simulator).

    Acquisition is long-running and lives outside the engine, so this port is async.
    """

    source_name: str

    async def capture(self, resident_id: str, capture_tag: CaptureTag) -> Result[Reading, Exception]:
        ...
