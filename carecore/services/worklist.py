"""
Worklist helpers for the resident list and the caregiver workbench.

The shell renders these; every tier decision goes through ``classify``.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from carecore.config import ClinicalPolicy
from carecore.domain.models import Resident, Tier
from carecore.services.classifier import classify


@dataclass(frozen=True)
class WorklistEntry:
    """A resident with their current score, as listed on the workbench."""

    resident: Resident
    score: int

    def tier(self, policy: ClinicalPolicy | None = None) -> Tier:
        return classify(self.score, policy)


def filter_by_tier(
    entries: Iterable[WorklistEntry], tier: Tier, policy: ClinicalPolicy | None = None
) -> list[WorklistEntry]:
    return [entry for entry in entries if entry.tier(policy) is tier]


def tier_counts(
    entries: Iterable[WorklistEntry], policy: ClinicalPolicy | None = None
) -> dict[Tier, int]:
    """Residents per tier; every tier is present even when empty."""
    counts = dict.fromkeys(Tier, 0)
    for entry in entries:
        counts[entry.tier(policy)] += 1
    return counts


def order_worklist(entries: Iterable[WorklistEntry]) -> list[WorklistEntry]:
    """Residents with an urgent alert first, then lowest score first."""
    return sorted(entries, key=lambda e: (e.resident.alert is None, e.score))
