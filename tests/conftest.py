"""Shared fixtures: an empty ward, the seeded demo ward, and a reading factory."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from adapters.memory import InMemoryProductCatalog, InMemoryResidentRepository, seed_demo_ward
from carecore.domain.models import CaptureTag, Reading, Resident, ScoreRecord
from carecore.services.classifier import classify

ReadingFactory = Callable[..., Reading]


@pytest.fixture
def resident() -> Resident:
    return Resident(resident_id="r-1", name="Test Resident", bed_number="101", age=80)


@pytest.fixture
def repository(resident: Resident) -> InMemoryResidentRepository:
    return InMemoryResidentRepository([resident])


@pytest.fixture
def catalog() -> InMemoryProductCatalog:
    return InMemoryProductCatalog()


@pytest.fixture
def demo_ward() -> tuple[InMemoryResidentRepository, InMemoryProductCatalog]:
    return seed_demo_ward()


@pytest.fixture
def make_reading() -> ReadingFactory:
    def _make(
        score: int = 72,
        resident_id: str = "r-1",
        capture_tag: CaptureTag = CaptureTag.ROUTINE,
        spo2: float = 97.0,
        pulse_rate: float = 72.0,
        perfusion_index: float = 3.5,
    ) -> Reading:
        return Reading(
            resident_id=resident_id,
            spo2=spo2,
            pulse_rate=pulse_rate,
            perfusion_index=perfusion_index,
            score=score,
            capture_tag=capture_tag,
        )

    return _make


def past_record(
    resident_id: str, score: int, tag: CaptureTag = CaptureTag.BASELINE, days_ago: int = 7
) -> ScoreRecord:
    """A history entry recorded before any reading made during the test."""
    return ScoreRecord(
        resident_id=resident_id,
        score=score,
        tier=classify(score),
        capture_tag=tag,
        recorded_at=datetime.now(UTC) - timedelta(days=days_ago),
    )


@pytest.fixture
def make_record() -> Callable[..., ScoreRecord]:
    return past_record
