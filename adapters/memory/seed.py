"""Demo ward used by the demo script and integration tests."""

from datetime import UTC, datetime, timedelta

from adapters.memory.repository import InMemoryProductCatalog, InMemoryResidentRepository
from carecore.domain.models import (
    CaptureTag,
    InterventionPlan,
    ProductOffer,
    Resident,
    ScoreRecord,
    StockStatus,
)
from carecore.services.classifier import classify

LIQUID_CALCIUM = ProductOffer(
    name="Liquid calcium",
    sku="SKU-001",
    description="Upgrade to a high-absorption liquid calcium formulation",
    effectiveness=85.0,
    expected_improvement=30.0,
    stock=StockStatus.SUFFICIENT,
)


def _record(resident_id: str, score: int, tag: CaptureTag, days_ago: int) -> ScoreRecord:
    return ScoreRecord(
        resident_id=resident_id,
        score=score,
        tier=classify(score),
        capture_tag=tag,
        recorded_at=datetime.now(UTC) - timedelta(days=days_ago),
    )


def seed_demo_ward() -> tuple[InMemoryResidentRepository, InMemoryProductCatalog]:
    """
    Second-floor ward with one failing intervention and one improving resident.

    - ``r-205``: baseline 80, on calcium tablets for 14 days, every dose given.
    - ``r-201``: baseline 62, on liquid calcium, last check 67.
    """
    repository = InMemoryResidentRepository(
        [
            Resident(
                resident_id="r-205",
                name="Zhang Jianguo",
                bed_number="205",
                age=82,
                alert="Intervention not working (calcium supplement)",
                risk_tags=["Severe calcium deficiency", "Reduced myocardial perfusion"],
            ),
            Resident(
                resident_id="r-201",
                name="Li Shufen",
                bed_number="201",
                age=78,
                risk_tags=["Mild zinc deficiency"],
            ),
            Resident(resident_id="r-203", name="Zhao Qiang", bed_number="203", age=71),
            Resident(resident_id="r-202", name="Wang Dali", bed_number="202", age=65),
            Resident(resident_id="r-206", name="Liu Fang", bed_number="206", age=76),
        ]
    )

    for record in (
        _record("r-205", 80, CaptureTag.BASELINE, days_ago=14),
        _record("r-201", 62, CaptureTag.BASELINE, days_ago=21),
        _record("r-201", 67, CaptureTag.ROUTINE, days_ago=7),
        _record("r-203", 88, CaptureTag.ROUTINE, days_ago=2),
        _record("r-202", 92, CaptureTag.ROUTINE, days_ago=3),
        _record("r-206", 95, CaptureTag.ROUTINE, days_ago=1),
    ):
        repository.append_score_record(record)

    today = datetime.now(UTC).date()
    tablets = InterventionPlan(
        resident_id="r-205",
        name="Calcium tablets",
        sku="SKU-014",
        started_on=today - timedelta(days=14),
    )
    liquid = InterventionPlan(
        resident_id="r-201",
        name=LIQUID_CALCIUM.name,
        sku=LIQUID_CALCIUM.sku,
        started_on=today - timedelta(days=21),
    )
    repository.set_intervention_plan(tablets)
    repository.set_intervention_plan(liquid)

    for days_ago in range(7):
        repository.record_task_completion(
            tablets.plan_id, True, on=today - timedelta(days=days_ago)
        )
        repository.record_task_completion(liquid.plan_id, True, on=today - timedelta(days=days_ago))

    catalog = InMemoryProductCatalog({"Calcium tablets": LIQUID_CALCIUM})
    return repository, catalog
