"""
Domain models for point-of-care checks.

These models represent the core clinical concepts and are framework-agnostic.
They use Pydantic for validation; the presentation shell serializes them with
``model_dump()`` and owns persistence.
"""

from datetime import UTC, date, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return uuid4().hex


class CaptureTag(str, Enum):
    """What a reading is captured for."""

    ROUTINE = "routine"
    BASELINE = "baseline"
    RECHECK = "recheck"


class Tier(str, Enum):
    """Risk tier of a health score. Boundaries live in ClinicalPolicy."""

    RISK = "risk"
    SUBHEALTH = "subhealth"
    HEALTHY = "healthy"

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]


_TIER_LABELS = {
    Tier.RISK: "At risk",
    Tier.SUBHEALTH: "Sub-health",
    Tier.HEALTHY: "Healthy",
}


class SignalQuality(str, Enum):
    """Sensor signal quality as judged from the perfusion index."""

    GOOD = "good"
    WEAK = "weak"
    DISCONNECTED = "disconnected"


class TaskKind(str, Enum):
    MEDICATION = "medication"
    NUTRITION = "nutrition"
    CARE_ACTIVITY = "care_activity"


class TaskOrigin(str, Enum):
    SCREENING = "screening"
    RECHECK = "recheck"
    PLAN = "plan"


class SolutionType(str, Enum):
    UPGRADE = "upgrade"
    INCREASE_DOSE = "increase_dose"
    REINFORCE_COMPLIANCE = "reinforce_compliance"


class StockStatus(str, Enum):
    SUFFICIENT = "sufficient"
    LOW = "low"
    OUT = "out"


class Resident(BaseModel):
    """A person under care."""

    model_config = ConfigDict(frozen=True)

    resident_id: str
    name: str
    bed_number: str
    age: int = Field(gt=0, le=130)
    alert: str | None = Field(default=None, description="Urgent note that pins the resident")
    risk_tags: list[str] = Field(default_factory=list)


class Reading(BaseModel):
    """One completed pulse-oximeter sample plus the device assessment score."""

    model_config = ConfigDict(frozen=True)  # Captured readings never change

    resident_id: str
    spo2: float = Field(ge=0.0, le=100.0, description="Oxygen saturation in percent")
    pulse_rate: float = Field(ge=0.0, description="Pulse rate in beats per minute")
    perfusion_index: float = Field(ge=0.0, description="Perfusion index in percent")
    score: int = Field(ge=0, le=100, description="Health score computed by the device")
    capture_tag: CaptureTag = CaptureTag.ROUTINE
    captured_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class VitalViolation(BaseModel):
    """A vital sign outside its safety bound."""

    model_config = ConfigDict(frozen=True)

    vital: str
    value: float
    bound: float
    direction: str = Field(description="'below' or 'above' the bound")

    def __str__(self) -> str:
        return f"{self.vital}={self.value:g} {self.direction} {self.bound:g}"


class ScoreRecord(BaseModel):
    """A persisted score. History per resident is append-only and time ordered."""

    model_config = ConfigDict(frozen=True)

    record_id: str = Field(default_factory=_new_id)
    resident_id: str
    score: int = Field(ge=0, le=100)
    tier: Tier
    capture_tag: CaptureTag
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    reference_id: str | None = Field(
        default=None, description="Prior record this one was compared against"
    )


class Task(BaseModel):
    """A unit of required care. Completion is recorded outside the engine."""

    model_config = ConfigDict(frozen=True)

    task_id: str = Field(default_factory=_new_id)
    kind: TaskKind
    title: str
    description: str
    completed: bool = False
    origin: TaskOrigin = TaskOrigin.SCREENING


class InterventionPlan(BaseModel):
    """The remedy currently active for one resident."""

    model_config = ConfigDict(frozen=True)

    plan_id: str = Field(default_factory=_new_id)
    resident_id: str
    name: str = Field(min_length=1, description="Product or action being given")
    sku: str | None = None
    dose_multiplier: int = Field(default=1, ge=1)
    started_on: date = Field(default_factory=lambda: datetime.now(UTC).date())
    compliance_window_days: int = Field(default=7, gt=0)
    origin: SolutionType | None = None


class ProductOffer(BaseModel):
    """Catalog entry for a product that can replace the current intervention."""

    model_config = ConfigDict(frozen=True)

    name: str
    sku: str
    description: str
    effectiveness: float = Field(ge=0.0, le=100.0, description="Clinical effectiveness in percent")
    expected_improvement: float = Field(ge=0.0, description="Expected score uplift in percent")
    stock: StockStatus = StockStatus.SUFFICIENT


class Solution(BaseModel):
    """A candidate remediation. Derived per evaluation, never stored on its own."""

    model_config = ConfigDict(frozen=True)

    solution_id: str
    type: SolutionType
    title: str
    description: str
    product: str | None = None
    sku: str | None = None
    effectiveness: float | None = None
    expected_improvement: float | None = None
    stock: StockStatus | None = None
    is_preferred: bool = False
    uncertain_effectiveness: bool = False
    details: list[str] = Field(default_factory=list)


class ComplianceAudit(BaseModel):
    """Adherence over a plan's compliance window."""

    model_config = ConfigDict(frozen=True)

    completed: int = Field(ge=0)
    total: int = Field(ge=0)
    rate: float = Field(ge=0.0, le=100.0)
    threshold: float
    passed: bool


class EscalationReport(BaseModel):
    """Evidence and ranked options for a failed re-check."""

    model_config = ConfigDict(frozen=True)

    reference_score: int
    current_score: int
    score_drop: int = Field(ge=0)
    drop_percentage: float
    current_plan: InterventionPlan
    audit: ComplianceAudit
    solutions: list[Solution] = Field(min_length=1)


class EncounterSummary(BaseModel):
    """Everything the shell needs to render and persist a resolved encounter."""

    model_config = ConfigDict(frozen=True)

    resident_id: str
    capture_tag: CaptureTag
    score_record: ScoreRecord
    tier: Tier
    diagnosis: str
    tasks: list[Task]
    signal_quality: SignalQuality
    score_change: int | None = None
    reference_score: int | None = None
    improvement: int | None = None
    notable_improvement: bool = False
    escalation: EscalationReport | None = None
    confirmed_solution: Solution | None = None
    new_plan: InterventionPlan | None = None
    confirmation_message: str | None = None
    resolved_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
