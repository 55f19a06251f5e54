"""
Score classification.

``classify`` is the only place a score is compared against tier boundaries;
worklist filters, dashboards and task generation all go through it.
"""

from carecore.config import ClinicalPolicy, get_config
from carecore.domain.errors import InvalidInputError
from carecore.domain.models import ScoreRecord, Tier

_DIAGNOSES = {
    Tier.RISK: (
        "Failing score: severe nutrient loss detected with elevated cardiovascular risk. "
        "Strengthen the intervention now."
    ),
    Tier.SUBHEALTH: (
        "Fair score: calcium and zinc are being lost quickly and the body is under strain. "
        "Adjust care soon."
    ),
    Tier.HEALTHY: "Excellent condition: all indicators are in the healthy range. Keep it up.",
}


def _check_score(score: object) -> int:
    # bool is an int subclass but never a score
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidInputError(f"Score must be an integer, got {score!r}", field="score", value=score)
    if not 0 <= score <= 100:
        raise InvalidInputError(f"Score {score} outside [0, 100]", field="score", value=score)
    return score


def classify(score: int, policy: ClinicalPolicy | None = None) -> Tier:
    """Map a health score in [0, 100] to its risk tier."""
    policy = policy or get_config().policy
    score = _check_score(score)

    if score < policy.risk_below:
        return Tier.RISK
    if score < policy.healthy_from:
        return Tier.SUBHEALTH
    return Tier.HEALTHY


def diagnosis_for(tier: Tier) -> str:
    """Caregiver-facing diagnosis sentence for a tier."""
    return _DIAGNOSES[tier]


def score_change(current: int, previous: ScoreRecord | None) -> int | None:
    """Signed change against the previous record, None when there is no history."""
    if previous is None:
        return None
    return _check_score(current) - previous.score
