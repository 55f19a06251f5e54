"""
Safety checks on a completed reading.

Values are never clamped: a breach is reported as-is and the caregiver has
to acknowledge it.
"""

import structlog

from carecore.config import ClinicalPolicy, get_config
from carecore.domain.models import Reading, SignalQuality, VitalViolation

logger = structlog.get_logger(__name__)


def find_critical_values(
    reading: Reading, policy: ClinicalPolicy | None = None
) -> list[VitalViolation]:
    """Return every vital sign outside its safety bound (empty when safe)."""
    policy = policy or get_config().policy
    violations: list[VitalViolation] = []

    if reading.spo2 < policy.spo2_critical_low:
        violations.append(
            VitalViolation(
                vital="spo2", value=reading.spo2, bound=policy.spo2_critical_low, direction="below"
            )
        )
    if reading.pulse_rate < policy.pulse_critical_low:
        violations.append(
            VitalViolation(
                vital="pulse_rate",
                value=reading.pulse_rate,
                bound=policy.pulse_critical_low,
                direction="below",
            )
        )
    elif reading.pulse_rate > policy.pulse_critical_high:
        violations.append(
            VitalViolation(
                vital="pulse_rate",
                value=reading.pulse_rate,
                bound=policy.pulse_critical_high,
                direction="above",
            )
        )

    if violations:
        logger.warning(
            "critical_value_detected",
            resident_id=reading.resident_id,
            violations=[str(v) for v in violations],
        )
    return violations


def assess_signal(reading: Reading, policy: ClinicalPolicy | None = None) -> SignalQuality:
    """Judge sensor contact from the perfusion index."""
    policy = policy or get_config().policy

    if reading.perfusion_index == 0:
        return SignalQuality.DISCONNECTED
    if reading.perfusion_index < policy.perfusion_weak_below:
        return SignalQuality.WEAK
    return SignalQuality.GOOD
