"""Adherence auditing over a plan's compliance window."""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

import structlog

from carecore.config import ClinicalPolicy, get_config
from carecore.domain.errors import InvalidInputError
from carecore.domain.models import ComplianceAudit

logger = structlog.get_logger(__name__)


def percentage(part: int, whole: int) -> float:
    """``part / whole * 100`` rounded half-up to one decimal, for display."""
    value = Decimal(part) * 100 / Decimal(whole)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def audit_compliance(
    completions: Sequence[bool], policy: ClinicalPolicy | None = None
) -> ComplianceAudit:
    """
    Judge adherence from task completion flags.

    ``rate = completed / total * 100``; the audit passes when the unrounded
    rate reaches the policy's pass rate.

    Raises:
        InvalidInputError: when the window holds no scheduled tasks.
    """
    policy = policy or get_config().policy

    total = len(completions)
    if total == 0:
        raise InvalidInputError(
            "Cannot audit an empty completion window", field="completions", value=[]
        )

    completed = sum(1 for done in completions if done)
    passed = completed * 100 / total >= policy.compliance_pass_rate
    rate = percentage(completed, total)

    logger.info(
        "compliance_audited",
        completed=completed,
        total=total,
        rate=rate,
        passed=passed,
    )
    return ComplianceAudit(
        completed=completed,
        total=total,
        rate=rate,
        threshold=policy.compliance_pass_rate,
        passed=passed,
    )


def unverified_audit(policy: ClinicalPolicy | None = None) -> ComplianceAudit:
    """Audit for a window with no recorded tasks: nothing proves the plan was given."""
    policy = policy or get_config().policy
    logger.warning("compliance_window_empty")
    return ComplianceAudit(
        completed=0,
        total=0,
        rate=0.0,
        threshold=policy.compliance_pass_rate,
        passed=False,
    )
