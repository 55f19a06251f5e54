"""
Intervention recommendation for a failed re-check.

Decision tree, no randomness:

1. Adherence not confirmed -> reinforce compliance only. Never escalate a
   medication before confirming it was actually being given.
2. Adherence confirmed -> upgrade to a higher-potency product (preferred),
   then double the current dose (uncertain effectiveness).

Stock is a ranking input: an out-of-stock upgrade loses its preferred mark
and drops below the dose increase.
"""

import structlog

from carecore.domain.errors import InvalidInputError
from carecore.domain.models import (
    ComplianceAudit,
    InterventionPlan,
    ProductOffer,
    Solution,
    SolutionType,
    StockStatus,
)
from carecore.services.compliance import percentage
from carecore.services.ports import ProductCatalog

logger = structlog.get_logger(__name__)

_STOCK_DETAILS = {
    StockStatus.SUFFICIENT: "Stock sufficient",
    StockStatus.LOW: "Stock low, reorder soon",
    StockStatus.OUT: "Out of stock",
}


def drop_percentage(score_drop: int, baseline_score: int) -> float:
    """Score drop as a percentage of the baseline, rounded half-up to one decimal."""
    if baseline_score <= 0 or baseline_score > 100:
        raise InvalidInputError(
            f"Baseline score must be in (0, 100], got {baseline_score}",
            field="baseline_score",
            value=baseline_score,
        )
    if score_drop < 0:
        raise InvalidInputError(
            f"Score drop cannot be negative, got {score_drop}",
            field="score_drop",
            value=score_drop,
        )

    return percentage(score_drop, baseline_score)


class InterventionRecommender:
    """
    Ranks remediation options for a resident whose re-check did not improve.

    Stateless apart from the injected catalog; safe to reuse across encounters.
    """

    def __init__(self, catalog: ProductCatalog) -> None:
        self.catalog = catalog
        self.logger = logger.bind(component="intervention_recommender")

    def recommend(
        self,
        score_drop: int,
        baseline_score: int,
        audit: ComplianceAudit,
        current_plan: InterventionPlan,
    ) -> list[Solution]:
        """
        Produce ranked Solutions; the first one is the default selection.

        Returns:
            list[Solution]: Never empty.
        """
        drop = drop_percentage(score_drop, baseline_score)

        if not audit.passed:
            solutions = [self._reinforce_compliance(audit, current_plan)]
        else:
            solutions = self._adjust_regimen(current_plan)

        self.logger.info(
            "solutions_ranked",
            plan=current_plan.name,
            drop_percentage=drop,
            compliance_rate=audit.rate,
            compliance_passed=audit.passed,
            ranking=[s.type.value for s in solutions],
            default=solutions[0].type.value,
        )
        return solutions

    def _reinforce_compliance(
        self, audit: ComplianceAudit, current_plan: InterventionPlan
    ) -> Solution:
        return Solution(
            solution_id=SolutionType.REINFORCE_COMPLIANCE.value,
            type=SolutionType.REINFORCE_COMPLIANCE,
            title="Recommended: make sure caregivers deliver the current plan",
            description=(
                f"Compliance is only {audit.rate:g}% over the last "
                f"{current_plan.compliance_window_days} days; {current_plan.name} "
                "was not given consistently."
            ),
            product=current_plan.name,
            sku=current_plan.sku,
            details=[
                f"Current compliance rate is only {audit.rate:g}%",
                "Confirm the plan is carried out before considering a change of product",
            ],
        )

    def _adjust_regimen(self, current_plan: InterventionPlan) -> list[Solution]:
        increase = self._increase_dose(current_plan)
        offer = self.catalog.upgrade_for(current_plan)

        if offer is None:
            self.logger.info("no_upgrade_available", plan=current_plan.name)
            return [increase]

        upgrade = self._upgrade(offer)
        if offer.stock is StockStatus.OUT:
            self.logger.warning("preferred_upgrade_out_of_stock", sku=offer.sku)
            return [increase, upgrade]
        return [upgrade, increase]

    def _upgrade(self, offer: ProductOffer) -> Solution:
        in_stock = offer.stock is not StockStatus.OUT
        return Solution(
            solution_id=SolutionType.UPGRADE.value,
            type=SolutionType.UPGRADE,
            title="Recommended: switch to a stronger product",
            description=offer.description,
            product=offer.name,
            sku=offer.sku,
            effectiveness=offer.effectiveness,
            expected_improvement=offer.expected_improvement,
            stock=offer.stock,
            is_preferred=in_stock,
            details=[
                f"Clinical effectiveness: {offer.effectiveness:g}%",
                f"Expected score improvement: +{offer.expected_improvement:g}%",
                _STOCK_DETAILS[offer.stock],
            ],
        )

    def _increase_dose(self, current_plan: InterventionPlan) -> Solution:
        doubled = current_plan.dose_multiplier * 2
        return Solution(
            solution_id=SolutionType.INCREASE_DOSE.value,
            type=SolutionType.INCREASE_DOSE,
            title="Conservative: increase the dose",
            description=(
                f"Give {current_plan.name} at {doubled}x the usual daily dose "
                "(current regimen doubled)"
            ),
            product=current_plan.name,
            sku=current_plan.sku,
            uncertain_effectiveness=True,
            details=[
                "Effectiveness uncertain",
                "May increase gastrointestinal burden",
            ],
        )
