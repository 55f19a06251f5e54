"""
Task generation.

Tasks are computed from scratch for every encounter from the current tier,
or, after an escalation, from the newly confirmed plan. Nothing carries over.
"""

import structlog

from carecore.domain.models import (
    InterventionPlan,
    SolutionType,
    Task,
    TaskKind,
    TaskOrigin,
    Tier,
)

logger = structlog.get_logger(__name__)

# (kind, title, description) per tier, in the order they are shown
_TIER_TASKS: dict[Tier, list[tuple[TaskKind, str, str]]] = {
    Tier.RISK: [
        (TaskKind.MEDICATION, "Medication", "Give liquid calcium 10 ml (after meals)"),
        (TaskKind.MEDICATION, "Medication", "Give vitamin D 1 capsule (with breakfast)"),
    ],
    Tier.SUBHEALTH: [
        (TaskKind.NUTRITION, "Nutrition", "Ask the kitchen to add an egg to dinner"),
        (TaskKind.NUTRITION, "Nutrition", "Give a 200 ml milk drink"),
    ],
    Tier.HEALTHY: [
        (TaskKind.CARE_ACTIVITY, "Care activity", "Outdoor activity for 20 minutes"),
    ],
}


def generate_tasks(tier: Tier, is_recheck: bool = False) -> list[Task]:
    """
    Build the care checklist for a tier.

    Deterministic: two calls with the same tier give the same kinds in the same
    order, every task with ``completed=False`` and a fresh id.
    """
    origin = TaskOrigin.RECHECK if is_recheck else TaskOrigin.SCREENING
    tasks = [
        Task(kind=kind, title=title, description=description, origin=origin)
        for kind, title, description in _TIER_TASKS[tier]
    ]
    logger.debug("tasks_generated", tier=tier.value, count=len(tasks), origin=origin.value)
    return tasks


def _dose_text(plan: InterventionPlan) -> str:
    if plan.dose_multiplier == 1:
        return "usual daily dose"
    return f"{plan.dose_multiplier}x the usual daily dose"


def generate_plan_tasks(plan: InterventionPlan) -> list[Task]:
    """Replace the checklist with the tasks of a newly confirmed plan."""
    tasks = [
        Task(
            kind=TaskKind.MEDICATION,
            title="Medication",
            description=f"Give {plan.name} ({_dose_text(plan)})",
            origin=TaskOrigin.PLAN,
        )
    ]

    if plan.origin is SolutionType.REINFORCE_COMPLIANCE:
        tasks.append(
            Task(
                kind=TaskKind.CARE_ACTIVITY,
                title="Supervision",
                description=f"Watch every {plan.name} dose being taken and check it off immediately",
                origin=TaskOrigin.PLAN,
            )
        )

    logger.debug("plan_tasks_generated", plan_id=plan.plan_id, count=len(tasks))
    return tasks
