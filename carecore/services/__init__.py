"""
Core services for the engine.

This package contains the pure decision functions (classification, tasks,
compliance, recommendation), the encounter workflow, and the ports the
workflow calls through.
"""

from carecore.config import get_config
from carecore.logging_setup import configure_logging

configure_logging(get_config().logging)

from .classifier import classify, diagnosis_for, score_change  # noqa: E402
from .compliance import audit_compliance, unverified_audit  # noqa: E402
from .ports import ProductCatalog, ReadingSource, ResidentRepository  # noqa: E402
from .recommender import InterventionRecommender, drop_percentage  # noqa: E402
from .result import Result  # noqa: E402
from .tasks import generate_plan_tasks, generate_tasks  # noqa: E402
from .vitals import assess_signal, find_critical_values  # noqa: E402
from .workflow import SessionWorkflow, WorkflowState  # noqa: E402
from .worklist import WorklistEntry, filter_by_tier, order_worklist, tier_counts  # noqa: E402

__all__ = [
    "InterventionRecommender",
    "ProductCatalog",
    "ReadingSource",
    "ResidentRepository",
    "Result",
    "SessionWorkflow",
    "WorkflowState",
    "WorklistEntry",
    "assess_signal",
    "audit_compliance",
    "classify",
    "diagnosis_for",
    "drop_percentage",
    "filter_by_tier",
    "find_critical_values",
    "generate_plan_tasks",
    "generate_tasks",
    "order_worklist",
    "score_change",
    "tier_counts",
    "unverified_audit",
]
