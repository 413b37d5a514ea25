"""Wave Plan - implementation planning engine."""

from .engine import (
    DEFAULT_LAYER_RULES,
    LayerRules,
    build_dependency_graph,
    calculate_dependency_counts,
    detect_circular_dependencies,
    generate_plan,
    sort_features_in_wave,
    topological_sort,
)
from .models import Feature, PlanResult, PlanState, Task, Wave
from .rendering import generate_plan_markdown
from .tasks import decompose_feature, decompose_plan, determine_task_order_mode
from .workflow import PlanManager
from .workspace import InMemoryPlanStore, PlanStore, Workspace

__all__ = [
    "DEFAULT_LAYER_RULES",
    "Feature",
    "InMemoryPlanStore",
    "LayerRules",
    "PlanManager",
    "PlanResult",
    "PlanState",
    "PlanStore",
    "Task",
    "Wave",
    "Workspace",
    "build_dependency_graph",
    "calculate_dependency_counts",
    "decompose_feature",
    "decompose_plan",
    "detect_circular_dependencies",
    "determine_task_order_mode",
    "generate_plan",
    "generate_plan_markdown",
    "sort_features_in_wave",
    "topological_sort",
]
