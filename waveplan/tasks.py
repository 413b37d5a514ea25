"""Task decomposition for Wave Plan.

Every feature expands into the same six implementation steps, chained so
that each step is blocked by the one before it. Two step orders exist:

* ``normal``: DB -> API -> UI -> INTEGRATION -> REVIEW -> TEST
* ``tdd``: TEST -> DB -> API -> UI -> INTEGRATION -> REVIEW
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import Feature, PlanState, Task

NORMAL = "normal"
TDD = "tdd"
ORDER_MODES = (NORMAL, TDD)

TDD_PROFILES = ("api", "cli")


@dataclass(slots=True, frozen=True)
class TaskDefinition:
    """Static description of one pipeline step."""

    kind: str
    name: str
    references: Tuple[str, ...]


DB = TaskDefinition("db", "Database", ("§4",))
API = TaskDefinition("api", "API", ("§5", "§7", "§9"))
UI = TaskDefinition("ui", "UI", ("§6",))
INTEGRATION = TaskDefinition("integration", "Integration", ("§5", "§6"))
REVIEW = TaskDefinition("review", "Code Audit", ("All",))
TEST = TaskDefinition("test", "Testing", ("§10",))
TEST_FIRST = TaskDefinition("test", "Testing (TDD)", ("§10",))

TASK_DEFINITIONS_NORMAL: Tuple[TaskDefinition, ...] = (DB, API, UI, INTEGRATION, REVIEW, TEST)
TASK_DEFINITIONS_TDD: Tuple[TaskDefinition, ...] = (TEST_FIRST, DB, API, UI, INTEGRATION, REVIEW)


def determine_task_order_mode(profile_type: str, feature_type: Optional[str] = None) -> str:
    """Pick the step order for a feature.

    api and cli projects are always test-first. In app projects, common
    (shared backend) features are test-first and proprietary ones are not.
    Every other combination uses the normal order.
    """
    if profile_type in TDD_PROFILES:
        return TDD
    if profile_type == "app" and feature_type == "common":
        return TDD
    return NORMAL


def task_definitions(order_mode: str = NORMAL) -> Tuple[TaskDefinition, ...]:
    if order_mode not in ORDER_MODES:
        raise ValueError(f"Unknown task order mode '{order_mode}', expected one of {ORDER_MODES}")
    return TASK_DEFINITIONS_TDD if order_mode == TDD else TASK_DEFINITIONS_NORMAL


def task_id(feature_id: str, kind: str) -> str:
    return f"{feature_id}-{kind.upper()}"


def estimate_task_size(feature_size: str, kind: str) -> str:
    """Rough per-step effort derived from the feature size."""
    if kind in ("db", "review"):
        return "M" if feature_size == "XL" else "S"
    if kind == "test":
        return "S" if feature_size == "S" else "M"
    return feature_size


def decompose_feature(feature: Feature, order_mode: str = NORMAL) -> List[Task]:
    """Expand ``feature`` into its six chained implementation tasks."""
    definitions = task_definitions(order_mode)
    ids = [task_id(feature.id, definition.kind) for definition in definitions]

    tasks = []
    for index, definition in enumerate(definitions):
        tasks.append(
            Task(
                id=ids[index],
                feature_id=feature.id,
                kind=definition.kind,
                name=f"{feature.name} - {definition.name}",
                references=list(definition.references),
                blocked_by=[ids[index - 1]] if index > 0 else [],
                blocks=[ids[index + 1]] if index < len(ids) - 1 else [],
                size=estimate_task_size(feature.size, definition.kind),
            )
        )
    return tasks


def decompose_plan(plan: PlanState, profile_type: str = "app") -> List[Task]:
    """Expand every planned feature, in plan order, using the profile's order policy."""
    tasks: List[Task] = []
    for wave in plan.waves:
        for feature in wave.features:
            mode = determine_task_order_mode(profile_type, feature.type)
            tasks.extend(decompose_feature(feature, mode))
    return tasks
