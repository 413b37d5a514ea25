"""Human-readable renderings of an implementation plan."""

from __future__ import annotations

from typing import List, Optional

from .models import PlanState
from .tasks import NORMAL, decompose_feature, determine_task_order_mode


def format_cycle(cycle: List[str]) -> str:
    """Render ``[a, b, c]`` as ``a -> b -> c -> a``."""
    if not cycle:
        return ""
    return " -> ".join(list(cycle) + [cycle[0]])


def generate_plan_markdown(plan: PlanState, profile_type: Optional[str] = None) -> str:
    """Render the plan as a markdown document.

    Task tables use the normal step order unless ``profile_type`` is given,
    in which case each feature follows the profile's order policy.
    """
    lines: List[str] = []

    lines.append("# Implementation Plan")
    lines.append("")
    lines.append(f"> Generated: {plan.generated_at}")
    lines.append("")

    for wave in plan.waves:
        lines.append(f"## {wave.title} ({wave.phase_label})")
        lines.append("")
        lines.append("| # | Feature ID | Name | Priority | Size | Dependencies |")
        lines.append("|---|-----------|------|----------|------|-------------|")

        for idx, feature in enumerate(wave.features, start=1):
            deps = ", ".join(feature.dependencies) if feature.dependencies else "None"
            lines.append(
                f"| {idx} | {feature.id} | {feature.name} | {feature.priority} | {feature.size} | {deps} |"
            )

        lines.append("")

        for feature in wave.features:
            mode = determine_task_order_mode(profile_type, feature.type) if profile_type else NORMAL
            lines.append(f"### {feature.id}: {feature.name}")
            lines.append("")
            lines.append("| Task | Size | Blocked By | References |")
            lines.append("|------|------|-----------|-----------|")
            for task in decompose_feature(feature, mode):
                blocked = ", ".join(task.blocked_by) if task.blocked_by else "None"
                lines.append(f"| {task.id} | {task.size} | {blocked} | {', '.join(task.references)} |")
            lines.append("")

    if plan.circular_dependencies:
        lines.append("## Circular Dependencies")
        lines.append("")
        lines.append("> These need manual resolution before implementation.")
        lines.append("")
        for cycle in plan.circular_dependencies:
            lines.append(f"- {format_cycle(cycle)}")
        lines.append("")

    lines.append("---")
    lines.append("")
    lines.append(
        f"Total: {plan.total_features} features, {len(plan.waves)} waves, ~{plan.total_tasks} tasks"
    )

    return "\n".join(lines) + "\n"


def format_plan_summary(plan: PlanState) -> List[str]:
    """Console view of a freshly generated plan."""
    lines: List[str] = ["", "━" * 38, "  IMPLEMENTATION PLAN", "━" * 38]

    if plan.circular_dependencies:
        lines.append("")
        lines.append("  WARNING: Circular dependencies detected:")
        for cycle in plan.circular_dependencies:
            lines.append(f"    {format_cycle(cycle)}")
        lines.append("  These features may need manual resolution.")

    for wave in plan.waves:
        lines.append("")
        lines.append(f"  ## {wave.title} ({wave.phase_label})")
        lines.append("")
        for feature in wave.features:
            deps = f" [deps: {', '.join(feature.dependencies)}]" if feature.dependencies else ""
            lines.append(f"    {feature.id}: {feature.name} ({feature.priority}, {feature.size}){deps}")

    lines.append("")
    lines.append("  ## Dependency Graph")
    lines.append("")
    for feature in plan.all_features():
        if feature.dependencies:
            lines.append(f"    {', '.join(feature.dependencies)} -> {feature.id}")

    lines.append("")
    lines.append(f"  Total: {plan.total_features} features in {len(plan.waves)} waves")
    lines.append(f"  Tasks: ~{plan.total_tasks} (6 per feature: DB/API/UI/Integration/Review/Test)")
    lines.append("")
    return lines


def format_plan_status(plan: Optional[PlanState]) -> List[str]:
    """Status view of a stored plan."""
    if plan is None:
        return ["No plan found. Run generate_plan to create one."]

    lines = [
        "Plan Status",
        "",
        f"  Status: {plan.status}",
        f"  Generated: {plan.generated_at}",
        f"  Updated: {plan.updated_at}",
        "",
    ]
    for wave in plan.waves:
        lines.append(f"  {wave.title} ({wave.phase_label})")
        for feature in wave.features:
            lines.append(f"    {feature.id}: {feature.name} ({feature.priority}, {feature.size})")
        lines.append("")

    if plan.circular_dependencies:
        lines.append(f"  Circular dependencies: {len(plan.circular_dependencies)} (needs resolution)")
    lines.append(f"  Total: {plan.total_features} features, {len(plan.waves)} waves")
    return lines
