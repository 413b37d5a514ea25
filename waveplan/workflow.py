"""Workflow management for Wave Plan.

This module ties the planning engine to project storage. Every public
method returns a response dictionary; failures are reported through
``error``/``suggestion`` keys instead of exceptions so that tool callers
can decide how to react.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from .engine import LayerRules, generate_plan
from .models import PROFILE_TYPES, Feature
from .plan_logging import log_error_with_context, log_performance, observability_hooks
from .rendering import format_cycle, format_plan_status, format_plan_summary, generate_plan_markdown
from .tasks import ORDER_MODES, decompose_feature, decompose_plan, determine_task_order_mode
from .workspace import PlanStore, Workspace

logger = logging.getLogger("waveplan.workflow")

DEFAULT_PROFILE = "app"

WORKFLOW_STEPS = (
    {
        "step": 1,
        "tool": "generate_plan",
        "description": "Build waves from the feature catalog and save the plan snapshot",
        "purpose": "Establish a dependency-respecting implementation order",
    },
    {
        "step": 2,
        "tool": "plan_status",
        "description": "Review the stored plan and any circular dependencies",
        "purpose": "Resolve cycles before implementation starts",
    },
    {
        "step": 3,
        "tool": "render_plan_markdown",
        "description": "Export the plan with per-feature task tables",
        "purpose": "Share the plan as a readable document",
    },
    {
        "step": 4,
        "tool": "list_plan_tasks",
        "description": "Expand every planned feature into its six chained tasks",
        "purpose": "Hand an ordered task list to the executor",
    },
)


class PlanManager:
    """Run the planning workflow for one project."""

    def __init__(
        self,
        root: Path | str,
        *,
        store: Optional[PlanStore] = None,
        layer_rules: Optional[LayerRules] = None,
    ):
        """Initialize the manager; ``store`` defaults to the project's plan file."""
        self.workspace = Workspace(root)
        self.store: PlanStore = store if store is not None else self.workspace
        self.layer_rules = layer_rules

    def resolve_profile_type(self, profile_type: Optional[str] = None) -> str:
        """Explicit argument, then project settings, then ``app``."""
        if profile_type:
            if profile_type not in PROFILE_TYPES:
                logger.warning(f"Unknown profile type '{profile_type}', task order falls back to normal")
            return profile_type
        return self.workspace.load_profile_type() or DEFAULT_PROFILE

    # ------------------------------------------------------------------
    # Plan generation
    # ------------------------------------------------------------------

    @log_performance("plan_workflow")
    def generate_plan(
        self,
        features: Optional[Iterable[Union[Feature, Dict[str, Any]]]] = None,
        output: Optional[str] = None,
        profile_type: Optional[str] = None,
        save: bool = True,
    ) -> Dict[str, Any]:
        """Generate, persist and optionally export the implementation plan."""
        try:
            catalog = list(features) if features is not None else self.workspace.load_features()
            result = generate_plan(catalog, self.layer_rules)

            if result.errors or result.plan is None:
                return {
                    "error": result.errors[0] if result.errors else "Plan generation failed",
                    "errors": list(result.errors),
                    "suggestion": (
                        f"Add features to {self.workspace.catalog_path} or pass them explicitly"
                    ),
                    "next_suggested_step": "generate_plan",
                    "message": f"Error: {'; '.join(result.errors)}",
                }

            plan = result.plan
            plan_path = self.store.save_plan(plan) if save else None

            markdown_path = None
            if output:
                profile = self.resolve_profile_type(profile_type) if profile_type else None
                markdown_path = self.workspace.write_markdown(plan, output, profile)

            cycles = plan.circular_dependencies
            logger.info(
                f"Generated plan with {plan.total_features} features in {len(plan.waves)} waves"
            )

            return {
                "plan": plan.to_dict(),
                "errors": [],
                "summary": format_plan_summary(plan),
                "plan_path": str(plan_path) if plan_path else None,
                "markdown_path": str(markdown_path) if markdown_path else None,
                "wave_count": len(plan.waves),
                "feature_count": plan.total_features,
                "task_count": plan.total_tasks,
                "circular_dependencies": [format_cycle(cycle) for cycle in cycles],
                "next_suggested_step": "plan_status" if cycles else "list_plan_tasks",
                "workflow_tip": (
                    "Resolve circular dependencies, then regenerate the plan"
                    if cycles
                    else "Next: expand the plan into tasks with list_plan_tasks"
                ),
                "message": (
                    f"Plan generated: {plan.total_features} features, {len(plan.waves)} waves, "
                    f"~{plan.total_tasks} tasks"
                    + (f", {len(cycles)} circular dependencies need resolution" if cycles else "")
                ),
            }

        except Exception as e:
            log_error_with_context(e, {"operation": "generate_plan", "root": str(self.workspace.root)})
            return {
                "error": f"Failed to generate plan: {e}",
                "errors": [str(e)],
                "suggestion": "Check that the project root exists and is writable",
                "next_suggested_step": "generate_plan",
                "message": f"Error: {e}",
            }

    # ------------------------------------------------------------------
    # Plan inspection
    # ------------------------------------------------------------------

    def plan_status(self) -> Dict[str, Any]:
        """Describe the stored plan, if any."""
        try:
            plan = self.store.load_plan()
        except Exception as e:
            log_error_with_context(e, {"operation": "plan_status"})
            return {
                "exists": False,
                "error": f"Failed to load plan: {e}",
                "suggestion": "Regenerate the plan with generate_plan",
                "next_suggested_step": "generate_plan",
                "message": f"Error: {e}",
            }

        if plan is None:
            return {
                "exists": False,
                "plan": None,
                "lines": format_plan_status(None),
                "next_suggested_step": "generate_plan",
                "message": "No plan found. Run generate_plan to create one.",
            }

        return {
            "exists": True,
            "plan": plan.to_dict(),
            "lines": format_plan_status(plan),
            "issues": plan.validate(),
            "wave_count": len(plan.waves),
            "feature_count": plan.total_features,
            "circular_dependencies": [format_cycle(cycle) for cycle in plan.circular_dependencies],
            "next_suggested_step": "render_plan_markdown",
            "message": f"Plan {plan.status}: {plan.total_features} features in {len(plan.waves)} waves",
        }

    def render_markdown(
        self,
        output: Optional[str] = None,
        profile_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Render the stored plan as markdown, writing it to ``output`` when given."""
        try:
            plan = self.store.load_plan()
            if plan is None:
                return {
                    "error": "No plan found",
                    "suggestion": "Call generate_plan first",
                    "next_suggested_step": "generate_plan",
                }

            profile = self.resolve_profile_type(profile_type) if profile_type else None
            content = generate_plan_markdown(plan, profile)
            path = self.workspace.write_markdown(plan, output, profile) if output else None
            return {
                "content": content,
                "markdown_path": str(path) if path else None,
                "next_suggested_step": "list_plan_tasks",
                "message": f"Plan written to {path}" if path else "Plan rendered",
            }
        except Exception as e:
            log_error_with_context(e, {"operation": "render_markdown", "output": output})
            return {
                "error": f"Failed to render plan: {e}",
                "suggestion": "Check the output path and regenerate the plan if it is corrupted",
                "next_suggested_step": "plan_status",
            }

    # ------------------------------------------------------------------
    # Task decomposition
    # ------------------------------------------------------------------

    def list_plan_tasks(
        self,
        profile_type: Optional[str] = None,
        feature_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Expand the stored plan into tasks, optionally for one feature."""
        try:
            plan = self.store.load_plan()
            if plan is None:
                return {
                    "error": "No plan found",
                    "suggestion": "Call generate_plan first",
                    "next_suggested_step": "generate_plan",
                }

            profile = self.resolve_profile_type(profile_type)
            tasks = decompose_plan(plan, profile)
            if feature_id:
                tasks = [task for task in tasks if task.feature_id == feature_id]
                if not tasks:
                    return {
                        "error": f"Feature '{feature_id}' is not in the plan",
                        "suggestion": "Check plan_status for planned features and circular dependencies",
                        "next_suggested_step": "plan_status",
                    }

            observability_hooks.log_workflow_event(
                "tasks_listed", profile_type=profile, task_count=len(tasks), feature_id=feature_id
            )
            return {
                "profile_type": profile,
                "tasks": [task.to_dict() for task in tasks],
                "count": len(tasks),
                "message": f"{len(tasks)} tasks for profile '{profile}'",
            }
        except Exception as e:
            log_error_with_context(e, {"operation": "list_plan_tasks", "feature_id": feature_id})
            return {
                "error": f"Failed to list tasks: {e}",
                "suggestion": "Regenerate the plan with generate_plan",
                "next_suggested_step": "generate_plan",
            }

    def decompose_feature(
        self,
        feature: Union[Feature, Dict[str, Any]],
        order_mode: Optional[str] = None,
        profile_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Decompose a single feature record into its task chain."""
        try:
            record = Feature.from_dict(feature) if isinstance(feature, dict) else feature
            if order_mode is None:
                order_mode = determine_task_order_mode(self.resolve_profile_type(profile_type), record.type)
            if order_mode not in ORDER_MODES:
                return {
                    "error": f"Unknown order mode '{order_mode}'",
                    "available_modes": list(ORDER_MODES),
                }

            tasks = decompose_feature(record, order_mode)
            return {
                "feature_id": record.id,
                "order_mode": order_mode,
                "tasks": [task.to_dict() for task in tasks],
                "count": len(tasks),
            }
        except (KeyError, TypeError, ValueError) as e:
            return {
                "error": f"Failed to decompose feature: {e}",
                "suggestion": "Provide at least an 'id' for the feature",
            }

    # ------------------------------------------------------------------
    # Guidance
    # ------------------------------------------------------------------

    @staticmethod
    def get_workflow_guide() -> Dict[str, Any]:
        """Get guidance on the planning workflow."""
        return {
            "workflow_overview": "Implementation planning workflow in recommended order",
            "steps": [dict(step) for step in WORKFLOW_STEPS],
            "tips": [
                "Common features are planned first, authentication before everything else",
                "Features in a circular dependency are left out of Phase 2 until the cycle is broken",
                "Dependencies on features missing from the catalog are ignored",
                "api and cli projects get test-first task chains",
            ],
        }
