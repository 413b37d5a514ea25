"""MCP server exposing the Wave Plan implementation planner."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from waveplan import PlanManager
from waveplan.plan_logging import setup_logging
from waveplan.tasks import determine_task_order_mode as _determine_task_order_mode

mcp = FastMCP("waveplan")


PROJECT_MARKER_DIRECTORIES = (".framework",)


def _candidate_bases() -> List[Path]:
    cwd = Path.cwd().resolve()
    bases: List[Path] = [cwd]
    bases.extend(cwd.parents)
    seen: set[Path] = set()
    ordered: List[Path] = []
    for base in bases:
        if base not in seen:
            seen.add(base)
            ordered.append(base)
    return ordered


def _locate_workspace_root() -> Optional[Path]:
    for base in _candidate_bases():
        for marker in PROJECT_MARKER_DIRECTORIES:
            if (base / marker).is_dir():
                return base
    return None


def _resolve_root(root: Optional[str]) -> Path:
    if root:
        resolved = Path(root).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Provided root '{root}' does not exist.")
        return resolved

    env_root = os.getenv("WAVEPLAN_PROJECT_ROOT")
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if not env_path.exists():
            raise ValueError(
                f"Environment variable WAVEPLAN_PROJECT_ROOT points to '{env_root}', which does not exist."
            )
        return env_path

    detected_root = _locate_workspace_root()
    if detected_root:
        return detected_root

    raise ValueError(
        "Unable to determine project root automatically. Provide the 'root' argument when calling the tool "
        "or set the WAVEPLAN_PROJECT_ROOT environment variable."
    )


def _manager(root: Optional[str]) -> PlanManager:
    return PlanManager(_resolve_root(root))


def _manager_optional(root: Optional[str]) -> Optional[PlanManager]:
    try:
        return _manager(root)
    except ValueError:
        return None


@mcp.tool()
def generate_plan(
    features: Optional[List[Dict[str, Any]]] = None,
    output: Optional[str] = None,
    profile_type: Optional[str] = None,
    root: Optional[str] = None,
    save: bool = True,
) -> Dict[str, Any]:
    """STEP 1: Build the implementation plan from the feature catalog.
    Features default to docs/requirements/SSOT-1_FEATURE_CATALOG.md; pass `features`
    (id, name, priority, size, type, dependencies) to plan an explicit list instead.
    The plan is saved to .framework/plan.json and, with `output`, exported as markdown."""

    return _manager(root).generate_plan(
        features=features,
        output=output,
        profile_type=profile_type,
        save=save,
    )


@mcp.tool()
def plan_status(root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 2: Show the stored plan: waves, features and circular dependencies."""

    return _manager(root).plan_status()


@mcp.tool()
def render_plan_markdown(
    output: Optional[str] = None,
    profile_type: Optional[str] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """STEP 3: Render the stored plan as markdown with per-feature task tables.
    Writes the document to `output` (relative to the project root) when provided."""

    return _manager(root).render_markdown(output=output, profile_type=profile_type)


@mcp.tool()
def list_plan_tasks(
    profile_type: Optional[str] = None,
    feature_id: Optional[str] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """STEP 4: Expand every planned feature into its six chained tasks.
    Task order follows the profile type (api/cli are test-first); the profile defaults
    to the project's .framework/project.json, then 'app'."""

    return _manager(root).list_plan_tasks(profile_type=profile_type, feature_id=feature_id)


@mcp.tool()
def decompose_feature(
    feature: Dict[str, Any],
    order_mode: Optional[str] = None,
    profile_type: Optional[str] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """Decompose one feature record into DB/API/UI/INTEGRATION/REVIEW/TEST tasks.
    `order_mode` is 'normal' or 'tdd'; when omitted it is derived from the profile type."""

    manager = _manager(root) if root else _manager_optional(None) or PlanManager(Path.cwd())
    return manager.decompose_feature(feature, order_mode=order_mode, profile_type=profile_type)


@mcp.tool()
def determine_task_order_mode(profile_type: str, feature_type: Optional[str] = None) -> Dict[str, str]:
    """Return the task order ('normal' or 'tdd') used for a profile and feature type."""

    return {
        "profile_type": profile_type,
        "feature_type": feature_type or "",
        "order_mode": _determine_task_order_mode(profile_type, feature_type),
    }


@mcp.tool()
def get_workflow_guide() -> Dict[str, Any]:
    """Get guidance on the recommended planning workflow."""

    return PlanManager.get_workflow_guide()


@mcp.resource("waveplan://plan")
def resource_plan() -> str:
    """Resource view of the stored plan as markdown."""

    manager = _manager_optional(None)
    if not manager:
        return "No project root detected. Launch tools with a 'root' argument or set WAVEPLAN_PROJECT_ROOT."

    result = manager.render_markdown()
    if result.get("error"):
        return "No plan has been generated yet."
    return result["content"]


if __name__ == "__main__":
    setup_logging(os.getenv("WAVEPLAN_LOG_LEVEL", "INFO").upper())
    mcp.run(transport="stdio")
