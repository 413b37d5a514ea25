"""Workspace management for Wave Plan.

This module provides the project-side storage used by the planner: the
feature catalog it reads, the profile settings it consults, and the plan
snapshot and markdown report it writes.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Protocol

from .catalog import parse_features_from_markdown
from .models import PROFILE_TYPES, Feature, PlanState, utc_timestamp
from .plan_logging import (
    log_error_with_context,
    log_markdown_export,
    log_operation,
    observability_hooks,
)
from .rendering import generate_plan_markdown

logger = logging.getLogger("waveplan.workspace")


class PlanStore(Protocol):
    """Anything that can persist and return a plan snapshot."""

    def load_plan(self) -> Optional[PlanState]:
        ...

    def save_plan(self, plan: PlanState) -> Optional[Path]:
        ...


class InMemoryPlanStore:
    """Plan store that keeps the snapshot in memory."""

    def __init__(self, plan: Optional[PlanState] = None):
        self._snapshot = plan.to_dict() if plan else None
        self.saves = 0

    def load_plan(self) -> Optional[PlanState]:
        if self._snapshot is None:
            return None
        return PlanState.from_dict(self._snapshot)

    def save_plan(self, plan: PlanState) -> Optional[Path]:
        plan.updated_at = utc_timestamp()
        self._snapshot = plan.to_dict()
        self.saves += 1
        return None


class Workspace:
    """File-backed planner storage rooted at a project directory."""

    STATE_DIR_ENV = "WAVEPLAN_STATE_DIR"
    DEFAULT_STATE_DIR = ".framework"
    PLAN_FILE = "plan.json"
    PROJECT_FILE = "project.json"
    CATALOG_PATH = Path("docs") / "requirements" / "SSOT-1_FEATURE_CATALOG.md"

    def __init__(self, root: Path | str):
        """Initialize workspace with given root directory."""
        self.root = Path(root).expanduser().resolve()
        self.state_dir = self.root / (os.getenv(self.STATE_DIR_ENV) or self.DEFAULT_STATE_DIR)
        logger.debug(f"Workspace initialized at {self.root}")

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def plan_path(self) -> Path:
        """Get path to the plan snapshot."""
        return self.state_dir / self.PLAN_FILE

    @property
    def project_path(self) -> Path:
        return self.state_dir / self.PROJECT_FILE

    @property
    def catalog_path(self) -> Path:
        return self.root / self.CATALOG_PATH

    def is_initialized(self) -> bool:
        """Check whether the project state directory exists."""
        return self.state_dir.is_dir()

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def load_features(self) -> List[Feature]:
        """Read the feature catalog; a missing catalog yields no features."""
        if not self.catalog_path.exists():
            logger.info(f"No feature catalog at {self.catalog_path}")
            return []
        features = parse_features_from_markdown(self.catalog_path.read_text(encoding="utf-8"))
        logger.info(f"Loaded {len(features)} features from {self.catalog_path}")
        return features

    def load_profile_type(self) -> Optional[str]:
        """Return the project's profile type, or ``None`` when unknown."""
        if not self.project_path.exists():
            return None
        try:
            state = json.loads(self.project_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable project settings {self.project_path}: {e}")
            return None

        profile_type = state.get("profileType") if isinstance(state, dict) else None
        if isinstance(profile_type, str) and profile_type in PROFILE_TYPES:
            return profile_type
        return None

    # ------------------------------------------------------------------
    # Plan snapshot
    # ------------------------------------------------------------------

    def load_plan(self) -> Optional[PlanState]:
        """Load the stored plan; a missing snapshot yields ``None``."""
        path = self.plan_path
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            log_error_with_context(e, {"operation": "load_plan", "path": str(path)})
            raise ValueError(f"Plan snapshot at {path} is not valid JSON: {e}") from e
        return PlanState.from_dict(data)

    def save_plan(self, plan: PlanState) -> Optional[Path]:
        """Write the plan snapshot, replacing any previous one."""
        path = self.plan_path
        try:
            with log_operation("save_plan", path=str(path)):
                path.parent.mkdir(parents=True, exist_ok=True)
                plan.updated_at = utc_timestamp()
                staging = path.with_suffix(".json.tmp")
                staging.write_text(json.dumps(plan.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
                staging.replace(path)
        except OSError as e:
            log_error_with_context(e, {"operation": "save_plan", "path": str(path)})
            raise RuntimeError(f"Could not save plan to {path}: {e}") from e

        logger.info(f"Plan saved to {path}")
        observability_hooks.log_workflow_event("plan_saved", path=str(path), wave_count=len(plan.waves))
        return path

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def resolve_output(self, output: Path | str) -> Path:
        path = Path(output).expanduser()
        if not path.is_absolute():
            path = self.root / path
        return path

    def write_markdown(self, plan: PlanState, output: Path | str, profile_type: Optional[str] = None) -> Path:
        """Render ``plan`` to markdown at ``output`` (relative to the project root)."""
        path = self.resolve_output(output)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(generate_plan_markdown(plan, profile_type), encoding="utf-8")
        except OSError as e:
            log_error_with_context(e, {"operation": "write_markdown", "path": str(path)})
            raise RuntimeError(f"Could not write plan markdown to {path}: {e}") from e

        log_markdown_export(path, feature_count=plan.total_features)
        return path
