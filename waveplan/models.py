"""Data models for Wave Plan.

This module contains the core data structures used throughout the planner,
representing features, waves, implementation tasks and the persisted plan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


PRIORITIES = ("P0", "P1", "P2")
SIZES = ("S", "M", "L", "XL")
FEATURE_TYPES = ("common", "proprietary")
PHASES = ("common", "individual")
PLAN_STATUSES = ("draft", "generated")
PROFILE_TYPES = ("app", "lp", "hp", "api", "cli")
TASK_KINDS = ("db", "api", "ui", "integration", "review", "test")


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string with a Z suffix."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


@dataclass(slots=True)
class Feature:
    """A unit of product scope taken from the feature catalog."""

    id: str
    name: str
    priority: str = "P1"
    size: str = "M"
    type: str = "proprietary"
    dependencies: List[str] = field(default_factory=list)
    dependency_count: int = 0  # how many other features list this one as a dependency

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "priority": self.priority,
            "size": self.size,
            "type": self.type,
            "dependencies": list(self.dependencies),
            "dependencyCount": self.dependency_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Feature":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            priority=data.get("priority", "P1"),
            size=data.get("size", "M"),
            type=data.get("type", "proprietary"),
            dependencies=list(data.get("dependencies", [])),
            dependency_count=data.get("dependencyCount", data.get("dependency_count", 0)),
        )

    def copy(self) -> "Feature":
        """Return an independent copy of this feature."""
        return Feature(
            id=self.id,
            name=self.name,
            priority=self.priority,
            size=self.size,
            type=self.type,
            dependencies=list(self.dependencies),
            dependency_count=self.dependency_count,
        )

    @property
    def is_common(self) -> bool:
        return self.type == "common"

    def validate(self) -> List[str]:
        """Validate the feature and return any issues."""
        issues = []

        if not self.id:
            issues.append("Feature ID is required")
        if not self.name:
            issues.append("Feature name is required")
        if self.priority not in PRIORITIES:
            issues.append(f"Invalid priority: {self.priority}")
        if self.size not in SIZES:
            issues.append(f"Invalid size: {self.size}")
        if self.type not in FEATURE_TYPES:
            issues.append(f"Invalid feature type: {self.type}")
        if self.id and self.id in self.dependencies:
            issues.append(f"Feature {self.id} depends on itself")
        if self.dependency_count < 0:
            issues.append("Dependency count cannot be negative")

        return issues


@dataclass(slots=True)
class Task:
    """One step of the fixed implementation pipeline for a feature."""

    id: str
    feature_id: str
    kind: str
    name: str
    references: List[str] = field(default_factory=list)
    blocked_by: List[str] = field(default_factory=list)
    blocks: List[str] = field(default_factory=list)
    size: str = "M"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "featureId": self.feature_id,
            "kind": self.kind,
            "name": self.name,
            "references": list(self.references),
            "blockedBy": list(self.blocked_by),
            "blocks": list(self.blocks),
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            feature_id=data["featureId"],
            kind=data["kind"],
            name=data.get("name", data["id"]),
            references=list(data.get("references", [])),
            blocked_by=list(data.get("blockedBy", [])),
            blocks=list(data.get("blocks", [])),
            size=data.get("size", "M"),
        )


@dataclass(slots=True)
class Wave:
    """A batch of features that can be implemented in parallel."""

    number: int
    phase: str
    title: str
    features: List[Feature] = field(default_factory=list)
    layer: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "number": self.number,
            "phase": self.phase,
            "layer": self.layer,
            "title": self.title,
            "features": [feature.to_dict() for feature in self.features],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Wave":
        """Create from dictionary representation."""
        return cls(
            number=data["number"],
            phase=data["phase"],
            title=data.get("title", ""),
            features=[Feature.from_dict(item) for item in data.get("features", [])],
            layer=data.get("layer"),
        )

    @property
    def phase_label(self) -> str:
        """Human readable phase/layer label used in reports."""
        if self.phase == "common":
            return f"Phase 1, Layer {self.layer}"
        return "Phase 2"

    def feature_ids(self) -> List[str]:
        return [feature.id for feature in self.features]


@dataclass(slots=True)
class PlanState:
    """The persisted implementation plan snapshot."""

    status: str = "draft"
    generated_at: str = field(default_factory=utc_timestamp)
    updated_at: str = field(default_factory=utc_timestamp)
    waves: List[Wave] = field(default_factory=list)
    circular_dependencies: List[List[str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "status": self.status,
            "generatedAt": self.generated_at,
            "updatedAt": self.updated_at,
            "waves": [wave.to_dict() for wave in self.waves],
            "circularDependencies": [list(cycle) for cycle in self.circular_dependencies],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanState":
        """Create from dictionary representation."""
        return cls(
            status=data.get("status", "draft"),
            generated_at=data.get("generatedAt", ""),
            updated_at=data.get("updatedAt", ""),
            waves=[Wave.from_dict(item) for item in data.get("waves", [])],
            circular_dependencies=[list(cycle) for cycle in data.get("circularDependencies", [])],
        )

    def all_features(self) -> List[Feature]:
        """Return every planned feature in wave order."""
        return [feature for wave in self.waves for feature in wave.features]

    @property
    def total_features(self) -> int:
        return sum(len(wave.features) for wave in self.waves)

    @property
    def total_tasks(self) -> int:
        return self.total_features * len(TASK_KINDS)

    def find_wave(self, feature_id: str) -> Optional[Wave]:
        """Return the wave that contains ``feature_id``, if any."""
        for wave in self.waves:
            if feature_id in wave.feature_ids():
                return wave
        return None

    def validate(self) -> List[str]:
        """Validate the plan structure and return any issues."""
        issues = []

        if self.status not in PLAN_STATUSES:
            issues.append(f"Invalid plan status: {self.status}")

        seen: set[str] = set()
        for index, wave in enumerate(self.waves, start=1):
            if wave.number != index:
                issues.append(f"Wave numbers must be sequential, expected {index} got {wave.number}")
            if wave.phase not in PHASES:
                issues.append(f"Invalid phase for wave {wave.number}: {wave.phase}")
            for feature in wave.features:
                if feature.id in seen:
                    issues.append(f"Feature {feature.id} appears in more than one wave")
                seen.add(feature.id)

        return issues


@dataclass(slots=True)
class PlanResult:
    """Outcome of a single planning run."""

    plan: Optional[PlanState] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and self.plan is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "plan": self.plan.to_dict() if self.plan else None,
            "errors": list(self.errors),
        }
