"""Feature catalog reader.

Reads feature records out of a markdown table shaped like::

    | ID | Feature Name | Priority | Type | Size | Dependencies |
    |----|--------------|----------|------|------|--------------|
    | AUTH-001 | Login | P0 | common | M | None |
"""

from __future__ import annotations

import re
from typing import List, Optional

from .models import PRIORITIES, SIZES, Feature

_SEPARATOR_CELL = re.compile(r"^:?-+:?$")
_PLACEHOLDERS = {"", "None", "TBD", "-"}


def _split_row(line: str) -> List[str]:
    inner = line.strip()
    if inner.startswith("|"):
        inner = inner[1:]
    if inner.endswith("|"):
        inner = inner[:-1]
    return [cell.strip() for cell in inner.split("|")]


def _is_header(cells: List[str]) -> bool:
    return cells[0] == "ID" or "Feature Name" in cells


def _is_separator(cells: List[str]) -> bool:
    return all(_SEPARATOR_CELL.match(cell) for cell in cells if cell)


def parse_dependencies(cell: str) -> List[str]:
    """Split a dependency cell into IDs; ``None`` and ``TBD`` mean no dependencies."""
    if cell in _PLACEHOLDERS:
        return []
    return [dep.strip() for dep in cell.split(",") if dep.strip() and dep.strip() not in _PLACEHOLDERS]


def parse_feature_row(line: str) -> Optional[Feature]:
    """Parse one table row, returning ``None`` for rows that are not features."""
    if not line.strip().startswith("|"):
        return None

    cells = _split_row(line)
    if len(cells) < 6 or _is_header(cells) or _is_separator(cells):
        return None

    feature_id, name, priority, raw_type, size, deps = cells[:6]
    if not feature_id or feature_id == "TBD" or name == "TBD":
        return None
    if priority not in PRIORITIES:
        return None

    return Feature(
        id=feature_id,
        name=name,
        priority=priority,
        size=size if size in SIZES else "M",
        type="common" if raw_type.lower() == "common" else "proprietary",
        dependencies=parse_dependencies(deps),
    )


def parse_features_from_markdown(content: str) -> List[Feature]:
    """Collect every feature row found in ``content``, in document order."""
    features: List[Feature] = []
    for line in content.splitlines():
        feature = parse_feature_row(line)
        if feature is not None:
            features.append(feature)
    return features
