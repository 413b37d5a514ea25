"""Planning engine for Wave Plan.

Turns a feature catalog into an implementation plan:

1. Build the dependency graph (unknown references are dropped)
2. Detect and report circular dependencies
3. Route common features into Phase 1 layers
4. Assign proprietary features to Phase 2 waves by dependency depth
5. Order features inside every wave with the tiebreaker rules

Every step is a small pure function over a ``Dict[str, List[str]]``
adjacency map keyed by feature ID. Traversals use explicit stacks, so
catalog size is not bounded by the interpreter recursion limit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

from .models import Feature, PlanResult, PlanState, Wave, utc_timestamp
from .plan_logging import (
    log_cycles_detected,
    log_error_with_context,
    log_operation,
    log_plan_generation,
)

logger = logging.getLogger("waveplan.engine")

NO_FEATURES_ERROR = "No features found"

PRIORITY_ORDER = {"P0": 0, "P1": 1, "P2": 2}
SIZE_ORDER = {"S": 0, "M": 1, "L": 2, "XL": 3}

DependencyGraph = Dict[str, List[str]]


# ------------------------------------------------------------------
# Dependency graph
# ------------------------------------------------------------------

def build_dependency_graph(features: Sequence[Feature]) -> DependencyGraph:
    """Map every feature ID to the dependency IDs that exist in the catalog."""
    known = {feature.id for feature in features}
    graph: DependencyGraph = {}
    for feature in features:
        deps: List[str] = []
        for dep in feature.dependencies:
            if dep in known and dep not in deps:
                deps.append(dep)
        graph[feature.id] = deps
    return graph


def detect_circular_dependencies(graph: DependencyGraph) -> List[List[str]]:
    """Find circular reference chains with a depth-first traversal.

    Nodes are visited in graph order and neighbors in list order. Whenever
    an edge points at a node on the current path, the path slice starting
    at that node is recorded as a cycle. Each node is expanded once, so the
    result is deterministic for a given graph.
    """
    cycles: List[List[str]] = []
    visited: Set[str] = set()
    on_path: Set[str] = set()

    for start in graph:
        if start in visited:
            continue

        visited.add(start)
        on_path.add(start)
        path = [start]
        stack: List[Tuple[str, Iterator[str]]] = [(start, iter(graph.get(start, [])))]

        while stack:
            node, neighbors = stack[-1]
            descended = False
            for neighbor in neighbors:
                if neighbor in on_path:
                    cycles.append(path[path.index(neighbor):])
                elif neighbor not in visited:
                    visited.add(neighbor)
                    on_path.add(neighbor)
                    path.append(neighbor)
                    stack.append((neighbor, iter(graph.get(neighbor, []))))
                    descended = True
                    break
            if not descended:
                stack.pop()
                path.pop()
                on_path.discard(node)

    return cycles


def cycle_members(cycles: Iterable[Sequence[str]]) -> Set[str]:
    """Return every feature ID that takes part in a reported cycle."""
    return {feature_id for cycle in cycles for feature_id in cycle}


def topological_sort(
    features: Sequence[Feature],
    graph: DependencyGraph,
    excluded: Iterable[str] = (),
) -> Dict[str, int]:
    """Assign a wave number to every feature outside ``excluded``.

    A feature without dependencies lands in wave 1; otherwise it lands one
    wave after its deepest dependency. Edges into ``excluded`` features are
    ignored, as is any edge back into the path being resolved.
    """
    skipped = set(excluded)
    waves: Dict[str, int] = {}

    for feature in features:
        if feature.id in skipped or feature.id in waves:
            continue

        stack = [feature.id]
        resolving = {feature.id}
        while stack:
            node = stack[-1]
            deps = [dep for dep in graph.get(node, []) if dep in graph and dep not in skipped]

            pending = next(
                (dep for dep in deps if dep not in waves and dep not in resolving),
                None,
            )
            if pending is not None:
                resolving.add(pending)
                stack.append(pending)
                continue

            waves[node] = 1 + max((waves[dep] for dep in deps if dep in waves), default=0)
            stack.pop()
            resolving.discard(node)

    return waves


def calculate_dependency_counts(features: Sequence[Feature]) -> None:
    """Set ``dependency_count`` on each feature to the number of features that depend on it."""
    counts: Dict[str, int] = {}
    for feature in features:
        for dep in set(feature.dependencies):
            if dep != feature.id:
                counts[dep] = counts.get(dep, 0) + 1

    for feature in features:
        feature.dependency_count = counts.get(feature.id, 0)


# ------------------------------------------------------------------
# Ordering and grouping
# ------------------------------------------------------------------

def _sort_key(feature: Feature) -> Tuple[int, int, int, str]:
    return (
        PRIORITY_ORDER.get(feature.priority, len(PRIORITY_ORDER)),
        -feature.dependency_count,
        SIZE_ORDER.get(feature.size, len(SIZE_ORDER)),
        feature.id,
    )


def sort_features_in_wave(features: Iterable[Feature]) -> List[Feature]:
    """Order features by priority, dependents (desc), size, then ID.

    Returns a new list and leaves ``features`` untouched.
    """
    return sorted(features, key=_sort_key)


@dataclass(slots=True, frozen=True)
class LayerRules:
    """Keyword rules that split common features into Phase 1 layers.

    Layer 1 holds authentication/account features, layer 2 is reserved for
    a caller-supplied category and stays empty by default, and everything
    else falls through to layer 3.
    """

    layer1_prefixes: Tuple[str, ...] = ("AUTH", "ACCT")
    layer2_prefixes: Tuple[str, ...] = ()
    layer1_title: str = "Authentication Foundation"
    layer2_title: str = "Shared Infrastructure"
    layer3_title: str = "Common Features"

    def classify(self, feature_id: str) -> int:
        if any(feature_id.startswith(prefix) for prefix in self.layer1_prefixes):
            return 1
        if any(feature_id.startswith(prefix) for prefix in self.layer2_prefixes):
            return 2
        return 3

    def title(self, layer: int) -> str:
        return {1: self.layer1_title, 2: self.layer2_title}.get(layer, self.layer3_title)


DEFAULT_LAYER_RULES = LayerRules()


def build_common_waves(features: Sequence[Feature], rules: LayerRules = DEFAULT_LAYER_RULES) -> List[Wave]:
    """Group common features into one wave per non-empty layer."""
    layers: Dict[int, List[Feature]] = {}
    for feature in features:
        layers.setdefault(rules.classify(feature.id), []).append(feature)

    return [
        Wave(
            number=0,
            phase="common",
            layer=layer,
            title=rules.title(layer),
            features=sort_features_in_wave(layers[layer]),
        )
        for layer in sorted(layers)
    ]


def wave_title(depth: int) -> str:
    if depth == 1:
        return "Wave 1: Independent Features"
    return f"Wave {depth}: Depends on Wave {depth - 1}"


def build_individual_waves(features: Sequence[Feature], excluded: Iterable[str] = ()) -> List[Wave]:
    """Group proprietary features into waves by dependency depth."""
    graph = build_dependency_graph(features)
    assignment = topological_sort(features, graph, excluded)

    groups: Dict[int, List[Feature]] = {}
    for feature in features:
        depth = assignment.get(feature.id)
        if depth is None:
            continue
        groups.setdefault(depth, []).append(feature)

    return [
        Wave(
            number=0,
            phase="individual",
            title=wave_title(depth),
            features=sort_features_in_wave(groups[depth]),
        )
        for depth in sorted(groups)
    ]


def _coerce_features(features: Iterable[Union[Feature, Dict[str, Any]]]) -> List[Feature]:
    coerced = []
    for item in features:
        feature = Feature.from_dict(item) if isinstance(item, dict) else item.copy()
        coerced.append(feature)
    return coerced


# ------------------------------------------------------------------
# Engine entry point
# ------------------------------------------------------------------

def generate_plan(
    features: Iterable[Union[Feature, Dict[str, Any]]],
    layer_rules: Optional[LayerRules] = None,
) -> PlanResult:
    """Compute a complete plan for ``features``.

    Never raises: an empty catalog yields ``errors == ["No features found"]``
    and no plan, and unexpected failures are reported through ``errors``.
    Circular dependencies do not fail the run; they are listed in
    ``circular_dependencies`` and their members are left out of Phase 2.
    """
    rules = layer_rules or DEFAULT_LAYER_RULES

    try:
        catalog = _coerce_features(features)
        if not catalog:
            logger.warning("Plan requested for an empty feature catalog")
            return PlanResult(plan=None, errors=[NO_FEATURES_ERROR])

        with log_operation("generate_plan", feature_count=len(catalog)):
            for feature in catalog:
                for issue in feature.validate():
                    logger.warning(f"Feature {feature.id or '<blank>'}: {issue}")

            calculate_dependency_counts(catalog)
            graph = build_dependency_graph(catalog)

            cycles = detect_circular_dependencies(graph)
            if cycles:
                log_cycles_detected(cycles)

            common = [feature for feature in catalog if feature.is_common]
            proprietary = [feature for feature in catalog if not feature.is_common]

            waves = build_common_waves(common, rules)
            waves.extend(build_individual_waves(proprietary, excluded=cycle_members(cycles)))
            for number, wave in enumerate(waves, start=1):
                wave.number = number

            now = utc_timestamp()
            plan = PlanState(
                status="generated",
                generated_at=now,
                updated_at=now,
                waves=waves,
                circular_dependencies=cycles,
            )

        log_plan_generation(plan.total_features, len(plan.waves), cycle_count=len(cycles))
        return PlanResult(plan=plan, errors=[])

    except Exception as e:
        log_error_with_context(e, {"operation": "generate_plan"})
        return PlanResult(plan=None, errors=[f"Plan generation failed: {e}"])
