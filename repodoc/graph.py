"""Dependency graph construction from surfaced abstractions and reference hints."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from .logging import get_logger
from .models import (
    Abstraction,
    DependencyEdge,
    DependencyGraph,
    EdgeKind,
    Finding,
    FindingKind,
    ReferenceHint,
    module_path,
)

STAGE = "graph"

_WHITE, _GRAY, _BLACK = 0, 1, 2


def qualified_names(abstraction: Abstraction) -> List[str]:
    """Return the dotted names an abstraction can be referred to by."""
    module = module_path(abstraction.source_path) if abstraction.source_path else ""
    names = [f"{module}.{abstraction.name}" if module else abstraction.name]
    if module and module.rsplit(".", 1)[-1] == abstraction.name:
        names.append(module)
    return names


def _suffixes(dotted: str) -> Iterator[str]:
    parts = dotted.split(".")
    for start in range(len(parts)):
        yield ".".join(parts[start:])


class ReferenceResolver:
    """Resolves dotted reference targets to abstraction ids.

    Every abstraction is indexed under each dotted suffix of its qualified
    name.  A target is matched by its longest window of segments found in the
    index, preferring windows that start closer to the front.  Single segment
    windows are only tried at the front of the target, so that ``pkg.Other``
    never resolves to an abstraction that merely happens to be called
    ``Other`` elsewhere.
    """

    def __init__(self, abstractions: Iterable[Abstraction]) -> None:
        index: Dict[str, Set[str]] = defaultdict(set)
        for abstraction in abstractions:
            for name in qualified_names(abstraction):
                for key in _suffixes(name):
                    index[key].add(abstraction.id)
        self._index: Dict[str, List[str]] = {key: sorted(ids) for key, ids in index.items()}

    def resolve(self, target: str) -> Optional[str]:
        parts = [part for part in target.split(".") if part]
        count = len(parts)
        for length in range(count, 0, -1):
            for start in range(count - length + 1):
                if length == 1 and count > 1 and start != 0:
                    continue
                ids = self._index.get(".".join(parts[start : start + length]))
                if ids:
                    return ids[0]
        return None


def find_extends_cycles(ids: Sequence[str], edges: Iterable[DependencyEdge]) -> List[Tuple[str, ...]]:
    """Return one id path per back edge found while walking ``extends`` edges.

    The walk is an iterative depth-first search with white/gray/black colouring,
    started from each id in the given order.  Each returned path begins and
    ends with the same id.
    """
    adjacency: Dict[str, List[str]] = {node: [] for node in ids}
    for edge in edges:
        if edge.kind is EdgeKind.EXTENDS and edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].append(edge.target)

    colour = {node: _WHITE for node in ids}
    cycles: List[Tuple[str, ...]] = []
    for start in ids:
        if colour[start] != _WHITE:
            continue
        colour[start] = _GRAY
        path = [start]
        stack = [(start, iter(adjacency[start]))]
        while stack:
            node, neighbours = stack[-1]
            descended = False
            for neighbour in neighbours:
                state = colour[neighbour]
                if state == _WHITE:
                    colour[neighbour] = _GRAY
                    path.append(neighbour)
                    stack.append((neighbour, iter(adjacency[neighbour])))
                    descended = True
                    break
                if state == _GRAY:
                    entry = path.index(neighbour)
                    cycles.append(tuple(path[entry:]) + (neighbour,))
            if not descended:
                colour[node] = _BLACK
                path.pop()
                stack.pop()
    return cycles


class DependencyGraphBuilder:
    """Turns reference hints into a validated, deterministic dependency graph."""

    def __init__(self) -> None:
        self.logger = get_logger("graph")

    def build(self, abstractions: Sequence[Abstraction], hints: Iterable[ReferenceHint]) -> DependencyGraph:
        abstractions = tuple(abstractions)
        order = {item.id: position for position, item in enumerate(abstractions)}
        resolver = ReferenceResolver(abstractions)

        candidates: List[Tuple[int, DependencyEdge]] = []
        seen: Set[Tuple[str, str, str]] = set()
        unresolved: Dict[Tuple[str, str, str], ReferenceHint] = {}

        for hint in hints:
            if hint.source_id not in order:
                self.logger.debug("Ignoring hint from unknown abstraction %s", hint.source_id)
                continue
            target_id = resolver.resolve(hint.target)
            if target_id is None:
                unresolved.setdefault((hint.source_id, hint.target, hint.kind.value), hint)
                continue
            if target_id == hint.source_id:
                continue
            if hint.kind is EdgeKind.CONFIGURES:
                edge = DependencyEdge(source=target_id, target=hint.source_id, kind=EdgeKind.CONFIGURES)
            else:
                edge = DependencyEdge(source=hint.source_id, target=target_id, kind=hint.kind)
            if edge.key() in seen:
                continue
            seen.add(edge.key())
            candidates.append((order[hint.source_id], edge))

        candidates.sort(key=lambda item: (item[0], item[1].key()))
        edges = tuple(edge for _, edge in candidates)

        findings: List[Finding] = []
        for source_id, target, kind in sorted(unresolved, key=lambda key: (order[key[0]], key[1], key[2])):
            findings.append(
                Finding(
                    kind=FindingKind.UNRESOLVED_REFERENCE,
                    stage=STAGE,
                    subject=source_id,
                    message=f"Reference to '{target}' does not match a surfaced abstraction",
                    details={"target": target, "kind": kind},
                )
            )

        cycles = find_extends_cycles([item.id for item in abstractions], edges)
        for cycle in cycles:
            findings.append(
                Finding(
                    kind=FindingKind.EXTENDS_CYCLE,
                    stage=STAGE,
                    subject=cycle[0],
                    message=f"Inheritance cycle: {' -> '.join(cycle)}",
                    details={"cycle": list(cycle)},
                )
            )
            self.logger.warning("Inheritance cycle detected: %s", " -> ".join(cycle))

        self.logger.info(
            "Built graph with %d abstractions, %d edges (%d unresolved references)",
            len(abstractions),
            len(edges),
            len(unresolved),
        )
        return DependencyGraph(abstractions, edges, extends_cycles=tuple(cycles), findings=tuple(findings))


__all__ = [
    "DependencyGraphBuilder",
    "ReferenceResolver",
    "find_extends_cycles",
    "qualified_names",
]
