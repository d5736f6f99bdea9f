"""Diagram specifications derived from the dependency graph."""

from __future__ import annotations

import re
from typing import Dict, List, Set, Tuple

from .logging import get_logger
from .models import (
    DependencyGraph,
    DiagramEdge,
    DiagramGroup,
    DiagramKind,
    DiagramNode,
    DiagramSpec,
    EdgeKind,
    SequenceStep,
    slugify,
)

SYSTEM_DIAGRAM = "system"
INTERACTION_DIAGRAM = "interaction"
SEQUENCE_DIAGRAM = "sequence"
ROOT_GROUP = "root"

_MERMAID_ID = re.compile(r"[^A-Za-z0-9_]")
_EDGE_ARROWS = {
    EdgeKind.USES: "-->",
    EdgeKind.CONFIGURES: "-.->",
    EdgeKind.EXTENDS: "==>",
}


class DiagramSynthesizer:
    """Builds the system, interaction and sequence views of a graph."""

    def __init__(self) -> None:
        self.logger = get_logger("diagrams")

    def synthesize(self, graph: DependencyGraph) -> Tuple[DiagramSpec, DiagramSpec, DiagramSpec]:
        system = self.system_view(graph)
        interaction = self.interaction_view(graph)
        sequence = self.sequence_view(graph)
        self.logger.info(
            "Synthesized diagrams: system=%d nodes, interaction=%d nodes, sequence=%d steps",
            len(system.nodes),
            len(interaction.nodes),
            len(sequence.steps),
        )
        return system, interaction, sequence

    def system_view(self, graph: DependencyGraph) -> DiagramSpec:
        members: Dict[str, List[str]] = {}
        nodes: List[DiagramNode] = []
        for abstraction in graph.abstractions:
            group = _top_level_group(abstraction.source_path)
            members.setdefault(group, []).append(abstraction.id)
            nodes.append(DiagramNode(id=abstraction.id, label=abstraction.name, boundary=True, group=group))
        groups = tuple(
            DiagramGroup(id=slugify(group) or ROOT_GROUP, label=group, members=tuple(ids))
            for group, ids in sorted(members.items())
        )
        edges = tuple(
            DiagramEdge(edge.source, edge.target, edge.kind)
            for edge in graph.edges_of_kind(EdgeKind.USES, EdgeKind.CONFIGURES)
        )
        return DiagramSpec(
            name=SYSTEM_DIAGRAM,
            kind=DiagramKind.SYSTEM,
            title="System architecture",
            nodes=tuple(nodes),
            edges=edges,
            groups=groups,
        )

    def interaction_view(self, graph: DependencyGraph) -> DiagramSpec:
        uses = graph.edges_of_kind(EdgeKind.USES)
        connected: Set[str] = set()
        for edge in uses:
            connected.update((edge.source, edge.target))
        nodes = tuple(
            DiagramNode(id=item.id, label=item.name) for item in graph.abstractions if item.id in connected
        )
        edges = tuple(DiagramEdge(edge.source, edge.target, edge.kind) for edge in uses)
        return DiagramSpec(
            name=INTERACTION_DIAGRAM,
            kind=DiagramKind.INTERACTION,
            title="Component interactions",
            nodes=nodes,
            edges=edges,
        )

    def sequence_view(self, graph: DependencyGraph) -> DiagramSpec:
        """Trace one request path: a depth-first walk over ``uses`` edges."""
        adjacency: Dict[str, List[str]] = {}
        for edge in graph.edges_of_kind(EdgeKind.USES):
            adjacency.setdefault(edge.source, []).append(edge.target)
        for targets in adjacency.values():
            targets.sort()

        steps: List[SequenceStep] = []
        participants: List[str] = []
        if adjacency:
            start = min(adjacency, key=lambda node: (-len(adjacency[node]), node))
            visited = {start}
            participants.append(start)
            stack = [(start, iter(adjacency[start]))]
            while stack:
                node, targets = stack[-1]
                for target in targets:
                    if target in visited:
                        continue
                    visited.add(target)
                    participants.append(target)
                    steps.append(
                        SequenceStep(
                            index=len(steps) + 1,
                            source=node,
                            target=target,
                            label=f"{node} calls {target}",
                        )
                    )
                    stack.append((target, iter(adjacency.get(target, []))))
                    break
                else:
                    stack.pop()

        nodes = tuple(
            DiagramNode(id=node, label=_label(graph, node)) for node in participants
        )
        return DiagramSpec(
            name=SEQUENCE_DIAGRAM,
            kind=DiagramKind.SEQUENCE,
            title="Primary request flow",
            nodes=nodes,
            steps=tuple(steps),
        )


def _label(graph: DependencyGraph, abstraction_id: str) -> str:
    abstraction = graph.get(abstraction_id)
    return abstraction.name if abstraction else abstraction_id


def _top_level_group(source_path: str) -> str:
    if "/" not in source_path:
        return ROOT_GROUP
    return source_path.split("/", 1)[0]


def _mermaid_id(value: str) -> str:
    return _MERMAID_ID.sub("_", value)


def _mermaid_label(value: str) -> str:
    return value.replace('"', "'")


def render_mermaid(spec: DiagramSpec) -> str:
    """Return the mermaid source for a diagram specification."""
    if spec.kind is DiagramKind.SEQUENCE:
        lines = ["sequenceDiagram"]
        for node in spec.nodes:
            lines.append(f"    participant {_mermaid_id(node.id)} as {_mermaid_label(node.label)}")
        for step in spec.steps:
            lines.append(
                f"    {_mermaid_id(step.source)}->>{_mermaid_id(step.target)}: {step.index}. {_mermaid_label(step.label)}"
            )
        return "\n".join(lines)

    lines = ["flowchart LR"]
    grouped: Set[str] = set()
    for group in spec.groups:
        lines.append(f'    subgraph {_mermaid_id(group.id)}["{_mermaid_label(group.label)}"]')
        for member in group.members:
            node = next((item for item in spec.nodes if item.id == member), None)
            if node is None:
                continue
            lines.append(f'        {_mermaid_id(node.id)}["{_mermaid_label(node.label)}"]')
            grouped.add(node.id)
        lines.append("    end")
    for node in spec.nodes:
        if node.id not in grouped:
            lines.append(f'    {_mermaid_id(node.id)}["{_mermaid_label(node.label)}"]')
    for edge in spec.edges:
        arrow = _EDGE_ARROWS.get(edge.kind, "-->")
        lines.append(f"    {_mermaid_id(edge.source)} {arrow}|{edge.kind.value}| {_mermaid_id(edge.target)}")
    return "\n".join(lines)


__all__ = [
    "DiagramSynthesizer",
    "INTERACTION_DIAGRAM",
    "SEQUENCE_DIAGRAM",
    "SYSTEM_DIAGRAM",
    "render_mermaid",
]
