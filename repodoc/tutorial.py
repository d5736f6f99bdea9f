"""Ordering of abstractions into basic and advanced tutorial subjects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

import networkx as nx

from .logging import get_logger
from .models import DependencyGraph


@dataclass(frozen=True)
class TutorialPlan:
    """Abstraction ids ordered for teaching, split into basic and advanced subjects."""

    ordered: tuple[str, ...] = ()
    basic: tuple[str, ...] = ()
    advanced: tuple[str, ...] = ()
    depths: Dict[str, int] = field(default_factory=dict)
    usage: Dict[str, int] = field(default_factory=dict)


class TutorialSequencer:
    """Sorts abstractions by dependency depth, then by how often they are used."""

    def __init__(self) -> None:
        self.logger = get_logger("tutorial")

    def sequence(self, graph: DependencyGraph) -> TutorialPlan:
        ids = graph.ids
        if not ids:
            return TutorialPlan()

        view = graph.as_networkx()
        usage = {node: view.in_degree(node) for node in ids}
        roots = [node for node in ids if usage[node] == 0]
        if not roots:
            roots = [min(ids, key=lambda node: (usage[node], -view.out_degree(node), node))]

        reached = nx.multi_source_dijkstra_path_length(view, roots)
        deepest = max(reached.values(), default=0)
        depths = {node: int(reached.get(node, deepest + 1)) for node in ids}

        ordered = sorted(ids, key=lambda node: (depths[node], -usage[node], node))
        split = max(1, len(ordered) // 3)
        plan = TutorialPlan(
            ordered=tuple(ordered),
            basic=tuple(ordered[:split]),
            advanced=tuple(ordered[split:]),
            depths=depths,
            usage=usage,
        )
        self.logger.info("Tutorial plan: %d basic, %d advanced subject(s)", len(plan.basic), len(plan.advanced))
        return plan


__all__ = ["TutorialPlan", "TutorialSequencer"]
