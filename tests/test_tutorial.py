"""Tests for repodoc.tutorial."""

from __future__ import annotations

from typing import Sequence, Tuple

from repodoc.models import Abstraction, AbstractionKind, DependencyEdge, DependencyGraph, EdgeKind
from repodoc.tutorial import TutorialSequencer


def _graph(ids: Sequence[str], edges: Sequence[Tuple[str, str]]) -> DependencyGraph:
    abstractions = tuple(Abstraction(id=item, name=item.upper(), kind=AbstractionKind.MODULE) for item in ids)
    return DependencyGraph(
        abstractions,
        tuple(DependencyEdge(source, target, EdgeKind.USES) for source, target in edges),
    )


def test_chain_is_split_into_first_third_basic() -> None:
    ids = [f"n{index}" for index in range(9)]
    graph = _graph(ids, [(ids[index], ids[index + 1]) for index in range(8)])

    plan = TutorialSequencer().sequence(graph)

    assert plan.ordered == tuple(ids)
    assert plan.basic == ("n0", "n1", "n2")
    assert plan.advanced == tuple(ids[3:])
    assert plan.depths["n8"] == 8


def test_shallower_subjects_come_before_deeper_ones() -> None:
    graph = _graph(["deep", "mid", "top"], [("top", "mid"), ("mid", "deep")])

    plan = TutorialSequencer().sequence(graph)

    assert plan.ordered == ("top", "mid", "deep")
    assert plan.basic == ("top",)


def test_usage_breaks_depth_ties() -> None:
    graph = _graph(
        ["a", "b", "c", "d"],
        [("a", "c"), ("a", "d"), ("b", "d")],
    )

    plan = TutorialSequencer().sequence(graph)

    assert plan.depths == {"a": 0, "b": 0, "c": 1, "d": 1}
    assert plan.usage["d"] == 2
    assert plan.ordered == ("a", "b", "d", "c")


def test_cycle_without_roots_starts_from_root_most_node() -> None:
    graph = _graph(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a"), ("b", "a")])

    plan = TutorialSequencer().sequence(graph)

    # b and c both have one inbound edge; b has more outbound edges.
    assert plan.ordered[0] == "b"
    assert plan.depths == {"a": 1, "b": 0, "c": 1}


def test_components_unreachable_from_roots_go_last() -> None:
    graph = _graph(["solo", "x", "y"], [("x", "y"), ("y", "x")])

    plan = TutorialSequencer().sequence(graph)

    assert plan.depths == {"solo": 0, "x": 1, "y": 1}
    assert plan.ordered == ("solo", "x", "y")


def test_basic_set_is_never_empty_for_non_empty_graph() -> None:
    plan = TutorialSequencer().sequence(_graph(["only"], []))

    assert plan.basic == ("only",)
    assert plan.advanced == ()


def test_empty_graph_yields_empty_plan() -> None:
    plan = TutorialSequencer().sequence(_graph([], []))

    assert plan.ordered == ()
    assert plan.basic == ()
