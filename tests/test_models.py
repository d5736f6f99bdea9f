"""Tests for repodoc.models."""

from __future__ import annotations

import pytest

from repodoc.models import (
    Abstraction,
    AbstractionKind,
    ContentBlock,
    DependencyEdge,
    DependencyGraph,
    DocumentNode,
    EdgeKind,
    Finding,
    FindingKind,
    NodeKind,
    Operation,
    PURPOSE_MAX_LENGTH,
    bound_purpose,
    derive_abstraction_id,
    module_path,
    slugify,
)


def _abstraction(identifier: str) -> Abstraction:
    return Abstraction(id=identifier, name=identifier.title(), kind=AbstractionKind.MODULE)


def test_slugify_splits_camel_case_and_punctuation() -> None:
    assert slugify("HTTPServerConfig") == "http-server-config"
    assert slugify("order_store v2") == "order-store-v2"


def test_derive_abstraction_id_combines_path_and_name() -> None:
    assert derive_abstraction_id("app/service.py", "OrderService") == "app-service-order-service"
    assert derive_abstraction_id("src/order_store.py", "OrderStore") == "src-order-store"
    assert derive_abstraction_id("lib/restore.py", "Store") == "lib-restore-store"


def test_bound_purpose_truncates_long_text() -> None:
    text = "word " * 100
    bounded = bound_purpose(text)
    assert len(bounded) <= PURPOSE_MAX_LENGTH
    assert bounded.endswith("...")
    assert bound_purpose("  short\n summary ") == "short summary"


def test_module_path_drops_extension_and_package_index() -> None:
    assert module_path("app/service.py") == "app.service"
    assert module_path("pkg/__init__.py") == "pkg"
    assert module_path("web/src/index.ts") == "web.src"


def test_operation_signature() -> None:
    operation = Operation(name="place", parameters=("payload: dict",), returns="dict")
    assert operation.signature() == "place(payload: dict) -> dict"
    assert Operation(name="run").signature() == "run() -> unspecified"


def test_dependency_graph_rejects_self_edges_and_unknown_endpoints() -> None:
    a, b = _abstraction("a"), _abstraction("b")
    with pytest.raises(ValueError):
        DependencyGraph((a, b), (DependencyEdge("a", "a", EdgeKind.USES),))
    with pytest.raises(ValueError):
        DependencyGraph((a, b), (DependencyEdge("a", "missing", EdgeKind.USES),))
    with pytest.raises(ValueError):
        DependencyGraph((a, a), ())


def test_dependency_graph_queries_and_networkx_view() -> None:
    a, b, c = _abstraction("a"), _abstraction("b"), _abstraction("c")
    graph = DependencyGraph(
        (a, b, c),
        (
            DependencyEdge("a", "b", EdgeKind.USES),
            DependencyEdge("a", "b", EdgeKind.EXTENDS),
            DependencyEdge("c", "b", EdgeKind.CONFIGURES),
        ),
    )
    assert graph.successors("a") == ["b", "b"]
    assert graph.successors("a", EdgeKind.USES) == ["b"]
    assert graph.in_degree("b") == 3
    assert graph.out_degree("c", EdgeKind.USES) == 0

    view = graph.as_networkx()
    assert view.number_of_nodes() == 3
    assert view.number_of_edges() == 3
    assert view.has_edge("a", "b", key="extends")


def test_document_node_walk_and_path_index() -> None:
    root = DocumentNode(path="README", title="Root", kind=NodeKind.HUB)
    section = root.add(DocumentNode(path="technical/README", title="Tech", kind=NodeKind.SECTION))
    section.add(DocumentNode(path="technical/architecture", title="Arch", kind=NodeKind.SECTION))
    root.add(DocumentNode(path="tutorial/README", title="Tutorial", kind=NodeKind.SECTION))
    section.blocks.append(ContentBlock.link("tutorial/README", "Tutorial"))

    assert [node.path for node in root.walk()] == [
        "README",
        "technical/README",
        "technical/architecture",
        "tutorial/README",
    ]
    assert set(root.path_index()) == {"README", "technical/README", "technical/architecture", "tutorial/README"}
    assert [reference.target for reference in root.references()] == ["tutorial/README"]

    root.add(DocumentNode(path="technical/README", title="Duplicate", kind=NodeKind.SECTION))
    with pytest.raises(ValueError):
        root.path_index()


def test_finding_to_dict_is_json_ready() -> None:
    finding = Finding(
        kind=FindingKind.UNRESOLVED_REFERENCE,
        stage="graph",
        subject="a",
        message="missing",
        details={"target": "x"},
    )
    assert finding.to_dict() == {
        "kind": "unresolved-reference",
        "stage": "graph",
        "subject": "a",
        "message": "missing",
        "details": {"target": "x"},
    }
