"""Tests for repodoc.rendering.renderer."""

from __future__ import annotations

from typing import Sequence

from repodoc.diagrams import DiagramSynthesizer
from repodoc.graph import DependencyGraphBuilder
from repodoc.models import (
    Abstraction,
    AbstractionKind,
    BlockKind,
    DependencyGraph,
    EdgeKind,
    NodeKind,
    Operation,
    ReferenceHint,
)
from repodoc.rendering.constants import (
    ARCHITECTURE_PAGE,
    CONFIGURATION_PAGE,
    DEPLOYMENT_PAGE,
    INDEX_PAGE,
    TROUBLESHOOTING_PAGE,
    component_page,
)
from repodoc.rendering.renderer import DocumentRenderer
from repodoc.tutorial import TutorialSequencer

API = Abstraction(
    id="app-api-order-api",
    name="OrderApi",
    kind=AbstractionKind.SERVICE,
    purpose="Accepts order requests.",
    operations=(Operation("create", ("payload: dict",), "dict"),),
    source_path="app/api.py",
    ecosystem="python",
)
STORE = Abstraction(
    id="app-store-order-store",
    name="OrderStore",
    kind=AbstractionKind.STORE,
    purpose="Persists orders.",
    operations=(Operation("save", ("payload: dict",), "dict"),),
    config_keys={"ORDER_DB_URL": "read from the environment"},
    source_path="app/store.py",
    ecosystem="python",
)
SETTINGS = Abstraction(
    id="app-settings-store-settings",
    name="StoreSettings",
    kind=AbstractionKind.CONFIG,
    config_keys={"pool_size": "int, defaults to 5"},
    source_path="app/settings.py",
    ecosystem="python",
)


def _graph(hints: Sequence[ReferenceHint] = ()) -> DependencyGraph:
    default_hints = [
        ReferenceHint(API.id, "app.store.OrderStore"),
        ReferenceHint(API.id, "app.legacy.Gateway"),
        ReferenceHint(STORE.id, "app.settings.StoreSettings", EdgeKind.CONFIGURES),
    ]
    return DependencyGraphBuilder().build([API, STORE, SETTINGS], list(hints) or default_hints)


def _render(graph: DependencyGraph):
    diagrams = DiagramSynthesizer().synthesize(graph)
    plan = TutorialSequencer().sequence(graph)
    return DocumentRenderer().render(graph, diagrams, plan, "Shop")


def test_tree_has_fixed_hierarchy_and_one_page_per_component() -> None:
    tree = _render(_graph())

    assert tree.path == INDEX_PAGE
    assert tree.kind is NodeKind.HUB
    assert tree.title == "Shop Documentation"
    assert [node.path for node in tree.walk()] == [
        "README",
        "technical/README",
        "technical/architecture",
        "technical/configuration",
        "technical/deployment",
        "technical/components/app-api-order-api",
        "technical/components/app-store-order-store",
        "technical/components/app-settings-store-settings",
        "tutorial/README",
        "tutorial/getting-started",
        "tutorial/basic-usage",
        "tutorial/advanced-features",
        "tutorial/troubleshooting",
        "tutorial/faq",
    ]
    components = [node for node in tree.walk() if node.kind is NodeKind.COMPONENT_PAGE]
    assert [node.title for node in components] == ["OrderApi", "OrderStore", "StoreSettings"]


def test_every_reference_targets_an_existing_page() -> None:
    tree = _render(_graph())
    index = tree.path_index()

    assert tree.references()
    assert all(reference.target in index for reference in tree.references())


def test_component_page_lists_operations_configuration_and_relations() -> None:
    tree = _render(_graph())
    page = tree.find(component_page(STORE.id))
    assert page is not None

    code = [block for block in page.blocks if block.kind is BlockKind.CODE]
    assert code[0].text == "save(payload: dict) -> dict"
    assert code[0].language == "python"
    headings = [block.heading for block in page.blocks if block.heading]
    assert headings == ["Purpose", "Operations", "Configuration", "Used By"]
    links = [block.reference.target for block in page.blocks if block.reference is not None]
    assert component_page(API.id) in links
    assert component_page(SETTINGS.id) in links


def test_architecture_page_embeds_all_diagrams() -> None:
    tree = _render(_graph())
    page = tree.find(ARCHITECTURE_PAGE)
    assert page is not None

    assert [block.diagram for block in page.blocks if block.kind is BlockKind.DIAGRAM] == [
        "system",
        "interaction",
        "sequence",
    ]


def test_configuration_and_deployment_pages_use_discovered_keys() -> None:
    tree = _render(_graph())
    configuration = tree.find(CONFIGURATION_PAGE)
    deployment = tree.find(DEPLOYMENT_PAGE)
    assert configuration is not None and deployment is not None

    config_text = "\n".join(block.text for block in configuration.blocks)
    assert "- `pool_size`: int, defaults to 5" in config_text
    assert "Configures: OrderStore." in config_text
    environment = [block for block in deployment.blocks if block.heading == "Environment Variables"]
    assert environment[0].text == "- `ORDER_DB_URL` (used by OrderStore)"


def test_troubleshooting_page_reports_graph_findings() -> None:
    tree = _render(_graph())
    page = tree.find(TROUBLESHOOTING_PAGE)
    assert page is not None

    assert [block.heading for block in page.blocks if block.heading] == ["unresolved-reference"]
    assert "app.legacy.Gateway" in page.blocks[0].text


def test_inheritance_cycles_are_listed_as_known_issues() -> None:
    first = Abstraction("a", "A", AbstractionKind.MODULE, source_path="pkg/a.py")
    second = Abstraction("b", "B", AbstractionKind.MODULE, source_path="pkg/b.py")
    graph = DependencyGraphBuilder().build(
        [first, second],
        [ReferenceHint("a", "pkg.b.B", EdgeKind.EXTENDS), ReferenceHint("b", "pkg.a.A", EdgeKind.EXTENDS)],
    )

    tree = _render(graph)
    page = tree.find(ARCHITECTURE_PAGE)
    assert page is not None

    issues = [block for block in page.blocks if block.heading == "Known Issues"]
    assert issues[0].text == "Inheritance cycle between components: A -> B -> A."


def test_rendering_is_deterministic() -> None:
    assert _render(_graph()).to_dict() == _render(_graph()).to_dict()


def test_empty_graph_still_renders_navigable_tree() -> None:
    tree = _render(DependencyGraph((), ()))
    index = tree.path_index()

    assert not [node for node in tree.walk() if node.kind is NodeKind.COMPONENT_PAGE]
    assert all(reference.target in index for reference in tree.references())
