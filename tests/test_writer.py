"""Tests for repodoc.writer."""

from __future__ import annotations

from pathlib import Path

from repodoc.models import (
    ContentBlock,
    DiagramKind,
    DiagramNode,
    DiagramSpec,
    DocumentNode,
    NodeKind,
)
from repodoc.orchestrator import Orchestrator
from repodoc.writer import MarkdownWriter, relative_link
from tests._fixtures.repo_builder import RepoBuilder

SYSTEM = DiagramSpec(
    name="system",
    kind=DiagramKind.SYSTEM,
    title="System architecture",
    nodes=(DiagramNode("api", "OrderApi", boundary=True),),
)


def _tree() -> DocumentNode:
    root = DocumentNode(
        path="README",
        title="Project",
        kind=NodeKind.HUB,
        blocks=[
            ContentBlock.prose("Hello.", heading="Overview"),
            ContentBlock.link("guide", "Guide", text="Read this.", heading="Contents"),
            ContentBlock.link("guide/deep", "Deep"),
        ],
    )
    guide = root.add(
        DocumentNode(
            path="guide",
            title="Guide",
            kind=NodeKind.SECTION,
            blocks=[
                ContentBlock.code("run()", language="python", heading="Usage"),
                ContentBlock.diagram_ref("system"),
                ContentBlock.diagram_ref("unknown"),
            ],
        )
    )
    guide.add(
        DocumentNode(
            path="guide/deep",
            title="Deep",
            kind=NodeKind.TUTORIAL_STEP,
            blocks=[ContentBlock.link("guide", "Guide")],
        )
    )
    return root


def test_relative_link_between_pages() -> None:
    assert relative_link("README", "technical/README") == "technical/README.md"
    assert relative_link("technical/components/a", "README") == "../../README.md"
    assert relative_link("technical/components/a", "technical/components/b") == "b.md"
    assert relative_link("tutorial/faq", "technical/architecture") == "../technical/architecture.md"


def test_render_pages_formats_links_as_lists() -> None:
    pages = MarkdownWriter().render_pages(_tree(), [SYSTEM])

    assert list(pages) == ["README", "guide", "guide/deep"]
    assert pages["README"] == (
        "# Project\n\n## Overview\n\nHello.\n\n## Contents\n\n"
        "- [Guide](guide.md): Read this.\n- [Deep](guide/deep.md)\n"
    )


def test_render_pages_embeds_code_and_mermaid_and_breadcrumbs() -> None:
    pages = MarkdownWriter().render_pages(_tree(), [SYSTEM])

    guide = pages["guide"]
    assert "## Usage" in guide
    assert "```python\nrun()\n```" in guide
    assert "```mermaid\nflowchart LR" in guide
    assert guide.rstrip().endswith("[Home](README.md)")
    assert pages["guide/deep"].rstrip().endswith("[Home](../README.md)")
    assert "- [Guide](../guide.md)" in pages["guide/deep"]


def test_write_creates_one_file_per_page(tmp_path: Path) -> None:
    out_dir = tmp_path / "docs"

    written = MarkdownWriter().write_tree(_tree(), [SYSTEM], out_dir)

    assert written == [out_dir / "README.md", out_dir / "guide.md", out_dir / "guide" / "deep.md"]
    assert all(path.is_file() for path in written)


def test_dry_run_touches_nothing(scenario_repo: RepoBuilder, tmp_path: Path) -> None:
    result = Orchestrator().run(scenario_repo.path())
    out_dir = tmp_path / "out"

    written = MarkdownWriter().write(result, out_dir, dry_run=True)

    assert len(written) == len(result.pages())
    assert not out_dir.exists()


def test_scenario_pages_are_written_with_contents_blocks(scenario_repo: RepoBuilder, tmp_path: Path) -> None:
    result = Orchestrator().run(scenario_repo.path())
    out_dir = tmp_path / "out"

    MarkdownWriter().write(result, out_dir)

    store = (out_dir / "technical" / "components" / "app-store-order-store.md").read_text(encoding="utf-8")
    assert store.startswith("# OrderStore\n")
    assert "**Contents**" in store
    assert "- `ORDER_DB_URL`: read from the environment" in store
    assert "[OrderService](app-service-order-service.md)" in store
    readme = (out_dir / "README.md").read_text(encoding="utf-8")
    assert "[Technical Reference](technical/README.md)" in readme
