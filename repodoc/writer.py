"""Persists a documentation tree as markdown files."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader

from .diagrams import render_mermaid
from .logging import get_logger
from .models import BlockKind, ContentBlock, DiagramSpec, DocumentNode
from .orchestrator import PipelineResult
from .postproc.lint import MarkdownLinter
from .postproc.toc import TableOfContentsBuilder
from .rendering.constants import INDEX_PAGE

PAGE_TEMPLATE = "page.md.j2"


@dataclass
class _Section:
    heading: Optional[str]
    parts: List[str] = field(default_factory=list)

    @property
    def body(self) -> str:
        return "\n\n".join(self.parts)


def relative_link(source: str, target: str) -> str:
    """Return the markdown link from page ``source`` to page ``target``."""
    start = posixpath.dirname(source) or "."
    return posixpath.relpath(f"{target}.md", start)


class MarkdownWriter:
    """Renders each document node to ``<out_dir>/<path>.md`` through jinja2 templates."""

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        linter: MarkdownLinter | None = None,
        toc_builder: TableOfContentsBuilder | None = None,
    ) -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        self.linter = linter or MarkdownLinter()
        self.toc_builder = toc_builder or TableOfContentsBuilder()
        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.logger = get_logger("writer")

    def write(self, result: PipelineResult, out_dir: str | Path, *, dry_run: bool = False) -> List[Path]:
        """Write every page of ``result`` below ``out_dir`` and return the file paths."""
        return self.write_tree(result.tree, result.diagrams, out_dir, dry_run=dry_run)

    def write_tree(
        self,
        tree: DocumentNode,
        diagrams: Iterable[DiagramSpec],
        out_dir: str | Path,
        *,
        dry_run: bool = False,
    ) -> List[Path]:
        output_root = Path(out_dir).expanduser()
        pages = self.render_pages(tree, diagrams)
        written: List[Path] = []
        for path, markdown in pages.items():
            destination = output_root / f"{path}.md"
            written.append(destination)
            if dry_run:
                self.logger.debug("Dry run: would write %s", destination)
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(markdown, encoding="utf-8")
        self.logger.info("%s %d page(s) under %s", "Planned" if dry_run else "Wrote", len(written), output_root)
        return written

    def render_pages(self, tree: DocumentNode, diagrams: Iterable[DiagramSpec]) -> Dict[str, str]:
        by_name = {spec.name: spec for spec in diagrams}
        return {node.path: self.render_page(node, by_name) for node in tree.walk()}

    def render_page(self, node: DocumentNode, diagrams: Mapping[str, DiagramSpec]) -> str:
        sections = self._sections(node, diagrams)
        headings = sum(1 for section in sections if section.heading)
        template = self._env.get_template(PAGE_TEMPLATE)
        markdown = template.render(
            title=node.title,
            toc=headings >= self.toc_builder.min_headings,
            toc_placeholder=TableOfContentsBuilder.PLACEHOLDER,
            sections=[{"heading": section.heading, "body": section.body} for section in sections],
            breadcrumb=None if node.path == INDEX_PAGE else f"[Home]({relative_link(node.path, INDEX_PAGE)})",
        )
        markdown = self.toc_builder.build(markdown)
        return self.linter.lint(markdown)

    def _sections(self, node: DocumentNode, diagrams: Mapping[str, DiagramSpec]) -> List[_Section]:
        sections: List[_Section] = []
        current = _Section(heading=None)
        previous_link = False
        for block in node.blocks:
            if block.heading:
                if current.parts or current.heading:
                    sections.append(current)
                current = _Section(heading=block.heading)
                previous_link = False
            text = self._block_markdown(node, block, diagrams)
            if not text:
                continue
            is_link = block.kind is BlockKind.CROSS_REFERENCE
            if is_link and previous_link and current.parts:
                current.parts[-1] = f"{current.parts[-1]}\n{text}"
            else:
                current.parts.append(text)
            previous_link = is_link
        if current.parts or current.heading:
            sections.append(current)
        return sections

    def _block_markdown(
        self,
        node: DocumentNode,
        block: ContentBlock,
        diagrams: Mapping[str, DiagramSpec],
    ) -> str:
        if block.kind is BlockKind.CODE:
            return f"```{block.language or ''}\n{block.text}\n```"
        if block.kind is BlockKind.DIAGRAM:
            spec = diagrams.get(block.diagram or "")
            if spec is None:
                self.logger.warning("Page %s embeds unknown diagram %s", node.path, block.diagram)
                return ""
            return f"```mermaid\n{render_mermaid(spec)}\n```"
        if block.kind is BlockKind.CROSS_REFERENCE and block.reference is not None:
            link = f"- [{block.reference.label}]({relative_link(node.path, block.reference.target)})"
            return f"{link}: {block.text}" if block.text else link
        return block.text


__all__ = ["MarkdownWriter", "relative_link"]
