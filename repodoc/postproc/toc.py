"""Table-of-contents generation for long documentation pages."""

from __future__ import annotations

import re
from typing import List, Tuple


class TableOfContentsBuilder:
    """Replaces the page placeholder with links to its second and third level headings."""

    PLACEHOLDER = "<!-- repodoc:toc -->"
    BEGIN = "<!-- repodoc:begin:toc -->"
    END = "<!-- repodoc:end:toc -->"

    def __init__(self, min_headings: int = 4) -> None:
        self.min_headings = min_headings

    def build(self, markdown: str) -> str:
        headings = self.headings(markdown)
        if len(headings) < self.min_headings:
            return markdown.replace(self.PLACEHOLDER, "", 1)
        block = self._render(headings)
        if self.BEGIN in markdown and self.END in markdown:
            pre, rest = markdown.split(self.BEGIN, 1)
            _, post = rest.split(self.END, 1)
            return f"{pre}{block}{post}"
        if self.PLACEHOLDER in markdown:
            return markdown.replace(self.PLACEHOLDER, block, 1)
        return markdown

    def headings(self, markdown: str) -> List[Tuple[int, str, str]]:
        found: List[Tuple[int, str, str]] = []
        seen: dict[str, int] = {}
        in_code = False
        for line in markdown.splitlines():
            stripped = line.strip()
            if stripped.startswith("```"):
                in_code = not in_code
                continue
            if in_code:
                continue
            match = re.match(r"^(#{2,3})\s+(.*)$", stripped)
            if not match:
                continue
            title = match.group(2).strip()
            anchor = self._slugify(title)
            # Repeated headings get GitHub-style numeric suffixes.
            count = seen.get(anchor, 0)
            seen[anchor] = count + 1
            if count:
                anchor = f"{anchor}-{count}"
            found.append((len(match.group(1)), title, anchor))
        return found

    def _render(self, headings: List[Tuple[int, str, str]]) -> str:
        output: List[str] = [self.BEGIN, "**Contents**", ""]
        for level, title, anchor in headings:
            indent = "  " * (level - 2)
            output.append(f"{indent}- [{title}](#{anchor})")
        output.append(self.END)
        return "\n".join(output)

    @staticmethod
    def _slugify(title: str) -> str:
        slug = title.lower()
        slug = re.sub(r"[^a-z0-9\s-]", "", slug)
        slug = re.sub(r"\s", "-", slug)
        return slug.strip("-")
