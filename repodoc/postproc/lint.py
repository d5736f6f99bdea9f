"""Linting utilities for generated markdown pages."""

from __future__ import annotations

import re
from typing import List

_HEADING = re.compile(r"^(#{1,6})\s+(.*\S)\s*$")


class MarkdownLinter:
    """Normalises line endings, blank lines, headings and code fences."""

    def lint(self, markdown: str) -> str:
        normalized = markdown.replace("\r\n", "\n").replace("\r", "\n")
        cleaned: List[str] = []
        in_code = False

        for line in normalized.split("\n"):
            stripped = line.rstrip()
            if stripped.lstrip().startswith("```"):
                if not in_code and cleaned and cleaned[-1] != "":
                    cleaned.append("")
                in_code = not in_code
                cleaned.append(stripped.lstrip())
                continue
            if in_code:
                cleaned.append(stripped)
                continue

            heading = _HEADING.match(stripped)
            if heading:
                stripped = f"{heading.group(1)} {heading.group(2)}"
                if cleaned and cleaned[-1] != "":
                    cleaned.append("")
                cleaned.append(stripped)
                cleaned.append("")
                continue
            if not stripped and (not cleaned or cleaned[-1] == ""):
                continue
            if cleaned and cleaned[-1] == "```":
                cleaned.append("")
            cleaned.append(stripped)

        if in_code:
            cleaned.append("```")
        while cleaned and cleaned[-1] == "":
            cleaned.pop()
        return "\n".join(cleaned) + "\n"


__all__ = ["MarkdownLinter"]
