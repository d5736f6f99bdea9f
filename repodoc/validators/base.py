"""Core validation data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol

from ..models import DocumentNode, Finding

VALID = "valid"
VALID_WITH_FINDINGS = "valid-with-findings"


@dataclass
class ValidationReport:
    """Outcome of validating a documentation tree."""

    status: str = VALID
    findings: List[Finding] = field(default_factory=list)
    checked: int = 0
    dropped: int = 0
    repaired: int = 0


class Validator(Protocol):
    """Protocol implemented by documentation tree validators."""

    name: str

    def validate(self, tree: DocumentNode) -> ValidationReport:
        """Check ``tree`` and return the resulting report."""


__all__ = ["VALID", "VALID_WITH_FINDINGS", "ValidationReport", "Validator"]
