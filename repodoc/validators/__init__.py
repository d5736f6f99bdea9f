"""Validation package for generated documentation trees."""

from .base import VALID, VALID_WITH_FINDINGS, ValidationReport, Validator
from .crossref import CrossReferenceValidator

__all__ = [
    "CrossReferenceValidator",
    "VALID",
    "VALID_WITH_FINDINGS",
    "ValidationReport",
    "Validator",
]
