"""Base classes for ecosystem adapters."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from ..models import Abstraction, AbstractionKind, EdgeKind, ReferenceHint, SourceUnit, module_path

_CONFIG_SUFFIXES = ("Config", "Configuration", "Settings", "Options")
_STORE_SUFFIXES = ("Store", "Repository", "Repo", "Cache", "Dao", "DAO", "Database", "Storage", "Registry")
_SERVICE_SUFFIXES = (
    "Service",
    "Server",
    "Client",
    "Controller",
    "Handler",
    "Manager",
    "Orchestrator",
    "Worker",
    "Runner",
    "Pipeline",
    "App",
    "Application",
    "Api",
    "API",
)
_UTILITY_SUFFIXES = ("Helper", "Helpers", "Util", "Utils", "Builder", "Formatter", "Parser", "Validator", "Factory")
_UTILITY_MODULES = re.compile(r"(^|[_-])(utils?|helpers?|common|tools?)([_-]|$)")
_STORE_BASES = ("Model", "Base", "DeclarativeBase", "Document")


class AdapterError(RuntimeError):
    """Raised when an adapter cannot analyse a source unit."""


@dataclass
class AdapterOutput:
    """Abstractions and reference hints produced for one source unit."""

    abstractions: List[Abstraction] = field(default_factory=list)
    hints: List[ReferenceHint] = field(default_factory=list)


class Adapter(ABC):
    """Contract for per-ecosystem extraction of abstractions from a unit."""

    name: str = ""
    ecosystems: Tuple[str, ...] = ()

    @abstractmethod
    def extract(self, unit: SourceUnit, content: str) -> AdapterOutput:
        """Return abstraction candidates and reference hints for ``unit``."""


def is_config_name(name: str) -> bool:
    return name.endswith(_CONFIG_SUFFIXES)


def reference_kind(name: str) -> EdgeKind:
    """Classify a plain reference: configuration types configure, anything else is used."""
    return EdgeKind.CONFIGURES if is_config_name(name) else EdgeKind.USES


def infer_kind(name: str, path: str, bases: Iterable[str] = ()) -> AbstractionKind:
    """Guess the abstraction kind from naming conventions and base classes."""
    segments = path.lower().split("/")
    base_names = [base.rsplit(".", 1)[-1] for base in bases]
    if is_config_name(name) or any(base.endswith(_CONFIG_SUFFIXES) for base in base_names):
        return AbstractionKind.CONFIG
    if name.endswith(_STORE_SUFFIXES) or any(base in _STORE_BASES for base in base_names):
        return AbstractionKind.STORE
    if name.endswith(_SERVICE_SUFFIXES):
        return AbstractionKind.SERVICE
    if name.endswith(_UTILITY_SUFFIXES):
        return AbstractionKind.UTILITY
    stem = segments[-1].rsplit(".", 1)[0] if segments else ""
    if stem in {"config", "settings"} or "config" in segments[:-1]:
        return AbstractionKind.CONFIG
    if _UTILITY_MODULES.search(stem):
        return AbstractionKind.UTILITY
    return AbstractionKind.MODULE


__all__ = [
    "Adapter",
    "AdapterError",
    "AdapterOutput",
    "infer_kind",
    "is_config_name",
    "module_path",
    "reference_kind",
]
