"""Ecosystem adapters and the closed registry that selects them."""

from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional, Sequence

from .base import Adapter, AdapterError, AdapterOutput
from .javascript import JavaScriptAdapter
from .python import PythonAdapter

_BUILTIN_FACTORIES: dict[str, Callable[[], Adapter]] = {
    "python": PythonAdapter,
    "javascript": JavaScriptAdapter,
}


class AdapterRegistry:
    """Closed mapping of ecosystem tag to the adapter that handles it."""

    def __init__(self, adapters: Sequence[Adapter] = ()) -> None:
        self._by_ecosystem: Dict[str, Adapter] = {}
        self._adapters: List[Adapter] = []
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: Adapter) -> None:
        if not isinstance(adapter, Adapter):
            raise TypeError(f"{adapter!r} is not an Adapter instance")
        if not adapter.ecosystems:
            raise ValueError(f"Adapter '{adapter.name}' declares no ecosystems")
        for ecosystem in adapter.ecosystems:
            existing = self._by_ecosystem.get(ecosystem)
            if existing is not None:
                raise ValueError(
                    f"Ecosystem '{ecosystem}' is already handled by adapter '{existing.name}'"
                )
        for ecosystem in adapter.ecosystems:
            self._by_ecosystem[ecosystem] = adapter
        self._adapters.append(adapter)

    def for_ecosystem(self, ecosystem: Optional[str]) -> Optional[Adapter]:
        if ecosystem is None:
            return None
        return self._by_ecosystem.get(ecosystem)

    @property
    def ecosystems(self) -> List[str]:
        return sorted(self._by_ecosystem)

    def __iter__(self) -> Iterator[Adapter]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)


def adapter_names() -> List[str]:
    """Return the names accepted by :func:`build_registry`."""
    return list(_BUILTIN_FACTORIES)


def build_registry(enabled: Sequence[str] | None = None) -> AdapterRegistry:
    """Return a registry of built-in adapters, honoring optional enabled names."""
    if not enabled:
        return AdapterRegistry([factory() for factory in _BUILTIN_FACTORIES.values()])

    requested = [name.lower() for name in enabled]
    missing = sorted(set(requested) - set(_BUILTIN_FACTORIES))
    if missing:
        raise ValueError(f"Unknown adapters requested: {', '.join(missing)}")
    return AdapterRegistry(
        [factory() for name, factory in _BUILTIN_FACTORIES.items() if name in requested]
    )


__all__ = [
    "Adapter",
    "AdapterError",
    "AdapterOutput",
    "AdapterRegistry",
    "JavaScriptAdapter",
    "PythonAdapter",
    "adapter_names",
    "build_registry",
]
