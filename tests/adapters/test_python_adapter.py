"""Tests for the Python reference adapter."""

from __future__ import annotations

import textwrap

import pytest

from repodoc.adapters import AdapterError, PythonAdapter
from repodoc.models import AbstractionKind, EdgeKind, ReferenceHint, SourceUnit


def _extract(path: str, source: str):
    unit = SourceUnit(path=path, ecosystem="python", size=len(source), hash="0")
    return PythonAdapter().extract(unit, textwrap.dedent(source))


def test_public_classes_become_abstractions_with_operations() -> None:
    output = _extract(
        "shop/service.py",
        '''
        """Order handling."""
        from shop.store import OrderStore


        class OrderService:
            """Coordinates order placement.

            Longer description that is not part of the summary.
            """

            def place(self, payload: dict, *, dry_run: bool = False) -> dict:
                return OrderStore().save(payload)

            async def refresh(self, *ids):
                return None

            def _internal(self):
                return None


        class _Hidden:
            pass
        ''',
    )

    assert [item.name for item in output.abstractions] == ["OrderService"]
    service = output.abstractions[0]
    assert service.id == "shop-service-order-service"
    assert service.kind is AbstractionKind.SERVICE
    assert service.purpose == "Coordinates order placement."
    assert [operation.signature() for operation in service.operations] == [
        "place(payload: dict, *, dry_run: bool) -> dict",
        "refresh(*ids) -> unspecified",
    ]
    assert service.source_path == "shop/service.py"
    assert output.hints == [ReferenceHint("shop-service-order-service", "shop.store.OrderStore", EdgeKind.USES)]


def test_bases_become_extends_hints_and_config_names_configure() -> None:
    output = _extract(
        "shop/cache.py",
        """
        from .base import BaseStore
        from shop.settings import CacheSettings
        import requests


        class RedisCache(BaseStore):
            def get(self, key):
                settings = CacheSettings()
                return requests.get(key)
        """,
    )

    hints = {(hint.target, hint.kind) for hint in output.hints}
    assert ("shop.base.BaseStore", EdgeKind.EXTENDS) in hints
    assert ("shop.settings.CacheSettings", EdgeKind.CONFIGURES) in hints
    assert ("requests.get", EdgeKind.USES) in hints
    assert output.abstractions[0].kind is AbstractionKind.STORE


def test_stdlib_imports_are_ignored() -> None:
    output = _extract(
        "tools/runner.py",
        """
        import os
        from pathlib import Path


        class Runner:
            def run(self):
                return Path(os.getcwd())
        """,
    )

    assert output.hints == []


def test_config_classes_expose_fields_and_environment_keys() -> None:
    output = _extract(
        "shop/settings.py",
        """
        import os
        from dataclasses import dataclass


        @dataclass
        class AppSettings:
            debug: bool = False
            workers: int
            TIMEOUT = 30
            database_url: str = os.getenv("DATABASE_URL", "sqlite://")
        """,
    )

    settings = output.abstractions[0]
    assert settings.kind is AbstractionKind.CONFIG
    assert settings.config_keys["debug"] == "bool, defaults to False"
    assert settings.config_keys["workers"] == "int"
    assert settings.config_keys["TIMEOUT"] == "defaults to 30"
    assert settings.config_keys["DATABASE_URL"] == "read from the environment, defaults to 'sqlite://'"


def test_function_only_module_becomes_single_module_abstraction() -> None:
    output = _extract(
        "shop/text_utils.py",
        '''
        """Helpers for formatting text."""
        from shop.models import Order


        def slug(value: str) -> str:
            return value.lower()


        def describe(order: Order) -> str:
            return str(order)


        def _private():
            pass
        ''',
    )

    assert len(output.abstractions) == 1
    module = output.abstractions[0]
    assert module.name == "text_utils"
    assert module.id == "shop-text-utils"
    assert module.kind is AbstractionKind.UTILITY
    assert module.purpose == "Helpers for formatting text."
    assert [operation.name for operation in module.operations] == ["slug", "describe"]
    assert [hint.target for hint in output.hints] == ["shop.models.Order"]


def test_sibling_classes_reference_each_other() -> None:
    output = _extract(
        "shop/orders.py",
        """
        class Order:
            pass


        class OrderList:
            def first(self) -> Order:
                return Order()
        """,
    )

    assert [(hint.source_id, hint.target) for hint in output.hints] == [
        ("shop-orders-order-list", "shop.orders.Order")
    ]


def test_syntax_errors_raise_adapter_error() -> None:
    with pytest.raises(AdapterError):
        _extract("broken.py", "def broken(:\n")
