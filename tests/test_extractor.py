"""Tests for repodoc.extractor."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from repodoc.adapters import Adapter, AdapterError, AdapterOutput, AdapterRegistry, build_registry
from repodoc.extractor import AbstractionExtractor
from repodoc.models import (
    Abstraction,
    AbstractionKind,
    FindingKind,
    Operation,
    ReferenceHint,
    SourceUnit,
)
from repodoc.repo_scanner import ScanResult
from tests._fixtures.repo_builder import RepoBuilder


class _ScriptedAdapter(Adapter):
    """Returns canned output per unit path; raises for paths listed in ``failing``."""

    name = "scripted"
    ecosystems = ("python",)

    def __init__(self, outputs: dict[str, AdapterOutput], failing: tuple[str, ...] = ()) -> None:
        self.outputs = outputs
        self.failing = failing

    def extract(self, unit: SourceUnit, content: str) -> AdapterOutput:
        if unit.path in self.failing:
            raise AdapterError(f"cannot read {unit.path}")
        return self.outputs.get(unit.path, AdapterOutput())


def _scan(tmp_path: Path, paths: List[str]) -> ScanResult:
    units = []
    for path in paths:
        target = tmp_path / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("", encoding="utf-8")
        ecosystem = "python" if path.endswith(".py") else None
        units.append(SourceUnit(path=path, ecosystem=ecosystem, size=0, hash=path))
    return ScanResult(root=tmp_path, units=units)


def _abstraction(identifier: str, *, operations: int = 1, kind=AbstractionKind.MODULE) -> Abstraction:
    return Abstraction(
        id=identifier,
        name=identifier,
        kind=kind,
        operations=tuple(Operation(name=f"op{index}") for index in range(operations)),
    )


def test_scenario_repository_extracts_four_abstractions(scenario_repo: RepoBuilder) -> None:
    result = AbstractionExtractor().extract(scenario_repo.scan())

    assert [item.id for item in result.abstractions] == [
        "app-api-order-api",
        "app-pricing-price-calculator",
        "app-service-order-service",
        "app-store-order-store",
    ]
    assert result.unanalyzed == ["README.md", "app/schema.sql"]
    assert result.findings == []
    assert {hint.target for hint in result.hints} == {
        "app.service.OrderService",
        "app.legacy.LegacyGateway",
        "app.store.OrderStore",
        "app.pricing.PriceCalculator",
    }


def test_adapter_failures_become_findings_and_unanalyzed(tmp_path: Path) -> None:
    scan = _scan(tmp_path, ["a.py", "b.py"])
    adapter = _ScriptedAdapter({"a.py": AdapterOutput([_abstraction("a")])}, failing=("b.py",))

    result = AbstractionExtractor(AdapterRegistry([adapter])).extract(scan)

    assert [item.id for item in result.abstractions] == ["a"]
    assert result.unanalyzed == ["b.py"]
    assert [finding.kind for finding in result.findings] == [FindingKind.ADAPTER_ERROR]
    assert result.findings[0].subject == "b.py"


def test_unexpected_adapter_exceptions_are_recovered(tmp_path: Path) -> None:
    class _Exploding(_ScriptedAdapter):
        def extract(self, unit: SourceUnit, content: str) -> AdapterOutput:
            raise KeyError("boom")

    scan = _scan(tmp_path, ["a.py"])
    result = AbstractionExtractor(AdapterRegistry([_Exploding({})])).extract(scan)

    assert result.abstractions == []
    assert result.unanalyzed == ["a.py"]
    assert result.findings[0].kind is FindingKind.ADAPTER_ERROR


def test_duplicate_ids_keep_first_seen_kind_and_report_conflict(tmp_path: Path) -> None:
    scan = _scan(tmp_path, ["b.py", "a.py"])
    adapter = _ScriptedAdapter(
        {
            "a.py": AdapterOutput([_abstraction("shared", kind=AbstractionKind.SERVICE)]),
            "b.py": AdapterOutput([_abstraction("shared", kind=AbstractionKind.STORE)]),
        }
    )

    result = AbstractionExtractor(AdapterRegistry([adapter])).extract(scan)

    assert len(result.abstractions) == 1
    assert result.abstractions[0].kind is AbstractionKind.SERVICE
    assert [finding.kind for finding in result.findings] == [FindingKind.KIND_CONFLICT]


def test_same_class_name_in_colliding_paths_keeps_both(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "orders.py": '''
                from orders.store import Store as Backing


                class Store:
                    """Order facade."""

                    def get(self, key):
                        return Backing().get(key)
            ''',
            "orders/__init__.py": "",
            "orders/store.py": '''
                from orders.codec import RowCodec


                class Store:
                    """Row storage."""

                    def get(self, key):
                        return RowCodec().decode(key)
            ''',
        }
    )

    result = AbstractionExtractor(build_registry(["python"])).extract(repo_builder.scan())

    assert [(item.id, item.source_path) for item in result.abstractions] == [
        ("orders-store", "orders.py"),
        ("orders-store-2", "orders/store.py"),
    ]
    assert [(hint.source_id, hint.target) for hint in result.hints] == [
        ("orders-store", "orders.store.Store"),
        ("orders-store-2", "orders.codec.RowCodec"),
    ]
    assert [finding.kind for finding in result.findings] == [FindingKind.ID_COLLISION]
    assert result.findings[0].subject == "orders-store-2"


def test_function_module_and_class_with_the_same_derived_id(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "app/order_store.py": "class OrderStore:\n    def load(self, key):\n        return key\n",
            "app/order/store.py": "def load(key):\n    return key\n",
        }
    )

    result = AbstractionExtractor(build_registry(["python"])).extract(repo_builder.scan())

    assert [(item.id, item.name) for item in result.abstractions] == [
        ("app-order-store", "store"),
        ("app-order-store-2", "OrderStore"),
    ]


def test_ranking_keeps_most_significant_candidates_in_first_seen_order(tmp_path: Path) -> None:
    paths = [f"m{index:02d}.py" for index in range(20)]
    scan = _scan(tmp_path, paths)
    outputs = {path: AdapterOutput([_abstraction(f"m{index:02d}", operations=1)]) for index, path in enumerate(paths)}
    # m19 has many operations and is referenced twice; m05 has few operations and one reference.
    outputs["m19.py"] = AdapterOutput([_abstraction("m19", operations=6)])
    outputs["m05.py"] = AdapterOutput([_abstraction("m05", operations=2)])
    outputs["m00.py"] = AdapterOutput(
        [_abstraction("m00")],
        [ReferenceHint("m00", "m19"), ReferenceHint("m00", "m05")],
    )
    outputs["m01.py"] = AdapterOutput([_abstraction("m01")], [ReferenceHint("m01", "m19")])

    result = AbstractionExtractor(AdapterRegistry([_ScriptedAdapter(outputs)]), max_abstractions=3).extract(scan)

    assert [item.id for item in result.abstractions] == ["m00", "m05", "m19"]
    assert result.candidates == 20
    assert [hint.source_id for hint in result.hints] == ["m00", "m00"]


def test_surfaced_set_never_exceeds_the_bound(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {f"pkg/mod{index:02d}.py": f"class Thing{index}:\n    def run(self):\n        pass\n" for index in range(40)}
    )

    result = AbstractionExtractor(build_registry(["python"])).extract(repo_builder.scan())

    assert result.candidates == 40
    assert 1 <= len(result.abstractions) <= 15


def test_results_ignore_unit_discovery_order(tmp_path: Path) -> None:
    paths = ["c.py", "a.py", "b.py"]
    outputs = {path: AdapterOutput([_abstraction(path[0])], [ReferenceHint(path[0], "a")]) for path in paths}
    registry = AdapterRegistry([_ScriptedAdapter(outputs)])

    forward = AbstractionExtractor(registry).extract(_scan(tmp_path, paths))
    backward = AbstractionExtractor(registry).extract(_scan(tmp_path, list(reversed(paths))))

    assert forward.abstractions == backward.abstractions
    assert forward.hints == backward.hints


def test_extractor_rejects_non_positive_bound() -> None:
    with pytest.raises(ValueError):
        AbstractionExtractor(max_abstractions=0)
