from __future__ import annotations

from pathlib import Path
from typing import Dict

import pytest

from tests._fixtures.repo_builder import RepoBuilder

# Six units: four analysable Python modules plus two files no adapter handles.
# The four classes are linked by three resolvable `uses` references and one
# reference to a class outside the surfaced set.
SCENARIO_FILES: Dict[str, str] = {
    "app/api.py": '''
        """HTTP entrypoints."""
        from app.service import OrderService
        from app.legacy import LegacyGateway


        class OrderApi:
            """Accepts order requests and hands them to the service."""

            def __init__(self) -> None:
                self.service = OrderService()
                self.gateway = LegacyGateway()

            def create(self, payload: dict) -> dict:
                return self.service.place(payload)
    ''',
    "app/service.py": '''
        from app.store import OrderStore
        from app.pricing import PriceCalculator


        class OrderService:
            """Coordinates pricing and persistence for orders."""

            def __init__(self) -> None:
                self.store = OrderStore()
                self.prices = PriceCalculator()

            def place(self, payload: dict) -> dict:
                return self.store.save(payload)

            def cancel(self, order_id: str) -> None:
                self.store.delete(order_id)
    ''',
    "app/store.py": '''
        import os


        class OrderStore:
            """Persists orders."""

            def save(self, payload: dict) -> dict:
                return payload

            def delete(self, order_id: str) -> None:
                os.environ.get("ORDER_DB_URL")
    ''',
    "app/pricing.py": '''
        class PriceCalculator:
            """Computes order totals."""

            def total(self, items: list) -> float:
                return 0.0
    ''',
    "app/schema.sql": "CREATE TABLE orders (id TEXT);\n",
    "README.md": "# Shop\n",
}


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def scenario_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    """Repository with six units, four of which yield abstractions."""
    repo_builder.write(SCENARIO_FILES)
    return repo_builder
