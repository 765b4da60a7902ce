"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.db import connect, ensure_schema, xmany
from core.services.catalog import CatalogItem, Warehouse
from core.services.demo_data import upsert_reference_data


class FakeSource:
    """In-memory stand-in for the remote report procedures."""

    def __init__(self, movement_rows=None, as_of_rows=None, fail_on_call=None, error=None):
        self.movement_rows = movement_rows or []
        self.as_of_rows = as_of_rows or []
        self.fail_on_call = fail_on_call
        self.error = error or RuntimeError("boom")
        self.calls: list[dict] = []

    def _maybe_fail(self):
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise self.error

    def movement_report(self, product_ids, warehouse_ids, movement_types, from_ts=None, to_ts=None):
        self.calls.append(
            {
                "product_ids": list(product_ids),
                "warehouse_ids": list(warehouse_ids),
                "movement_types": list(movement_types),
                "from_ts": from_ts,
                "to_ts": to_ts,
            }
        )
        self._maybe_fail()
        wanted = {str(p) for p in product_ids}
        return [r for r in self.movement_rows if str(r["product_id"]) in wanted]

    def as_of_report(self, product_ids, warehouse_ids, from_date=None, to_date=None):
        self.calls.append(
            {
                "product_ids": list(product_ids),
                "warehouse_ids": list(warehouse_ids),
                "from_date": from_date,
                "to_date": to_date,
            }
        )
        self._maybe_fail()
        wanted = {str(p) for p in product_ids}
        return [r for r in self.as_of_rows if str(r["product_id"]) in wanted]


@pytest.fixture
def fake_source_cls():
    return FakeSource


@pytest.fixture
def catalog() -> list[CatalogItem]:
    return [
        CatalogItem(id="1", label="Apple Gala", code="7401", category="Fruits"),
        CatalogItem(id="2", label="Banana", code="7402", category="Fruits"),
        CatalogItem(id="3", label="Crème Brûlée", code="8801", category="Bakery"),
        CatalogItem(id="4", label="Croissant", code=None, category="Bakery"),
        CatalogItem(id="5", label="Jalapeño", code="9901", category=None),
    ]


@pytest.fixture
def warehouses() -> list[Warehouse]:
    return [
        Warehouse(id=8, display_name="Central Warehouse"),
        Warehouse(id=9, display_name="North Store"),
        Warehouse(id=10, display_name="South Store"),
    ]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """SQLite store with two products and a handful of moves around July 2025."""
    path = tmp_path / "app.db"
    conn = connect(path)
    ensure_schema(conn)
    upsert_reference_data(conn)
    xmany(
        conn,
        "INSERT INTO products(id, name, barcode, category_id) VALUES (?, ?, ?, ?)",
        [(1001, "Apple Gala", "7401", 1), (1002, "Banana", None, 1)],
    )
    xmany(
        conn,
        "INSERT INTO stock_moves (ts, product_id, warehouse_id, movement, qty) VALUES (?, ?, ?, ?, ?)",
        [
            # before 2025-07-01: opening for (8, 1001) = 100 - 30 = 70
            ("2025-06-10T09:00:00+00:00", 1001, 8, "purchase", 100.0),
            ("2025-06-20T09:00:00+00:00", 1001, 8, "sales", 30.0),
            # inside July
            ("2025-07-01T00:00:00+00:00", 1001, 8, "purchase", 5.0),
            ("2025-07-05T12:00:00+00:00", 1001, 8, "purchase", 3.0),
            ("2025-07-10T23:59:59+00:00", 1001, 8, "sales", 2.0),
            ("2025-07-11T00:00:00+00:00", 1001, 8, "sales", 50.0),
            ("2025-07-03T08:00:00+00:00", 1002, 9, "transfer_in", 12.5),
            ("2025-07-04T08:00:00+00:00", 1002, 9, "wastages", 1.5),
        ],
    )
    xmany(
        conn,
        "INSERT INTO stock_adjustments (ts, product_id, warehouse_id, qty_delta, reason) VALUES (?, ?, ?, ?, ?)",
        [
            ("2025-06-30T10:00:00+00:00", 1001, 8, -4.0, "STOCKTAKE"),
            ("2025-07-06T10:00:00+00:00", 1001, 8, -1.0, "STOCKTAKE"),
        ],
    )
    conn.close()
    return path
