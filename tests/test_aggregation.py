"""Tests for folding raw rows into one row per (warehouse, product)."""

import math
from datetime import date

from core.services.aggregation import (
    AsOfRow,
    MovementRow,
    aggregate_as_of_rows,
    aggregate_movement_rows,
    build_as_of_report,
    build_movement_report,
    movement_totals,
)
from core.services.movements import MOVEMENT_ORDER, net_movement


def _raw():
    return [
        MovementRow("W1", "A", {"purchase": 5}),
        MovementRow("W1", "A", {"purchase": 3}),
        MovementRow("W1", "B", {"sales": 2}),
    ]


class TestAggregateMovementRows:
    def test_example_scenario(self):
        report = build_movement_report(_raw(), ["purchase", "sales"])
        assert [(r.warehouse_id, r.product_id, r.moves) for r in report.rows] == [
            ("W1", "A", {"purchase": 8}),
            ("W1", "B", {"sales": 2}),
        ]
        assert report.totals == {"purchase": 8, "sales": 2}
        assert report.movements == ("purchase", "sales")

    def test_movements_stored_in_canonical_order(self):
        report = build_movement_report(_raw(), ["sales", "bogus", "purchase", "sales"])
        assert report.movements == ("purchase", "sales")

    def test_no_movements_means_all(self):
        assert build_movement_report(_raw()).movements == MOVEMENT_ORDER

    def test_query_scope_kept_on_report(self):
        report = build_movement_report(
            _raw(), ["purchase"], from_date=date(2025, 7, 1), to_date=date(2025, 7, 31), warehouse_ids=[9, "8.0"]
        )
        assert (report.from_date, report.to_date) == (date(2025, 7, 1), date(2025, 7, 31))
        assert report.warehouse_ids == ("9", "8")

    def test_keys_unique_after_aggregation(self):
        rows = aggregate_movement_rows(_raw() * 3)
        keys = [r.key for r in rows]
        assert len(keys) == len(set(keys))

    def test_first_occurrence_order(self):
        rows = aggregate_movement_rows(
            [MovementRow("2", "9", {"sales": 1}), MovementRow("1", "9", {"sales": 1}), MovementRow("2", "9", {"sales": 1})]
        )
        assert [r.key for r in rows] == ["2:9", "1:9"]

    def test_malformed_values_skipped(self):
        rows = aggregate_movement_rows(
            [
                MovementRow("W1", "A", {"purchase": float("nan"), "sales": "x"}),
                MovementRow("W1", "A", {"purchase": 4, "sales": float("-inf")}),
            ]
        )
        assert rows[0].moves == {"purchase": 4}

    def test_idempotent(self):
        once = aggregate_movement_rows(_raw())
        twice = aggregate_movement_rows(once)
        assert movement_totals(once) == movement_totals(twice)
        assert [(r.key, r.moves) for r in once] == [(r.key, r.moves) for r in twice]

    def test_chunk_invariance(self):
        raw = [MovementRow(f"W{i % 3}", f"P{i % 7}", {"purchase": i, "sales": i / 2}) for i in range(41)]
        half = (len(raw) + 1) // 2
        whole = movement_totals(aggregate_movement_rows(raw))
        split = movement_totals(aggregate_movement_rows(raw[:half] + raw[half:]))
        assert whole == split

    def test_empty(self):
        report = build_movement_report([])
        assert report.rows == []
        assert report.totals == {}


class TestAggregateAsOfRows:
    def test_sums_opening_and_adjustments(self):
        rows = aggregate_as_of_rows(
            [
                AsOfRow("8", "1", {"purchase": 5}, opening=10, adjustments=-1),
                AsOfRow("8", "1", {"sales": 2}, opening=0, adjustments=0),
            ]
        )
        assert len(rows) == 1
        assert rows[0].opening == 10
        assert rows[0].adjustments == -1
        assert rows[0].closing == 12

    def test_report_totals_and_closing(self):
        report = build_as_of_report(
            [
                AsOfRow("8", "1", {"purchase": 5, "sales": 2}, opening=10, adjustments=-1),
                AsOfRow("9", "1", {"transfer_in": 3}, opening=1, adjustments=0.5),
            ]
        )
        assert report.opening == 11
        assert report.adjustments == -0.5
        assert report.totals == {"purchase": 5, "sales": 2, "transfer_in": 3}
        assert report.closing == 11 + 5 + 3 - 0.5 - 2
        assert report.movements == MOVEMENT_ORDER

    def test_closing_identity_per_row(self):
        raw = [
            AsOfRow(str(w), str(p), {k: (w + p + i) * 0.7 for i, k in enumerate(MOVEMENT_ORDER)}, opening=p * 1.3, adjustments=-w * 0.1)
            for w in range(3)
            for p in range(4)
        ]
        for row in aggregate_as_of_rows(raw):
            assert math.isclose(row.closing - row.opening - row.adjustments, net_movement(row.moves), abs_tol=1e-9)

    def test_non_finite_opening_skipped(self):
        rows = aggregate_as_of_rows([AsOfRow("8", "1", {}, opening=float("nan"), adjustments=2)])
        assert rows[0].opening == 0
        assert rows[0].adjustments == 2


class TestRowLookup:
    def test_row_for(self):
        report = build_movement_report(_raw())
        assert report.row_for("A", "W1").moves == {"purchase": 8}
        assert report.row_for("A", "W2") is None
