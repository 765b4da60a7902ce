"""Tests for chunked fetching and raw row normalization."""

import threading

import pytest

from core.services.aggregation import aggregate_movement_rows, movement_totals
from core.services.fetcher import (
    chunked,
    fetch_batched,
    normalize_as_of_row,
    normalize_movement_row,
)


class TestChunked:
    def test_splits_into_bounded_chunks(self):
        chunks = chunked(list(range(601)), 250)
        assert [len(c) for c in chunks] == [250, 250, 101]
        assert sum(chunks, []) == list(range(601))

    def test_empty(self):
        assert chunked([], 250) == []

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestFetchBatched:
    def _echo(self, calls):
        lock = threading.Lock()

        def call(chunk, **params):
            with lock:
                calls.append((list(chunk), params))
            return [{"product_id": p, "warehouse_id": params["warehouse_ids"][0], "moves": {"purchase": 1}} for p in chunk]

        return call

    @pytest.mark.parametrize("workers", [1, 4])
    def test_one_call_per_chunk_and_concatenates_in_order(self, workers):
        calls = []
        rows = fetch_batched(self._echo(calls), list(range(7)), chunk_size=3, max_workers=workers, warehouse_ids=[8])
        assert len(calls) == 3
        assert sorted(len(c) for c, _ in calls) == [1, 3, 3]
        assert all(p == {"warehouse_ids": [8]} for _, p in calls)
        assert [r["product_id"] for r in rows] == list(range(7))

    def test_no_ids_no_calls(self):
        calls = []
        assert fetch_batched(self._echo(calls), [], warehouse_ids=[8]) == []
        assert calls == []

    @pytest.mark.parametrize("workers", [1, 3])
    def test_first_error_propagates_unmodified(self, workers):
        err = RuntimeError("chunk exploded")

        def call(chunk, **params):
            if 4 in chunk:
                raise err
            return [{"product_id": p} for p in chunk]

        with pytest.raises(RuntimeError) as exc:
            fetch_batched(call, list(range(9)), chunk_size=3, max_workers=workers)
        assert exc.value is err

    def test_sequential_stops_after_failure(self):
        seen = []

        def call(chunk, **params):
            seen.append(list(chunk))
            if len(seen) == 1:
                raise ValueError("first chunk failed")
            return []

        with pytest.raises(ValueError):
            fetch_batched(call, list(range(10)), chunk_size=2, max_workers=1)
        assert len(seen) == 1

    def test_chunking_does_not_change_totals(self):
        def call(chunk, **params):
            # Two raw rows per product, as a source returning one row per movement would.
            out = []
            for p in chunk:
                out.append({"warehouse_id": 8, "product_id": p, "moves": {"purchase": p}})
                out.append({"warehouse_id": 8, "product_id": p, "moves": {"sales": p / 4}})
            return out

        ids = list(range(1, 30))
        one = fetch_batched(call, ids, chunk_size=len(ids))
        two = fetch_batched(call, ids, chunk_size=(len(ids) + 1) // 2)

        def totals(raw):
            return movement_totals(aggregate_movement_rows(normalize_movement_row(r) for r in raw))

        assert totals(one) == totals(two)


class TestNormalize:
    def test_snake_case_row(self):
        row = normalize_movement_row({"warehouse_id": 8, "product_id": 1001, "moves": {"sales": "2.5"}})
        assert (row.warehouse_id, row.product_id, row.moves) == ("8", "1001", {"sales": 2.5})

    def test_camel_case_and_json_moves(self):
        row = normalize_movement_row({"warehouseId": 8.0, "productId": "1001", "moves": '{"purchase": 3, "bad": "x"}'})
        assert (row.warehouse_id, row.product_id, row.moves) == ("8", "1001", {"purchase": 3.0})

    def test_missing_moves(self):
        assert normalize_movement_row({"warehouse": 1, "product": 2}).moves == {}

    def test_as_of_row(self):
        row = normalize_as_of_row(
            {"warehouse_id": 8, "product_id": 1, "opening": "10", "adjustments": None, "moves": {"purchase": 5}}
        )
        assert row.opening == 10
        assert row.adjustments == 0
        assert row.closing == 15

    def test_as_of_row_non_finite_opening(self):
        row = normalize_as_of_row({"warehouse_id": 8, "product_id": 1, "opening": float("inf")})
        assert row.opening == 0
