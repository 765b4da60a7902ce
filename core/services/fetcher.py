from __future__ import annotations

import json
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar

from core.logging import get_logger
from core.services.aggregation import AsOfRow, MovementRow
from core.utils import canonical_id, to_number

log = get_logger(__name__)

T = TypeVar("T")

DEFAULT_CHUNK_SIZE = 250

_WAREHOUSE_KEYS = ("warehouse_id", "warehouseId", "warehouse")
_PRODUCT_KEYS = ("product_id", "productId", "product")


def chunked(seq: Sequence[T], size: int) -> list[list[T]]:
    if size <= 0:
        raise ValueError("Chunk size must be > 0.")
    items = list(seq)
    return [items[i : i + size] for i in range(0, len(items), size)]


def _first(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        if raw.get(k) is not None:
            return raw[k]
    return None


def _moves(raw: Mapping[str, Any]) -> dict[str, float]:
    moves = raw.get("moves")
    if isinstance(moves, (str, bytes)):
        try:
            moves = json.loads(moves)
        except ValueError:
            moves = None
    out: dict[str, float] = {}
    if not isinstance(moves, Mapping):
        return out
    for k, v in moves.items():
        n = to_number(v)
        if n is not None:
            out[str(k)] = n
    return out


def normalize_movement_row(raw: Mapping[str, Any]) -> MovementRow:
    """Maps one raw source row onto MovementRow, whatever its field naming."""
    return MovementRow(
        warehouse_id=canonical_id(_first(raw, _WAREHOUSE_KEYS)),
        product_id=canonical_id(_first(raw, _PRODUCT_KEYS)),
        moves=_moves(raw),
    )


def normalize_as_of_row(raw: Mapping[str, Any]) -> AsOfRow:
    opening = to_number(_first(raw, ("opening", "opening_stock", "openingStock")))
    adjustments = to_number(_first(raw, ("adjustments", "stock_adjustments", "adjustment")))
    return AsOfRow(
        warehouse_id=canonical_id(_first(raw, _WAREHOUSE_KEYS)),
        product_id=canonical_id(_first(raw, _PRODUCT_KEYS)),
        moves=_moves(raw),
        opening=opening or 0.0,
        adjustments=adjustments or 0.0,
    )


def fetch_batched(
    call: Callable[..., Iterable[T]],
    product_ids: Sequence[int],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_workers: int = 1,
    **params: Any,
) -> list[T]:
    """
    Calls `call(chunk, **params)` once per chunk of product ids and concatenates
    the results in chunk order.

    The first failing chunk aborts the whole fetch: its exception is re-raised
    as-is, chunks not yet started are cancelled, and no rows are returned.
    """
    chunks = chunked(product_ids, chunk_size)
    if not chunks:
        return []

    log.info("fetch_started", chunks=len(chunks), products=len(product_ids), workers=max_workers)

    if max_workers <= 1 or len(chunks) == 1:
        out: list[T] = []
        for c in chunks:
            out.extend(call(c, **params))
        log.info("fetch_finished", rows=len(out))
        return out

    executor = ThreadPoolExecutor(max_workers=min(max_workers, len(chunks)))
    try:
        futures = [executor.submit(lambda c=c: list(call(c, **params))) for c in chunks]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        for fut in futures:
            if fut in done and fut.exception() is not None:
                raise fut.exception()
        # No failure: FIRST_EXCEPTION waited for everything.
        out = []
        for fut in futures:
            out.extend(fut.result())
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    log.info("fetch_finished", rows=len(out))
    return out
