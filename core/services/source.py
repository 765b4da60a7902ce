from __future__ import annotations

import sqlite3
import time
from contextlib import contextmanager
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence, Union

from core.db import connect, q
from core.errors import QueryTimeoutError, RemoteQueryError
from core.logging import get_logger
from core.services.movements import INFLOW_MOVEMENTS, OUTFLOW_MOVEMENTS

log = get_logger(__name__)

TIMEOUT_MESSAGE = "canceling statement due to statement timeout"

DateLike = Union[date, str, None]


def _marks(values: Sequence[Any]) -> str:
    return ",".join("?" for _ in values)


def _day_start(value: DateLike) -> Optional[str]:
    if value is None or value == "":
        return None
    d = value if isinstance(value, date) else date.fromisoformat(str(value)[:10])
    return f"{d.isoformat()}T00:00:00+00:00"


def _day_after(value: DateLike) -> Optional[str]:
    if value is None or value == "":
        return None
    d = value if isinstance(value, date) else date.fromisoformat(str(value)[:10])
    return _day_start(d + timedelta(days=1))


_SIGNED_QTY = (
    "CASE"
    f" WHEN movement IN ({','.join(repr(m) for m in sorted(INFLOW_MOVEMENTS))}) THEN qty"
    f" WHEN movement IN ({','.join(repr(m) for m in sorted(OUTFLOW_MOVEMENTS))}) THEN -qty"
    " ELSE 0 END"
)


class SqliteMovementSource:
    """
    Serves the two report procedures from the local SQLite store.

    Every call opens its own connection so chunks can be fetched from worker
    threads. Statements running past `timeout_seconds` are interrupted and
    reported the same way a server-side statement timeout would be.
    """

    def __init__(self, db_path: Path, *, timeout_seconds: float = 30.0):
        self.db_path = Path(db_path)
        self.timeout_seconds = float(timeout_seconds)

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        conn = connect(self.db_path)
        deadline = time.monotonic() + self.timeout_seconds
        conn.set_progress_handler(lambda: 1 if time.monotonic() > deadline else 0, 1000)
        try:
            yield conn
        except sqlite3.OperationalError as e:
            if "interrupted" in str(e).lower():
                log.warning("statement_timeout", timeout_seconds=self.timeout_seconds)
                raise QueryTimeoutError(TIMEOUT_MESSAGE, code="STATEMENT_TIMEOUT") from e
            raise RemoteQueryError(str(e), code="REMOTE_QUERY_FAILED") from e
        except sqlite3.Error as e:
            raise RemoteQueryError(str(e), code="REMOTE_QUERY_FAILED") from e
        finally:
            conn.close()

    def movement_report(
        self,
        product_ids: Sequence[int],
        warehouse_ids: Sequence[int],
        movement_types: Sequence[str],
        from_ts: Optional[str] = None,
        to_ts: Optional[str] = None,
    ) -> list[dict]:
        """One raw row per (warehouse, product, movement) with activity in range."""
        if not product_ids or not warehouse_ids or not movement_types:
            return []

        where = [
            f"product_id IN ({_marks(product_ids)})",
            f"warehouse_id IN ({_marks(warehouse_ids)})",
            f"movement IN ({_marks(movement_types)})",
        ]
        params: list[Any] = [*product_ids, *warehouse_ids, *movement_types]
        if from_ts:
            where.append("julianday(ts) >= julianday(?)")
            params.append(from_ts)
        if to_ts:
            where.append("julianday(ts) < julianday(?)")
            params.append(to_ts)

        with self._session() as conn:
            rows = q(
                conn,
                f"""
                SELECT warehouse_id, product_id, movement, COALESCE(SUM(qty),0) AS qty
                FROM stock_moves
                WHERE {' AND '.join(where)}
                GROUP BY warehouse_id, product_id, movement
                ORDER BY warehouse_id, product_id, movement
                """,
                params,
            )

        return [
            {
                "warehouse_id": int(r["warehouse_id"]),
                "product_id": int(r["product_id"]),
                "moves": {str(r["movement"]): float(r["qty"])},
            }
            for r in rows
        ]

    def as_of_report(
        self,
        product_ids: Sequence[int],
        warehouse_ids: Sequence[int],
        from_date: DateLike = None,
        to_date: DateLike = None,
    ) -> list[dict]:
        """
        Stock position per (warehouse, product):

        - opening: signed moves and adjustments before `from_date`
        - moves: every movement inside [from_date, to_date]
        - adjustments: adjustments inside the same range
        """
        if not product_ids or not warehouse_ids:
            return []

        start = _day_start(from_date)
        end = _day_after(to_date)

        scope = f"product_id IN ({_marks(product_ids)}) AND warehouse_id IN ({_marks(warehouse_ids)})"
        scope_params: list[Any] = [*product_ids, *warehouse_ids]

        in_range = ""
        range_params: list[Any] = []
        if start:
            in_range += " AND julianday(ts) >= julianday(?)"
            range_params.append(start)
        if end:
            in_range += " AND julianday(ts) < julianday(?)"
            range_params.append(end)

        out: dict[tuple[int, int], dict] = {}

        def row(wid: int, pid: int) -> dict:
            key = (int(wid), int(pid))
            if key not in out:
                out[key] = {"warehouse_id": key[0], "product_id": key[1], "opening": 0.0, "adjustments": 0.0, "moves": {}}
            return out[key]

        with self._session() as conn:
            if start:
                opening_moves = q(
                    conn,
                    f"""
                    SELECT warehouse_id, product_id, COALESCE(SUM({_SIGNED_QTY}),0) AS qty
                    FROM stock_moves
                    WHERE {scope} AND julianday(ts) < julianday(?)
                    GROUP BY warehouse_id, product_id
                    """,
                    [*scope_params, start],
                )
                opening_adj = q(
                    conn,
                    f"""
                    SELECT warehouse_id, product_id, COALESCE(SUM(qty_delta),0) AS qty
                    FROM stock_adjustments
                    WHERE {scope} AND julianday(ts) < julianday(?)
                    GROUP BY warehouse_id, product_id
                    """,
                    [*scope_params, start],
                )
                for r in [*opening_moves, *opening_adj]:
                    row(r["warehouse_id"], r["product_id"])["opening"] += float(r["qty"])

            moves = q(
                conn,
                f"""
                SELECT warehouse_id, product_id, movement, COALESCE(SUM(qty),0) AS qty
                FROM stock_moves
                WHERE {scope}{in_range}
                GROUP BY warehouse_id, product_id, movement
                """,
                [*scope_params, *range_params],
            )
            adjustments = q(
                conn,
                f"""
                SELECT warehouse_id, product_id, COALESCE(SUM(qty_delta),0) AS qty
                FROM stock_adjustments
                WHERE {scope}{in_range}
                GROUP BY warehouse_id, product_id
                """,
                [*scope_params, *range_params],
            )

        for r in moves:
            mv = row(r["warehouse_id"], r["product_id"])["moves"]
            mv[str(r["movement"])] = mv.get(str(r["movement"]), 0.0) + float(r["qty"])
        for r in adjustments:
            row(r["warehouse_id"], r["product_id"])["adjustments"] += float(r["qty"])

        return list(out.values())
