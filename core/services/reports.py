from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, Optional, Protocol, Sequence, Union

from core.config import DEFAULT_AS_OF_START, Settings
from core.errors import ReportError, ValidationError, classify_remote_error, user_message
from core.logging import get_logger
from core.services.aggregation import AsOfReport, MovementReport, build_as_of_report, build_movement_report
from core.services.fetcher import DEFAULT_CHUNK_SIZE, fetch_batched, normalize_as_of_row, normalize_movement_row

log = get_logger(__name__)

Report = Union[MovementReport, AsOfReport]


class MovementSource(Protocol):
    def movement_report(
        self,
        product_ids: Sequence[int],
        warehouse_ids: Sequence[int],
        movement_types: Sequence[str],
        from_ts: Optional[str],
        to_ts: Optional[str],
    ) -> Iterable[dict]: ...

    def as_of_report(
        self,
        product_ids: Sequence[int],
        warehouse_ids: Sequence[int],
        from_date: Optional[date],
        to_date: Optional[date],
    ) -> Iterable[dict]: ...


def to_numeric_ids(ids: Iterable[Any]) -> list[int]:
    """Integer ids in input order; anything non-numeric is skipped."""
    out: list[int] = []
    for v in ids:
        try:
            n = float(str(v).strip())
        except ValueError:
            continue
        if math.isfinite(n) and n.is_integer():
            out.append(int(n))
    return out


def day_bounds(from_date: Optional[date], to_date: Optional[date]) -> tuple[Optional[str], Optional[str]]:
    """
    UTC timestamps for a date-only range. The upper bound is the start of the
    day after `to_date`, so the end date is included in full.
    """
    from_ts = datetime.combine(from_date, time.min, tzinfo=timezone.utc).isoformat() if from_date else None
    to_ts = (
        datetime.combine(to_date + timedelta(days=1), time.min, tzinfo=timezone.utc).isoformat() if to_date else None
    )
    return from_ts, to_ts


def _require(product_ids: Sequence[Any], warehouse_ids: Sequence[Any]) -> None:
    if not product_ids:
        raise ValidationError("Select at least one product", field="products")
    if not warehouse_ids:
        raise ValidationError("Select at least one warehouse", field="warehouses")


def _numeric_scope(product_ids: Sequence[Any], warehouse_ids: Sequence[Any]) -> tuple[list[int], list[int]]:
    # Ids the source cannot take are dropped; an empty remainder is a validation error.
    pids = to_numeric_ids(product_ids)
    wids = to_numeric_ids(warehouse_ids)
    _require(pids, wids)
    return pids, wids


def _fetch(call, product_ids: list[int], settings: Optional[Settings], **params) -> list[dict]:
    chunk_size = settings.chunk_size if settings else DEFAULT_CHUNK_SIZE
    workers = settings.fetch_workers if settings else 1
    try:
        return fetch_batched(call, product_ids, chunk_size=chunk_size, max_workers=workers, **params)
    except ReportError:
        raise
    except Exception as e:
        raise classify_remote_error(e) from e


def create_movement_report(
    source: MovementSource,
    product_ids: Sequence[Any],
    warehouse_ids: Sequence[Any],
    movements: Sequence[str],
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    *,
    settings: Optional[Settings] = None,
) -> MovementReport:
    _require(product_ids, warehouse_ids)
    if not movements:
        raise ValidationError("Select at least one movement type", field="movements")

    pids, wids = _numeric_scope(product_ids, warehouse_ids)
    from_ts, to_ts = day_bounds(from_date, to_date)

    log.info("movement_report_requested", products=len(pids), warehouses=len(wids), movements=list(movements))
    raw = _fetch(
        source.movement_report,
        pids,
        settings,
        warehouse_ids=wids,
        movement_types=list(movements),
        from_ts=from_ts,
        to_ts=to_ts,
    )
    report = build_movement_report(
        (normalize_movement_row(r) for r in raw),
        movements,
        from_date=from_date,
        to_date=to_date,
        warehouse_ids=wids,
    )
    log.info("movement_report_built", raw_rows=len(raw), rows=len(report.rows))
    return report


def create_as_of_report(
    source: MovementSource,
    product_ids: Sequence[Any],
    warehouse_ids: Sequence[Any],
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    *,
    settings: Optional[Settings] = None,
) -> AsOfReport:
    # Movement types are not required: as-of always covers all of them.
    _require(product_ids, warehouse_ids)

    pids, wids = _numeric_scope(product_ids, warehouse_ids)
    lower = from_date or (settings.as_of_start if settings else DEFAULT_AS_OF_START)

    log.info("as_of_report_requested", products=len(pids), warehouses=len(wids), from_date=str(lower), to_date=str(to_date))
    raw = _fetch(
        source.as_of_report,
        pids,
        settings,
        warehouse_ids=wids,
        from_date=lower,
        to_date=to_date,
    )
    report = build_as_of_report(
        (normalize_as_of_row(r) for r in raw),
        from_date=lower,
        to_date=to_date,
        warehouse_ids=wids,
    )
    log.info("as_of_report_built", raw_rows=len(raw), rows=len(report.rows))
    return report


_tokens = itertools.count(1)


@dataclass
class ReportState:
    """
    The single "current report" slot plus its error slot.

    `begin()` clears both and hands out a token; a result delivered with an
    older token is stale and dropped.
    """

    report: Optional[Report] = None
    error: Optional[str] = None
    loading: bool = False
    token: int = 0

    def begin(self) -> int:
        self.report = None
        self.error = None
        self.loading = True
        self.token = next(_tokens)
        return self.token

    def succeed(self, token: int, report: Report) -> bool:
        if token != self.token:
            return False
        self.report = report
        self.loading = False
        return True

    def fail(self, token: int, exc: BaseException, kind: str = "movement") -> bool:
        if token != self.token:
            return False
        self.report = None
        self.error = user_message(exc, kind)
        self.loading = False
        return True

    @property
    def can_export(self) -> bool:
        return self.report is not None
