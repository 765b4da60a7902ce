from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from core.services.movements import MOVEMENT_ORDER, closing_stock, ordered_movements
from core.utils import canonical_id, to_number


@dataclass
class MovementRow:
    warehouse_id: str
    product_id: str
    moves: dict[str, float] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.warehouse_id}:{self.product_id}"


@dataclass
class AsOfRow(MovementRow):
    opening: float = 0.0
    adjustments: float = 0.0

    @property
    def closing(self) -> float:
        return closing_stock(self.opening, self.moves, self.adjustments)


class _RowIndex:
    """Row lookup shared by both report shapes."""

    rows: list

    def _index(self) -> dict[tuple[str, str], MovementRow]:
        idx = getattr(self, "_idx", None)
        if idx is None:
            idx = {(r.product_id, r.warehouse_id): r for r in self.rows}
            self._idx = idx
        return idx

    def row_for(self, product_id, warehouse_id):
        return self._index().get((str(product_id), str(warehouse_id)))


@dataclass
class MovementReport(_RowIndex):
    rows: list[MovementRow]
    totals: dict[str, float]
    # Selected movement keys, canonical order.
    movements: tuple[str, ...] = MOVEMENT_ORDER
    # Query scope the rows were fetched with.
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    warehouse_ids: tuple[str, ...] = ()

    kind = "movement"


@dataclass
class AsOfReport(_RowIndex):
    rows: list[AsOfRow]
    totals: dict[str, float]
    opening: float = 0.0
    adjustments: float = 0.0
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    warehouse_ids: tuple[str, ...] = ()

    kind = "as_of"

    @property
    def movements(self) -> tuple[str, ...]:
        # As-of always covers the full movement universe.
        return MOVEMENT_ORDER

    @property
    def closing(self) -> float:
        return closing_stock(self.opening, self.totals, self.adjustments)


def _add_moves(target: dict[str, float], moves: dict) -> None:
    for k, v in (moves or {}).items():
        n = to_number(v)
        if n is None:
            continue
        target[k] = target.get(k, 0.0) + n


def aggregate_movement_rows(rows: Iterable[MovementRow]) -> list[MovementRow]:
    """
    Folds rows sharing a (warehouse, product) key into one, summing each movement.
    Output keeps first-occurrence order.
    """
    merged: dict[str, MovementRow] = {}
    for r in rows:
        cur = merged.get(r.key)
        if cur is None:
            cur = MovementRow(warehouse_id=r.warehouse_id, product_id=r.product_id)
            merged[r.key] = cur
        _add_moves(cur.moves, r.moves)
    return list(merged.values())


def aggregate_as_of_rows(rows: Iterable[AsOfRow]) -> list[AsOfRow]:
    merged: dict[str, AsOfRow] = {}
    for r in rows:
        cur = merged.get(r.key)
        if cur is None:
            cur = AsOfRow(warehouse_id=r.warehouse_id, product_id=r.product_id)
            merged[r.key] = cur
        opening = to_number(r.opening)
        adjustments = to_number(r.adjustments)
        if opening is not None:
            cur.opening += opening
        if adjustments is not None:
            cur.adjustments += adjustments
        _add_moves(cur.moves, r.moves)
    return list(merged.values())


def movement_totals(rows: Iterable[MovementRow]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for r in rows:
        _add_moves(totals, r.moves)
    return totals


def build_movement_report(
    raw_rows: Iterable[MovementRow],
    movements: Optional[Iterable[str]] = None,
    *,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    warehouse_ids: Iterable = (),
) -> MovementReport:
    rows = aggregate_movement_rows(raw_rows)
    return MovementReport(
        rows=rows,
        totals=movement_totals(rows),
        movements=tuple(ordered_movements(movements)) if movements is not None else MOVEMENT_ORDER,
        from_date=from_date,
        to_date=to_date,
        warehouse_ids=tuple(canonical_id(w) for w in warehouse_ids),
    )


def build_as_of_report(
    raw_rows: Iterable[AsOfRow],
    *,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    warehouse_ids: Iterable = (),
) -> AsOfReport:
    rows = aggregate_as_of_rows(raw_rows)
    return AsOfReport(
        rows=rows,
        totals=movement_totals(rows),
        opening=sum(r.opening for r in rows),
        adjustments=sum(r.adjustments for r in rows),
        from_date=from_date,
        to_date=to_date,
        warehouse_ids=tuple(canonical_id(w) for w in warehouse_ids),
    )
