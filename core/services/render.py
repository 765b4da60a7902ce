from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from html import escape
from typing import Any, Iterable, Optional, Sequence, TypeVar, Union

import pandas as pd

from core.services.aggregation import AsOfReport, AsOfRow, MovementReport, MovementRow
from core.services.catalog import CatalogItem, Warehouse
from core.services.movements import closing_stock, movement_label
from core.utils import num_or_zero, to_number

T = TypeVar("T")

PAGE_SIZE = 20
EXPORT_MIME = "application/vnd.ms-excel"

Report = Union[MovementReport, AsOfReport]


def fmt(value: Any) -> str:
    n = to_number(value)
    return f"{n:.2f}" if n is not None else "0.00"


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Page:
    items: list
    number: int
    total_pages: int
    total_items: int
    page_size: int

    @property
    def start(self) -> int:
        # 1-based index of the first item shown
        return 0 if not self.total_items else (self.number - 1) * self.page_size + 1

    @property
    def end(self) -> int:
        return min(self.number * self.page_size, self.total_items)

    @property
    def has_prev(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages


def page_count(total_items: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(total_items / page_size) if total_items > 0 else 0


def paginate(items: Sequence[T], page: int, page_size: int = PAGE_SIZE) -> Page:
    if page_size <= 0:
        raise ValueError("Page size must be > 0.")
    total = len(items)
    pages = max(1, page_count(total, page_size))
    number = min(max(1, int(page)), pages)
    start = (number - 1) * page_size
    return Page(
        items=list(items[start : start + page_size]),
        number=number,
        total_pages=pages,
        total_items=total,
        page_size=page_size,
    )


# ---------------------------------------------------------------------------
# Product tables
# ---------------------------------------------------------------------------


@dataclass
class ProductTable:
    title: str
    columns: list[str]
    # None marks a blank cell (no data for that warehouse)
    rows: list[list[Optional[str]]] = field(default_factory=list)
    footer: list[str] = field(default_factory=list)


def product_title(item: CatalogItem) -> str:
    parts = [item.label or item.id]
    if item.category:
        parts.append(str(item.category))
    if item.code:
        parts.append(str(item.code))
    return " — ".join(parts)


def table_columns(report: Report) -> list[str]:
    as_of = isinstance(report, AsOfReport)
    cols = ["Warehouse"]
    if as_of:
        cols.append("Opening Stock")
    cols.extend(movement_label(k) for k in report.movements)
    if as_of:
        cols.extend(["Stock Adjustments", "Closing Stock"])
    return cols


def warehouse_order(
    warehouses: Sequence[Warehouse], selected_ids: Optional[Sequence[Any]] = None
) -> list[tuple[str, str]]:
    """(id, name) pairs in the user's selection order, or all warehouses."""
    names = {str(w.id): w.display_name for w in warehouses}
    ids = [str(i) for i in selected_ids] if selected_ids else list(names)
    return [(wid, names.get(wid, wid)) for wid in ids]


def _cell(row: Optional[MovementRow], key: str) -> Optional[str]:
    if row is None or key not in row.moves:
        return None
    return fmt(row.moves[key])


def build_product_table(
    report: Report,
    item: CatalogItem,
    warehouses: Sequence[Warehouse],
    selected_warehouse_ids: Optional[Sequence[Any]] = None,
) -> ProductTable:
    as_of = isinstance(report, AsOfReport)
    mvs = list(report.movements)
    table = ProductTable(title=product_title(item), columns=table_columns(report))
    if selected_warehouse_ids is None:
        selected_warehouse_ids = report.warehouse_ids

    shown: list[MovementRow] = []
    for wid, name in warehouse_order(warehouses, selected_warehouse_ids):
        row = report.row_for(item.id, wid)
        if row is not None:
            shown.append(row)
        cells: list[Optional[str]] = [name]
        if as_of:
            cells.append(fmt(row.opening) if row is not None else None)
        cells.extend(_cell(row, k) for k in mvs)
        if as_of:
            if isinstance(row, AsOfRow):
                cells.extend([fmt(row.adjustments), fmt(row.closing)])
            else:
                cells.extend([None, None])
        table.rows.append(cells)

    # Footer sums the rows shown above, missing values as zero.
    totals = {k: sum(num_or_zero(r.moves.get(k)) for r in shown) for k in mvs}
    footer = ["Totals"]
    if as_of:
        opening = sum(num_or_zero(r.opening) for r in shown)
        adjustments = sum(num_or_zero(r.adjustments) for r in shown)
        footer.append(fmt(opening))
    footer.extend(fmt(totals[k]) for k in mvs)
    if as_of:
        footer.extend([fmt(adjustments), fmt(closing_stock(opening, totals, adjustments))])
    table.footer = footer
    return table


def build_product_tables(
    report: Report,
    items: Iterable[CatalogItem],
    warehouses: Sequence[Warehouse],
    selected_warehouse_ids: Optional[Sequence[Any]] = None,
) -> list[ProductTable]:
    return [build_product_table(report, i, warehouses, selected_warehouse_ids) for i in items]


def table_frame(table: ProductTable) -> pd.DataFrame:
    """On-screen form: blank cells stay empty strings, totals as the last row."""
    body = [[c if c is not None else "" for c in r] for r in table.rows]
    return pd.DataFrame(body + [table.footer], columns=table.columns)


# ---------------------------------------------------------------------------
# Spreadsheet export
# ---------------------------------------------------------------------------

_EXPORT_STYLE = """
<style>
  table { border-collapse: collapse; width: 100%; }
  th, td { border: 1px solid #d1d5db; padding: 6px; font-family: Arial, sans-serif; font-size: 12px; text-align: center; }
  thead th { background: #f9fafb; color: #374151; }
  .title { background: #f3f4f6; font-weight: 600; font-size: 14px; text-align: left; }
  tfoot td { background: #f9fafb; font-weight: 600; }
</style>
"""


def _date_text(value: Optional[date]) -> str:
    return value.isoformat() if value else "—"


def _table_html(table: ProductTable) -> str:
    parts = ["<table>", "<thead>"]
    parts.append(
        f'<tr class="title"><th colspan="{len(table.columns)}" style="text-align:left">{escape(table.title)}</th></tr>'
    )
    parts.append("<tr>")
    for i, col in enumerate(table.columns):
        style = ' style="text-align:left"' if i == 0 else ""
        parts.append(f"<th{style}>{escape(col)}</th>")
    parts.append("</tr></thead><tbody>")
    for row in table.rows:
        parts.append("<tr>")
        for i, cell in enumerate(row):
            style = ' style="text-align:left"' if i == 0 else ""
            parts.append(f"<td{style}>{escape(cell) if cell is not None else ''}</td>")
        parts.append("</tr>")
    parts.append("</tbody><tfoot><tr>")
    for i, cell in enumerate(table.footer):
        style = ' style="text-align:left"' if i == 0 else ""
        parts.append(f"<td{style}>{escape(cell)}</td>")
    parts.append("</tr></tfoot></table><br/>")
    return "".join(parts)


def export_html(
    report: Report,
    items: Iterable[CatalogItem],
    warehouses: Sequence[Warehouse],
    selected_warehouse_ids: Optional[Sequence[Any]] = None,
) -> str:
    """
    Spreadsheet-compatible HTML document: a From/To header block followed by one
    table per product, same layout as on screen.

    The header states the range the report was queried with, not whatever the
    date inputs show now.
    """
    html = [f'<!DOCTYPE html><html><head><meta charset="utf-8"/>{_EXPORT_STYLE}</head><body>']
    html.append(
        '<div style="text-align:left;font-family:Arial,sans-serif;font-size:12px;margin:0 0 8px 0;">'
        f"<div><strong>From:</strong> {escape(_date_text(report.from_date))}</div>"
        f"<div><strong>To:</strong> {escape(_date_text(report.to_date))}</div>"
        "</div>"
    )
    for table in build_product_tables(report, items, warehouses, selected_warehouse_ids):
        html.append(_table_html(table))
    html.append("</body></html>")
    return "".join(html)


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    ts = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
    return f"productwise-report-{ts}.xls"
