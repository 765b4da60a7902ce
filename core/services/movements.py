"""
Movement categories and the stock arithmetic built on them.

Every movement is either an inflow or an outflow; the split never changes per
report, so closing stock is always:

    closing = opening + inflows + adjustments - outflows
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from core.utils import num_or_zero

MOVEMENT_ORDER: tuple[str, ...] = (
    "purchase",
    "purchase_return",
    "sales",
    "sales_returns",
    "transfer_in",
    "transfer_out",
    "wastages",
    "manufacturing",
    "consumption",
)

MOVEMENT_LABELS: dict[str, str] = {
    "purchase": "Purchases",
    "purchase_return": "Purchase Returns",
    "sales": "Sales",
    "sales_returns": "Sales Returns",
    "transfer_in": "Transfer In",
    "transfer_out": "Transfer Out",
    "wastages": "Wastages",
    "manufacturing": "Manufacturing",
    "consumption": "Consumption",
}

INFLOW_MOVEMENTS = frozenset({"purchase", "sales_returns", "transfer_in", "manufacturing"})
OUTFLOW_MOVEMENTS = frozenset({"sales", "purchase_return", "wastages", "consumption", "transfer_out"})


def movement_label(key: str) -> str:
    if key in MOVEMENT_LABELS:
        return MOVEMENT_LABELS[key]
    return " ".join(p.capitalize() for p in str(key).replace("_", " ").split())


def is_inflow(key: str) -> bool:
    return key in INFLOW_MOVEMENTS


def is_outflow(key: str) -> bool:
    return key in OUTFLOW_MOVEMENTS


def ordered_movements(selected: Iterable[str]) -> list[str]:
    """Selected keys in canonical column order; unknown keys are dropped."""
    chosen = {str(k) for k in selected}
    return [k for k in MOVEMENT_ORDER if k in chosen]


def inflow_total(moves: Mapping[str, Any]) -> float:
    return sum(num_or_zero(moves.get(k)) for k in MOVEMENT_ORDER if is_inflow(k))


def outflow_total(moves: Mapping[str, Any]) -> float:
    return sum(num_or_zero(moves.get(k)) for k in MOVEMENT_ORDER if is_outflow(k))


def net_movement(moves: Mapping[str, Any]) -> float:
    return inflow_total(moves) - outflow_total(moves)


def closing_stock(opening: Any, moves: Mapping[str, Any], adjustments: Any) -> float:
    return num_or_zero(opening) + inflow_total(moves) + num_or_zero(adjustments) - outflow_total(moves)
