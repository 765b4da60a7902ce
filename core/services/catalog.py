from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from core.db import q
from core.utils import canonical_id


@dataclass(frozen=True)
class CatalogItem:
    id: str
    label: str
    code: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class Warehouse:
    id: int
    display_name: str


def _first_present(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        v = raw.get(k)
        if v is not None and str(v).strip() != "":
            return v
    return None


def product_label(raw: Mapping[str, Any]) -> str:
    v = _first_present(raw, ("name", "product_name", "title", "sku"))
    if v is None:
        v = raw.get("id")
    return str(v) if v is not None else "Unknown"


def product_code(raw: Mapping[str, Any]) -> Optional[str]:
    v = _first_present(raw, ("barcode", "bar_code", "code", "sku", "ean", "upc", "product_code"))
    return str(v) if v is not None else None


def normalize_product(raw: Mapping[str, Any], category_map: Optional[Mapping[int, str]] = None) -> CatalogItem:
    """
    Builds a CatalogItem from a product record. Source records name their fields
    inconsistently, so label, code and category are each looked up through a
    list of candidate names.
    """
    category_map = category_map or {}
    pid = _first_present(raw, ("odoo_id", "id"))
    label = product_label(raw)

    category = None
    cat_id = raw.get("category_id")
    if cat_id is not None:
        try:
            category = category_map.get(int(cat_id))
        except (TypeError, ValueError):
            category = None
    if category is None:
        category = _first_present(raw, ("complete_name", "category_name", "category", "categ_name", "category_full_name"))

    return CatalogItem(
        id=canonical_id(pid if pid is not None else label),
        label=label,
        code=product_code(raw),
        category=str(category) if category is not None else None,
    )


def load_categories(conn) -> dict[int, str]:
    rows = q(conn, "SELECT id, complete_name FROM categories WHERE active=1 ORDER BY complete_name")
    return {int(r["id"]): str(r["complete_name"]) for r in rows}


def load_catalog(conn) -> list[CatalogItem]:
    categories = load_categories(conn)
    rows = q(conn, "SELECT * FROM products ORDER BY name ASC, id ASC")
    return [normalize_product(dict(r), categories) for r in rows]


def load_warehouses(conn, ids: Optional[Iterable[int]] = None) -> list[Warehouse]:
    if ids is None:
        rows = q(conn, "SELECT id, display_name FROM warehouses ORDER BY display_name")
        return [Warehouse(id=int(r["id"]), display_name=str(r["display_name"])) for r in rows]

    wanted = [int(i) for i in ids]
    if not wanted:
        return []
    marks = ",".join("?" for _ in wanted)
    rows = q(
        conn,
        f"SELECT id, display_name FROM warehouses WHERE id IN ({marks}) ORDER BY display_name",
        wanted,
    )
    if not rows:
        # Keep the report usable with bare ids.
        return [Warehouse(id=i, display_name=str(i)) for i in wanted]
    return [Warehouse(id=int(r["id"]), display_name=str(r["display_name"])) for r in rows]
