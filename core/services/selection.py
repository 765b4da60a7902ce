from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, MutableMapping, Optional, Sequence

from core.services.catalog import CatalogItem


def normalize_text(s: Optional[str]) -> str:
    """Case- and diacritic-insensitive form used for searching."""
    decomposed = unicodedata.normalize("NFKD", str(s or ""))
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def filter_pool(
    items: Sequence[CatalogItem],
    categories: Iterable[str] = (),
    query: str = "",
) -> list[CatalogItem]:
    """
    Visible pool: category filter first (only when categories are chosen), then a
    prefix match of the query against label or code.
    """
    cats = {str(c) for c in categories}
    base = [i for i in items if i.category and str(i.category) in cats] if cats else list(items)

    qn = normalize_text(query.strip())
    if not qn:
        return base
    return [i for i in base if normalize_text(i.label).startswith(qn) or normalize_text(i.code or "").startswith(qn)]


def category_options(items: Iterable[CatalogItem], known: Iterable[str] = ()) -> list[str]:
    base = [str(c) for c in known if str(c).strip()]
    if not base:
        base = [str(i.category) for i in items if i.category]
    return sorted(set(base), key=str.casefold)


@dataclass
class Selection:
    """
    Products picked for a report, kept apart from the pool currently on screen.

    `explicit` holds ids chosen one by one (or added manually); `select_all` means
    "plus everything in whatever pool is visible". The effective set is derived
    from both each time and never stored.
    """

    explicit: list[str] = field(default_factory=list)
    select_all: bool = False
    categories: list[str] = field(default_factory=list)
    warehouses: list[str] = field(default_factory=list)
    movements: list[str] = field(default_factory=list)
    query: str = ""
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    def effective_ids(self, pool: Iterable[CatalogItem] = ()) -> set[str]:
        ids = set(self.explicit)
        if self.select_all:
            ids.update(i.id for i in pool)
        return ids

    def is_selected(self, item_id: str, pool: Iterable[CatalogItem] = ()) -> bool:
        return str(item_id) in self.effective_ids(pool)

    def add(self, ids: Iterable[Any]) -> None:
        for i in ids:
            s = str(i)
            if s not in self.explicit:
                self.explicit.append(s)

    def _fold_pool(self, pool: Sequence[CatalogItem]) -> None:
        # Materialize "select all" so a single pool member can be dropped.
        self.add(i.id for i in pool)
        self.select_all = False

    def remove(self, item_id: str, pool: Sequence[CatalogItem] = ()) -> None:
        s = str(item_id)
        if self.select_all and any(i.id == s for i in pool):
            self._fold_pool(pool)
        self.explicit = [i for i in self.explicit if i != s]

    def toggle(self, item_id: str, pool: Sequence[CatalogItem] = ()) -> None:
        if self.is_selected(item_id, pool):
            self.remove(item_id, pool)
        else:
            self.add([item_id])

    def all_selected(self, pool: Sequence[CatalogItem]) -> bool:
        if not pool:
            return False
        ids = self.effective_ids(pool)
        return all(i.id in ids for i in pool)

    def toggle_all(self, pool: Sequence[CatalogItem]) -> None:
        if not pool:
            return
        if self.all_selected(pool):
            pool_ids = {i.id for i in pool}
            self.select_all = False
            self.explicit = [i for i in self.explicit if i not in pool_ids]
        else:
            self.select_all = True

    def selected_items(self, catalog: Sequence[CatalogItem], pool: Iterable[CatalogItem] = ()) -> list[CatalogItem]:
        ids = self.effective_ids(pool)
        return [i for i in catalog if i.id in ids]


def sync_page(state: MutableMapping[str, Any], signature: Any, key: str = "page") -> int:
    """Resets the page to 1 whenever `signature` differs from the last call."""
    sig_key = f"{key}_signature"
    if state.get(sig_key) != signature:
        state[sig_key] = signature
        state[key] = 1
    return int(state.get(key, 1))


def page_signature(items: Iterable[CatalogItem], token: Any = None) -> tuple:
    """Identity of what is being paged: the exact item ids plus the report token."""
    return (tuple(i.id for i in items), token)
