from __future__ import annotations

import random
from datetime import date, datetime, time, timedelta, timezone

from core.config import DEFAULT_AS_OF_START
from core.db import q, x, xmany, ensure_schema
from core.services.movements import MOVEMENT_ORDER


DEFAULT_CATEGORIES = [
    (1, "All / Fresh / Fruits"),
    (2, "All / Fresh / Vegetables"),
    (3, "All / Bakery"),
    (4, "All / Dairy"),
    (5, "All / Pantry"),
]

DEFAULT_WAREHOUSES = [
    (8, "Central Warehouse"),
    (9, "North Store"),
    (10, "South Store"),
    (11, "East Store"),
    (12, "West Store"),
    (18, "Production Kitchen"),
]

DEMO_PRODUCTS = {
    1: ["Apple Gala", "Apple Granny Smith", "Banana", "Mango Alphonso", "Orange Navel", "Papaya", "Piña Golden", "Pear Williams", "Grapes Red", "Kiwi"],
    2: ["Carrot", "Cucumber", "Tomato Cherry", "Tomato Roma", "Onion Red", "Potato", "Spinach", "Jalapeño", "Broccoli", "Zucchini", "Lettuce Iceberg"],
    3: ["Baguette", "Croissant", "Crème Brûlée", "Sourdough Loaf", "Rye Bread", "Muffin Blueberry", "Bagel Sesame", "Focaccia"],
    4: ["Milk Whole 1L", "Milk Skimmed 1L", "Yoghurt Greek", "Butter Salted", "Cheddar Mature", "Feta", "Crème Fraîche", "Mozzarella"],
    5: ["Rice Basmati 5kg", "Sugar 2kg", "Flour 2kg", "Olive Oil 1L", "Café Molido", "Tea Black 100", "Pasta Penne", "Lentils Red", "Chickpeas", "Honey 500g", "Salt 1kg", "Oats 1kg"],
}

# Rough share of moves per movement type
_MOVEMENT_WEIGHTS = {
    "purchase": 20,
    "purchase_return": 2,
    "sales": 30,
    "sales_returns": 3,
    "transfer_in": 8,
    "transfer_out": 8,
    "wastages": 4,
    "manufacturing": 3,
    "consumption": 4,
}


def upsert_reference_data(conn) -> None:
    ensure_schema(conn)

    for cid, name in DEFAULT_CATEGORIES:
        x(conn, "INSERT OR IGNORE INTO categories(id, complete_name) VALUES (?, ?)", (cid, name))

    for wid, name in DEFAULT_WAREHOUSES:
        x(conn, "INSERT OR IGNORE INTO warehouses(id, display_name) VALUES (?, ?)", (wid, name))


def wipe_all(conn) -> None:
    # Keep schema, delete data (order matters for FKs).
    for t in ["stock_adjustments", "stock_moves", "products", "warehouses", "categories"]:
        conn.execute(f"DELETE FROM {t};")
    conn.commit()


def _ts(d: date, rnd: random.Random) -> str:
    moment = datetime.combine(d, time(hour=rnd.randint(6, 21), minute=rnd.randint(0, 59)), tzinfo=timezone.utc)
    return moment.isoformat()


def load_demo_data(conn, *, seed: int = 7, days: int = 150, as_of_start: date = DEFAULT_AS_OF_START) -> None:
    """
    Seeds catalog, warehouses and a few thousand stock moves spread around
    `as_of_start`, so both report shapes have opening balances and activity.
    """
    rnd = random.Random(seed)
    upsert_reference_data(conn)

    pid = 1000
    products: list[int] = []
    for cid, names in DEMO_PRODUCTS.items():
        for name in names:
            pid += 1
            barcode = f"74{rnd.randint(10**9, 10**10 - 1)}"
            x(
                conn,
                "INSERT OR IGNORE INTO products(id, name, barcode, category_id) VALUES (?, ?, ?, ?)",
                (pid, name, barcode, cid),
            )
            products.append(pid)

    warehouses = [int(r["id"]) for r in q(conn, "SELECT id FROM warehouses ORDER BY id")]
    kinds = list(MOVEMENT_ORDER)
    weights = [_MOVEMENT_WEIGHTS[k] for k in kinds]
    first_day = as_of_start - timedelta(days=days // 3)

    moves = []
    adjustments = []
    for p in products:
        # Not every product is stocked everywhere.
        for w in rnd.sample(warehouses, k=rnd.randint(1, len(warehouses))):
            for _ in range(rnd.randint(3, 25)):
                d = first_day + timedelta(days=rnd.randint(0, days))
                mv = rnd.choices(kinds, weights=weights)[0]
                qty = round(rnd.uniform(1, 60), 2)
                moves.append((_ts(d, rnd), p, w, mv, qty, f"DEMO-{mv.upper()}"))
            if rnd.random() < 0.3:
                d = first_day + timedelta(days=rnd.randint(0, days))
                adjustments.append((_ts(d, rnd), p, w, round(rnd.uniform(-5, 5), 2), "STOCKTAKE"))

    xmany(
        conn,
        "INSERT INTO stock_moves (ts, product_id, warehouse_id, movement, qty, reference) VALUES (?, ?, ?, ?, ?, ?)",
        moves,
    )
    xmany(
        conn,
        "INSERT INTO stock_adjustments (ts, product_id, warehouse_id, qty_delta, reason) VALUES (?, ?, ?, ?, ?)",
        adjustments,
    )
