SCHEMA_SQL = r"""
-- Product categories
CREATE TABLE IF NOT EXISTS categories (
  id INTEGER PRIMARY KEY,
  complete_name TEXT NOT NULL UNIQUE,
  active INTEGER NOT NULL DEFAULT 1
);

-- Products (catalog)
CREATE TABLE IF NOT EXISTS products (
  id INTEGER PRIMARY KEY,
  name TEXT NOT NULL,
  barcode TEXT,
  category_id INTEGER,
  FOREIGN KEY (category_id) REFERENCES categories(id)
);

-- Warehouses
CREATE TABLE IF NOT EXISTS warehouses (
  id INTEGER PRIMARY KEY,
  display_name TEXT NOT NULL
);

-- Stock movements (one line per posted move)
CREATE TABLE IF NOT EXISTS stock_moves (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,                      -- ISO datetime (UTC)
  product_id INTEGER NOT NULL,
  warehouse_id INTEGER NOT NULL,
  movement TEXT NOT NULL,                -- purchase / sales / transfer_in / ...
  qty REAL NOT NULL,                     -- always positive; sign comes from movement
  reference TEXT,
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
  FOREIGN KEY (warehouse_id) REFERENCES warehouses(id)
);

CREATE INDEX IF NOT EXISTS idx_stock_moves_lookup
  ON stock_moves (product_id, warehouse_id, ts);

-- Manual stock adjustments (stocktake etc.), signed
CREATE TABLE IF NOT EXISTS stock_adjustments (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  product_id INTEGER NOT NULL,
  warehouse_id INTEGER NOT NULL,
  qty_delta REAL NOT NULL,
  reason TEXT NOT NULL DEFAULT 'STOCKTAKE',
  FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
  FOREIGN KEY (warehouse_id) REFERENCES warehouses(id)
);
"""
