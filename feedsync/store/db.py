"""SQLite schema and connections."""
import os
import sqlite3
from pathlib import Path
from typing import Optional

# Default: data/catalog.db under the project root
def _default_db_path() -> str:
    base = Path(__file__).resolve().parent.parent.parent
    data_dir = base / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return str(data_dir / "catalog.db")

def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or os.getenv("STATE_DB_PATH") or _default_db_path()
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    # Concurrent sync invocations share the file; wait on locks instead of failing
    conn = sqlite3.connect(path, timeout=30)
    conn.row_factory = sqlite3.Row
    return conn

def init_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            price REAL NOT NULL CHECK (price >= 0),
            currency TEXT NOT NULL DEFAULT 'EUR',
            image_url TEXT,
            source_url TEXT NOT NULL UNIQUE,
            platform TEXT NOT NULL,
            source_network TEXT NOT NULL,
            category TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT
        );

        CREATE TABLE IF NOT EXISTS sync_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            platform TEXT NOT NULL,
            status TEXT NOT NULL CHECK (status IN ('running', 'success', 'error')),
            items_found INTEGER NOT NULL DEFAULT 0,
            items_added INTEGER NOT NULL DEFAULT 0,
            error_message TEXT,
            http_status INTEGER,
            duration_ms INTEGER,
            created_at TEXT NOT NULL,
            finished_at TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_products_category ON products(category);
        CREATE INDEX IF NOT EXISTS idx_products_platform ON products(platform);
        CREATE INDEX IF NOT EXISTS idx_sync_logs_platform_created ON sync_logs(platform, created_at);
        CREATE INDEX IF NOT EXISTS idx_sync_logs_status ON sync_logs(status);
    """)
    conn.commit()
