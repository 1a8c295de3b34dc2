"""CRUD for the products table. source_url is the natural key."""
from __future__ import annotations

import sqlite3
from typing import Any, Optional

from feedsync.store.models import ProductRow

# Overwritten on conflict. created_at is only set by the first insert.
MUTABLE_COLUMNS = (
    "title",
    "description",
    "price",
    "currency",
    "image_url",
    "platform",
    "source_network",
    "category",
    "updated_at",
)
INSERT_ONLY_COLUMNS = ("source_url", "created_at")


def _row_to_product(row: sqlite3.Row) -> ProductRow:
    return ProductRow(
        id=row["id"],
        title=row["title"],
        description=row["description"] or "",
        price=row["price"],
        currency=row["currency"],
        image_url=row["image_url"],
        source_url=row["source_url"],
        platform=row["platform"],
        source_network=row["source_network"],
        category=row["category"],
        created_at=row["created_at"],
        updated_at=row["updated_at"] if "updated_at" in row.keys() else None,
    )


def upsert_product(conn: sqlite3.Connection, record: dict[str, Any]) -> None:
    """
    Insert the product, or overwrite its mutable fields when source_url already exists.
    Only the keys present in `record` are written. Does not commit.
    """
    if not record.get("source_url"):
        raise ValueError("source_url is required for upsert_product")
    columns = [c for c in record if c in MUTABLE_COLUMNS or c in INSERT_ONLY_COLUMNS]
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c in MUTABLE_COLUMNS)
    sql = f"INSERT INTO products ({', '.join(columns)}) VALUES ({placeholders}) ON CONFLICT(source_url) DO "
    sql += f"UPDATE SET {updates}" if updates else "NOTHING"
    conn.execute(sql, [record[c] for c in columns])


def get_product_by_url(conn: sqlite3.Connection, source_url: str) -> Optional[ProductRow]:
    row = conn.execute("SELECT * FROM products WHERE source_url = ?", (source_url,)).fetchone()
    return _row_to_product(row) if row else None


def query_products(
    conn: sqlite3.Connection,
    *,
    category: Optional[str] = None,
    platform: Optional[str] = None,
    source_network: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[ProductRow]:
    """Products matching every given filter, most recently updated first."""
    where: list[str] = []
    args: list[Any] = []
    if category is not None:
        where.append("category = ?")
        args.append(category)
    if platform is not None:
        where.append("platform = ?")
        args.append(platform)
    if source_network is not None:
        where.append("source_network = ?")
        args.append(source_network)
    sql = "SELECT * FROM products"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY COALESCE(updated_at, created_at) DESC, id DESC"
    if limit is not None:
        sql += " LIMIT ?"
        args.append(int(limit))
    return [_row_to_product(r) for r in conn.execute(sql, args).fetchall()]


def count_products(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM products").fetchone()[0])


def count_by_category(conn: sqlite3.Connection) -> dict[str, int]:
    rows = conn.execute(
        "SELECT category, COUNT(*) AS n FROM products GROUP BY category ORDER BY n DESC, category"
    ).fetchall()
    return {r["category"]: r["n"] for r in rows}
