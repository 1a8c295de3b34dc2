"""CRUD for the sync_logs table (one row per sync invocation)."""
from __future__ import annotations

import sqlite3
from typing import Optional

from feedsync.errors import SyncAlreadyRunning
from feedsync.store.models import STATUS_ERROR, STATUS_RUNNING, SyncLogRow
from feedsync.util.datetime_utils import utc_iso_minutes_ago, utc_now_iso

STALE_MESSAGE = "stale: exceeded lock timeout, run presumed crashed"


def _row_to_log(row: sqlite3.Row) -> SyncLogRow:
    return SyncLogRow(
        id=row["id"],
        platform=row["platform"],
        status=row["status"],
        items_found=row["items_found"] or 0,
        items_added=row["items_added"] or 0,
        error_message=row["error_message"],
        http_status=row["http_status"],
        duration_ms=row["duration_ms"],
        created_at=row["created_at"],
        finished_at=row["finished_at"],
    )


def start_run_log(conn: sqlite3.Connection, platform: str, stale_after_minutes: float) -> int:
    """
    Insert the `running` marker for `platform` and return its id.
    Check and insert happen in one IMMEDIATE transaction, so two invocations cannot both start.
    Running rows older than `stale_after_minutes` are closed as error first.
    Raises SyncAlreadyRunning when a fresh running row exists.
    """
    if conn.in_transaction:
        conn.commit()
    cutoff = utc_iso_minutes_ago(stale_after_minutes)
    conn.execute("BEGIN IMMEDIATE")
    try:
        conn.execute(
            "UPDATE sync_logs SET status = ?, error_message = ?, finished_at = ? "
            "WHERE platform = ? AND status = ? AND created_at < ?",
            (STATUS_ERROR, STALE_MESSAGE, utc_now_iso(), platform, STATUS_RUNNING, cutoff),
        )
        active = conn.execute(
            "SELECT id, created_at FROM sync_logs WHERE platform = ? AND status = ? "
            "ORDER BY created_at DESC LIMIT 1",
            (platform, STATUS_RUNNING),
        ).fetchone()
        if active:
            raise SyncAlreadyRunning(platform, active["id"], active["created_at"])
        cursor = conn.execute(
            "INSERT INTO sync_logs (platform, status, items_found, items_added, created_at) "
            "VALUES (?, ?, 0, 0, ?)",
            (platform, STATUS_RUNNING, utc_now_iso()),
        )
        conn.commit()
        return int(cursor.lastrowid)
    except BaseException:
        conn.rollback()
        raise


def finish_run_log(
    conn: sqlite3.Connection,
    log_id: int,
    *,
    status: str,
    items_found: int,
    items_added: int,
    error_message: Optional[str],
    http_status: Optional[int],
    duration_ms: int,
) -> bool:
    """Turn the running marker into the terminal record. False when the row no longer exists."""
    cursor = conn.execute(
        "UPDATE sync_logs SET status = ?, items_found = ?, items_added = ?, error_message = ?, "
        "http_status = ?, duration_ms = ?, finished_at = ? WHERE id = ?",
        (status, items_found, items_added, error_message, http_status, duration_ms, utc_now_iso(), log_id),
    )
    conn.commit()
    return cursor.rowcount > 0


def insert_run_log(
    conn: sqlite3.Connection,
    platform: str,
    *,
    status: str,
    items_found: int = 0,
    items_added: int = 0,
    error_message: Optional[str] = None,
    http_status: Optional[int] = None,
    duration_ms: Optional[int] = None,
) -> int:
    """Insert a complete run-log record."""
    now = utc_now_iso()
    cursor = conn.execute(
        "INSERT INTO sync_logs (platform, status, items_found, items_added, error_message, "
        "http_status, duration_ms, created_at, finished_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            platform,
            status,
            items_found,
            items_added,
            error_message,
            http_status,
            duration_ms,
            now,
            None if status == STATUS_RUNNING else now,
        ),
    )
    conn.commit()
    return int(cursor.lastrowid)


def get_run_log(conn: sqlite3.Connection, log_id: int) -> Optional[SyncLogRow]:
    row = conn.execute("SELECT * FROM sync_logs WHERE id = ?", (log_id,)).fetchone()
    return _row_to_log(row) if row else None


def get_recent_run_logs(conn: sqlite3.Connection, platform: str, limit: int = 20) -> list[SyncLogRow]:
    """Newest first."""
    rows = conn.execute(
        "SELECT * FROM sync_logs WHERE platform = ? ORDER BY created_at DESC, id DESC LIMIT ?",
        (platform, limit),
    ).fetchall()
    return [_row_to_log(r) for r in rows]


def get_running_older_than(conn: sqlite3.Connection, minutes: float) -> list[SyncLogRow]:
    """Running rows of any platform created more than `minutes` ago."""
    rows = conn.execute(
        "SELECT * FROM sync_logs WHERE status = ? AND created_at < ? ORDER BY created_at",
        (STATUS_RUNNING, utc_iso_minutes_ago(minutes)),
    ).fetchall()
    return [_row_to_log(r) for r in rows]


def mark_logs_failed(conn: sqlite3.Connection, log_ids: list[int], message: str = STALE_MESSAGE) -> int:
    """Close the given running rows as error. Returns the number of rows changed."""
    if not log_ids:
        return 0
    placeholders = ",".join("?" * len(log_ids))
    cursor = conn.execute(
        f"UPDATE sync_logs SET status = ?, error_message = ?, finished_at = ? "
        f"WHERE status = ? AND id IN ({placeholders})",
        [STATUS_ERROR, message, utc_now_iso(), STATUS_RUNNING, *log_ids],
    )
    conn.commit()
    return cursor.rowcount
