"""Run-log health: stuck `running` rows and per-label status."""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Optional

from feedsync.store import repo
from feedsync.store.models import STATUS_ERROR, STATUS_SUCCESS, SyncLogRow

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
FAILING = "failing"
SUSPICIOUS = "suspicious"
UNKNOWN = "unknown"

# How many consecutive recent runs decide failing / suspicious
STREAK = 3


@dataclass
class PlatformHealth:
    label: str
    status: str
    last_run: Optional[SyncLogRow]
    runs_considered: int
    success_rate: int  # percent
    avg_duration_ms: int
    total_items_found: int


def find_stuck_runs(conn: sqlite3.Connection, timeout_minutes: float) -> list[SyncLogRow]:
    """Running rows older than the timeout. A crashed or killed run leaves one of these."""
    return repo.get_running_older_than(conn, timeout_minutes)


def fail_stuck_runs(conn: sqlite3.Connection, timeout_minutes: float) -> int:
    """Close stuck running rows as error. Returns how many were closed."""
    stuck = find_stuck_runs(conn, timeout_minutes)
    for row in stuck:
        logger.warning("stuck run: id=%s label=%s started=%s", row.id, row.platform, row.created_at)
    return repo.mark_logs_failed(conn, [r.id for r in stuck])


def determine_status(recent: list[SyncLogRow]) -> str:
    """`recent` is newest first. Still-running rows are ignored."""
    finished = [r for r in recent if r.status in (STATUS_SUCCESS, STATUS_ERROR)]
    if not finished:
        return UNKNOWN
    last = finished[:STREAK]
    if len(last) >= STREAK and all(r.status == STATUS_ERROR for r in last):
        return FAILING
    if len(last) >= STREAK and all(r.items_found == 0 for r in last):
        return SUSPICIOUS
    if finished[0].status == STATUS_SUCCESS:
        return HEALTHY
    return UNKNOWN


def platform_health(conn: sqlite3.Connection, label: str, window: int = 20) -> PlatformHealth:
    recent = repo.get_recent_run_logs(conn, label, limit=window)
    finished = [r for r in recent if r.status in (STATUS_SUCCESS, STATUS_ERROR)]
    successes = sum(1 for r in finished if r.status == STATUS_SUCCESS)
    durations = [r.duration_ms for r in finished if r.duration_ms is not None]
    return PlatformHealth(
        label=label,
        status=determine_status(recent),
        last_run=recent[0] if recent else None,
        runs_considered=len(finished),
        success_rate=round(successes * 100 / len(finished)) if finished else 0,
        avg_duration_ms=round(sum(durations) / len(durations)) if durations else 0,
        total_items_found=sum(r.items_found for r in finished),
    )
