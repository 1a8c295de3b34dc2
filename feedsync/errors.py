"""Sync exceptions. Row-level bad data is not an exception (see Skip / WriteOutcome)."""
from __future__ import annotations

from typing import Optional


class FeedSyncError(Exception):
    """Base class for every error raised by the sync pipeline."""


class ConfigError(FeedSyncError):
    """Missing credentials or feed configuration. Fatal before any I/O."""


class DownloadError(FeedSyncError):
    """Feed download failed (non-2xx response or network failure)."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            base = f"{base} (HTTP {self.status_code})"
        if self.body:
            base = f"{base}: {self.body}"
        return base


class DecodeError(FeedSyncError):
    """Corrupt archive, missing CSV entry or unreadable CSV stream."""


class SyncAlreadyRunning(FeedSyncError):
    """Another non-stale run holds the running marker for the same label."""

    def __init__(self, label: str, run_log_id: int, started_at: str) -> None:
        super().__init__(f"sync '{label}' already running (log id={run_log_id}, started {started_at})")
        self.label = label
        self.run_log_id = run_log_id
        self.started_at = started_at
