"""
Classify + upsert of one candidate.
Unclassified candidates never reach the store. Store failures are counted, never raised.
"""
from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, Optional

from feedsync.awin.normalizer import Candidate
from feedsync.classify import classify
from feedsync.store import repo
from feedsync.util.datetime_utils import utc_now_iso

logger = logging.getLogger(__name__)

REASON_UNCLASSIFIED = "unclassified"
REASON_FAILED = "failed"

# sqlite: "table products has no column named updated_at"
_UNKNOWN_COLUMN_RE = re.compile(r"no column named (\w+)")
# Without these the row is meaningless; never retry without them
_REQUIRED_COLUMNS = frozenset({"source_url", "title", "price", "category", "platform", "source_network"})
# Per-writer cap on logged row failures
MAX_LOGGED_FAILURES = 20


@dataclass(frozen=True)
class WriteOutcome:
    written: bool
    reason: Optional[str] = None


WRITTEN = WriteOutcome(written=True)


def _unknown_column(exc: sqlite3.OperationalError) -> Optional[str]:
    m = _UNKNOWN_COLUMN_RE.search(str(exc))
    return m.group(1) if m else None


def candidate_to_record(candidate: Candidate, category: str, now: str) -> dict[str, Any]:
    return {
        "title": candidate.title,
        "description": candidate.description,
        "price": float(candidate.price),
        "currency": candidate.currency,
        "image_url": candidate.image_url,
        "source_url": candidate.source_url,
        "platform": candidate.platform,
        "source_network": candidate.source_network,
        "category": category,
        "created_at": now,
        "updated_at": now,
    }


class UpsertWriter:
    """Writes candidates into the products table, one committed row at a time."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        classifier: Callable[[str, str], Optional[str]] = classify,
    ) -> None:
        self._conn = conn
        self._classify = classifier
        # Columns the store rejected once; later rows are written without them
        self._dropped: set[str] = set()
        self._failures_logged = 0

    @property
    def dropped_columns(self) -> frozenset[str]:
        return frozenset(self._dropped)

    def _upsert(self, record: dict[str, Any]) -> None:
        repo.upsert_product(self._conn, record)
        self._conn.commit()

    def _fail(self, candidate: Candidate, exc: Exception) -> WriteOutcome:
        if self._conn.in_transaction:
            self._conn.rollback()
        if self._failures_logged < MAX_LOGGED_FAILURES:
            self._failures_logged += 1
            logger.warning("upsert failed for %s: %s", candidate.source_url, exc)
        return WriteOutcome(written=False, reason=REASON_FAILED)

    def write(self, candidate: Candidate) -> WriteOutcome:
        category = self._classify(candidate.raw_category, candidate.title)
        if category is None:
            return WriteOutcome(written=False, reason=REASON_UNCLASSIFIED)

        record = candidate_to_record(candidate, category, utc_now_iso())
        for column in self._dropped:
            record.pop(column, None)
        try:
            self._upsert(record)
            return WRITTEN
        except sqlite3.OperationalError as e:
            column = _unknown_column(e)
            if column is None or column not in record or column in _REQUIRED_COLUMNS:
                return self._fail(candidate, e)
            if self._conn.in_transaction:
                self._conn.rollback()
            logger.warning("store rejected column '%s' (%s); retrying without it", column, e)
            record.pop(column)
        except Exception as e:
            return self._fail(candidate, e)

        try:
            self._upsert(record)
        except Exception as e:
            return self._fail(candidate, e)
        self._dropped.add(column)
        return WRITTEN
