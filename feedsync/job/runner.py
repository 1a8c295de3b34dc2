"""Sync orchestration: feeds -> download -> decode -> normalize -> classify/upsert -> run log."""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import asdict, dataclass, field
from typing import Any, Optional
from urllib.parse import quote

import requests

from feedsync.awin import feed_list
from feedsync.awin.decoder import iter_records
from feedsync.awin.feed_locator import build_feed_list_url, build_feed_url
from feedsync.awin.fetcher import fetched_feed
from feedsync.awin.normalizer import ColumnMapNormalizer, Skip, get_normalizer
from feedsync.errors import DecodeError, DownloadError
from feedsync.job.params import FeedDescriptor, SyncConfig
from feedsync.job.writer import REASON_UNCLASSIFIED, UpsertWriter
from feedsync.store import db, repo
from feedsync.store.models import STATUS_ERROR, STATUS_SUCCESS
from feedsync.util.datetime_utils import elapsed_ms, utc_now
from feedsync.util.log import log_run_summary

logger = logging.getLogger(__name__)

STATE_SUCCESS = "success"
STATE_PARTIAL = "partial"
STATE_ERROR = "error"

MAX_ERROR_MESSAGE_CHARS = 2000


@dataclass
class FeedStats:
    processed: int = 0
    written: int = 0
    skipped: int = 0
    unclassified: int = 0
    failed: int = 0

    def add(self, other: FeedStats) -> None:
        self.processed += other.processed
        self.written += other.written
        self.skipped += other.skipped
        self.unclassified += other.unclassified
        self.failed += other.failed


@dataclass
class SyncResult:
    """Outcome of one run_sync invocation. Aggregate counts only."""

    label: str
    state: str = STATE_SUCCESS
    stats: FeedStats = field(default_factory=FeedStats)
    feeds_total: int = 0
    feeds_failed: int = 0
    errors: list[str] = field(default_factory=list)
    http_status: Optional[int] = None
    duration_ms: int = 0
    log_id: Optional[int] = None
    dry_run: bool = False

    @property
    def log_status(self) -> str:
        return STATUS_SUCCESS if self.state == STATE_SUCCESS else STATUS_ERROR

    def error_message(self) -> Optional[str]:
        if self.errors:
            return "; ".join(self.errors)[:MAX_ERROR_MESSAGE_CHARS]
        if self.stats.failed:
            return f"{self.stats.failed} row write failures"
        return None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d.update(d.pop("stats"))
        d["status"] = self.log_status
        return d


def _resolve_normalizers(config: SyncConfig) -> dict[str, ColumnMapNormalizer]:
    return {
        f.source_network: get_normalizer(f.source_network, config.networks)
        for f in config.feeds
    }


def _check_feed_urls(config: SyncConfig) -> None:
    """Build every URL that can be built up front; a bad key, column list or compression raises ConfigError."""
    for feed in config.feeds:
        if not feed.needs_locator:
            continue
        credentials = config.require_credentials()
        if feed.feed_id is not None:
            build_feed_url(feed.feed_id, credentials, config.columns, config.compression)
        else:
            build_feed_list_url(credentials)


def _feed_urls(
    feed: FeedDescriptor,
    config: SyncConfig,
    session: Optional[requests.Session],
) -> list[str]:
    """Download URL(s) for one descriptor. An advertiser id may expand to several feeds."""
    if not feed.needs_locator:
        return [feed.url]  # type: ignore[list-item]
    credentials = config.require_credentials()
    if feed.feed_id is not None:
        feed_ids = [feed.feed_id]
    else:
        feed_ids = feed_list.list_active_feed_ids(feed.advertiser_id, config, session)  # type: ignore[arg-type]
    return [build_feed_url(fid, credentials, config.columns, config.compression) for fid in feed_ids]


def _process_feed_file(
    url: str,
    feed: FeedDescriptor,
    config: SyncConfig,
    normalizer: ColumnMapNormalizer,
    writer: UpsertWriter,
    stats: FeedStats,
    session: Optional[requests.Session],
) -> None:
    """Download one feed and push every record through normalize/write. Updates `stats` in place."""
    expect_zip = feed.needs_locator and config.compression == "zip"
    with fetched_feed(url, config, session=session) as path:
        for record in iter_records(path, expect_zip=expect_zip):
            stats.processed += 1
            candidate = normalizer.normalize(record, feed)
            if isinstance(candidate, Skip):
                stats.skipped += 1
            else:
                outcome = writer.write(candidate)
                if outcome.written:
                    stats.written += 1
                elif outcome.reason == REASON_UNCLASSIFIED:
                    stats.unclassified += 1
                else:
                    stats.failed += 1
            if stats.processed % config.progress_every == 0:
                logger.info(
                    "%s: processed=%d written=%d skipped=%d unclassified=%d failed=%d",
                    feed.platform,
                    stats.processed,
                    stats.written,
                    stats.skipped,
                    stats.unclassified,
                    stats.failed,
                )


def sync_feed(
    feed: FeedDescriptor,
    config: SyncConfig,
    normalizer: ColumnMapNormalizer,
    writer: UpsertWriter,
    stats: FeedStats,
    session: Optional[requests.Session] = None,
) -> None:
    """
    Sync every feed file behind one descriptor.
    Raises DownloadError / DecodeError; rows written before the error stay written and counted.
    """
    urls = _feed_urls(feed, config, session)
    for url in urls:
        _process_feed_file(url, feed, config, normalizer, writer, stats, session)


def run_sync(
    config: SyncConfig,
    conn: Optional[sqlite3.Connection] = None,
    session: Optional[requests.Session] = None,
    dry_run: bool = False,
) -> SyncResult:
    """
    One sync invocation over every configured feed, strictly one feed at a time.
    A failing feed is recorded and the run moves on to the next one.
    ConfigError is raised before any I/O; SyncAlreadyRunning when another run holds the marker.
    """
    normalizers = _resolve_normalizers(config)
    _check_feed_urls(config)

    result = SyncResult(label=config.run_label, feeds_total=len(config.feeds))
    if dry_run:
        _handle_dry_run(config, result)
        return result

    own_conn = conn is None
    if conn is None:
        conn = db.get_connection(config.db_path)
    try:
        db.init_schema(conn)
        started = utc_now()
        result.log_id = repo.start_run_log(conn, config.run_label, config.lock_timeout_minutes)
        logger.info("sync start: label=%s feeds=%d log_id=%s", config.run_label, len(config.feeds), result.log_id)

        writer = UpsertWriter(conn)
        ok_feeds = 0
        for feed in config.feeds:
            stats = FeedStats()
            try:
                sync_feed(feed, config, normalizers[feed.source_network], writer, stats, session=session)
                ok_feeds += 1
                logger.info(
                    "feed done: %s processed=%d written=%d skipped=%d unclassified=%d failed=%d",
                    feed.describe(),
                    stats.processed,
                    stats.written,
                    stats.skipped,
                    stats.unclassified,
                    stats.failed,
                )
            except (DownloadError, DecodeError) as e:
                logger.error("feed failed: %s: %s", feed.describe(), e)
                result.errors.append(f"{feed.describe()}: {e}")
                if isinstance(e, DownloadError) and e.status_code is not None:
                    result.http_status = e.status_code
            except Exception as e:
                logger.exception("feed crashed: %s", feed.describe())
                result.errors.append(f"{feed.describe()}: {type(e).__name__}: {e}")
            result.stats.add(stats)

        result.feeds_failed = len(config.feeds) - ok_feeds
        if not result.errors:
            result.state = STATE_SUCCESS
        elif ok_feeds:
            result.state = STATE_PARTIAL
        else:
            result.state = STATE_ERROR
        result.duration_ms = elapsed_ms(started)
        _write_terminal_log(conn, config, result)
        log_run_summary(
            logger,
            config.run_label,
            result.state,
            result.feeds_total,
            result.stats.processed,
            result.stats.written,
            result.stats.skipped,
            result.stats.unclassified,
            result.stats.failed,
            result.duration_ms,
            notes=result.error_message() or "",
        )
        return result
    finally:
        if own_conn:
            conn.close()


def _write_terminal_log(conn: sqlite3.Connection, config: SyncConfig, result: SyncResult) -> None:
    fields: dict[str, Any] = dict(
        status=result.log_status,
        items_found=result.stats.processed,
        items_added=result.stats.written,
        error_message=result.error_message(),
        http_status=result.http_status,
        duration_ms=result.duration_ms,
    )
    if result.log_id is not None and repo.finish_run_log(conn, result.log_id, **fields):
        return
    # Marker removed while running (manual cleanup); still leave a terminal record
    logger.warning("running marker %s vanished; inserting terminal run log", result.log_id)
    result.log_id = repo.insert_run_log(conn, config.run_label, **fields)


def _handle_dry_run(config: SyncConfig, result: SyncResult) -> None:
    result.dry_run = True
    logger.info("dry-run: label=%s, %d feed(s)", config.run_label, len(config.feeds))
    for feed in config.feeds:
        if feed.needs_locator and feed.feed_id is None:
            logger.info("dry-run: %s would look up active feeds in the feed list", feed.describe())
        elif feed.needs_locator:
            url = build_feed_url(feed.feed_id, config.require_credentials(), config.columns, config.compression)
            logger.info("dry-run: %s would download %s", feed.describe(), _redact(url, config))
        else:
            logger.info("dry-run: %s would download %s", feed.describe(), feed.url)
    log_run_summary(logger, config.run_label, "dry-run", len(config.feeds), 0, 0, 0, 0, 0, 0, notes="dry-run")


def _redact(url: str, config: SyncConfig) -> str:
    if config.credentials is None:
        return url
    return url.replace(quote(config.credentials.feed_key, safe=""), "***")
