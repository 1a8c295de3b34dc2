"""Resolve an advertiser id to its active feed ids via the Awin feed list."""
from __future__ import annotations

import csv
import io
import logging
from typing import Optional

import requests

from feedsync.awin.feed_locator import build_feed_list_url
from feedsync.errors import DownloadError
from feedsync.job.params import SyncConfig
from feedsync.util import http

logger = logging.getLogger(__name__)

# Feed list layout: Advertiser ID, Advertiser Name, Primary Region, Membership Status, Feed ID, Feed Name, ...
COL_ADVERTISER_ID = 0
COL_MEMBERSHIP_STATUS = 3
COL_FEED_ID = 4
COL_FEED_NAME = 5


def parse_active_feed_ids(text: str, advertiser_id: int) -> list[int]:
    """Feed ids of `advertiser_id` whose membership status is active, in list order."""
    result: list[int] = []
    reader = csv.reader(io.StringIO(text))
    for row in reader:
        if len(row) <= COL_FEED_ID:
            continue
        if row[COL_ADVERTISER_ID].strip() != str(advertiser_id):
            continue
        if row[COL_MEMBERSHIP_STATUS].strip().lower() != "active":
            continue
        try:
            fid = int(row[COL_FEED_ID].strip())
        except ValueError:
            continue
        if fid not in result:
            name = row[COL_FEED_NAME].strip() if len(row) > COL_FEED_NAME else ""
            logger.info("advertiser %s: active feed %s (%s)", advertiser_id, fid, name or "-")
            result.append(fid)
    return result


def list_active_feed_ids(
    advertiser_id: int,
    config: SyncConfig,
    session: Optional[requests.Session] = None,
) -> list[int]:
    """
    Download the feed list and pick the advertiser's active feeds.
    Raises DownloadError when the list cannot be fetched or has no active feed.
    """
    text = http.get_text(
        build_feed_list_url(config.require_credentials()),
        timeout_sec=config.timeout_sec,
        retry_max=config.retry_max,
        retry_backoff_sec=config.retry_backoff_sec,
        session=session,
    )
    ids = parse_active_feed_ids(text, advertiser_id)
    if not ids:
        raise DownloadError(f"no active feed for advertiser {advertiser_id}")
    return ids
