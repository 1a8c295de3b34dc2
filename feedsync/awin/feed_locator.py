"""Awin product feed download URLs."""
from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import quote

from feedsync.errors import ConfigError
from feedsync.job.params import Credentials

DOWNLOAD_BASE = "https://productdata.awin.com/datafeed/download"
LIST_BASE = "https://productdata.awin.com/datafeed/list"

FEED_COLUMNS: tuple[str, ...] = (
    "product_name",
    "description",
    "search_price",
    "currency",
    "merchant_image_url",
    "aw_product_id",
    "merchant_product_id",
    "merchant_category",
    "aw_deep_link",  # tracking link, used as the natural key
    "merchant_deep_link",
)

COMPRESSIONS = ("zip", "none")


def _encoded_key(credentials: Credentials) -> str:
    key = (credentials.feed_key or "").strip()
    if not key:
        raise ConfigError("empty Awin feed key")
    # The key sits in a path segment: '/', '?', '#', '%' must not leak through
    return quote(key, safe="")


def build_feed_url(
    feed_id: int,
    credentials: Credentials,
    columns: Optional[Iterable[str]] = None,
    compression: str = "zip",
) -> str:
    """Download URL for one feed (fid). Pure string building, no I/O."""
    if int(feed_id) <= 0:
        raise ConfigError(f"invalid feed id: {feed_id}")
    if compression not in COMPRESSIONS:
        raise ConfigError(f"compression must be one of {COMPRESSIONS}, got {compression!r}")
    cols = [c.strip() if isinstance(c, str) else "" for c in (columns if columns is not None else FEED_COLUMNS)]
    if not cols or not all(cols):
        raise ConfigError(f"column list must hold non-empty names, got {cols!r}")
    return (
        f"{DOWNLOAD_BASE}/apikey/{_encoded_key(credentials)}/language/any"
        f"/fid/{int(feed_id)}/columns/{','.join(quote(c, safe='') for c in cols)}"
        f"/format/csv/compression/{compression}"
    )


def build_feed_list_url(credentials: Credentials) -> str:
    """URL of the CSV listing every feed the publisher can access."""
    return f"{LIST_BASE}/apikey/{_encoded_key(credentials)}"
