"""Sync run parameters. Built once at startup and passed down by parameter."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from feedsync.errors import ConfigError
from feedsync.util import http

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_NETWORK = "awin"
# Below this the lock would expire while a large feed is still downloading
MIN_LOCK_TIMEOUT_MINUTES = 10


@dataclass(frozen=True)
class Credentials:
    feed_key: str

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> Optional[Credentials]:
        # The product feed key is separate from the API token; older accounts only have the token
        key = (env.get("AWIN_FEED_KEY") or env.get("AWIN_API_TOKEN") or "").strip()
        return cls(feed_key=key) if key else None


@dataclass(frozen=True)
class FeedDescriptor:
    """One configured feed. Exactly how it is located depends on which id is set."""

    platform: str
    source_network: str = DEFAULT_SOURCE_NETWORK
    feed_id: Optional[int] = None
    advertiser_id: Optional[int] = None
    url: Optional[str] = None

    @property
    def needs_locator(self) -> bool:
        return self.url is None

    def describe(self) -> str:
        if self.feed_id is not None:
            return f"{self.platform} (fid={self.feed_id})"
        if self.advertiser_id is not None:
            return f"{self.platform} (advertiser={self.advertiser_id})"
        return f"{self.platform} ({self.url})"

    @classmethod
    def from_config(cls, d: Mapping[str, Any]) -> FeedDescriptor:
        platform = str(d.get("platform") or "").strip()
        if not platform:
            raise ConfigError(f"feed entry without platform: {dict(d)}")
        feed_id = _optional_positive_int(d.get("feed_id"), "feed_id", platform)
        advertiser_id = _optional_positive_int(d.get("advertiser_id"), "advertiser_id", platform)
        url = (str(d.get("url")).strip() or None) if d.get("url") else None
        if feed_id is None and advertiser_id is None and url is None:
            raise ConfigError(f"feed '{platform}' needs one of feed_id, advertiser_id or url")
        return cls(
            platform=platform,
            source_network=str(d.get("source_network") or DEFAULT_SOURCE_NETWORK).strip().lower(),
            feed_id=feed_id,
            advertiser_id=advertiser_id,
            url=url,
        )


def _optional_positive_int(value: Any, name: str, platform: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"feed '{platform}': {name} must be an integer, got {value!r}") from None
    if n <= 0:
        raise ConfigError(f"feed '{platform}': {name} must be positive, got {n}")
    return n


def _parse_columns(value: Any) -> Optional[tuple[str, ...]]:
    """awin.columns: a YAML list of column names. None keeps the default column set."""
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"awin.columns must be a list of column names, got {type(value).__name__}")
    columns = tuple(c.strip() if isinstance(c, str) else "" for c in value)
    if not columns or not all(columns):
        raise ConfigError(f"awin.columns must be non-empty strings, got {list(value)!r}")
    return columns


@dataclass(frozen=True)
class SyncConfig:
    """Everything one sync invocation needs."""

    feeds: tuple[FeedDescriptor, ...]
    credentials: Optional[Credentials]
    run_label: str = "awin-sync"
    compression: str = "zip"
    columns: Optional[tuple[str, ...]] = None
    lock_timeout_minutes: int = 60
    progress_every: int = 1000
    temp_dir: Optional[str] = None
    db_path: Optional[str] = None
    timeout_sec: int = http.DEFAULT_TIMEOUT_SEC
    retry_max: int = http.DEFAULT_RETRY_MAX
    retry_backoff_sec: float = http.DEFAULT_RETRY_BACKOFF_SEC
    networks: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    def require_credentials(self) -> Credentials:
        if self.credentials is None:
            raise ConfigError("AWIN_FEED_KEY (or AWIN_API_TOKEN) is not set")
        return self.credentials

    @classmethod
    def from_sources(cls, config: Mapping[str, Any], env: Mapping[str, str]) -> SyncConfig:
        """
        Build from a loaded config.yaml dict and an environment mapping.
        Raises ConfigError when there is nothing to sync or no key to sync it with.
        """
        run_cfg = config.get("run") or {}
        awin_cfg = config.get("awin") or {}

        feeds = tuple(FeedDescriptor.from_config(d) for d in (config.get("feeds") or []))
        if not feeds:
            raise ConfigError("no feeds configured (config.yaml: feeds)")
        credentials = Credentials.from_env(env)
        if credentials is None and any(f.needs_locator for f in feeds):
            raise ConfigError("AWIN_FEED_KEY (or AWIN_API_TOKEN) is not set")

        compression = str(awin_cfg.get("compression") or "zip").lower()
        if compression not in ("zip", "none"):
            raise ConfigError(f"awin.compression must be 'zip' or 'none', got {compression!r}")
        columns = _parse_columns(awin_cfg.get("columns"))

        lock_timeout = int(run_cfg.get("lock_timeout_minutes", 60))
        if lock_timeout < MIN_LOCK_TIMEOUT_MINUTES:
            logger.warning(
                "lock_timeout_minutes=%d is too short, raised to %d",
                lock_timeout,
                MIN_LOCK_TIMEOUT_MINUTES,
            )
            lock_timeout = MIN_LOCK_TIMEOUT_MINUTES

        networks = config.get("networks") or {}
        return cls(
            feeds=feeds,
            credentials=credentials,
            run_label=str(run_cfg.get("label") or "awin-sync"),
            compression=compression,
            columns=columns,
            lock_timeout_minutes=lock_timeout,
            progress_every=max(1, int(run_cfg.get("progress_every", 1000))),
            temp_dir=run_cfg.get("temp_dir") or None,
            db_path=env.get("STATE_DB_PATH") or None,
            timeout_sec=int(env.get("HTTP_TIMEOUT_SEC") or http.DEFAULT_TIMEOUT_SEC),
            retry_max=int(env.get("HTTP_RETRY_MAX") or http.DEFAULT_RETRY_MAX),
            retry_backoff_sec=float(env.get("HTTP_RETRY_BACKOFF_SEC") or http.DEFAULT_RETRY_BACKOFF_SEC),
            networks={str(k).lower(): dict(v) for k, v in networks.items()},
        )

    def only(self, platform: str) -> SyncConfig:
        """Copy restricted to the feeds of one platform."""
        feeds = tuple(f for f in self.feeds if f.platform == platform)
        if not feeds:
            raise ConfigError(f"no feed configured for platform '{platform}'")
        return replace(self, feeds=feeds, run_label=f"{self.run_label}-{platform}")
