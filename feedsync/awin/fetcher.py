"""
Feed download to a temporary file.
The whole body lands on disk before decoding starts, so a slow consumer never
holds the HTTP connection open (streaming unzip over the network stalled on large feeds).
"""
from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import requests

from feedsync.job.params import SyncConfig
from feedsync.util import http

logger = logging.getLogger(__name__)


@contextmanager
def fetched_feed(
    url: str,
    config: SyncConfig,
    session: Optional[requests.Session] = None,
) -> Iterator[Path]:
    """
    Download `url` and yield the local path. The file is deleted when the block exits,
    whether it exits normally, through DownloadError, or through an error in the consumer.
    """
    fd, name = tempfile.mkstemp(prefix="feed_", suffix=".tmp", dir=config.temp_dir)
    os.close(fd)
    path = Path(name)
    try:
        size = http.download_to_file(
            url,
            path,
            timeout_sec=config.timeout_sec,
            retry_max=config.retry_max,
            retry_backoff_sec=config.retry_backoff_sec,
            session=session,
        )
        logger.info("downloaded %d bytes to %s", size, path.name)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
