"""HTTP client: timeouts, retry and exponential backoff."""
import logging
import time
from pathlib import Path
from typing import Optional

import requests

from feedsync.errors import DownloadError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 30
DEFAULT_RETRY_MAX = 3
DEFAULT_RETRY_BACKOFF_SEC = 2.0
CHUNK_SIZE = 1024 * 256
BODY_EXCERPT_CHARS = 500


def _body_excerpt(r: requests.Response) -> str:
    """Start of an error body. Only the first chunk is read off a streamed response."""
    try:
        raw = next(r.iter_content(chunk_size=BODY_EXCERPT_CHARS * 4), b"")
    except (requests.RequestException, OSError):
        return ""
    if isinstance(raw, str):
        return raw[:BODY_EXCERPT_CHARS]
    return raw.decode(r.encoding or "utf-8", errors="replace")[:BODY_EXCERPT_CHARS]


def _get_with_retry(
    url: str,
    *,
    stream: bool,
    timeout_sec: int,
    retry_max: int,
    retry_backoff_sec: float,
    session: Optional[requests.Session],
) -> requests.Response:
    """GET with retries on network failures. Non-2xx responses are not retried."""
    use_session = session or requests
    last_exc: Optional[Exception] = None
    for attempt in range(retry_max + 1):
        try:
            r = use_session.get(url, stream=stream, timeout=timeout_sec)
        except (requests.ConnectionError, requests.Timeout) as e:
            last_exc = e
            if attempt < retry_max:
                wait = retry_backoff_sec * (2 ** attempt)
                logger.warning("GET failed (attempt %d/%d), retry in %.1fs: %s", attempt + 1, retry_max + 1, wait, e)
                time.sleep(wait)
            continue
        except requests.RequestException as e:
            raise DownloadError(f"request failed: {e}") from e
        if not 200 <= r.status_code < 300:
            body = _body_excerpt(r)
            r.close()
            raise DownloadError("unexpected HTTP status", status_code=r.status_code, body=body)
        return r
    raise DownloadError(f"network failure after {retry_max + 1} attempts: {last_exc}") from last_exc


def download_to_file(
    url: str,
    dest: Path,
    timeout_sec: int = DEFAULT_TIMEOUT_SEC,
    retry_max: int = DEFAULT_RETRY_MAX,
    retry_backoff_sec: float = DEFAULT_RETRY_BACKOFF_SEC,
    session: Optional[requests.Session] = None,
) -> int:
    """
    Stream the body of `url` into `dest`. Returns bytes written.
    Raises DownloadError on non-2xx or when the connection drops mid-body.
    """
    r = _get_with_retry(
        url,
        stream=True,
        timeout_sec=timeout_sec,
        retry_max=retry_max,
        retry_backoff_sec=retry_backoff_sec,
        session=session,
    )
    written = 0
    try:
        with open(dest, "wb") as f:
            for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
                    written += len(chunk)
    except (requests.RequestException, OSError) as e:
        raise DownloadError(f"download interrupted after {written} bytes: {e}") from e
    finally:
        r.close()
    return written


def get_text(
    url: str,
    timeout_sec: int = DEFAULT_TIMEOUT_SEC,
    retry_max: int = DEFAULT_RETRY_MAX,
    retry_backoff_sec: float = DEFAULT_RETRY_BACKOFF_SEC,
    session: Optional[requests.Session] = None,
) -> str:
    """GET and return the decoded body."""
    r = _get_with_retry(
        url,
        stream=False,
        timeout_sec=timeout_sec,
        retry_max=retry_max,
        retry_backoff_sec=retry_backoff_sec,
        session=session,
    )
    try:
        return r.text
    finally:
        r.close()
