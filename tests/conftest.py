"""Shared fixtures: SQLite store, in-memory ZIP feeds and a fake HTTP session."""
import csv
import io
import zipfile
from typing import Any, Iterable, Optional, Union

import pytest
import requests

from feedsync.job.params import Credentials, FeedDescriptor, SyncConfig
from feedsync.store import db

AWIN_HEADER = [
    "product_name",
    "description",
    "search_price",
    "currency",
    "merchant_image_url",
    "aw_product_id",
    "merchant_product_id",
    "merchant_category",
    "aw_deep_link",
    "merchant_deep_link",
]


FEED_LIST = (
    "Advertiser ID,Advertiser Name,Primary Region,Membership Status,Feed ID,Feed Name\n"
    "13075,Fnac ES,ES,active,101,Fnac Libros\n"
    "13075,Fnac ES,ES,notjoined,102,Fnac Outlet\n"
    "13075,Fnac ES,ES,active,103,Fnac Musica\n"
    "13075,Fnac ES,ES,active,101,Fnac Libros (dup)\n"
    "75838,Bikila,ES,active,200,Bikila\n"
)


def awin_row(
    name: str = "Rachmaninov: Sinfonía n. 2 (CD)",
    price: str = "12.99",
    category: str = "Música y Ocio",
    deep_link: str = "https://www.awin1.com/pclick.php?p=1",
    currency: str = "EUR",
    description: str = "",
) -> dict[str, str]:
    return {
        "product_name": name,
        "description": description,
        "search_price": price,
        "currency": currency,
        "merchant_image_url": "https://img.example.com/1.jpg",
        "aw_product_id": "1",
        "merchant_product_id": "m1",
        "merchant_category": category,
        "aw_deep_link": deep_link,
        "merchant_deep_link": "https://shop.example.com/p/1",
    }


def csv_bytes(rows: Iterable[dict[str, str]], header: Optional[list[str]] = None) -> bytes:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=header or AWIN_HEADER)
    writer.writeheader()
    for r in rows:
        writer.writerow(r)
    return buf.getvalue().encode("utf-8")


def zip_bytes(entries: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def feed_zip(rows: Iterable[dict[str, str]]) -> bytes:
    return zip_bytes({"datafeed_1.csv": csv_bytes(rows)})


class FakeResponse:
    def __init__(self, status_code: int = 200, body: bytes = b"", fail_after_bytes: Optional[int] = None):
        self.status_code = status_code
        self._body = body
        self._fail_after = fail_after_bytes
        self.closed = False
        self.encoding = "utf-8"
        self.text_read = False

    @property
    def text(self) -> str:
        self.text_read = True
        return self._body.decode("utf-8", errors="replace")

    def iter_content(self, chunk_size: int = 1024):
        sent = 0
        for i in range(0, len(self._body), chunk_size):
            if self._fail_after is not None and sent >= self._fail_after:
                raise requests.ConnectionError("connection reset")
            chunk = self._body[i:i + chunk_size]
            sent += len(chunk)
            yield chunk

    def close(self) -> None:
        self.closed = True


Route = Union[FakeResponse, Exception, list]


class FakeSession:
    """Routes GETs by URL substring. A list route is consumed one item per call."""

    def __init__(self, routes: dict[str, Route]):
        self.routes = routes
        self.calls: list[str] = []

    def get(self, url: str, stream: bool = False, timeout: Any = None) -> FakeResponse:
        self.calls.append(url)
        for key, route in self.routes.items():
            if key in url:
                if isinstance(route, list):
                    route = route.pop(0) if len(route) > 1 else route[0]
                if isinstance(route, Exception):
                    raise route
                return route
        return FakeResponse(404, b"not found")


def make_config(feeds: Iterable[FeedDescriptor], tmp_path, **overrides: Any) -> SyncConfig:
    params: dict[str, Any] = dict(
        feeds=tuple(feeds),
        credentials=Credentials(feed_key="test-key"),
        run_label="awin-sync",
        temp_dir=str(tmp_path),
        retry_max=1,
        retry_backoff_sec=0.0,
        timeout_sec=5,
        progress_every=2,
    )
    params.update(overrides)
    return SyncConfig(**params)


@pytest.fixture
def conn(tmp_path):
    c = db.get_connection(str(tmp_path / "catalog.db"))
    db.init_schema(c)
    yield c
    c.close()
