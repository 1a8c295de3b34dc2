"""fetcher / http unit tests. No network: every GET goes through FakeSession."""
import pytest
import requests

from conftest import FakeResponse, FakeSession, make_config
from feedsync.awin.fetcher import fetched_feed
from feedsync.errors import DownloadError

URL = "https://productdata.awin.com/datafeed/download/apikey/k/fid/1/format/csv/compression/zip"


def _leftovers(tmp_path):
    return list(tmp_path.glob("feed_*.tmp"))


def test_body_lands_on_disk_and_is_removed(tmp_path):
    session = FakeSession({"fid/1": FakeResponse(200, b"payload")})
    with fetched_feed(URL, make_config([], tmp_path), session=session) as path:
        assert path.read_bytes() == b"payload"
        assert path.parent == tmp_path
    assert not path.exists()
    assert _leftovers(tmp_path) == []


def test_removed_when_consumer_raises(tmp_path):
    session = FakeSession({"fid/1": FakeResponse(200, b"payload")})
    with pytest.raises(RuntimeError):
        with fetched_feed(URL, make_config([], tmp_path), session=session) as path:
            raise RuntimeError("consumer failed")
    assert not path.exists()


def test_non_2xx_carries_status_and_body(tmp_path):
    response = FakeResponse(401, b"Invalid API key")
    session = FakeSession({"fid/1": response})
    with pytest.raises(DownloadError) as ei:
        with fetched_feed(URL, make_config([], tmp_path), session=session):
            pytest.fail("must not yield on HTTP error")
    assert ei.value.status_code == 401
    assert ei.value.body == "Invalid API key"
    assert "HTTP 401" in str(ei.value)
    assert response.closed
    assert _leftovers(tmp_path) == []


def test_http_error_is_not_retried(tmp_path):
    session = FakeSession({"fid/1": FakeResponse(500, b"boom")})
    with pytest.raises(DownloadError):
        with fetched_feed(URL, make_config([], tmp_path, retry_max=3), session=session):
            pass
    assert len(session.calls) == 1


def test_network_failure_is_retried(tmp_path):
    session = FakeSession({"fid/1": [requests.ConnectionError("reset"), FakeResponse(200, b"ok")]})
    with fetched_feed(URL, make_config([], tmp_path, retry_max=1), session=session) as path:
        assert path.read_bytes() == b"ok"
    assert len(session.calls) == 2


def test_retries_exhausted(tmp_path):
    session = FakeSession({"fid/1": [requests.Timeout("slow")]})
    with pytest.raises(DownloadError) as ei:
        with fetched_feed(URL, make_config([], tmp_path, retry_max=2), session=session):
            pass
    assert ei.value.status_code is None
    assert len(session.calls) == 3
    assert _leftovers(tmp_path) == []


def test_connection_drop_mid_body(tmp_path):
    response = FakeResponse(200, b"partial body", fail_after_bytes=0)
    session = FakeSession({"fid/1": response})
    with pytest.raises(DownloadError, match="interrupted"):
        with fetched_feed(URL, make_config([], tmp_path), session=session):
            pass
    assert response.closed
    assert _leftovers(tmp_path) == []


def test_error_body_excerpt_reads_one_chunk(tmp_path):
    # A second chunk request raises, so the excerpt must come from the first one
    response = FakeResponse(503, b"E" * 100_000, fail_after_bytes=1)
    session = FakeSession({"fid/1": response})
    with pytest.raises(DownloadError) as ei:
        with fetched_feed(URL, make_config([], tmp_path), session=session):
            pass
    assert ei.value.body == "E" * 500
    assert ei.value.status_code == 503
    assert not response.text_read
    assert response.closed
