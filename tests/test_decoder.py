"""decoder unit tests."""
import pytest

from conftest import awin_row, csv_bytes, feed_zip, zip_bytes
from feedsync.awin.decoder import iter_records
from feedsync.errors import DecodeError


def _write(tmp_path, data: bytes, name: str = "feed.tmp"):
    path = tmp_path / name
    path.write_bytes(data)
    return path


def test_zip_feed_yields_records(tmp_path):
    rows = [awin_row(deep_link=f"https://www.awin1.com/pclick.php?p={i}") for i in range(3)]
    records = list(iter_records(_write(tmp_path, feed_zip(rows)), expect_zip=True))
    assert len(records) == 3
    assert records[0]["product_name"] == "Rachmaninov: Sinfonía n. 2 (CD)"
    assert [r["aw_deep_link"] for r in records] == [r["aw_deep_link"] for r in rows]


def test_picks_first_csv_entry(tmp_path):
    data = zip_bytes({
        "README.txt": b"not a feed",
        "images/": b"",
        "datafeed_13075.CSV": csv_bytes([awin_row()]),
    })
    records = list(iter_records(_write(tmp_path, data)))
    assert len(records) == 1


def test_zip_without_csv_entry(tmp_path):
    path = _write(tmp_path, zip_bytes({"README.txt": b"nothing here"}))
    with pytest.raises(DecodeError):
        list(iter_records(path))


def test_plain_csv(tmp_path):
    path = _write(tmp_path, csv_bytes([awin_row(), awin_row(name="Otro")]))
    records = list(iter_records(path))
    assert [r["product_name"] for r in records] == ["Rachmaninov: Sinfonía n. 2 (CD)", "Otro"]


def test_non_zip_payload_when_zip_expected(tmp_path):
    path = _write(tmp_path, b"<html><body>Invalid API key</body></html>")
    with pytest.raises(DecodeError):
        list(iter_records(path, expect_zip=True))


def test_corrupt_archive_data(tmp_path):
    rows = [awin_row(description="x" * 200, deep_link=f"https://l/{i}") for i in range(20)]
    data = bytearray(feed_zip(rows))
    # Local header is 30 bytes + file name; damage the deflate stream after it
    start = 30 + len("datafeed_1.csv") + 10
    for i in range(start, start + 40):
        data[i] ^= 0xFF
    path = _write(tmp_path, bytes(data))
    with pytest.raises(DecodeError):
        list(iter_records(path))


def test_quoted_fields_with_commas_and_newlines(tmp_path):
    data = (
        'product_name,description,search_price\n'
        '"Set ""Deluxe"", 3 piezas","línea 1\nlínea 2",9.90\n'
    ).encode("utf-8")
    (record,) = list(iter_records(_write(tmp_path, data)))
    assert record["product_name"] == 'Set "Deluxe", 3 piezas'
    assert record["description"] == "línea 1\nlínea 2"
    assert record["search_price"] == "9.90"


def test_bom_nul_and_blank_rows(tmp_path):
    data = b"\xef\xbb\xbfproduct_name,search_price\nCami\x00seta,10\n,\n\nBolso,20\n"
    records = list(iter_records(_write(tmp_path, data)))
    assert records == [
        {"product_name": "Camiseta", "search_price": "10"},
        {"product_name": "Bolso", "search_price": "20"},
    ]


def test_short_and_long_rows(tmp_path):
    data = b"a,b,c\n1\n1,2,3,4\n"
    records = list(iter_records(_write(tmp_path, data)))
    assert records == [{"a": "1", "b": "", "c": ""}, {"a": "1", "b": "2", "c": "3"}]


def test_empty_file(tmp_path):
    with pytest.raises(DecodeError):
        list(iter_records(_write(tmp_path, b"")))


def test_invalid_utf8_is_replaced(tmp_path):
    data = b"product_name\nCaf\xe9\n"
    (record,) = list(iter_records(_write(tmp_path, data)))
    assert record["product_name"].startswith("Caf")
