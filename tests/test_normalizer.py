"""normalizer unit tests."""
from decimal import Decimal

import pytest

from conftest import awin_row
from feedsync.awin.normalizer import Candidate, Skip, get_normalizer, parse_price
from feedsync.errors import ConfigError
from feedsync.job.params import FeedDescriptor

FEED = FeedDescriptor(platform="fnac", feed_id=101)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("12.99", Decimal("12.99")),
        ("12,99", Decimal("12.99")),
        (" 0 ", Decimal("0")),
        ("abc", None),
        ("-5", None),
        ("", None),
        (None, None),
        ("NaN", None),
        ("Infinity", None),
        ("1e400", None),
    ],
)
def test_parse_price(raw, expected):
    assert parse_price(raw) == expected


def test_awin_row_to_candidate():
    c = get_normalizer("awin").normalize(awin_row(currency="eur"), FEED)
    assert isinstance(c, Candidate)
    assert c.title == "Rachmaninov: Sinfonía n. 2 (CD)"
    assert c.price == Decimal("12.99")
    assert c.currency == "EUR"
    assert c.source_url == "https://www.awin1.com/pclick.php?p=1"
    assert c.image_url == "https://img.example.com/1.jpg"
    assert c.platform == "fnac"
    assert c.source_network == "awin"
    assert c.raw_category == "Música y Ocio"


def test_currency_defaults_to_eur():
    c = get_normalizer("awin").normalize(awin_row(currency=""), FEED)
    assert c.currency == "EUR"


@pytest.mark.parametrize(
    "row,reason",
    [
        (awin_row(price="abc"), "invalid price"),
        (awin_row(price="-5"), "invalid price"),
        (awin_row(price="1e400"), "invalid price"),
        (awin_row(deep_link=""), "missing deep link"),
        (awin_row(name="  "), "missing title"),
    ],
)
def test_bad_rows_are_skipped(row, reason):
    assert get_normalizer("awin").normalize(row, FEED) == Skip(reason)


def test_image_falls_back_to_second_column():
    row = awin_row()
    row["merchant_image_url"] = ""
    row["aw_image_url"] = "https://images2.productserve.com/1.jpg"
    c = get_normalizer("awin").normalize(row, FEED)
    assert c.image_url == "https://images2.productserve.com/1.jpg"


def test_missing_image_is_none():
    row = awin_row()
    row["merchant_image_url"] = ""
    assert get_normalizer("awin").normalize(row, FEED).image_url is None


def test_network_lookup_is_case_insensitive():
    assert get_normalizer("AWIN") is get_normalizer("awin")


def test_unknown_network():
    with pytest.raises(ConfigError):
        get_normalizer("tradedoubler")


def test_network_from_config():
    networks = {"tradedoubler": {"title": "name", "price": "price", "source_url": "productUrl", "category": "merchantCategoryName"}}
    normalizer = get_normalizer("tradedoubler", networks)
    feed = FeedDescriptor(platform="td", source_network="tradedoubler", url="https://example.com/f.csv")
    c = normalizer.normalize({"name": "Lámpara", "price": "30", "productUrl": "https://td.example/1", "merchantCategoryName": "Hogar"}, feed)
    assert c.title == "Lámpara"
    assert c.source_url == "https://td.example/1"
    assert c.raw_category == "Hogar"
    assert c.description == ""


def test_bad_network_map_is_config_error():
    with pytest.raises(ConfigError):
        get_normalizer("x", {"x": {"title": "name", "price": "price"}})
    with pytest.raises(ConfigError):
        get_normalizer("x", {"x": {"title": "a", "price": "b", "source_url": "c", "colour": "d"}})
