"""
Raw feed record -> product candidate.
Column names differ per affiliate network, so each network gets its own normalizer,
looked up by the feed's source_network.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional, Sequence, Union

from feedsync.errors import ConfigError
from feedsync.job.params import FeedDescriptor

DEFAULT_CURRENCY = "EUR"

FIELDS = ("title", "description", "price", "currency", "image_url", "source_url", "category")


@dataclass(frozen=True)
class Candidate:
    """A product row ready for classification and upsert."""

    title: str
    description: str
    price: Decimal
    currency: str
    image_url: Optional[str]
    source_url: str
    platform: str
    source_network: str
    raw_category: str


@dataclass(frozen=True)
class Skip:
    reason: str


def parse_price(value: Optional[str]) -> Optional[Decimal]:
    """Non-negative finite decimal, or None when the value is missing or malformed."""
    s = (value or "").strip()
    if not s:
        return None
    if "," in s and "." not in s:
        s = s.replace(",", ".")
    try:
        price = Decimal(s)
    except InvalidOperation:
        return None
    # The store keeps REAL; "1e400" is a finite Decimal but overflows to inf
    if not price.is_finite() or price < 0 or not math.isfinite(float(price)):
        return None
    return price


class ColumnMapNormalizer:
    """Normalizer driven by a field -> column(s) map. The first non-empty column wins."""

    def __init__(self, network: str, columns: Mapping[str, Union[str, Sequence[str]]]) -> None:
        unknown = set(columns) - set(FIELDS)
        if unknown:
            raise ValueError(f"{network}: unknown fields in column map: {sorted(unknown)}")
        for required in ("title", "price", "source_url"):
            if required not in columns:
                raise ValueError(f"{network}: column map needs '{required}'")
        self.network = network
        self._columns: dict[str, tuple[str, ...]] = {
            f: (c,) if isinstance(c, str) else tuple(c) for f, c in columns.items()
        }

    def _get(self, record: Mapping[str, str], field: str) -> str:
        for col in self._columns.get(field, ()):
            value = (record.get(col) or "").strip()
            if value:
                return value
        return ""

    def normalize(self, record: Mapping[str, str], feed: FeedDescriptor) -> Union[Candidate, Skip]:
        source_url = self._get(record, "source_url")
        if not source_url:
            return Skip("missing deep link")
        title = self._get(record, "title")
        if not title:
            return Skip("missing title")
        price = parse_price(self._get(record, "price"))
        if price is None:
            return Skip("invalid price")
        return Candidate(
            title=title,
            description=self._get(record, "description"),
            price=price,
            currency=(self._get(record, "currency") or DEFAULT_CURRENCY).upper(),
            image_url=self._get(record, "image_url") or None,
            source_url=source_url,
            platform=feed.platform,
            source_network=feed.source_network,
            raw_category=self._get(record, "category"),
        )


AWIN_COLUMNS: dict[str, Union[str, Sequence[str]]] = {
    "title": "product_name",
    "description": "description",
    "price": "search_price",
    "currency": "currency",
    "image_url": ("merchant_image_url", "aw_image_url"),
    "source_url": "aw_deep_link",
    "category": ("merchant_category", "category_name"),
}

NORMALIZERS: dict[str, ColumnMapNormalizer] = {
    "awin": ColumnMapNormalizer("awin", AWIN_COLUMNS),
}


def get_normalizer(
    network: str,
    extra_networks: Optional[Mapping[str, Mapping[str, Union[str, Sequence[str]]]]] = None,
) -> ColumnMapNormalizer:
    """Normalizer for `network`. Column maps from config.yaml (networks:) take precedence."""
    key = (network or "").strip().lower()
    if extra_networks and key in extra_networks:
        try:
            return ColumnMapNormalizer(key, extra_networks[key])
        except ValueError as e:
            raise ConfigError(str(e)) from e
    try:
        return NORMALIZERS[key]
    except KeyError:
        raise ConfigError(f"no normalizer for source network '{network}'") from None
