"""Ordered, named extraction strategies for loosely shaped supplier payloads.

Each strategy takes the payload and returns a value or ``None``. Strategies are
tried in order and the first non-``None`` result wins, so the order of a
strategy tuple decides which upstream field is believed when several exist.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, NamedTuple

logger = logging.getLogger(__name__)

Strategy = tuple[str, Callable[[Any], Any]]


class Extracted(NamedTuple):
    strategy: str
    value: Any


def extract_first(payload: Any, strategies: Iterable[Strategy]) -> Extracted | None:
    for name, strategy in strategies:
        try:
            value = strategy(payload)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError):
            value = None
        if value is not None:
            return Extracted(name, value)
    return None


def positive_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def _dig(payload: Any, *path: Any) -> Any:
    current = payload
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
        elif not isinstance(current, dict):
            return None
        current = current[key] if isinstance(key, int) else current.get(key)
    return current


def _priced(amount: Any, currency: Any) -> tuple[Decimal, str] | None:
    value = positive_decimal(amount)
    if value is None:
        return None
    return value, str(currency or "USD").upper()


PRICES_BY_RATE_PRICE: tuple[Strategy, ...] = (
    (
        "category_unit_amount",
        lambda entry: _priced(
            _dig(entry, "pricePerCategoryUnit", 0, "amount", "amount"),
            _dig(entry, "pricePerCategoryUnit", 0, "amount", "currency"),
        ),
    ),
)

RATE_PRICE: tuple[Strategy, ...] = (
    ("rate_price", lambda rate: _priced(rate.get("price"), rate.get("currency"))),
    ("rate_price_per_person", lambda rate: _priced(rate.get("pricePerPerson"), rate.get("currency"))),
)

PRICES_BY_RATE_ID: tuple[Strategy, ...] = (
    ("activity_rate_id", lambda entry: _text(entry.get("activityRateId"))),
    ("rate_id", lambda entry: _text(entry.get("rateId"))),
)

PRICING_CATEGORY_ID: tuple[Strategy, ...] = (
    ("category_unit_id", lambda entry: _text(_dig(entry, "pricePerCategoryUnit", 0, "id"))),
)

AVAILABLE_SPOTS: tuple[Strategy, ...] = (
    ("available_spots", lambda item: _count(item.get("availableSpots"))),
    ("availability_count", lambda item: _count(item.get("availabilityCount"))),
)

FLIGHT_OFFER_PRICE: tuple[Strategy, ...] = (
    ("net_price_pp", lambda offer: positive_decimal(offer.get("fltnetpricepp"))),
    ("sell_price_pp", lambda offer: positive_decimal(offer.get("fltSellpricepp"))),
)


def _text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _count(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    number = int(value)
    return number if number > 0 else None


def rate_title(details: dict[str, Any], entry: dict[str, Any] | None = None) -> str:
    entry = entry or {}
    found = extract_first(
        (details, entry),
        (
            ("details_title", lambda pair: _text(pair[0].get("title"))),
            ("entry_title", lambda pair: _text(pair[1].get("title"))),
            ("entry_rate_name", lambda pair: _text(pair[1].get("rateName"))),
            ("details_name", lambda pair: _text(pair[0].get("name"))),
        ),
    )
    return found.value if found else "Standard Rate"
