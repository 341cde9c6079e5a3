from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal
from typing import Any, Callable

from pricing.services.extraction import (
    AVAILABLE_SPOTS,
    PRICES_BY_RATE_ID,
    PRICES_BY_RATE_PRICE,
    PRICING_CATEGORY_ID,
    RATE_PRICE,
    extract_first,
    rate_title,
)
from pricing.services.fx import convert_to_gbp

logger = logging.getLogger(__name__)

NIGHTS_RE = re.compile(r"(\d+)\s*nights?", re.IGNORECASE)
DAYS_RE = re.compile(r"(\d+)\s*days?", re.IGNORECASE)
WEEKS_RE = re.compile(r"(\d+)\s*weeks?", re.IGNORECASE)
STAR_RE = re.compile(r"(\d)\s*[-*]?\s*star", re.IGNORECASE)

ROOM_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("single", ("single", "solo")),
    ("triple", ("triple", "3-share")),
    ("twin", ("twin", "double", "2-share")),
)
ROOM_BY_MIN_OCCUPANCY = {1: "single", 2: "twin", 3: "triple"}
HOTEL_TIERS = ("Deluxe", "Premium", "Standard", "Budget", "Luxury", "Superior")


def parse_duration_to_nights(text: str | None) -> int | None:
    if not text:
        return None
    probe = text.strip()
    match = NIGHTS_RE.search(probe)
    if match:
        return int(match.group(1))
    match = DAYS_RE.search(probe)
    if match:
        return max(1, int(match.group(1)) - 1)
    match = WEEKS_RE.search(probe)
    if match:
        return int(match.group(1)) * 7
    return None


def infer_room_category(title: str, min_per_booking: int | None) -> str:
    lowered = (title or "").lower()
    for category, keywords in ROOM_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return ROOM_BY_MIN_OCCUPANCY.get(min_per_booking or 0, "standard")


def infer_hotel_category(title: str) -> str | None:
    match = STAR_RE.search(title or "")
    if match:
        return f"{match.group(1)}-star"
    lowered = (title or "").lower()
    for tier in HOTEL_TIERS:
        if tier.lower() in lowered:
            return tier
    return None


def parse_departure_date(value: Any) -> date | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc).date()
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


@dataclass
class NormalizedRate:
    supplier_rate_id: str
    title: str
    pricing_category_id: str
    room_category: str
    hotel_category: str | None
    min_per_booking: int
    max_per_booking: int | None
    original_price: Decimal
    original_currency: str
    price_gbp: Decimal


@dataclass
class NormalizedDeparture:
    departure_date: date
    start_time: str
    total_capacity: int | None
    available_spots: int | None
    is_sold_out: bool
    rates: list[NormalizedRate] = field(default_factory=list)


@dataclass
class NormalizedAvailability:
    departures: list[NormalizedDeparture]
    total_rates: int
    duration_nights: int | None


def _int_or_none(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number or None


def _build_rate(
    *,
    rate_id: str,
    details: dict,
    entry: dict | None,
    amount: Decimal,
    currency: str,
    pricing_category_id: str,
    rate_for: Callable[[str], Decimal],
) -> NormalizedRate:
    title = rate_title(details, entry)
    min_per_booking = _int_or_none(details.get("minPerBooking")) or 1
    return NormalizedRate(
        supplier_rate_id=rate_id,
        title=title,
        pricing_category_id=pricing_category_id,
        room_category=infer_room_category(title, min_per_booking),
        hotel_category=infer_hotel_category(title),
        min_per_booking=min_per_booking,
        max_per_booking=_int_or_none(details.get("maxPerBooking")),
        original_price=amount,
        original_currency=currency,
        price_gbp=convert_to_gbp(amount, currency, rate_for(currency)),
    )


def _rates_for_entry(item: dict, rate_for: Callable[[str], Decimal]) -> list[NormalizedRate]:
    raw_rates = item.get("rates") if isinstance(item.get("rates"), list) else []
    details_by_id = {str(rate.get("id")): rate for rate in raw_rates if isinstance(rate, dict) and rate.get("id") is not None}

    rates: list[NormalizedRate] = []
    prices_by_rate = item.get("pricesByRate") if isinstance(item.get("pricesByRate"), list) else []
    for entry in prices_by_rate:
        if not isinstance(entry, dict):
            continue
        priced = extract_first(entry, PRICES_BY_RATE_PRICE)
        if priced is None:
            continue
        found_id = extract_first(entry, PRICES_BY_RATE_ID)
        rate_id = found_id.value if found_id else ""
        category = extract_first(entry, PRICING_CATEGORY_ID)
        amount, currency = priced.value
        rates.append(
            _build_rate(
                rate_id=rate_id,
                details=details_by_id.get(rate_id, {}),
                entry=entry,
                amount=amount,
                currency=currency,
                pricing_category_id=category.value if category else "",
                rate_for=rate_for,
            )
        )
    if rates:
        return rates

    for raw in raw_rates:
        if not isinstance(raw, dict):
            continue
        priced = extract_first(raw, RATE_PRICE)
        if priced is None:
            continue
        amount, currency = priced.value
        rates.append(
            _build_rate(
                rate_id=str(raw.get("id") or ""),
                details=raw,
                entry=None,
                amount=amount,
                currency=currency,
                pricing_category_id="",
                rate_for=rate_for,
            )
        )
    return rates


def normalize_availability(
    raw: list[dict],
    *,
    rate_for: Callable[[str], Decimal],
    duration_text: str | None = None,
) -> NormalizedAvailability:
    by_date: dict[date, NormalizedDeparture] = {}
    total_rates = 0
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        departure_date = parse_departure_date(item.get("date"))
        if departure_date is None:
            continue
        rates = _rates_for_entry(item, rate_for)
        if not rates:
            continue
        total_rates += len(rates)
        existing = by_date.get(departure_date)
        if existing is not None:
            # Several start times on one day collapse into one departure.
            existing.rates.extend(rates)
            continue
        spots = extract_first(item, AVAILABLE_SPOTS)
        by_date[departure_date] = NormalizedDeparture(
            departure_date=departure_date,
            start_time=str(item.get("startTime") or ""),
            total_capacity=_int_or_none(item.get("maxParticipants")),
            available_spots=spots.value if spots else None,
            is_sold_out=item.get("soldOut") is True or item.get("available") is False,
            rates=rates,
        )

    departures = [by_date[key] for key in sorted(by_date)]
    logger.info(
        "Availability normalized",
        extra={"departures": len(departures), "total_rates": total_rates},
    )
    return NormalizedAvailability(
        departures=departures,
        total_rates=total_rates,
        duration_nights=parse_duration_to_nights(duration_text),
    )
