from datetime import date
from decimal import Decimal

import pytest

from pricing.services.availability import (
    infer_hotel_category,
    infer_room_category,
    normalize_availability,
    parse_duration_to_nights,
)


def _usd_rate(currency: str) -> Decimal:
    return Decimal("1.25") if currency == "USD" else Decimal("1")


@pytest.mark.parametrize(
    ("text", "nights"),
    [
        ("8 Days", 7),
        ("7 Nights", 7),
        ("1 week", 7),
        ("2 weeks", 14),
        ("7 Days / 6 Nights", 6),
        ("1 day", 1),
        ("garbage", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_duration_to_nights(text, nights):
    assert parse_duration_to_nights(text) == nights


def test_room_category_keyword_beats_occupancy():
    assert infer_room_category("Single Supplement", 2) == "single"
    assert infer_room_category("Twin share", 1) == "twin"
    assert infer_room_category("Triple room", 2) == "triple"
    assert infer_room_category("Adult", 2) == "twin"
    assert infer_room_category("Adult", 3) == "triple"
    assert infer_room_category("Adult", 5) == "standard"


def test_hotel_category_star_before_tier_keywords():
    assert infer_hotel_category("Twin 4 star Deluxe") == "4-star"
    assert infer_hotel_category("3-Star hotels") == "3-star"
    assert infer_hotel_category("Premium Superior twin") == "Premium"
    assert infer_hotel_category("Twin share") is None


def test_normalize_prefers_prices_by_rate_and_converts_to_gbp():
    raw = [
        {
            "date": "2025-06-01",
            "startTime": "08:00",
            "maxParticipants": 16,
            "availabilityCount": 9,
            "rates": [
                {"id": 11, "title": "Twin Share 4 Star", "minPerBooking": 2, "price": 999},
                {"id": 12, "title": "Single Supplement", "minPerBooking": 2},
            ],
            "pricesByRate": [
                {"activityRateId": 11, "pricePerCategoryUnit": [{"id": 7, "amount": {"amount": 1000, "currency": "USD"}}]},
                {"activityRateId": 12, "pricePerCategoryUnit": [{"id": 7, "amount": {"amount": 1250, "currency": "USD"}}]},
            ],
        }
    ]

    result = normalize_availability(raw, rate_for=_usd_rate, duration_text="8 days")

    assert result.duration_nights == 7
    assert result.total_rates == 2
    departure = result.departures[0]
    assert departure.departure_date == date(2025, 6, 1)
    assert departure.available_spots == 9
    assert departure.total_capacity == 16
    twin, single = departure.rates
    assert twin.supplier_rate_id == "11"
    assert twin.room_category == "twin"
    assert twin.hotel_category == "4-star"
    assert twin.pricing_category_id == "7"
    assert twin.price_gbp == Decimal("800.00")
    assert single.room_category == "single"
    assert single.price_gbp == Decimal("1000.00")


def test_normalize_falls_back_to_rates_only_without_priced_prices_by_rate():
    raw = [
        {
            "date": 1748736000000,
            "soldOut": True,
            "rates": [{"id": 5, "title": "Double room", "price": "500", "currency": "GBP"}],
            "pricesByRate": [{"activityRateId": 5, "pricePerCategoryUnit": []}],
        }
    ]

    result = normalize_availability(raw, rate_for=_usd_rate)

    departure = result.departures[0]
    assert departure.departure_date == date(2025, 6, 1)
    assert departure.is_sold_out is True
    assert departure.rates[0].price_gbp == Decimal("500.00")
    assert departure.rates[0].room_category == "twin"


def test_normalize_drops_dates_without_priced_rates():
    raw = [
        {"date": "2025-06-01", "rates": [{"id": 1, "title": "Twin"}]},
        {"date": None, "rates": [{"id": 2, "title": "Twin", "price": 10}]},
        {"date": "2025-06-03", "rates": [{"id": 3, "title": "Twin", "price": 0}]},
    ]

    result = normalize_availability(raw, rate_for=_usd_rate)

    assert result.departures == []
    assert result.total_rates == 0
    assert result.duration_nights is None
