from datetime import date
from decimal import Decimal

from pricing.services.combined_pricing import build_combined_result, combine, smart_round


def test_smart_round_examples():
    assert smart_round(530) == Decimal("549")
    assert smart_round(572) == Decimal("599")
    assert smart_round(601) == Decimal("649")
    assert smart_round(499) == Decimal("499")
    assert smart_round(Decimal("560.50")) == Decimal("569")


def test_smart_round_keeps_attractive_endings():
    for value in (49, 69, 99, 549, 569, 599, 1249):
        assert smart_round(value) == Decimal(value)


def test_smart_round_never_below_band_floor_plus_49():
    for value in (Decimal("100"), Decimal("100.01"), Decimal("149.99"), Decimal("250"), Decimal("970")):
        floor = (value // 100) * 100
        assert smart_round(value) >= floor + 49
        assert smart_round(value) >= value


def test_smart_round_non_positive_is_zero():
    assert smart_round(0) == Decimal("0")
    assert smart_round(Decimal("-12.5")) == Decimal("0")


def test_combine_applies_markup_then_rounds():
    # (95 + 500) * 1.10 = 654.50
    assert combine(Decimal("95"), Decimal("500"), Decimal("10")) == Decimal("669")
    assert combine(0, 0, 15) == Decimal("0")


def test_combine_is_monotonic_in_each_input():
    prices = [Decimal(value) for value in ("0", "45.5", "99", "120", "349.99", "351", "800")]
    markups = [Decimal(value) for value in ("0", "5", "12.5", "15", "40")]
    for markup in markups:
        for land in prices:
            results = [combine(flight, land, markup) for flight in prices]
            assert results == sorted(results)
    for flight in prices:
        for land in prices:
            results = [combine(flight, land, markup) for markup in markups]
            assert results == sorted(results)


def test_build_combined_result_fields():
    result = build_combined_result(
        on_date=date(2025, 6, 1),
        airport_code="LGW",
        flight_price=Decimal("95"),
        land_price=Decimal("500"),
        markup_percent=Decimal("10"),
    )

    assert result.subtotal == Decimal("595.00")
    assert result.after_markup == Decimal("654.50")
    assert result.final_price == Decimal("669")
    assert result.departure_airport_name == "London Gatwick"
    payload = result.as_dict()
    assert payload["date"] == "2025-06-01"
    assert payload["currency"] == "GBP"
