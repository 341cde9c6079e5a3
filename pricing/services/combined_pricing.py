from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_FLOOR
from typing import Any

from pricing.services.airports import airport_name
from pricing.services.fx import quantize_money

HUNDRED = Decimal("100")
PRICE_ENDINGS = (Decimal("49"), Decimal("69"), Decimal("99"))


def smart_round(price: Decimal | int | float | str) -> Decimal:
    value = Decimal(str(price))
    if value <= 0:
        return Decimal("0")
    base = (value / HUNDRED).to_integral_value(rounding=ROUND_FLOOR) * HUNDRED
    remainder = value - base
    for ending in PRICE_ENDINGS[:-1]:
        if remainder <= ending:
            return base + ending
    return base + PRICE_ENDINGS[-1]


def apply_markup(subtotal: Decimal, markup_percent: Decimal | int | float | str) -> Decimal:
    return Decimal(str(subtotal)) * (Decimal("1") + Decimal(str(markup_percent)) / HUNDRED)


def combine(
    flight_price: Decimal | int | float | str,
    land_price: Decimal | int | float | str,
    markup_percent: Decimal | int | float | str,
) -> Decimal:
    subtotal = Decimal(str(flight_price)) + Decimal(str(land_price))
    return smart_round(apply_markup(subtotal, markup_percent))


@dataclass(frozen=True)
class CombinedPriceResult:
    date: date
    flight_price: Decimal
    land_price: Decimal
    subtotal: Decimal
    markup_percent: Decimal
    after_markup: Decimal
    final_price: Decimal
    currency: str
    departure_airport: str
    departure_airport_name: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "flightPricePerPerson": str(self.flight_price),
            "landTourPricePerPerson": str(self.land_price),
            "subtotal": str(self.subtotal),
            "markupPercent": str(self.markup_percent),
            "afterMarkup": str(self.after_markup),
            "finalPrice": str(self.final_price),
            "currency": self.currency,
            "departureAirport": self.departure_airport,
            "departureAirportName": self.departure_airport_name,
        }


def build_combined_result(
    *,
    on_date: date,
    airport_code: str,
    flight_price: Decimal,
    land_price: Decimal,
    markup_percent: Decimal,
    airport_display_name: str = "",
    currency: str = "GBP",
) -> CombinedPriceResult:
    subtotal = Decimal(str(flight_price)) + Decimal(str(land_price))
    after_markup = apply_markup(subtotal, markup_percent)
    return CombinedPriceResult(
        date=on_date,
        flight_price=quantize_money(Decimal(str(flight_price))),
        land_price=quantize_money(Decimal(str(land_price))),
        subtotal=quantize_money(subtotal),
        markup_percent=Decimal(str(markup_percent)),
        after_markup=quantize_money(after_markup),
        final_price=smart_round(after_markup),
        currency=currency,
        departure_airport=airport_code,
        departure_airport_name=airport_name(airport_code, airport_display_name),
    )
