from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Iterable

from pricing.services.flights.types import FlightOffer


def by_departure_airport(offer: FlightOffer) -> str:
    return offer.departure_airport


def by_arrival_airport(offer: FlightOffer) -> str:
    return offer.arrival_airport


def cheapest_by_date_and_airport(
    offers: Iterable[FlightOffer],
    airport_of: Callable[[FlightOffer], str] = by_departure_airport,
) -> dict[date, dict[str, FlightOffer]]:
    cheapest: dict[date, dict[str, FlightOffer]] = {}
    for offer in offers:
        airport = airport_of(offer)
        if not airport:
            continue
        per_airport = cheapest.setdefault(offer.departure_date, {})
        existing = per_airport.get(airport)
        # Strictly cheaper replaces; ties keep the first offer seen.
        if existing is None or offer.price < existing.price:
            per_airport[airport] = offer
    return cheapest


def price_map(cheapest: dict[date, dict[str, FlightOffer]]) -> dict[date, dict[str, Decimal]]:
    return {
        on_date: {airport: offer.price for airport, offer in per_airport.items()}
        for on_date, per_airport in cheapest.items()
    }


def pair_open_jaw(
    outbound: dict[date, dict[str, Decimal]],
    inbound: dict[date, dict[str, Decimal]],
    nights: int,
) -> dict[date, dict[str, Decimal]]:
    """Sum outbound and return legs for the same UK airport.

    ``inbound`` is keyed by the return date. A departure only gets a price when
    a return leg exists exactly ``nights`` later for that airport.
    """
    paired: dict[date, dict[str, Decimal]] = {}
    for departure_date, outbound_prices in outbound.items():
        return_prices = inbound.get(departure_date + timedelta(days=nights))
        if not return_prices:
            continue
        for airport, outbound_price in outbound_prices.items():
            return_price = return_prices.get(airport)
            if return_price is None:
                continue
            paired.setdefault(departure_date, {})[airport] = outbound_price + return_price
    return paired


def restrict_to_dates(
    prices: dict[date, dict[str, Decimal]],
    dates: Iterable[date],
) -> dict[date, dict[str, Decimal]]:
    wanted = set(dates)
    return {on_date: per_airport for on_date, per_airport in prices.items() if on_date in wanted}
