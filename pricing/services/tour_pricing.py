from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

import httpx

from pricing.models import FlightTourPricingConfig
from pricing.services.catalog_cache import CatalogCache
from pricing.services.combined_pricing import CombinedPriceResult, build_combined_result
from pricing.services.extraction import extract_first, positive_decimal
from pricing.services.flights.base import FlightBackend
from pricing.services.flights.search import get_flight_backend, search_flights
from pricing.services.flights.types import FlightSearchRequest, RoundTrip
from pricing.services.fx import GBP, convert_to_gbp, gbp_rate_for
from pricing.services.providers.bokun import BokunClient

logger = logging.getLogger(__name__)

LAND_PRICE: tuple = (
    ("price", lambda product: _money(product.get("price"), product.get("currency"))),
    (
        "next_default_price_money",
        lambda product: _money(
            (product.get("nextDefaultPriceMoney") or {}).get("amount"),
            (product.get("nextDefaultPriceMoney") or {}).get("currency"),
        ),
    ),
)


class PricingConfigNotFound(Exception):
    pass


class LandPriceUnavailable(Exception):
    pass


def _money(amount: Any, currency: Any) -> tuple[Decimal, str] | None:
    value = positive_decimal(amount)
    if value is None:
        return None
    return value, str(currency or GBP).upper()


def land_price_for(
    product_id: str,
    *,
    cache: CatalogCache | None = None,
    client: BokunClient | None = None,
) -> Decimal:
    cache = cache or CatalogCache()
    cached = next((item for item in cache.get(GBP) if str(item.get("id")) == str(product_id)), None)
    found = extract_first(cached, LAND_PRICE) if cached else None
    if found is None:
        product = (client or BokunClient()).get_product(product_id, GBP)
        found = extract_first(product, LAND_PRICE)
    if found is None:
        raise LandPriceUnavailable(f"No land price available for product {product_id}.")
    amount, currency = found.value
    return convert_to_gbp(amount, currency, gbp_rate_for(currency))


def get_enabled_config(product_id: str) -> FlightTourPricingConfig:
    config = FlightTourPricingConfig.objects.filter(supplier_product_id=str(product_id), is_enabled=True).first()
    if config is None:
        raise PricingConfigNotFound(f"No enabled flight pricing config for product {product_id}.")
    return config


def tour_flight_prices(
    product_id: str,
    *,
    on_date: date | None = None,
    backend: FlightBackend | None = None,
    client: httpx.AsyncClient | None = None,
    cache: CatalogCache | None = None,
    supplier: BokunClient | None = None,
    batch_delay_seconds: float | None = None,
) -> dict[str, Any]:
    config = get_enabled_config(product_id)
    land_price = land_price_for(product_id, cache=cache, client=supplier)
    request = FlightSearchRequest(
        depart_airports=config.depart_airport_codes(),
        topology=RoundTrip(destination_airport=config.arrive_airport_code),
        nights=config.duration_nights,
        start_date=on_date or config.search_start_date,
        end_date=on_date or config.search_end_date,
    )
    backend = backend or get_flight_backend(config.flight_source)
    # No batch to fall back on here, so any upstream failure surfaces to the caller.
    outcome = search_flights(request, backend, fail_fast=True, client=client, batch_delay_seconds=batch_delay_seconds)

    results: list[CombinedPriceResult] = []
    for search_date in sorted(outcome.prices):
        per_airport = outcome.prices[search_date]
        if on_date is None:
            airport = min(per_airport, key=lambda code: per_airport[code])
            candidates = [(airport, per_airport[airport])]
        else:
            candidates = sorted(per_airport.items(), key=lambda pair: (pair[1], pair[0]))
        for airport, flight_price in candidates:
            results.append(
                build_combined_result(
                    on_date=search_date,
                    airport_code=airport,
                    flight_price=flight_price,
                    land_price=land_price,
                    markup_percent=config.markup_percent,
                    airport_display_name=outcome.airport_names.get(airport, ""),
                )
            )
    logger.info(
        "Tour flight prices computed",
        extra={"product_id": product_id, "results": len(results), "date": on_date.isoformat() if on_date else ""},
    )
    return {
        "productId": str(product_id),
        "currency": GBP,
        "landTourPricePerPerson": str(land_price),
        "markupPercent": str(config.markup_percent),
        "durationNights": config.duration_nights,
        "results": [result.as_dict() for result in results],
    }
