from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from django.db import transaction
from django.db.models import Min
from django.utils import timezone

from pricing.models import Departure, DepartureRate, FlightPackage, RateFlightPrice
from pricing.services.availability import NormalizedAvailability, NormalizedDeparture, normalize_availability
from pricing.services.fx import gbp_rate_for
from pricing.services.providers.base import ConfigurationError, ProviderException
from pricing.services.providers.bokun import BokunClient, duration_text_from_product

logger = logging.getLogger(__name__)

SUPPLIER_CURRENCY = "USD"
SYNC_HORIZON_DAYS = 365


@transaction.atomic
def replace_departures_for_package(
    package: FlightPackage,
    departures: Iterable[NormalizedDeparture],
    duration_nights: int | None = None,
) -> int:
    package.departures.all().delete()
    created = 0
    for item in departures:
        departure = Departure.objects.create(
            package=package,
            departure_date=item.departure_date,
            start_time=item.start_time,
            total_capacity=item.total_capacity,
            available_spots=item.available_spots,
            is_sold_out=item.is_sold_out,
            duration_nights=duration_nights,
        )
        DepartureRate.objects.bulk_create(
            [
                DepartureRate(
                    departure=departure,
                    supplier_rate_id=rate.supplier_rate_id,
                    title=rate.title[:255],
                    pricing_category_id=rate.pricing_category_id,
                    room_category=rate.room_category,
                    hotel_category=rate.hotel_category,
                    min_per_booking=rate.min_per_booking,
                    max_per_booking=rate.max_per_booking,
                    original_price=rate.original_price,
                    original_currency=rate.original_currency,
                    price_gbp=rate.price_gbp,
                )
                for rate in item.rates
            ]
        )
        created += 1
    return created


def upsert_rate_flight_price(
    rate_id: int,
    airport_code: str,
    flight_price: Decimal,
    combined_price: Decimal,
    markup_percent: Decimal,
    flight_source: str,
) -> RateFlightPrice:
    row, _ = RateFlightPrice.objects.update_or_create(
        rate_id=rate_id,
        airport_code=airport_code.upper(),
        defaults={
            "flight_price": flight_price,
            "combined_price": combined_price,
            "markup_percent": markup_percent,
            "flight_source": flight_source,
        },
    )
    return row


def get_packages_with_auto_refresh_enabled() -> list[FlightPackage]:
    return list(FlightPackage.objects.filter(auto_refresh_enabled=True).order_by("id"))


def update_package_lead_price(package_id: int) -> dict:
    prices = RateFlightPrice.objects.filter(rate__departure__package_id=package_id)
    twin = prices.filter(rate__room_category=DepartureRate.RoomCategory.TWIN).aggregate(value=Min("combined_price"))["value"]
    single = prices.filter(rate__room_category=DepartureRate.RoomCategory.SINGLE).aggregate(value=Min("combined_price"))["value"]

    fields: dict = {"last_flight_refresh_at": timezone.now()}
    if twin is not None:
        fields["price"] = twin
    if single is not None:
        fields["single_price"] = single
    FlightPackage.objects.filter(pk=package_id).update(**fields)
    return {
        "updated": twin is not None,
        "new_price": twin,
        "new_single_price": single,
    }


def fetch_normalized_availability(
    product_id: str,
    *,
    client: BokunClient | None = None,
    today: date | None = None,
) -> NormalizedAvailability:
    client = client or BokunClient()
    start = today or timezone.localdate()
    end = start + timedelta(days=SYNC_HORIZON_DAYS)

    duration_text = None
    try:
        duration_text = duration_text_from_product(client.get_product(product_id, SUPPLIER_CURRENCY))
    except ProviderException as exc:
        logger.warning("Could not read product details for duration", extra={"product_id": product_id, "error": str(exc)})

    # Supplier errors here propagate; a product syncs completely or not at all.
    raw = client.get_availability(product_id, start, end, SUPPLIER_CURRENCY)
    return normalize_availability(raw, rate_for=gbp_rate_for, duration_text=duration_text)


def sync_package_departures(package: FlightPackage, *, client: BokunClient | None = None, today: date | None = None) -> dict:
    if not package.supplier_product_id:
        raise ConfigurationError(f"Package {package.pk} has no supplier product id.")
    normalized = fetch_normalized_availability(package.supplier_product_id, client=client, today=today)
    created = replace_departures_for_package(package, normalized.departures, normalized.duration_nights)
    logger.info(
        "Departures synced",
        extra={
            "package_id": package.pk,
            "departures": created,
            "total_rates": normalized.total_rates,
            "duration_nights": normalized.duration_nights,
        },
    )
    return {
        "departures": created,
        "total_rates": normalized.total_rates,
        "duration_nights": normalized.duration_nights,
    }
