from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable

import httpx

from holiday_store.logging import clear_refresh_context, new_run_id, set_refresh_context
from pricing.models import FlightPackage
from pricing.services.combined_pricing import combine
from pricing.services.config import flight_refresh_package_delay_seconds
from pricing.services.departures import (
    get_packages_with_auto_refresh_enabled,
    update_package_lead_price,
    upsert_rate_flight_price,
)
from pricing.services.flights.base import FlightBackend
from pricing.services.flights.search import get_flight_backend, search_flights
from pricing.services.flights.types import FlightSearchRequest, OpenJaw, RoundTrip, Topology
from pricing.services.providers.base import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DURATION_NIGHTS = 7


@dataclass
class PackageRefreshResult:
    package_id: int
    success: bool
    updated: int = 0
    error: str = ""
    lead_price: Decimal | None = None
    single_lead_price: Decimal | None = None


@dataclass
class RefreshRunSummary:
    run_id: str
    successes: int = 0
    failures: int = 0
    total_updated: int = 0
    results: list[PackageRefreshResult] = field(default_factory=list)


def topology_for(package: FlightPackage) -> Topology:
    if package.flight_topology == FlightPackage.Topology.OPEN_JAW:
        return OpenJaw(arrive_airport=package.destination_airport, return_airport=package.return_airport)
    return RoundTrip(destination_airport=package.destination_airport)


def refresh_package_flights(
    package: FlightPackage,
    *,
    backend: FlightBackend | None = None,
    client: httpx.AsyncClient | None = None,
    batch_delay_seconds: float | None = None,
) -> PackageRefreshResult:
    if not package.destination_airport or not package.departure_airport_codes():
        raise ConfigurationError("Missing flight refresh configuration.")

    departures = list(package.departures.prefetch_related("rates").order_by("departure_date"))
    if not departures:
        logger.info("No departures found", extra={"package_id": package.pk})
        return PackageRefreshResult(package_id=package.pk, success=True, error="No departures found")

    nights = departures[0].duration_nights or DEFAULT_DURATION_NIGHTS
    dates = sorted({departure.departure_date for departure in departures})
    request = FlightSearchRequest(
        depart_airports=package.departure_airport_codes(),
        topology=topology_for(package),
        nights=nights,
        start_date=dates[0],
        end_date=dates[-1],
        specific_dates=dates,
    )
    backend = backend or get_flight_backend(package.flight_source)
    outcome = search_flights(request, backend, client=client, batch_delay_seconds=batch_delay_seconds)
    if outcome.all_failed:
        return PackageRefreshResult(
            package_id=package.pk,
            success=False,
            error="; ".join(outcome.errors[:3]) or "All flight searches failed",
        )

    markup = Decimal(package.markup_percent or 0)
    updated = 0
    for departure in departures:
        flight_prices = outcome.prices.get(departure.departure_date, {})
        if not flight_prices:
            continue
        for rate in departure.rates.all():
            for airport, flight_price in flight_prices.items():
                upsert_rate_flight_price(
                    rate.pk,
                    airport,
                    flight_price,
                    combine(flight_price, rate.price_gbp, markup),
                    markup,
                    backend.name,
                )
                updated += 1

    lead = update_package_lead_price(package.pk)
    logger.info(
        "Package flight prices refreshed",
        extra={"package_id": package.pk, "updated": updated, "lead_price": str(lead["new_price"])},
    )
    return PackageRefreshResult(
        package_id=package.pk,
        success=True,
        updated=updated,
        lead_price=lead["new_price"],
        single_lead_price=lead["new_single_price"],
    )


def run_weekly_flight_refresh(
    *,
    packages: list[FlightPackage] | None = None,
    package_delay_seconds: float | None = None,
    backend_factory: Callable[[str], FlightBackend] = get_flight_backend,
    client: httpx.AsyncClient | None = None,
    batch_delay_seconds: float | None = None,
) -> RefreshRunSummary:
    summary = RefreshRunSummary(run_id=new_run_id())
    delay = flight_refresh_package_delay_seconds() if package_delay_seconds is None else package_delay_seconds
    packages = get_packages_with_auto_refresh_enabled() if packages is None else packages
    set_refresh_context(run_id=summary.run_id)
    try:
        logger.info("Weekly flight refresh started", extra={"packages": len(packages)})
        for index, package in enumerate(packages):
            set_refresh_context(package_id=str(package.pk))
            try:
                result = refresh_package_flights(
                    package,
                    backend=backend_factory(package.flight_source),
                    client=client,
                    batch_delay_seconds=batch_delay_seconds,
                )
            except Exception as exc:  # noqa: BLE001
                logger.exception("Package flight refresh failed", extra={"package_id": package.pk})
                result = PackageRefreshResult(package_id=package.pk, success=False, error=str(exc))

            summary.results.append(result)
            if result.success:
                summary.successes += 1
                summary.total_updated += result.updated
            else:
                summary.failures += 1
                logger.warning("Package marked failed", extra={"package_id": package.pk, "error": result.error})

            if delay and index < len(packages) - 1:
                time.sleep(delay)

        logger.info(
            "Weekly flight refresh completed: %s successful, %s failed, %s total updates",
            summary.successes,
            summary.failures,
            summary.total_updated,
        )
        return summary
    finally:
        clear_refresh_context()
