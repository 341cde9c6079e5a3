from __future__ import annotations

import logging
from datetime import date, timedelta

import httpx
from asgiref.sync import async_to_sync

from pricing.services.airports import parse_airport_list
from pricing.services.flights.base import FlightBackend
from pricing.services.flights.dates import resolve_search_dates
from pricing.services.flights.fanout import fan_out
from pricing.services.flights.pairing import (
    by_arrival_airport,
    by_departure_airport,
    cheapest_by_date_and_airport,
    pair_open_jaw,
    price_map,
    restrict_to_dates,
)
from pricing.services.flights.serp import SerpFlightBackend
from pricing.services.flights.sunshine import SunshineFlightBackend
from pricing.services.flights.types import (
    LEG_OUTBOUND,
    LEG_RETURN,
    LEG_ROUND_TRIP,
    FlightOffer,
    FlightSearchOutcome,
    FlightSearchRequest,
    OpenJaw,
    RoundTrip,
)
from pricing.services.http_client import build_async_http_client
from pricing.services.providers.base import ConfigurationError

logger = logging.getLogger(__name__)

BACKENDS: dict[str, type[FlightBackend]] = {
    SunshineFlightBackend.name: SunshineFlightBackend,
    SerpFlightBackend.name: SerpFlightBackend,
}


def get_flight_backend(source: str) -> FlightBackend:
    backend_class = BACKENDS.get(str(source or "").strip().lower())
    if backend_class is None:
        raise ConfigurationError(f"Unknown flight source: {source!r}")
    return backend_class()


def _validate(request: FlightSearchRequest) -> list[str]:
    airports = parse_airport_list("|".join(request.depart_airports))
    if not airports:
        raise ConfigurationError("No departure airports configured.")
    topology = request.topology
    if isinstance(topology, RoundTrip) and not topology.destination_airport:
        raise ConfigurationError("Destination airport is not configured.")
    if isinstance(topology, OpenJaw) and not topology.arrive_airport:
        raise ConfigurationError("Open-jaw arrival airport is not configured.")
    if request.nights < 1:
        raise ConfigurationError("Trip length must be at least one night.")
    return airports


def _names(offers: list[FlightOffer]) -> dict[str, str]:
    names: dict[str, str] = {}
    for offer in offers:
        if offer.departure_airport and offer.departure_airport_name:
            names.setdefault(offer.departure_airport, offer.departure_airport_name)
        if offer.arrival_airport and offer.arrival_airport_name:
            names.setdefault(offer.arrival_airport, offer.arrival_airport_name)
    return names


async def _search_round_trip(
    client: httpx.AsyncClient,
    backend: FlightBackend,
    topology: RoundTrip,
    airports: list[str],
    dates: list[date],
    nights: int,
    outcome: FlightSearchOutcome,
    *,
    fail_fast: bool,
    batch_delay_seconds: float | None,
) -> None:
    slices = backend.plan_slices(LEG_ROUND_TRIP, dates, airports, [topology.destination_airport.upper()], nights)
    size, delay = backend.batching(LEG_ROUND_TRIP)
    result = await fan_out(
        slices,
        lambda search_slice: backend.fetch_slice(client, search_slice),
        batch_size=size,
        batch_delay_seconds=delay if batch_delay_seconds is None else batch_delay_seconds,
        fail_fast=fail_fast,
    )
    outcome.slices_attempted += result.attempted
    outcome.slices_failed += result.failed
    outcome.errors.extend(result.errors)
    outcome.airport_names.update(_names(result.offers))
    cheapest = cheapest_by_date_and_airport(result.offers, by_departure_airport)
    outcome.prices = restrict_to_dates(price_map(cheapest), dates)


async def _search_open_jaw(
    client: httpx.AsyncClient,
    backend: FlightBackend,
    topology: OpenJaw,
    airports: list[str],
    dates: list[date],
    nights: int,
    outcome: FlightSearchOutcome,
    *,
    fail_fast: bool,
    batch_delay_seconds: float | None,
) -> None:
    return_dates = [on_date + timedelta(days=nights) for on_date in dates]
    size, delay = backend.batching(LEG_OUTBOUND)
    delay = delay if batch_delay_seconds is None else batch_delay_seconds

    outbound = await fan_out(
        backend.plan_slices(LEG_OUTBOUND, dates, airports, [topology.arrive_airport.upper()]),
        lambda search_slice: backend.fetch_slice(client, search_slice),
        batch_size=size,
        batch_delay_seconds=delay,
        fail_fast=fail_fast,
    )
    inbound = await fan_out(
        backend.plan_slices(LEG_RETURN, return_dates, [topology.return_from.upper()], airports),
        lambda search_slice: backend.fetch_slice(client, search_slice),
        batch_size=size,
        batch_delay_seconds=delay,
        fail_fast=fail_fast,
    )
    for leg in (outbound, inbound):
        outcome.slices_attempted += leg.attempted
        outcome.slices_failed += leg.failed
        outcome.errors.extend(leg.errors)
        outcome.airport_names.update(_names(leg.offers))

    outbound_prices = restrict_to_dates(price_map(cheapest_by_date_and_airport(outbound.offers, by_departure_airport)), dates)
    inbound_prices = restrict_to_dates(price_map(cheapest_by_date_and_airport(inbound.offers, by_arrival_airport)), return_dates)
    outcome.prices = pair_open_jaw(outbound_prices, inbound_prices, nights)


async def search_flights_async(
    request: FlightSearchRequest,
    backend: FlightBackend,
    *,
    fail_fast: bool = False,
    client: httpx.AsyncClient | None = None,
    batch_delay_seconds: float | None = None,
) -> FlightSearchOutcome:
    airports = _validate(request)
    backend.check_configured()
    dates = resolve_search_dates(
        start_date=request.start_date,
        end_date=request.end_date,
        specific_dates=request.specific_dates,
    )
    outcome = FlightSearchOutcome(dates_searched=dates)
    if not dates:
        return outcome

    async def run(http: httpx.AsyncClient) -> None:
        kwargs = {"fail_fast": fail_fast, "batch_delay_seconds": batch_delay_seconds}
        if isinstance(request.topology, OpenJaw):
            await _search_open_jaw(http, backend, request.topology, airports, dates, request.nights, outcome, **kwargs)
        else:
            await _search_round_trip(http, backend, request.topology, airports, dates, request.nights, outcome, **kwargs)

    if client is not None:
        await run(client)
    else:
        async with build_async_http_client() as http:
            await run(http)

    logger.info(
        "Flight search finished",
        extra={
            "backend": backend.name,
            "dates": len(dates),
            "priced_dates": len(outcome.prices),
            "slices_attempted": outcome.slices_attempted,
            "slices_failed": outcome.slices_failed,
        },
    )
    return outcome


def search_flights(
    request: FlightSearchRequest,
    backend: FlightBackend,
    *,
    fail_fast: bool = False,
    client: httpx.AsyncClient | None = None,
    batch_delay_seconds: float | None = None,
) -> FlightSearchOutcome:
    return async_to_sync(search_flights_async)(
        request,
        backend,
        fail_fast=fail_fast,
        client=client,
        batch_delay_seconds=batch_delay_seconds,
    )
