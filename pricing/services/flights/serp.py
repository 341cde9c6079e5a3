from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any

import httpx

from pricing.services.config import serpapi_key
from pricing.services.extraction import positive_decimal
from pricing.services.flights.base import FlightBackend
from pricing.services.flights.types import LEG_ROUND_TRIP, FlightOffer, SearchSlice
from pricing.services.providers.base import ConfigurationError

logger = logging.getLogger(__name__)

SERPAPI_BASE = "https://serpapi.com/search"
# Google Flights fares here include carry-on only.
BAGGAGE_SURCHARGE_GBP = Decimal("100")


class SerpFlightBackend(FlightBackend):
    name = "serp"
    airport_separator = ","
    baggage_surcharge = BAGGAGE_SURCHARGE_GBP
    round_trip_batch = (10, 0.5)
    one_way_batch = (5, 1.0)
    max_retries = 1

    def __init__(self, *, api_key: str | None = None, base_url: str | None = None) -> None:
        self.api_key = serpapi_key() if api_key is None else api_key
        self.base_url = base_url or SERPAPI_BASE

    def check_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError("SERPAPI_KEY is not configured.")

    def params_for(self, search_slice: SearchSlice) -> dict[str, str]:
        outbound_date = search_slice.start_date
        params = {
            "engine": "google_flights",
            "api_key": self.api_key,
            "departure_id": self.join_airports(search_slice.origins),
            "arrival_id": self.join_airports(search_slice.destinations),
            "outbound_date": outbound_date.isoformat(),
            "currency": "GBP",
            "gl": "uk",
            "hl": "en",
            "adults": "1",
            "bags": "1",
            "stops": "1",
            "travel_class": "1",
            "sort_by": "2",
        }
        if search_slice.leg == LEG_ROUND_TRIP:
            params["type"] = "1"
            params["return_date"] = (outbound_date + timedelta(days=search_slice.nights)).isoformat()
        else:
            params["type"] = "2"
        return params

    async def fetch_slice(self, client: httpx.AsyncClient, search_slice: SearchSlice) -> list[FlightOffer]:
        payload = await self._request_json_async(client, "GET", self.base_url, params=self.params_for(search_slice))
        return self.parse(payload, search_slice)

    def parse(self, payload: Any, search_slice: SearchSlice) -> list[FlightOffer]:
        if not isinstance(payload, dict):
            return []
        if payload.get("error"):
            logger.warning(
                "SerpApi reported an error",
                extra={"date": search_slice.start_date.isoformat(), "error": str(payload["error"])[:200]},
            )
            return []
        offers: list[FlightOffer] = []
        for item in [*(payload.get("best_flights") or []), *(payload.get("other_flights") or [])]:
            legs = item.get("flights") if isinstance(item, dict) else None
            price = positive_decimal(item.get("price")) if isinstance(item, dict) else None
            if not legs or price is None or not all(isinstance(leg, dict) for leg in legs):
                continue
            first, last = legs[0], legs[-1]
            departure = first.get("departure_airport")
            arrival = last.get("arrival_airport")
            if not isinstance(departure, dict) or not isinstance(arrival, dict):
                continue
            offers.append(
                FlightOffer(
                    departure_date=search_slice.start_date,
                    departure_airport=str(departure.get("id") or "").upper(),
                    arrival_airport=str(arrival.get("id") or "").upper(),
                    price=price + self.baggage_surcharge,
                    departure_airport_name=str(departure.get("name") or ""),
                    arrival_airport_name=str(arrival.get("name") or ""),
                    airline=str(first.get("airline") or ""),
                    source=self.name,
                )
            )
        return offers
