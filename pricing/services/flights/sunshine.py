from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx

from pricing.services.config import sunshine_agent_id, sunshine_api_url, sunshine_oneway_api_url
from pricing.services.extraction import FLIGHT_OFFER_PRICE, extract_first, positive_decimal
from pricing.services.flights.base import FlightBackend
from pricing.services.flights.dates import group_into_windows, parse_uk_date, to_uk_date
from pricing.services.flights.types import LEG_ROUND_TRIP, FlightOffer, SearchSlice

logger = logging.getLogger(__name__)

# One search window covers a whole run of dates; the API expands it server-side.
WINDOW_DAYS = 31


class SunshineFlightBackend(FlightBackend):
    name = "sunshine"
    airport_separator = "|"
    round_trip_batch = (5, 0.5)
    one_way_batch = (5, 0.5)
    max_retries = 1

    def __init__(self, *, agent_id: str | None = None, round_trip_url: str | None = None, one_way_url: str | None = None) -> None:
        self.agent_id = agent_id or sunshine_agent_id()
        self.round_trip_url = round_trip_url or sunshine_api_url()
        self.one_way_url = one_way_url or sunshine_oneway_api_url()

    def _upstream_error_message(self, message: str) -> str:
        if "IP Address Does Not Match" in message:
            return "Flight API access denied: server IP is not whitelisted with the flight supplier."
        return f"Flight API error: {message}"

    def plan_slices(
        self,
        leg: str,
        dates: list[date],
        origins: list[str],
        destinations: list[str],
        nights: int = 0,
    ) -> list[SearchSlice]:
        return [
            SearchSlice(leg=leg, origins=tuple(origins), destinations=tuple(destinations), dates=window, nights=nights)
            for window in group_into_windows(dates, WINDOW_DAYS)
        ]

    def round_trip_params(self, search_slice: SearchSlice) -> dict[str, str]:
        return {
            "agtid": self.agent_id,
            "page": "FLTDATE",
            "platform": "WEB",
            "depart": self.join_airports(search_slice.origins),
            "arrive": self.join_airports(search_slice.destinations),
            "Startdate": to_uk_date(search_slice.start_date),
            "EndDate": to_uk_date(search_slice.end_date),
            "duration": str(search_slice.nights),
            "output": "JSON",
        }

    def one_way_params(self, search_slice: SearchSlice) -> dict[str, str]:
        return {
            "agtid": self.agent_id,
            "depart": self.join_airports(search_slice.origins),
            "Arrive": self.join_airports(search_slice.destinations),
            "startdate": to_uk_date(search_slice.start_date),
            "enddate": to_uk_date(search_slice.end_date),
        }

    async def fetch_slice(self, client: httpx.AsyncClient, search_slice: SearchSlice) -> list[FlightOffer]:
        if search_slice.leg == LEG_ROUND_TRIP:
            payload = await self._request_json_async(client, "GET", self.round_trip_url, params=self.round_trip_params(search_slice))
            return self.parse_round_trip(payload)
        payload = await self._request_json_async(client, "GET", self.one_way_url, params=self.one_way_params(search_slice))
        return self.parse_one_way(payload)

    def _payload_rows(self, payload: Any, key: str) -> list[dict]:
        if not isinstance(payload, dict):
            return []
        if payload.get("error"):
            logger.warning("Flight API reported an error", extra={"backend": self.name, "error": str(payload["error"])[:200]})
            return []
        rows = payload.get(key)
        return [row for row in rows if isinstance(row, dict)] if isinstance(rows, list) else []

    def parse_round_trip(self, payload: Any) -> list[FlightOffer]:
        offers: list[FlightOffer] = []
        for row in self._payload_rows(payload, "Offers"):
            departure_date = parse_uk_date(row.get("outdep"))
            airport = str(row.get("depapt") or "").strip().upper()
            price = extract_first(row, FLIGHT_OFFER_PRICE)
            if departure_date is None or not airport or price is None:
                continue
            offers.append(
                FlightOffer(
                    departure_date=departure_date,
                    departure_airport=airport,
                    arrival_airport=str(row.get("arrapt") or "").strip().upper(),
                    price=price.value,
                    departure_airport_name=str(row.get("depname") or ""),
                    source=self.name,
                )
            )
        return offers

    def parse_one_way(self, payload: Any) -> list[FlightOffer]:
        offers: list[FlightOffer] = []
        for row in self._payload_rows(payload, "Flights"):
            departure_date = parse_uk_date(row.get("Depart"))
            price = positive_decimal(row.get("Fltprice"))
            if departure_date is None or price is None:
                continue
            offers.append(
                FlightOffer(
                    departure_date=departure_date,
                    departure_airport=str(row.get("Depapt") or "").strip().upper(),
                    arrival_airport=str(row.get("Arrapt") or "").strip().upper(),
                    price=price,
                    airline=str(row.get("Fltsupplier") or ""),
                    source=self.name,
                )
            )
        return offers
