from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal

import httpx

from pricing.services.flights.types import LEG_ROUND_TRIP, FlightOffer, SearchSlice
from pricing.services.providers.base import ProviderMixin


class FlightBackend(ProviderMixin, ABC):
    name = "base_flight"
    airport_separator = "|"
    baggage_surcharge = Decimal("0")
    round_trip_batch = (5, 0.5)
    one_way_batch = (5, 0.5)

    def check_configured(self) -> None:
        return None

    def batching(self, leg: str) -> tuple[int, float]:
        return self.round_trip_batch if leg == LEG_ROUND_TRIP else self.one_way_batch

    def join_airports(self, airports: tuple[str, ...] | list[str]) -> str:
        return self.airport_separator.join(airports)

    def plan_slices(
        self,
        leg: str,
        dates: list[date],
        origins: list[str],
        destinations: list[str],
        nights: int = 0,
    ) -> list[SearchSlice]:
        return [
            SearchSlice(leg=leg, origins=tuple(origins), destinations=tuple(destinations), dates=(on_date,), nights=nights)
            for on_date in sorted(dates)
        ]

    @abstractmethod
    async def fetch_slice(self, client: httpx.AsyncClient, search_slice: SearchSlice) -> list[FlightOffer]:
        raise NotImplementedError
