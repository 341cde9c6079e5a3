from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class RoundTrip:
    destination_airport: str


@dataclass(frozen=True)
class OpenJaw:
    arrive_airport: str
    return_airport: str = ""

    @property
    def return_from(self) -> str:
        return self.return_airport or self.arrive_airport


Topology = RoundTrip | OpenJaw

LEG_ROUND_TRIP = "round_trip"
LEG_OUTBOUND = "outbound"
LEG_RETURN = "return"


@dataclass(frozen=True)
class FlightOffer:
    departure_date: date
    departure_airport: str
    arrival_airport: str
    price: Decimal
    departure_airport_name: str = ""
    arrival_airport_name: str = ""
    airline: str = ""
    source: str = ""


@dataclass
class FlightSearchRequest:
    depart_airports: list[str]
    topology: Topology
    nights: int
    start_date: date | None = None
    end_date: date | None = None
    specific_dates: list[date] | None = None


@dataclass(frozen=True)
class SearchSlice:
    leg: str
    origins: tuple[str, ...]
    destinations: tuple[str, ...]
    dates: tuple[date, ...]
    nights: int = 0

    @property
    def start_date(self) -> date:
        return self.dates[0]

    @property
    def end_date(self) -> date:
        return self.dates[-1]


@dataclass
class FlightSearchOutcome:
    prices: dict[date, dict[str, Decimal]] = field(default_factory=dict)
    airport_names: dict[str, str] = field(default_factory=dict)
    dates_searched: list[date] = field(default_factory=list)
    slices_attempted: int = 0
    slices_failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return self.slices_attempted > 0 and self.slices_failed == self.slices_attempted

    def price_for(self, on_date: date, airport: str) -> Decimal | None:
        return self.prices.get(on_date, {}).get(airport)
