from datetime import date, timedelta
from decimal import Decimal

import httpx
import pytest

from pricing.models import Departure, DepartureRate, FlightPackage, RateFlightPrice
from pricing.services.flights.base import FlightBackend
from pricing.services.flights.types import LEG_OUTBOUND, FlightOffer, SearchSlice
from pricing.services.providers.base import ProviderException
from pricing.services.refresh import refresh_package_flights, run_weekly_flight_refresh

JUNE_1 = date(2025, 6, 1)


class FakeBackend(FlightBackend):
    name = "sunshine"

    def __init__(self, prices: dict[str, str] | None = None, fail: bool = False) -> None:
        self.prices = prices or {}
        self.fail = fail
        self.slices: list[SearchSlice] = []

    async def fetch_slice(self, client: httpx.AsyncClient, search_slice: SearchSlice) -> list[FlightOffer]:
        self.slices.append(search_slice)
        if self.fail:
            raise ProviderException("Flight API error: boom", error_type="upstream")
        return [
            FlightOffer(
                departure_date=search_slice.start_date,
                departure_airport=airport,
                arrival_airport=search_slice.destinations[0],
                price=Decimal(price),
            )
            for airport, price in self.prices.items()
        ]


def _package(slug: str = "iceland", **overrides) -> FlightPackage:
    fields = {
        "title": "Iceland Northern Lights",
        "slug": slug,
        "auto_refresh_enabled": True,
        "destination_airport": "KEF",
        "departure_airports": "LGW|STN",
        "markup_percent": Decimal("10"),
    }
    fields.update(overrides)
    package = FlightPackage.objects.create(**fields)
    departure = Departure.objects.create(package=package, departure_date=JUNE_1, duration_nights=7)
    for supplier_rate_id, category, price in (("1", "twin", "500"), ("2", "single", "650")):
        DepartureRate.objects.create(
            departure=departure,
            supplier_rate_id=supplier_rate_id,
            title=f"{category} room",
            room_category=category,
            original_price=Decimal(price),
            original_currency="GBP",
            price_gbp=Decimal(price),
        )
    return package


def _combined(package: FlightPackage) -> dict[tuple[str, str], Decimal]:
    rows = RateFlightPrice.objects.filter(rate__departure__package=package).select_related("rate")
    return {(row.rate.room_category, row.airport_code): row.combined_price for row in rows}


@pytest.mark.django_db
def test_refresh_package_persists_combined_prices_and_lead_prices():
    package = _package()
    backend = FakeBackend({"LGW": "95", "STN": "120"})

    result = refresh_package_flights(package, backend=backend, batch_delay_seconds=0)

    assert result.success is True
    assert result.updated == 4
    assert _combined(package) == {
        ("twin", "LGW"): Decimal("669"),
        ("twin", "STN"): Decimal("699"),
        ("single", "LGW"): Decimal("849"),
        ("single", "STN"): Decimal("849"),
    }
    package.refresh_from_db()
    assert package.price == Decimal("669")
    assert package.single_price == Decimal("849")
    assert package.last_flight_refresh_at is not None
    assert backend.slices[0].dates == (JUNE_1,)
    assert backend.slices[0].nights == 7


@pytest.mark.django_db
def test_refresh_overwrites_rather_than_appends():
    package = _package()

    refresh_package_flights(package, backend=FakeBackend({"LGW": "95", "STN": "120"}), batch_delay_seconds=0)
    refresh_package_flights(package, backend=FakeBackend({"LGW": "195", "STN": "120"}), batch_delay_seconds=0)

    assert RateFlightPrice.objects.count() == 4
    assert _combined(package)[("twin", "LGW")] == Decimal("769")


@pytest.mark.django_db
def test_package_without_departures_succeeds_with_nothing_updated():
    package = FlightPackage.objects.create(title="Empty", slug="empty", destination_airport="KEF")

    result = refresh_package_flights(package, backend=FakeBackend({"LGW": "95"}), batch_delay_seconds=0)

    assert result.success is True
    assert result.updated == 0


@pytest.mark.django_db
def test_weekly_run_isolates_failing_packages():
    good = _package("good")
    broken = _package("broken", destination_airport="")
    failing = _package("failing", flight_source="serp")
    FlightPackage.objects.create(title="Manual", slug="manual", auto_refresh_enabled=False, destination_airport="KEF")

    def backend_factory(source: str) -> FlightBackend:
        return FakeBackend(fail=True) if source == "serp" else FakeBackend({"LGW": "95", "STN": "120"})

    summary = run_weekly_flight_refresh(package_delay_seconds=0, backend_factory=backend_factory, batch_delay_seconds=0)

    assert summary.successes == 1
    assert summary.failures == 2
    assert summary.total_updated == 4
    results = {result.package_id: result for result in summary.results}
    assert set(results) == {good.pk, broken.pk, failing.pk}
    assert results[good.pk].lead_price == Decimal("669")
    assert "configuration" in results[broken.pk].error
    assert "boom" in results[failing.pk].error
    failing.refresh_from_db()
    assert failing.price == Decimal("0.00")


class OpenJawBackend(FlightBackend):
    name = "sunshine"

    def __init__(self, outbound: dict[str, str], inbound: dict[str, str]) -> None:
        self.outbound = outbound
        self.inbound = inbound
        self.slices: list[SearchSlice] = []

    async def fetch_slice(self, client: httpx.AsyncClient, search_slice: SearchSlice) -> list[FlightOffer]:
        self.slices.append(search_slice)
        if search_slice.leg == LEG_OUTBOUND:
            return [
                FlightOffer(search_slice.start_date, airport, search_slice.destinations[0], Decimal(price))
                for airport, price in self.outbound.items()
            ]
        return [
            FlightOffer(search_slice.start_date, search_slice.origins[0], airport, Decimal(price))
            for airport, price in self.inbound.items()
        ]


@pytest.mark.django_db
def test_open_jaw_package_prices_only_airports_served_on_both_legs():
    package = _package("ring-road", flight_topology="open_jaw", return_airport="AEY")
    backend = OpenJawBackend(outbound={"LGW": "100", "STN": "90"}, inbound={"LGW": "150"})

    result = refresh_package_flights(package, backend=backend, batch_delay_seconds=0)

    assert result.success is True
    assert result.updated == 2
    assert _combined(package) == {
        ("twin", "LGW"): Decimal("849"),
        ("single", "LGW"): Decimal("999"),
    }
    package.refresh_from_db()
    assert package.price == Decimal("849")
    assert package.single_price == Decimal("999")
    outbound, inbound = backend.slices
    assert outbound.destinations == ("KEF",)
    assert inbound.origins == ("AEY",)
    assert inbound.destinations == ("LGW", "STN")
    assert inbound.dates == (JUNE_1 + timedelta(days=7),)


@pytest.mark.django_db
def test_weekly_run_pauses_between_packages_but_not_after_the_last(monkeypatch):
    monkeypatch.delenv("FLIGHT_REFRESH_PACKAGE_DELAY_SECONDS", raising=False)
    pauses: list[float] = []
    monkeypatch.setattr("pricing.services.refresh.time.sleep", pauses.append)
    for slug in ("first", "second", "third"):
        FlightPackage.objects.create(
            title=slug.title(), slug=slug, auto_refresh_enabled=True, destination_airport="KEF", departure_airports="LGW"
        )

    summary = run_weekly_flight_refresh(backend_factory=lambda source: FakeBackend(), batch_delay_seconds=0)

    assert summary.successes == 3
    assert pauses == [2.0, 2.0]
