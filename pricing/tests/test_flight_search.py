from datetime import date, timedelta
from decimal import Decimal

import httpx
import pytest

from pricing.services.flights.search import get_flight_backend, search_flights
from pricing.services.flights.serp import SerpFlightBackend
from pricing.services.flights.sunshine import SunshineFlightBackend
from pricing.services.flights.types import FlightSearchRequest, OpenJaw, RoundTrip
from pricing.services.providers.base import ConfigurationError, ProviderException

JUNE_1 = date(2025, 6, 1)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _serp_flight(origin: str, destination: str, price: int) -> dict:
    return {
        "price": price,
        "flights": [
            {
                "departure_airport": {"id": origin, "name": f"{origin} airport"},
                "arrival_airport": {"id": destination, "name": f"{destination} airport"},
                "airline": "Example Air",
            }
        ],
    }


def test_sunshine_round_trip_keeps_cheapest_offer_per_date_and_airport():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "Offers": [
                    {"outdep": "01/06/2025 06:00", "depapt": "LGW", "depname": "Gatwick", "fltnetpricepp": "120"},
                    {"outdep": "01/06/2025 09:00", "depapt": "LGW", "fltnetpricepp": "95"},
                    {"outdep": "01/06/2025 18:00", "depapt": "LGW", "fltnetpricepp": "130"},
                    {"outdep": "02/06/2025", "depapt": "STN", "fltSellpricepp": "150"},
                    {"outdep": "05/06/2025", "depapt": "LGW", "fltnetpricepp": "50"},
                ]
            },
        )

    request = FlightSearchRequest(
        depart_airports=["LGW", "STN"],
        topology=RoundTrip("KEF"),
        nights=7,
        specific_dates=[JUNE_1 + timedelta(days=1), JUNE_1],
    )
    outcome = search_flights(request, SunshineFlightBackend(), client=_client(handler), batch_delay_seconds=0)

    assert outcome.prices == {
        JUNE_1: {"LGW": Decimal("95")},
        date(2025, 6, 2): {"STN": Decimal("150")},
    }
    assert outcome.airport_names["LGW"] == "Gatwick"
    assert len(seen) == 1
    params = seen[0].url.params
    assert params["depart"] == "LGW|STN"
    assert params["arrive"] == "KEF"
    assert params["Startdate"] == "01/06/2025"
    assert params["EndDate"] == "02/06/2025"
    assert params["duration"] == "7"


def test_sunshine_open_jaw_pairs_only_airports_with_both_legs():
    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if params["depart"] == "LGW|STN":
            return httpx.Response(
                200,
                json={
                    "Flights": [
                        {"Depart": "01/06/2025", "Depapt": "LGW", "Arrapt": "KEF", "Fltprice": "100"},
                        {"Depart": "01/06/2025", "Depapt": "STN", "Arrapt": "KEF", "Fltprice": "90"},
                    ]
                },
            )
        assert params["depart"] == "AEY"
        assert params["startdate"] == "08/06/2025"
        return httpx.Response(
            200,
            json={"Flights": [{"Depart": "08/06/2025", "Depapt": "AEY", "Arrapt": "LGW", "Fltprice": "150"}]},
        )

    request = FlightSearchRequest(
        depart_airports=["LGW", "STN"],
        topology=OpenJaw("KEF", "AEY"),
        nights=7,
        specific_dates=[JUNE_1],
    )
    outcome = search_flights(request, SunshineFlightBackend(), client=_client(handler), batch_delay_seconds=0)

    assert outcome.prices == {JUNE_1: {"LGW": Decimal("250")}}
    assert outcome.slices_attempted == 2
    assert outcome.slices_failed == 0


def test_sunshine_ip_whitelist_error_is_reported_as_failed_slice():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<Error>IP Address Does Not Match</Error>")

    request = FlightSearchRequest(depart_airports=["LGW"], topology=RoundTrip("KEF"), nights=7, specific_dates=[JUNE_1])
    outcome = search_flights(request, SunshineFlightBackend(), client=_client(handler), batch_delay_seconds=0)

    assert outcome.prices == {}
    assert outcome.all_failed is True
    assert "not whitelisted" in outcome.errors[0]


def test_serp_missing_key_fails_before_any_request():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    request = FlightSearchRequest(depart_airports=["LGW"], topology=RoundTrip("KEF"), nights=7, specific_dates=[JUNE_1])
    with pytest.raises(ConfigurationError):
        search_flights(request, SerpFlightBackend(api_key=""), client=_client(handler), batch_delay_seconds=0)

    assert calls == []


def test_serp_caps_specific_dates_at_fifty():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"best_flights": []})

    request = FlightSearchRequest(
        depart_airports=["LGW"],
        topology=RoundTrip("KEF"),
        nights=7,
        specific_dates=[JUNE_1 + timedelta(days=offset) for offset in range(60)],
    )
    outcome = search_flights(request, SerpFlightBackend(api_key="key"), client=_client(handler), batch_delay_seconds=0)

    assert len(calls) == 50
    assert len(outcome.dates_searched) == 50


def test_serp_caps_date_range_at_thirty():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"other_flights": []})

    request = FlightSearchRequest(
        depart_airports=["LGW"],
        topology=RoundTrip("KEF"),
        nights=7,
        start_date=JUNE_1,
        end_date=JUNE_1 + timedelta(days=44),
    )
    search_flights(request, SerpFlightBackend(api_key="key"), client=_client(handler), batch_delay_seconds=0)

    assert len(calls) == 30


def test_serp_failed_slice_is_isolated_and_surcharge_applied():
    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        assert params["type"] == "1"
        if params["outbound_date"] == "2025-06-02":
            return httpx.Response(500, json={"error": "boom"})
        return httpx.Response(200, json={"best_flights": [_serp_flight("LGW", "KEF", 200)]})

    request = FlightSearchRequest(
        depart_airports=["LGW"],
        topology=RoundTrip("KEF"),
        nights=7,
        start_date=JUNE_1,
        end_date=date(2025, 6, 3),
    )
    outcome = search_flights(request, SerpFlightBackend(api_key="key"), client=_client(handler), batch_delay_seconds=0)

    assert outcome.prices == {
        JUNE_1: {"LGW": Decimal("300")},
        date(2025, 6, 3): {"LGW": Decimal("300")},
    }
    assert outcome.slices_attempted == 3
    assert outcome.slices_failed == 1
    assert outcome.all_failed is False


def test_serp_fail_fast_raises_provider_exception():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={})

    request = FlightSearchRequest(depart_airports=["LGW"], topology=RoundTrip("KEF"), nights=7, specific_dates=[JUNE_1])
    with pytest.raises(ProviderException) as exc_info:
        search_flights(
            request,
            SerpFlightBackend(api_key="key"),
            fail_fast=True,
            client=_client(handler),
            batch_delay_seconds=0,
        )

    assert exc_info.value.http_status == 503


def test_open_jaw_without_arrival_airport_is_a_configuration_error():
    request = FlightSearchRequest(depart_airports=["LGW"], topology=OpenJaw(""), nights=7, specific_dates=[JUNE_1])

    with pytest.raises(ConfigurationError):
        search_flights(request, SunshineFlightBackend())


def test_unknown_flight_source_is_rejected():
    assert isinstance(get_flight_backend("SERP"), SerpFlightBackend)
    with pytest.raises(ConfigurationError):
        get_flight_backend("carrier-pigeon")


def test_serp_malformed_item_does_not_hide_other_dates():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["outbound_date"] == "2025-06-01":
            return httpx.Response(
                200,
                json={"best_flights": [{"price": 150, "flights": [{"departure_airport": "LGW", "arrival_airport": "KEF"}]}]},
            )
        return httpx.Response(200, json={"best_flights": [_serp_flight("LGW", "KEF", 200)]})

    request = FlightSearchRequest(
        depart_airports=["LGW"],
        topology=RoundTrip("KEF"),
        nights=7,
        specific_dates=[JUNE_1, date(2025, 6, 2)],
    )
    outcome = search_flights(request, SerpFlightBackend(api_key="key"), client=_client(handler), batch_delay_seconds=0)

    assert outcome.prices == {date(2025, 6, 2): {"LGW": Decimal("300")}}
    assert outcome.slices_failed == 0


def test_serp_round_trip_runs_batches_of_ten_with_half_second_pause(monkeypatch):
    events: list = []

    async def record_sleep(delay: float) -> None:
        events.append(("sleep", delay))

    monkeypatch.setattr("pricing.services.flights.fanout.asyncio.sleep", record_sleep)

    def handler(request: httpx.Request) -> httpx.Response:
        events.append(request.url.params["outbound_date"])
        return httpx.Response(200, json={"best_flights": []})

    request = FlightSearchRequest(
        depart_airports=["LGW"],
        topology=RoundTrip("KEF"),
        nights=7,
        specific_dates=[JUNE_1 + timedelta(days=offset) for offset in range(12)],
    )
    search_flights(request, SerpFlightBackend(api_key="key"), client=_client(handler))

    assert [event for event in events if isinstance(event, tuple)] == [("sleep", 0.5)]
    assert events.index(("sleep", 0.5)) == 10
    assert len(events) == 13


def test_serp_one_way_legs_run_batches_of_five_with_one_second_pause(monkeypatch):
    sleeps: list[float] = []
    calls: list[httpx.Request] = []

    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr("pricing.services.flights.fanout.asyncio.sleep", record_sleep)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"best_flights": []})

    request = FlightSearchRequest(
        depart_airports=["LGW"],
        topology=OpenJaw("KEF"),
        nights=7,
        specific_dates=[JUNE_1 + timedelta(days=offset) for offset in range(6)],
    )
    outcome = search_flights(request, SerpFlightBackend(api_key="key"), client=_client(handler))

    assert len(calls) == 12
    assert outcome.slices_attempted == 12
    # Each leg: five requests, a pause, then the sixth.
    assert sleeps == [1.0, 1.0]


def test_sunshine_runs_batches_of_five(monkeypatch):
    sleeps: list[float] = []

    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr("pricing.services.flights.fanout.asyncio.sleep", record_sleep)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Flights": []})

    # Dates 40 days apart land in separate 31-day windows, one request each.
    request = FlightSearchRequest(
        depart_airports=["LGW"],
        topology=OpenJaw("KEF"),
        nights=7,
        specific_dates=[JUNE_1 + timedelta(days=40 * offset) for offset in range(6)],
    )
    outcome = search_flights(request, SunshineFlightBackend(), client=_client(handler))

    assert outcome.slices_attempted == 12
    assert sleeps == [0.5, 0.5]


def test_serp_open_jaw_sums_both_legs_with_surcharge_on_each():
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        seen.append(params)
        if params["departure_id"] == "LGW,STN":
            return httpx.Response(
                200,
                json={"best_flights": [_serp_flight("LGW", "KEF", 100), _serp_flight("STN", "KEF", 90)]},
            )
        return httpx.Response(200, json={"other_flights": [_serp_flight("AEY", "LGW", 50)]})

    request = FlightSearchRequest(
        depart_airports=["LGW", "STN"],
        topology=OpenJaw("KEF", "AEY"),
        nights=7,
        specific_dates=[JUNE_1],
    )
    outcome = search_flights(request, SerpFlightBackend(api_key="key"), client=_client(handler), batch_delay_seconds=0)

    # (100 + 100) outbound + (50 + 100) return.
    assert outcome.prices == {JUNE_1: {"LGW": Decimal("350")}}
    outbound, inbound = sorted(seen, key=lambda params: params["departure_id"] != "LGW,STN")
    assert outbound["type"] == "2"
    assert outbound["arrival_id"] == "KEF"
    assert outbound["outbound_date"] == "2025-06-01"
    assert "return_date" not in outbound
    assert inbound["type"] == "2"
    assert inbound["departure_id"] == "AEY"
    assert inbound["arrival_id"] == "LGW,STN"
    assert inbound["outbound_date"] == "2025-06-08"
