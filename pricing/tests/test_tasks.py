from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command

from pricing.services.providers.base import ConfigurationError, ProviderException
from pricing.services.refresh import RefreshRunSummary
from pricing.tasks import backfill_catalog_currency_task, refresh_catalog_cache_task, run_weekly_flight_refresh_task


def test_backfill_task_swallows_supplier_errors():
    with patch("pricing.tasks.backfill_catalog", side_effect=ProviderException("status 500", http_status=500)):
        assert backfill_catalog_currency_task("GBP") == 0


def test_catalog_refresh_task_continues_after_a_failed_currency(monkeypatch):
    monkeypatch.setenv("CATALOG_CURRENCIES", "GBP,USD")

    def fake_refresh(currency: str) -> dict:
        if currency == "GBP":
            raise ConfigurationError("BOKUN_ACCESS_KEY and BOKUN_SECRET_KEY must be configured.")
        return {"currency": currency, "products_refreshed": 12, "metadata": None}

    with patch("pricing.tasks.refresh_catalog", side_effect=fake_refresh):
        assert refresh_catalog_cache_task() == {"GBP": -1, "USD": 12}


def test_weekly_refresh_task_returns_summary_counts():
    summary = RefreshRunSummary(run_id="abc123", successes=3, failures=1, total_updated=40)

    with patch("pricing.tasks.run_weekly_flight_refresh", return_value=summary):
        assert run_weekly_flight_refresh_task() == {
            "run_id": "abc123",
            "successes": 3,
            "failures": 1,
            "total_updated": 40,
        }


@pytest.mark.django_db
def test_refresh_flight_prices_command_prints_summary():
    summary = RefreshRunSummary(run_id="abc123", successes=2, failures=0, total_updated=8)
    out = StringIO()

    with patch("pricing.management.commands.refresh_flight_prices.run_weekly_flight_refresh", return_value=summary) as run:
        call_command("refresh_flight_prices", "--no-delay", stdout=out)

    assert run.call_args.kwargs["package_delay_seconds"] == 0
    assert "2 successful, 0 failed, 8 total updates" in out.getvalue()
