from __future__ import annotations

import logging

from celery import shared_task

from pricing.models import FlightPackage
from pricing.services.catalog import backfill_catalog, refresh_catalog
from pricing.services.config import catalog_currencies
from pricing.services.departures import sync_package_departures
from pricing.services.fx import refresh_fx_rates
from pricing.services.refresh import run_weekly_flight_refresh

logger = logging.getLogger(__name__)


@shared_task(bind=True, soft_time_limit=3 * 3600, time_limit=3 * 3600 + 300)
def run_weekly_flight_refresh_task(self) -> dict:  # noqa: ARG001
    summary = run_weekly_flight_refresh()
    return {
        "run_id": summary.run_id,
        "successes": summary.successes,
        "failures": summary.failures,
        "total_updated": summary.total_updated,
    }


@shared_task(bind=True, soft_time_limit=1800, time_limit=2100)
def refresh_catalog_cache_task(self) -> dict:  # noqa: ARG001
    refreshed: dict[str, int] = {}
    for currency in catalog_currencies():
        try:
            refreshed[currency] = refresh_catalog(currency)["products_refreshed"]
        except Exception:  # noqa: BLE001
            logger.exception("Catalog refresh failed", extra={"currency": currency})
            refreshed[currency] = -1
    return refreshed


@shared_task(bind=True, soft_time_limit=900, time_limit=1000)
def backfill_catalog_currency_task(self, currency: str) -> int:  # noqa: ARG001
    # Detached from the request that queued it; completion is only visible in the cache.
    try:
        count = backfill_catalog(currency)
    except Exception:  # noqa: BLE001
        logger.exception("Background catalog backfill failed", extra={"currency": currency})
        return 0
    logger.info("Background catalog backfill completed", extra={"currency": currency, "count": count})
    return count


@shared_task(bind=True, soft_time_limit=300, time_limit=360)
def sync_package_departures_task(self, package_id: int) -> dict:  # noqa: ARG001
    package = FlightPackage.objects.get(pk=package_id)
    return sync_package_departures(package)


@shared_task(bind=True, soft_time_limit=60, time_limit=90)
def refresh_fx_rates_daily(self) -> int:  # noqa: ARG001
    quotes = [code for code in catalog_currencies() if code != "GBP"]
    return refresh_fx_rates(quote_currencies=quotes)
