from __future__ import annotations

import logging
import time
from typing import Any, Callable

from pricing.services.catalog_cache import CatalogCache, dedupe_products
from pricing.services.config import catalog_page_delay_seconds
from pricing.services.providers.bokun import BokunClient

logger = logging.getLogger(__name__)

CATALOG_PAGE_SIZE = 100
MAX_CATALOG_PAGES = 50


def fetch_catalog_pages(
    client: BokunClient,
    currency: str,
    *,
    start_page: int = 1,
    page_delay_seconds: float | None = None,
) -> list[dict[str, Any]]:
    delay = catalog_page_delay_seconds() if page_delay_seconds is None else page_delay_seconds
    products: list[dict[str, Any]] = []
    page = start_page
    while page <= MAX_CATALOG_PAGES:
        data = client.search_catalog(page=page, page_size=CATALOG_PAGE_SIZE, currency=currency)
        items = data["items"]
        products.extend(items)
        if len(items) < CATALOG_PAGE_SIZE:
            break
        page += 1
        if delay and page <= MAX_CATALOG_PAGES:
            time.sleep(delay)
    return products


def refresh_catalog(
    currency: str,
    *,
    client: BokunClient | None = None,
    cache: CatalogCache | None = None,
    page_delay_seconds: float | None = None,
) -> dict[str, Any]:
    client = client or BokunClient()
    cache = cache or CatalogCache()
    products = fetch_catalog_pages(client, currency, page_delay_seconds=page_delay_seconds)
    count = cache.set(products, currency)
    logger.info("Catalog refreshed", extra={"currency": currency.upper(), "count": count})
    return {
        "currency": currency.upper(),
        "products_refreshed": count,
        "metadata": cache.metadata(currency),
    }


def backfill_catalog(
    currency: str,
    *,
    client: BokunClient | None = None,
    cache: CatalogCache | None = None,
    page_delay_seconds: float | None = None,
) -> int:
    client = client or BokunClient()
    cache = cache or CatalogCache()
    remaining = fetch_catalog_pages(client, currency, start_page=2, page_delay_seconds=page_delay_seconds)
    return cache.set([*cache.get(currency), *remaining], currency)


def _enqueue_backfill(currency: str) -> None:
    from pricing.tasks import backfill_catalog_currency_task

    backfill_catalog_currency_task.delay(currency.upper())


def _paginate(items: list[dict[str, Any]], page: int, page_size: int) -> list[dict[str, Any]]:
    start = (max(page, 1) - 1) * page_size
    return items[start:start + page_size]


def list_catalog_page(
    *,
    page: int,
    page_size: int,
    currency: str,
    client: BokunClient | None = None,
    cache: CatalogCache | None = None,
    schedule_backfill: Callable[[str], None] | None = None,
) -> dict[str, Any]:
    cache = cache or CatalogCache()
    currency = currency.upper()
    cached = cache.get(currency)
    if cached:
        products = dedupe_products(cached)
        return {
            "totalHits": len(products),
            "items": _paginate(products, page, page_size),
            "fromCache": True,
            "currency": currency,
        }

    logger.info("Catalog cache miss, serving first page", extra={"currency": currency})
    client = client or BokunClient()
    first_page = client.search_catalog(page=1, page_size=CATALOG_PAGE_SIZE, currency=currency)
    first_items = first_page["items"]
    cache.set(first_items, currency)
    if len(first_items) == CATALOG_PAGE_SIZE:
        (schedule_backfill or _enqueue_backfill)(currency)
    return {
        "totalHits": first_page["totalHits"] or len(first_items),
        "items": _paginate(first_items, page, page_size),
        "fromCache": False,
        "currency": currency,
    }
