from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable

from django.core.cache import cache as default_cache
from django.utils import timezone

logger = logging.getLogger(__name__)

CATALOG_TTL = timedelta(days=30)


def dedupe_products(items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    # A later copy of the same id replaces the earlier one but keeps its position.
    by_id: dict[str, dict[str, Any]] = {}
    for item in items:
        if not isinstance(item, dict) or item.get("id") in (None, ""):
            continue
        by_id[str(item["id"])] = item
    return list(by_id.values())


class CatalogCache:
    """Per-currency catalog snapshots stored in a Django cache backend.

    Each currency lives under its own key and is only ever replaced whole, so
    a reader sees either the previous snapshot or the next one.
    """

    key_prefix = "catalog"

    def __init__(
        self,
        backend: Any = None,
        clock: Callable[[], datetime] | None = None,
        ttl: timedelta = CATALOG_TTL,
    ) -> None:
        self.backend = backend if backend is not None else default_cache
        self.clock = clock or timezone.now
        self.ttl = ttl

    def _key(self, currency: str) -> str:
        return f"{self.key_prefix}:{currency.upper()}"

    def _entry(self, currency: str) -> dict[str, Any] | None:
        entry = self.backend.get(self._key(currency))
        return entry if isinstance(entry, dict) else None

    def set(self, items: Iterable[dict[str, Any]], currency: str) -> int:
        products = dedupe_products(items)
        self.backend.set(
            self._key(currency),
            {
                "items": products,
                "refreshed_at": self.clock(),
                "currency": currency.upper(),
            },
            # Expiry is decided by the clock, so metadata outlives the TTL.
            timeout=None,
        )
        logger.info("Catalog cache replaced", extra={"currency": currency.upper(), "count": len(products)})
        return len(products)

    def _expired(self, entry: dict[str, Any] | None) -> bool:
        if entry is None:
            return True
        return self.clock() >= entry["refreshed_at"] + self.ttl

    def is_expired(self, currency: str) -> bool:
        return self._expired(self._entry(currency))

    def get(self, currency: str) -> list[dict[str, Any]]:
        # Expired and never-populated both read as a miss.
        entry = self._entry(currency)
        if self._expired(entry):
            return []
        return list(entry["items"])

    def metadata(self, currency: str) -> dict[str, Any] | None:
        entry = self._entry(currency)
        if entry is None:
            return None
        return {
            "last_refresh_at": entry["refreshed_at"],
            "total_products": len(entry["items"]),
        }
