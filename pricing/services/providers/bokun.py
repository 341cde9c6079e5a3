from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from datetime import date, datetime, timezone as dt_timezone
from typing import Any, Callable
from urllib.parse import urlencode

from pricing.services.config import bokun_access_key, bokun_api_base, bokun_secret_key
from pricing.services.providers.base import ConfigurationError, ProviderException, ProviderMixin

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json;charset=UTF-8"


def sign_request(secret_key: str, signed_at: str, access_key: str, method: str, path_with_query: str) -> str:
    message = f"{signed_at}{access_key}{method.upper()}{path_with_query}"
    digest = hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def _utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


class BokunClient(ProviderMixin):
    name = "bokun"

    def __init__(
        self,
        *,
        access_key: str | None = None,
        secret_key: str | None = None,
        base_url: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.access_key = bokun_access_key() if access_key is None else access_key
        self.secret_key = bokun_secret_key() if secret_key is None else secret_key
        self.base_url = (base_url or bokun_api_base()).rstrip("/")
        self.clock = clock or _utc_now

    def signed_headers(self, method: str, path_with_query: str) -> dict[str, str]:
        if not self.access_key or not self.secret_key:
            raise ConfigurationError("BOKUN_ACCESS_KEY and BOKUN_SECRET_KEY must be configured.")
        signed_at = self.clock().astimezone(dt_timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        return {
            "X-Bokun-Date": signed_at,
            "X-Bokun-AccessKey": self.access_key,
            "X-Bokun-Signature": sign_request(self.secret_key, signed_at, self.access_key, method, path_with_query),
            "Content-Type": CONTENT_TYPE,
        }

    def _call(self, method: str, path: str, query: dict[str, Any] | None = None, json_body: Any = None) -> Any:
        # The signature covers the exact path and query string that goes on the wire.
        path_with_query = f"{path}?{urlencode(query)}" if query else path
        headers = self.signed_headers(method, path_with_query)
        return self._request_json(
            method,
            f"{self.base_url}{path_with_query}",
            headers=headers,
            json_body=json_body,
        )

    def search_catalog(self, page: int = 1, page_size: int = 100, currency: str = "USD") -> dict[str, Any]:
        payload = self._call(
            "POST",
            "/activity.json/search",
            {"currency": currency.upper()},
            json_body={"page": page, "pageSize": page_size},
        )
        if not isinstance(payload, dict):
            return {"items": [], "totalHits": 0}
        items = payload.get("items")
        return {
            "items": items if isinstance(items, list) else [],
            "totalHits": int(payload.get("totalHits") or 0),
        }

    def get_product(self, product_id: str, currency: str = "USD") -> dict[str, Any]:
        payload = self._call("GET", f"/activity.json/{product_id}", {"currency": currency.upper()})
        return payload if isinstance(payload, dict) else {}

    def get_availability(
        self,
        product_id: str,
        start: date,
        end: date,
        currency: str = "USD",
    ) -> list[dict[str, Any]]:
        payload = self._call(
            "GET",
            f"/activity.json/{product_id}/availabilities",
            {"start": start.isoformat(), "end": end.isoformat(), "currency": currency.upper()},
        )
        if isinstance(payload, list):
            return [item for item in payload if isinstance(item, dict)]
        logger.warning("Unexpected availability payload shape", extra={"product_id": product_id})
        return []

    def test_connection(self) -> dict[str, Any]:
        started = time.monotonic()
        try:
            payload = self.search_catalog(page=1, page_size=1)
        except (ProviderException, ConfigurationError) as exc:
            return {
                "connected": False,
                "message": str(exc),
                "timestamp": _utc_now().isoformat(),
                "response_time_ms": int((time.monotonic() - started) * 1000),
            }
        total = payload["totalHits"]
        message = (
            f"Connected to supplier API ({total} products available)"
            if total
            else "Connected to supplier API (no products found in this account)"
        )
        return {
            "connected": True,
            "message": message,
            "timestamp": _utc_now().isoformat(),
            "response_time_ms": int((time.monotonic() - started) * 1000),
        }


def duration_text_from_product(product: dict[str, Any]) -> str | None:
    value = product.get("durationText")
    if not value and isinstance(product.get("fields"), dict):
        value = product["fields"].get("durationText")
    return str(value) if value else None
