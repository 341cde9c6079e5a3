from __future__ import annotations

import os

import httpx

from pricing.services.config import flight_http_timeout_seconds

DEFAULT_USER_AGENT = "HolidayStore/1.0 (pricing engine)"


def holiday_store_user_agent() -> str:
    value = (os.getenv("HOLIDAY_STORE_USER_AGENT") or "").strip()
    return value or DEFAULT_USER_AGENT


def default_http_timeout() -> httpx.Timeout:
    total = flight_http_timeout_seconds()
    connect = float(os.getenv("HOLIDAY_STORE_HTTP_CONNECT_TIMEOUT", "10.0"))
    return httpx.Timeout(total, connect=min(connect, total))


def build_http_client(*, accept: str = "application/json") -> httpx.Client:
    headers = {
        "User-Agent": holiday_store_user_agent(),
        "Accept": accept,
    }
    return httpx.Client(timeout=default_http_timeout(), headers=headers, follow_redirects=True)


def build_async_http_client(
    *,
    accept: str = "application/json",
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    headers = {
        "User-Agent": holiday_store_user_agent(),
        "Accept": accept,
    }
    return httpx.AsyncClient(
        timeout=default_http_timeout(),
        headers=headers,
        follow_redirects=True,
        transport=transport,
    )
