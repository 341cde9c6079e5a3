import asyncio
import re
import time
from typing import Any

import httpx

from pricing.services.http_client import holiday_store_user_agent

ERROR_TAG_RE = re.compile(r"<Error>(.*?)</Error>", re.IGNORECASE | re.DOTALL)


class ProviderException(Exception):
    def __init__(
        self,
        message: str,
        *,
        error_type: str = "unknown",
        http_status: int | None = None,
        latency_ms: int | None = None,
        raw_payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.http_status = http_status
        self.latency_ms = latency_ms
        self.raw_payload = raw_payload or {}


class ConfigurationError(Exception):
    """Missing credentials or package settings; never retried."""


def classify_http_status(status_code: int | None) -> str:
    if status_code == 429:
        return "rate_limit"
    if status_code in {401, 403}:
        return "auth"
    if status_code in {402}:
        return "quota"
    return "unknown"


def looks_like_markup_error(body: str) -> bool:
    head = body.lstrip()[:64].lower()
    return head.startswith("<?xml") or head.startswith("<html") or head.startswith("<!doctype") or "<Error>" in body


def extract_markup_error(body: str) -> str:
    match = ERROR_TAG_RE.search(body)
    if match:
        return match.group(1).strip()
    return "Upstream returned a markup payload instead of JSON"


class ProviderMixin:
    timeout_seconds = 60
    max_retries = 3
    retry_backoff_seconds = 1.0

    def _upstream_error_message(self, message: str) -> str:
        return message

    def _decode_payload(self, response: httpx.Response, method: str, url: str, latency_ms: int) -> Any:
        body = response.text
        if looks_like_markup_error(body):
            message = self._upstream_error_message(extract_markup_error(body))
            raise ProviderException(
                f"{method} {url} upstream error: {message}",
                error_type="upstream",
                http_status=response.status_code,
                latency_ms=latency_ms,
                raw_payload={"body": body[:2000]},
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderException(
                f"{method} {url} parse failure: {exc}",
                error_type="parse",
                http_status=response.status_code,
                latency_ms=latency_ms,
            ) from exc

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        for attempt in range(1, self.max_retries + 1):
            started = time.monotonic()
            try:
                response = httpx.request(
                    method=method,
                    url=url,
                    headers={
                        "User-Agent": holiday_store_user_agent(),
                        **(headers or {}),
                    },
                    params=params,
                    json=json_body,
                    timeout=self.timeout_seconds,
                )
                response.raise_for_status()
                latency_ms = int((time.monotonic() - started) * 1000)
                try:
                    return self._decode_payload(response, method, url, latency_ms)
                except ProviderException as exc:
                    if exc.error_type == "upstream" or attempt == self.max_retries:
                        raise
            except httpx.TimeoutException as exc:
                latency_ms = int((time.monotonic() - started) * 1000)
                if attempt == self.max_retries:
                    raise ProviderException(
                        f"{method} {url} timeout: {exc}",
                        error_type="timeout",
                        latency_ms=latency_ms,
                    ) from exc
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code if exc.response is not None else None
                latency_ms = int((time.monotonic() - started) * 1000)
                if attempt == self.max_retries:
                    raise ProviderException(
                        f"{method} {url} status {status_code}",
                        error_type=classify_http_status(status_code),
                        http_status=status_code,
                        latency_ms=latency_ms,
                    ) from exc
            except httpx.RequestError as exc:
                latency_ms = int((time.monotonic() - started) * 1000)
                if attempt == self.max_retries:
                    raise ProviderException(
                        f"{method} {url} request error: {exc}",
                        error_type="timeout",
                        latency_ms=latency_ms,
                    ) from exc
            time.sleep(self.retry_backoff_seconds * 2 ** (attempt - 1))

        raise ProviderException(f"{method} {url} exhausted retries.")

    async def _request_json_async(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        # Flight slices are not retried; a failed slice yields no offers.
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.request(method, url, params=params),
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise ProviderException(
                f"{method} {url} timeout: {exc}",
                error_type="timeout",
                latency_ms=int((time.monotonic() - started) * 1000),
            ) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            raise ProviderException(
                f"{method} {url} status {status_code}",
                error_type=classify_http_status(status_code),
                http_status=status_code,
                latency_ms=int((time.monotonic() - started) * 1000),
            ) from exc
        except httpx.RequestError as exc:
            raise ProviderException(
                f"{method} {url} request error: {exc}",
                error_type="timeout",
                latency_ms=int((time.monotonic() - started) * 1000),
            ) from exc
        latency_ms = int((time.monotonic() - started) * 1000)
        return self._decode_payload(response, method, url, latency_ms)
