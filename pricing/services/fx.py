import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from django.utils import timezone

from pricing.models import FxRate
from pricing.services.config import default_gbp_usd_rate
from pricing.services.http_client import build_http_client

logger = logging.getLogger(__name__)

ONE_CENT = Decimal("0.01")
GBP = "GBP"


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(ONE_CENT, rounding=ROUND_HALF_UP)


def convert_to_gbp(amount: Decimal, currency: str, gbp_to_currency_rate: Decimal) -> Decimal:
    """Convert a foreign amount to GBP.

    ``gbp_to_currency_rate`` is how many units of ``currency`` one pound buys
    (GBP->USD 1.27 means 127 USD is 100 GBP), so the foreign amount is divided.
    """
    amount = Decimal(str(amount))
    if currency.upper() == GBP:
        return quantize_money(amount)
    rate = Decimal(str(gbp_to_currency_rate))
    if rate <= 0:
        raise ValueError(f"GBP->{currency} rate must be positive, got {rate}")
    return quantize_money(amount / rate)


@dataclass
class FxRateQuote:
    base_currency: str
    quote_currency: str
    rate: Decimal
    as_of: datetime
    source: str


class FxProvider(ABC):
    name = "base_fx"

    @abstractmethod
    def fetch_rates(self, base_currency: str, quote_currencies: Iterable[str]) -> list[FxRateQuote]:
        raise NotImplementedError


class FreeCurrencyApiProvider(FxProvider):
    name = "freecurrencyapi"

    def __init__(self, api_key: str, base_url: str | None = None) -> None:
        self.api_key = api_key
        self.base_url = (base_url or "https://api.freecurrencyapi.com/v1/latest").rstrip("/")

    def fetch_rates(self, base_currency: str, quote_currencies: Iterable[str]) -> list[FxRateQuote]:
        symbols = ",".join(sorted(set(code.upper() for code in quote_currencies if code and code.upper() != base_currency.upper())))
        if not symbols:
            return []

        with build_http_client(accept="application/json") as client:
            response = client.get(
                self.base_url,
                params={
                    "apikey": self.api_key,
                    "base_currency": base_currency.upper(),
                    "currencies": symbols,
                },
            )
            response.raise_for_status()
            payload = response.json()
        now = timezone.now()
        return [
            FxRateQuote(
                base_currency=base_currency.upper(),
                quote_currency=quote_currency.upper(),
                rate=Decimal(str(rate)),
                as_of=now,
                source=self.name,
            )
            for quote_currency, rate in (payload.get("data") or {}).items()
        ]


class DefaultRateFxProvider(FxProvider):
    name = "default"

    def fetch_rates(self, base_currency: str, quote_currencies: Iterable[str]) -> list[FxRateQuote]:
        # Only the configured GBP->USD rate is known without a live feed.
        if base_currency.upper() != GBP or "USD" not in {code.upper() for code in quote_currencies}:
            return []
        return [
            FxRateQuote(
                base_currency=GBP,
                quote_currency="USD",
                rate=default_gbp_usd_rate(),
                as_of=timezone.now(),
                source=self.name,
            )
        ]


def get_fx_provider() -> FxProvider:
    api_key = os.getenv("FX_API_KEY", "").strip()
    if api_key:
        return FreeCurrencyApiProvider(api_key=api_key, base_url=os.getenv("FX_API_URL"))
    return DefaultRateFxProvider()


def refresh_fx_rates(quote_currencies: Iterable[str], base_currency: str = GBP) -> int:
    provider = get_fx_provider()
    fetched = provider.fetch_rates(base_currency=base_currency.upper(), quote_currencies=quote_currencies)
    for quote in fetched:
        FxRate.objects.update_or_create(
            base_currency=quote.base_currency,
            quote_currency=quote.quote_currency,
            defaults={
                "rate": quote.rate,
                "as_of": quote.as_of,
                "source": quote.source,
            },
        )
    logger.info("FX rates refreshed", extra={"count": len(fetched), "source": provider.name})
    return len(fetched)


def gbp_rate_for(currency: str) -> Decimal:
    """Stored GBP->currency rate, or the configured default for USD."""
    quote = currency.upper()
    if quote == GBP:
        return Decimal("1")
    rate = (
        FxRate.objects.filter(base_currency=GBP, quote_currency=quote)
        .order_by("-as_of")
        .values_list("rate", flat=True)
        .first()
    )
    if rate is not None:
        return Decimal(rate)
    if quote == "USD":
        return default_gbp_usd_rate()
    logger.warning("No GBP rate stored, treating as parity", extra={"currency": quote})
    return Decimal("1")
