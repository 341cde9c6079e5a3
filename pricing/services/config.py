import os
from decimal import Decimal

DEFAULT_SUNSHINE_API_URL = "http://87.102.127.86:8119/search/searchoffers.dll"
DEFAULT_SUNSHINE_ONEWAY_API_URL = "http://87.102.127.86:8119/owflights/owflights.dll"


def bokun_api_base() -> str:
    return (os.getenv("BOKUN_API_BASE", "").strip() or "https://api.bokun.io").rstrip("/")


def bokun_access_key() -> str:
    return os.getenv("BOKUN_ACCESS_KEY", "").strip()


def bokun_secret_key() -> str:
    return os.getenv("BOKUN_SECRET_KEY", "").strip()


def sunshine_api_url() -> str:
    return os.getenv("SUNSHINE_API_URL", "").strip() or DEFAULT_SUNSHINE_API_URL


def sunshine_oneway_api_url() -> str:
    return os.getenv("SUNSHINE_ONEWAY_API_URL", "").strip() or DEFAULT_SUNSHINE_ONEWAY_API_URL


def sunshine_agent_id() -> str:
    return os.getenv("SUNSHINE_AGENT_ID", "").strip() or "122"


def serpapi_key() -> str:
    return os.getenv("SERPAPI_KEY", "").strip()


def flight_http_timeout_seconds() -> float:
    return float(os.getenv("FLIGHT_HTTP_TIMEOUT_SECONDS", "60"))


def default_gbp_usd_rate() -> Decimal:
    return Decimal(os.getenv("DEFAULT_GBP_USD_RATE", "1.27").strip() or "1.27")


def catalog_currencies() -> list[str]:
    raw = os.getenv("CATALOG_CURRENCIES", "GBP,USD,EUR")
    return [code.strip().upper() for code in raw.split(",") if code.strip()]


def flight_refresh_package_delay_seconds() -> float:
    return float(os.getenv("FLIGHT_REFRESH_PACKAGE_DELAY_SECONDS", "2"))


def catalog_page_delay_seconds() -> float:
    return float(os.getenv("CATALOG_PAGE_DELAY_SECONDS", "0.5"))
