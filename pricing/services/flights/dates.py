from __future__ import annotations

from datetime import date, datetime, timedelta

MAX_SPECIFIC_DATES = 50
MAX_RANGE_DATES = 30


def to_uk_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def parse_uk_date(value: str | None) -> date | None:
    token = str(value or "").strip().split(" ")[0]
    if not token:
        return None
    try:
        return datetime.strptime(token, "%d/%m/%Y").date()
    except ValueError:
        return None


def date_range(start: date, end: date) -> list[date]:
    if end < start:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def resolve_search_dates(
    *,
    start_date: date | None,
    end_date: date | None,
    specific_dates: list[date] | None,
) -> list[date]:
    if specific_dates:
        return sorted(set(specific_dates))[:MAX_SPECIFIC_DATES]
    if start_date is None or end_date is None:
        return []
    return date_range(start_date, end_date)[:MAX_RANGE_DATES]


def group_into_windows(dates: list[date], max_span_days: int) -> list[tuple[date, ...]]:
    """Split sorted dates into runs whose first and last date are < max_span_days apart."""
    windows: list[tuple[date, ...]] = []
    current: list[date] = []
    for value in sorted(dates):
        if current and (value - current[0]).days >= max_span_days:
            windows.append(tuple(current))
            current = []
        current.append(value)
    if current:
        windows.append(tuple(current))
    return windows
