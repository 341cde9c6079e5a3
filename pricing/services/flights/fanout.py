from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from pricing.services.flights.types import FlightOffer, SearchSlice
from pricing.services.providers.base import ProviderException

logger = logging.getLogger(__name__)

SliceFetcher = Callable[[SearchSlice], Awaitable[list[FlightOffer]]]


@dataclass
class FanOutResult:
    offers: list[FlightOffer] = field(default_factory=list)
    attempted: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


async def fan_out(
    slices: Sequence[SearchSlice],
    fetch: SliceFetcher,
    *,
    batch_size: int,
    batch_delay_seconds: float,
    fail_fast: bool = False,
) -> FanOutResult:
    result = FanOutResult()

    async def run_one(search_slice: SearchSlice) -> list[FlightOffer]:
        try:
            return await fetch(search_slice)
        except Exception as exc:  # noqa: BLE001
            if fail_fast:
                raise
            result.failed += 1
            result.errors.append(str(exc))
            error_type = exc.error_type if isinstance(exc, ProviderException) else "unexpected"
            logger.warning(
                "Flight search slice failed",
                exc_info=not isinstance(exc, ProviderException),
                extra={
                    "leg": search_slice.leg,
                    "origins": "|".join(search_slice.origins),
                    "destinations": "|".join(search_slice.destinations),
                    "start_date": search_slice.start_date.isoformat(),
                    "end_date": search_slice.end_date.isoformat(),
                    "error_type": error_type,
                },
            )
            return []

    async def run_batch(batch: Sequence[SearchSlice]) -> list[list[FlightOffer]]:
        # A failing slice cancels its siblings only when fail_fast re-raises.
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(run_one(search_slice)) for search_slice in batch]
        except ExceptionGroup as errors:
            raise errors.exceptions[0] from None
        return [task.result() for task in tasks]

    size = max(1, batch_size)
    for index in range(0, len(slices), size):
        batch = slices[index:index + size]
        result.attempted += len(batch)
        # Within a batch results arrive in any order; callers key by (date, airport).
        for offers in await run_batch(batch):
            result.offers.extend(offers)
        if batch_delay_seconds and index + size < len(slices):
            await asyncio.sleep(batch_delay_seconds)
    return result
