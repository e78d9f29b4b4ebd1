"""Bounded, fixed-delay retries around source adapters.

A category gets `max_retries + 1` attempts with a fixed pause between
them; only AcquisitionError is retried and the last one is re-raised
unchanged. Polling volume is low, so there is no exponential backoff.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Union

from tenacity import (AsyncRetrying, before_sleep_log, retry_if_exception_type,
                      stop_after_attempt, wait_fixed)

from stockpulse.api.schemas import CategoryDescriptor, CategorySnapshot
from stockpulse.scraper.base_adapter import AcquisitionError, BaseSourceAdapter

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
AcquisitionResult = Union[CategorySnapshot, AcquisitionError]


async def acquire_with_retry(
    adapter: BaseSourceAdapter,
    descriptor: CategoryDescriptor,
    max_retries: int,
    retry_delay: float,
    sleep: Sleep = asyncio.sleep,
) -> CategorySnapshot:
    """Acquire one category, retrying AcquisitionError up to `max_retries` times."""
    retrying = AsyncRetrying(
        sleep=sleep,
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_fixed(retry_delay),
        retry=retry_if_exception_type(AcquisitionError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            n = attempt.retry_state.attempt_number
            if n > 1:
                logger.info("%s: attempt %d/%d", descriptor.key, n, max_retries + 1)
            return await adapter.acquire(descriptor)


async def acquire_all(
    descriptors: List[CategoryDescriptor],
    adapter_for: Callable[[CategoryDescriptor], BaseSourceAdapter],
    max_retries: int,
    retry_delay: float,
    parallel: bool = True,
    isolate_failures: bool = True,
    sleep: Sleep = asyncio.sleep,
) -> Dict[str, AcquisitionResult]:
    """Acquire every category, keyed by descriptor key.

    With `isolate_failures` an exhausted category shows up as its
    AcquisitionError in the result; otherwise the first failure (in
    descriptor order) is raised for the whole cycle.
    """
    async def one(descriptor: CategoryDescriptor) -> AcquisitionResult:
        try:
            return await acquire_with_retry(
                adapter_for(descriptor), descriptor, max_retries, retry_delay, sleep,
            )
        except AcquisitionError as e:
            logger.error("%s: giving up after %d attempts: %s", descriptor.key, max_retries + 1, e)
            return e

    if parallel:
        outcomes = await asyncio.gather(*(one(d) for d in descriptors))
    else:
        outcomes = [await one(d) for d in descriptors]

    results = {d.key: outcome for d, outcome in zip(descriptors, outcomes)}

    if not isolate_failures:
        for outcome in results.values():
            if isinstance(outcome, AcquisitionError):
                raise outcome
    return results
