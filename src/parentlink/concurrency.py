"""Fan-out / join helpers for the concurrent pipeline phases.

Identity resolution and mutation application both issue one blocking
``requests`` call per item. Items are dispatched onto a bounded thread pool
from an asyncio loop and joined with ``asyncio.gather``; every item owns one
preallocated result slot, and exceptions are captured per slot so a failure
never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Generic, TypeVar

from .logging import get_logger

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_WORKERS = 8


class ConcurrencyConfig:
    """Configuration for concurrency settings."""

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers


@dataclass
class TaskOutcome(Generic[T, R]):
    item: T
    value: R | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fan_out(
    items: Sequence[T],
    worker: Callable[[T], R],
    *,
    config: ConcurrencyConfig | None = None,
    operation: str = "fan_out",
) -> list[TaskOutcome[T, R]]:
    """Run ``worker`` over ``items`` concurrently and wait for all of them.

    Outcomes are returned in input order regardless of completion order.
    """
    config = config or ConcurrencyConfig()
    if not items:
        return []
    logger = get_logger()
    start = time.perf_counter()
    loop = asyncio.get_running_loop()
    workers = min(config.max_workers, len(items))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="parentlink") as executor:
        tasks = [loop.run_in_executor(executor, worker, item) for item in items]
        results = await asyncio.gather(*tasks, return_exceptions=True)

    outcomes: list[TaskOutcome[T, R]] = []
    for item, result in zip(items, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            outcomes.append(TaskOutcome(item=item, error=result))
        else:
            outcomes.append(TaskOutcome(item=item, value=result))
    logger.log_performance(
        operation,
        (time.perf_counter() - start) * 1000,
        item_count=len(items),
        max_workers=workers,
    )
    return outcomes


def run_fan_out(
    items: Sequence[T],
    worker: Callable[[T], R],
    *,
    config: ConcurrencyConfig | None = None,
    operation: str = "fan_out",
) -> list[TaskOutcome[T, R]]:
    """Synchronous entry point for :func:`fan_out`."""
    return asyncio.run(fan_out(items, worker, config=config, operation=operation))


__all__ = ["ConcurrencyConfig", "TaskOutcome", "fan_out", "run_fan_out"]
