"""
Concurrency Module
===================
Threading utilities for the render stage.

- WorkerPool: bounded thread pool whose results can be awaited from asyncio
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, Future
from typing import Any, Callable, Optional, TypeVar, Hashable

logger = logging.getLogger(__name__)

T = TypeVar('T')


class WorkerPool:
    """
    Bounded thread pool for side-effect-free work items.

    Results are tracked by a caller-supplied key so they can be matched
    back to their origin regardless of completion order.

    Example:
        with WorkerPool(max_workers=4) as pool:
            results = await pool.map_async(render, {"a.ts": ir_a, "b.ts": ir_b})
    """

    def __init__(self, max_workers: int = 4, thread_name_prefix: str = "emitpipe"):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers
        self._thread_name_prefix = thread_name_prefix
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: dict[Hashable, Future] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> WorkerPool:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.shutdown()

    def start(self) -> None:
        """Start the worker pool."""
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix=self._thread_name_prefix,
        )
        logger.debug(f"Started ThreadPoolExecutor with {self.max_workers} workers")

    def submit(self, key: Hashable, func: Callable[..., T], *args, **kwargs) -> Future:
        """Submit one work item under ``key``."""
        if self._executor is None:
            raise RuntimeError("Worker pool not started")

        future = self._executor.submit(func, *args, **kwargs)
        with self._lock:
            self._futures[key] = future
        return future

    async def map_async(
        self,
        func: Callable[[Any], T],
        items: dict[Hashable, Any],
    ) -> dict[Hashable, T]:
        """
        Run ``func`` over every value of ``items`` concurrently.

        Args:
            func: Callable applied to each value
            items: Work items keyed by identity

        Returns:
            Results keyed like ``items``. The first exception raised by
            ``func`` propagates once every submitted item has settled.
        """
        keys = list(items)
        futures = [
            asyncio.wrap_future(self.submit(key, func, items[key]))
            for key in keys
        ]
        # Every item settles before the first error is raised
        outcomes = await asyncio.gather(*futures, return_exceptions=True)

        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return dict(zip(keys, outcomes))

    def get_active_count(self) -> int:
        """Get number of active (not yet completed) futures."""
        with self._lock:
            return sum(1 for future in self._futures.values() if not future.done())

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the worker pool."""
        if self._executor:
            self._executor.shutdown(wait=wait)
            self._executor = None

        with self._lock:
            self._futures.clear()
