"""
Bounded-concurrency runner.

Items are admitted through a sliding window: ``limit`` drain loops each
take the next unstarted item as soon as their previous one finishes, so
a slow item only ever holds one slot.
"""
import asyncio
import random
import logging
from typing import Awaitable, Callable, Iterator, List, Optional, Sequence, Tuple, TypeVar

# Configure logging
logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


class BatchRunner:
    """
    Run an async worker over many items with at most ``limit`` in flight.

    Args:
        limit: Maximum concurrent worker invocations
        jitter: Upper bound (seconds) of the random pause before each item,
            which spreads out requests to the same hosts

    ``active`` and ``peak_active`` describe the current (or last) run. A
    runner handles one run at a time; build one per concurrent run.
    """

    def __init__(self, limit: int = 10, jitter: float = 0.2):
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self.limit = limit
        self.jitter = max(jitter, 0.0)
        self.active = 0
        self.peak_active = 0
        self._running = False

    async def run(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
        on_error: Optional[Callable[[T, Exception], R]] = None,
    ) -> List[R]:
        """
        Run ``worker`` over ``items`` and collect results in completion order.

        Args:
            items: Items to process
            worker: Coroutine function called once per item
            on_error: Builds the result for an item whose worker raised.
                Without it, such items are logged and left out.

        Returns:
            One result per item (minus failed items when no ``on_error``)

        Raises:
            RuntimeError: If this runner is already in the middle of a run
        """
        results: List[R] = []
        if not items:
            return results

        if self._running:
            raise RuntimeError("BatchRunner is already running; use one runner per run")

        self.active = 0
        self.peak_active = 0
        queue = iter(enumerate(items))

        workers = min(self.limit, len(items))
        self._running = True
        try:
            await asyncio.gather(*(
                self._drain(queue, worker, on_error, results) for _ in range(workers)
            ))
        finally:
            self._running = False
        return results

    async def _drain(
        self,
        queue: Iterator[Tuple[int, T]],
        worker: Callable[[T], Awaitable[R]],
        on_error: Optional[Callable[[T, Exception], R]],
        results: List[R],
    ) -> None:
        # The iterator is shared; next() runs between awaits, so each item is taken once
        for index, item in queue:
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
            try:
                if self.jitter:
                    await asyncio.sleep(random.uniform(0, self.jitter))
                result = await worker(item)
            except Exception as e:
                logger.error(f"Error in worker for item {index}: {e}")
                if on_error is None:
                    continue
                result = on_error(item, e)
            finally:
                self.active -= 1
            results.append(result)
