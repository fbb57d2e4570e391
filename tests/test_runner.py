"""
Tests for the bounded-concurrency runner.
"""
import asyncio
import time

import pytest

from datafinder.runner import BatchRunner


class TestBatchRunner:
    """Tests for BatchRunner.run."""

    async def test_never_exceeds_limit(self):
        """20 items with limit 5: at most 5 in flight, 20 unique results."""
        state = {'active': 0, 'peak': 0}

        async def worker(item):
            state['active'] += 1
            state['peak'] = max(state['peak'], state['active'])
            await asyncio.sleep(0.01)
            state['active'] -= 1
            return item

        runner = BatchRunner(limit=5, jitter=0)
        results = await runner.run(list(range(20)), worker)

        assert state['peak'] <= 5
        assert runner.peak_active == 5
        assert len(results) == 20
        assert sorted(results) == list(range(20))

    async def test_sliding_window_admission(self):
        """A stuck item holds one slot while the others keep flowing."""
        async def worker(item):
            await asyncio.sleep(0.3 if item == 0 else 0.01)
            return item

        runner = BatchRunner(limit=2, jitter=0)
        start = time.monotonic()
        results = await runner.run(list(range(11)), worker)
        elapsed = time.monotonic() - start

        # every other item finished while item 0 was still running
        assert results[-1] == 0
        assert elapsed < 0.6
        assert sorted(results) == list(range(11))

    async def test_worker_error_does_not_stop_the_run(self):
        async def worker(item):
            if item == 3:
                raise ValueError('bad item')
            return item

        runner = BatchRunner(limit=2, jitter=0)
        results = await runner.run(list(range(6)), worker)

        assert sorted(results) == [0, 1, 2, 4, 5]

    async def test_on_error_records_a_result(self):
        async def worker(item):
            if item % 2:
                raise RuntimeError(f"odd {item}")
            return ('ok', item)

        runner = BatchRunner(limit=3, jitter=0)
        results = await runner.run(list(range(6)), worker, on_error=lambda item, exc: ('error', item))

        assert len(results) == 6
        assert sorted(r for r in results if r[0] == 'error') == [('error', 1), ('error', 3), ('error', 5)]

    async def test_empty_input(self):
        async def worker(item):
            return item

        assert await BatchRunner(limit=3).run([], worker) == []

    async def test_fewer_items_than_limit(self):
        async def worker(item):
            await asyncio.sleep(0)
            return item * 2

        runner = BatchRunner(limit=10, jitter=0)
        results = await runner.run([1, 2, 3], worker)

        assert sorted(results) == [2, 4, 6]
        assert runner.peak_active <= 3

    async def test_jitter_is_bounded(self):
        async def worker(item):
            return item

        runner = BatchRunner(limit=4, jitter=0.05)
        start = time.monotonic()
        await runner.run(list(range(4)), worker)

        assert time.monotonic() - start < 0.5

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            BatchRunner(limit=0)

    async def test_overlapping_runs_are_rejected(self):
        """A runner's counters belong to one run, so a second concurrent run is refused."""
        release = asyncio.Event()

        async def worker(item):
            await release.wait()
            return item

        runner = BatchRunner(limit=2, jitter=0)
        first = asyncio.ensure_future(runner.run([1, 2], worker))
        await asyncio.sleep(0)

        with pytest.raises(RuntimeError):
            await runner.run([3], worker)

        release.set()
        assert sorted(await first) == [1, 2]
        assert runner.peak_active == 2
        assert await runner.run([4], worker) == [4]
