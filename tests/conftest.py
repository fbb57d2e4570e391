"""
Shared fixtures for the Data Finder tests.

``FakeFetcher`` stands in for ``HttpFetcher``: it returns scripted
outcomes per URL, records every call, and honours deadlines and the
cancellation token the same way the network fetcher does.
"""
import asyncio

import pytest

from datafinder.cancellation import DeadlineExceeded, OperationCancelled, run_with_deadline
from datafinder.config import ScraperConfig
from datafinder.models import Cancelled, Success, Target, Timeout


class FakeFetcher:
    """Scripted fetcher; ``outcomes`` maps URL -> outcome or list of outcomes."""

    def __init__(self, outcomes=None, default=None, delay=0.0):
        self.outcomes = {url: list(o) if isinstance(o, list) else o for url, o in (outcomes or {}).items()}
        self.default = default or Success(status=200, body='<p>Nothing to see</p>')
        self.delay = delay
        self.calls = []
        self.active = 0
        self.peak_active = 0

    @property
    def started(self):
        return len(self.calls)

    def count(self, url):
        return self.calls.count(url)

    def _next_outcome(self, url):
        outcome = self.outcomes.get(url, self.default)
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        return outcome

    async def fetch(self, target, deadline=None, token=None):
        self.calls.append(target.url)
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            if self.delay:
                try:
                    await run_with_deadline(asyncio.sleep(self.delay), deadline, token)
                except OperationCancelled:
                    return Cancelled()
                except DeadlineExceeded:
                    return Timeout()
            elif token is not None and token.cancelled:
                return Cancelled()
            outcome = self._next_outcome(target.url)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.active -= 1


@pytest.fixture
def fast_config():
    """Config without sleeps so tests run quickly."""
    return ScraperConfig(
        concurrency=5,
        timeout=30.0,
        max_retries=2,
        retry_delay=0.0,
        batch_size=50,
        inter_batch_delay=0.0,
        jitter=0.0,
        exclude_patterns=(),
    )


@pytest.fixture
def make_targets():
    """Factory for ``n`` distinct targets."""
    def _make(n, prefix='site'):
        return [Target(label=f"{prefix} {i}", url=f"http://{prefix}{i}.test/") for i in range(n)]
    return _make
