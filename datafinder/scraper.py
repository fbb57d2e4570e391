"""
The email scraping engine.

An :class:`EmailScraper` is built by the caller with its own settings and
fetcher; nothing is shared between engines, so several can run side by
side. It wires the retry policy, the bounded runner and the batch
orchestrator together.

Example::

    async with EmailScraper(ScraperConfig(concurrency=5)) as scraper:
        report = await scraper.process(targets)
    for entry in report.entries:
        print(entry.target.label, entry.signals)
"""
import asyncio
import logging
from dataclasses import replace
from functools import partial
from typing import Any, Iterable, List, Mapping, Optional, Set, Union
from urllib.parse import urljoin, urlparse

from .cancellation import CancelToken
from .config import ScraperConfig
from .email_extractor import build_exclusions, extract_emails
from .fetcher import Fetcher, HttpFetcher
from .models import STATUS_NOT_FOUND, ExtractionResult, RunReport, SiteStatus, Target
from .orchestrator import process_in_batches
from .retry import resolve
from .runner import BatchRunner

# Configure logging
logger = logging.getLogger(__name__)

TargetLike = Union[Target, Mapping[str, Any]]


def to_targets(items: Iterable[TargetLike]) -> List[Target]:
    """Accept Targets or ``{title, link}`` dicts."""
    return [item if isinstance(item, Target) else Target.from_candidate(item) for item in items]


class EmailScraper:
    """
    Caller-owned scraping engine.

    Args:
        config: Engine settings, defaults to ``ScraperConfig()``
        fetcher: Fetch capability; an ``HttpFetcher`` is created (and
            closed by :meth:`aclose`) when omitted
    """

    def __init__(self, config: Optional[ScraperConfig] = None, fetcher: Optional[Fetcher] = None):
        self.config = config or ScraperConfig()
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher if fetcher is not None else HttpFetcher(self.config)
        self.exclusions = build_exclusions(self.config.exclude_patterns)
        self._token = CancelToken()

    async def aclose(self) -> None:
        if self._owns_fetcher and isinstance(self.fetcher, HttpFetcher):
            await self.fetcher.aclose()

    async def __aenter__(self) -> 'EmailScraper':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    @property
    def token(self) -> CancelToken:
        """Token that the next (or current) run observes."""
        return self._token

    def cancel(self) -> None:
        """Abort the current run and re-arm for the next one."""
        logger.info("Cancelling scraping run")
        self._token.cancel()
        self._token = CancelToken()

    # -------------------------------------------------------------------------
    # Per-target work
    # -------------------------------------------------------------------------

    def extract(self, body: str) -> Set[str]:
        return extract_emails(body, self.exclusions)

    async def resolve_target(self, target: Target, token: Optional[CancelToken] = None) -> ExtractionResult:
        """Resolve one target, trying the contact pages when enabled."""
        token = token or self._token
        result = await resolve(
            target,
            self.fetcher,
            max_retries=self.config.max_retries,
            retry_delay=self.config.retry_delay,
            timeout=self.config.timeout,
            token=token,
            extract=self.extract,
        )
        if result.status == STATUS_NOT_FOUND and self.config.contact_paths:
            result = await self._try_contact_pages(result, token)
        return result

    async def _try_contact_pages(self, result: ExtractionResult, token: CancelToken) -> ExtractionResult:
        parsed = urlparse(result.target.url)
        base_url = f"{parsed.scheme}://{parsed.netloc}"
        attempts = result.attempts

        for path in self.config.contact_paths:
            if token.cancelled:
                break
            page = Target(label=result.target.label, url=urljoin(base_url, path))
            page_result = await resolve(
                page,
                self.fetcher,
                max_retries=self.config.max_retries,
                retry_delay=self.config.retry_delay,
                timeout=self.config.timeout,
                token=token,
                extract=self.extract,
            )
            attempts += page_result.attempts
            if page_result.signals:
                logger.debug(f"Emails found on contact page {page.url}")
                return replace(result, signals=page_result.signals, attempts=attempts)

        return replace(result, attempts=attempts)

    @staticmethod
    def _failed_result(target: Target, exc: Exception) -> ExtractionResult:
        return ExtractionResult(target=target, succeeded=False, error=f"internal error: {exc}")

    # -------------------------------------------------------------------------
    # Runs
    # -------------------------------------------------------------------------

    async def scrape(
        self,
        targets: Iterable[TargetLike],
        concurrency: Optional[int] = None,
        token: Optional[CancelToken] = None,
    ) -> List[ExtractionResult]:
        """
        Resolve every target with bounded concurrency (no batching).

        Returns:
            One ExtractionResult per target, in completion order
        """
        token = token or self._token
        runner = BatchRunner(limit=concurrency or self.config.concurrency, jitter=self.config.jitter)
        return await runner.run(
            to_targets(targets),
            partial(self.resolve_target, token=token),
            on_error=self._failed_result,
        )

    async def process(
        self,
        targets: Iterable[TargetLike],
        batch_size: Optional[int] = None,
        concurrency: Optional[int] = None,
        inter_batch_delay: Optional[float] = None,
    ) -> RunReport:
        """
        Process a large list in batches and keep the sites that have emails.

        Args:
            targets: Targets or ``{title, link}`` dicts
            batch_size: Targets per batch (default from config)
            concurrency: Concurrent fetches per batch (default from config)
            inter_batch_delay: Idle seconds between batches (default from config)

        Returns:
            RunReport of the signal-bearing results
        """
        token = self._token
        if inter_batch_delay is None:
            inter_batch_delay = self.config.inter_batch_delay

        async def run_batch(chunk: List[Target]) -> List[ExtractionResult]:
            return await self.scrape(chunk, concurrency=concurrency, token=token)

        report = await process_in_batches(
            to_targets(targets),
            run_batch,
            batch_size=batch_size or self.config.batch_size,
            inter_batch_delay=inter_batch_delay,
            token=token,
        )
        stats = report.stats
        logger.info(
            f"Attempted {stats['attempted']}, fetched {stats['succeeded']}, "
            f"with emails {stats['with_signals']}, failed {stats['failed']}"
        )
        return report

    async def check_sites(
        self,
        targets: Iterable[TargetLike],
        concurrency: Optional[int] = None,
    ) -> List[SiteStatus]:
        """Check liveness and responsiveness of each site."""
        check_site = getattr(self.fetcher, 'check_site', None)
        if check_site is None:
            raise TypeError(f"{type(self.fetcher).__name__} does not support site checks")

        token = self._token
        runner = BatchRunner(limit=concurrency or self.config.concurrency, jitter=self.config.jitter)
        return await runner.run(
            to_targets(targets),
            partial(check_site, token=token),
            on_error=lambda target, exc: SiteStatus(target=target, is_active=False, loads_fast=False),
        )


def scrape_emails_from_sites(
    sites: Iterable[TargetLike],
    config: Optional[ScraperConfig] = None,
) -> RunReport:
    """
    Synchronous wrapper: scrape ``{title, link}`` sites with a fresh engine.

    Call ``EmailScraper.process`` directly when already inside an event loop.
    """
    async def _run() -> RunReport:
        async with EmailScraper(config) as scraper:
            return await scraper.process(sites)

    return asyncio.run(_run())
