"""
HTTP fetching for the scraper.

:class:`HttpFetcher` performs one GET per call under a deadline and a
cancellation token and classifies what happened as a ``FetchOutcome``.
It never raises for network problems; the retry layer decides what to do
with each outcome.
"""
import time
import logging
from typing import Optional, Protocol

import httpx

from .cancellation import CancelToken, DeadlineExceeded, OperationCancelled, run_with_deadline
from .config import ScraperConfig
from .models import (
    Cancelled,
    FetchOutcome,
    HttpError,
    InvalidTarget,
    NetworkError,
    SiteStatus,
    Success,
    Target,
    Timeout,
)

# Configure logging
logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ('http://', 'https://')


class Fetcher(Protocol):
    """Anything that can turn a target into a ``FetchOutcome``."""

    async def fetch(
        self,
        target: Target,
        deadline: Optional[float] = None,
        token: Optional[CancelToken] = None,
    ) -> FetchOutcome:
        ...


def is_supported_url(url: str) -> bool:
    """Only absolute http(s) URLs are fetched."""
    return bool(url) and url.lower().startswith(SUPPORTED_SCHEMES)


def build_headers(user_agent: str) -> dict:
    """Request headers sent with every fetch."""
    return {
        'User-Agent': user_agent,
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.9',
    }


def classify_network_error(exc: Exception) -> NetworkError:
    """Fold a transport exception into a ``NetworkError`` with a kind."""
    cause = str(exc) or type(exc).__name__
    if isinstance(exc, httpx.ConnectError):
        return NetworkError(cause=cause, kind='connect')
    if isinstance(exc, httpx.RemoteProtocolError):
        return NetworkError(cause=cause, kind='remote_closed')
    return NetworkError(cause=cause, kind='network')


class HttpFetcher:
    """
    Network implementation of :class:`Fetcher` backed by ``httpx.AsyncClient``.

    The client is created lazily and shared by every fetch made through
    this instance. Pass ``client`` to supply your own; it is then left
    open by :meth:`aclose`.
    """

    def __init__(self, config: Optional[ScraperConfig] = None, client: Optional[httpx.AsyncClient] = None):
        self.config = config or ScraperConfig()
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            limits = httpx.Limits(
                max_connections=max(self.config.concurrency * 2, 10),
                max_keepalive_connections=self.config.concurrency,
            )
            self._client = httpx.AsyncClient(
                headers=build_headers(self.config.user_agent),
                timeout=httpx.Timeout(max(self.config.timeout, self.config.check_timeout)),
                limits=limits,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> 'HttpFetcher':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Page fetch
    # -------------------------------------------------------------------------

    async def fetch(
        self,
        target: Target,
        deadline: Optional[float] = None,
        token: Optional[CancelToken] = None,
    ) -> FetchOutcome:
        """
        Fetch one page.

        Args:
            target: Page to fetch
            deadline: Seconds allowed for the attempt (defaults to config timeout)
            token: Run cancellation token

        Returns:
            Success, HttpError, Timeout, NetworkError, Cancelled or InvalidTarget
        """
        url = target.url
        if not is_supported_url(url):
            logger.warning(f"Invalid URL: {url!r}")
            return InvalidTarget(reason=f"unsupported url {url!r}")

        if deadline is None:
            deadline = self.config.timeout

        try:
            return await run_with_deadline(self._get(url), deadline, token)
        except OperationCancelled:
            logger.debug(f"Request cancelled for {url}")
            return Cancelled()
        except (DeadlineExceeded, httpx.TimeoutException):
            logger.debug(f"Request timeout for {url}")
            return Timeout()
        except httpx.ConnectError as e:
            logger.debug(f"Connection failed for {url}: {e}")
            return classify_network_error(e)
        except httpx.RemoteProtocolError as e:
            logger.debug(f"Connection terminated by remote host for {url}: {e}")
            return classify_network_error(e)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            logger.debug(f"Failed to fetch {url}: {e}")
            return classify_network_error(e)

    async def _get(self, url: str) -> FetchOutcome:
        start = time.monotonic()
        async with self.client.stream('GET', url) as response:
            if not 200 <= response.status_code < 300:
                logger.debug(f"Non-successful response ({response.status_code}) for {url}")
                return HttpError(status=response.status_code)

            try:
                body = await self._read_body(response)
            except httpx.HTTPError as e:
                logger.debug(f"Failed to read response body from {url}: {e}")
                return classify_network_error(e)

            return Success(
                status=response.status_code,
                body=body,
                url=str(response.url),
                elapsed=time.monotonic() - start,
            )

    async def _read_body(self, response: httpx.Response) -> str:
        """Read at most ``max_body_bytes`` of the body and decode it."""
        limit = self.config.max_body_bytes
        buf = bytearray()
        async for chunk in response.aiter_bytes():
            buf.extend(chunk)
            if len(buf) >= limit:
                break
        return bytes(buf[:limit]).decode(response.encoding or 'utf-8', errors='replace')

    # -------------------------------------------------------------------------
    # Site check
    # -------------------------------------------------------------------------

    async def check_site(self, target: Target, token: Optional[CancelToken] = None) -> SiteStatus:
        """
        Check whether a site answers and how quickly.

        A site is active when it returns a 2xx status (after redirects)
        within ``check_timeout``, and fast when that took no longer than
        ``fast_threshold`` seconds.
        """
        url = target.url
        if not is_supported_url(url):
            logger.warning(f"Invalid URL: {url!r}")
            return SiteStatus(target=target, is_active=False, loads_fast=False)

        start = time.monotonic()
        try:
            status = await run_with_deadline(self._probe(url), self.config.check_timeout, token)
        except (DeadlineExceeded, OperationCancelled, httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            logger.warning(f"Site check failed: {url} ({type(e).__name__})")
            return SiteStatus(target=target, is_active=False, loads_fast=False)

        elapsed = time.monotonic() - start
        is_active = 200 <= status < 300
        return SiteStatus(
            target=target,
            is_active=is_active,
            loads_fast=is_active and elapsed <= self.config.fast_threshold,
            elapsed=elapsed,
        )

    async def _probe(self, url: str) -> int:
        async with self.client.stream('GET', url) as response:
            return response.status_code
