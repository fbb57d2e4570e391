"""
Retry policy: resolve a single target into an ``ExtractionResult``.

Timeouts and network errors are retried after a constant delay. HTTP
errors mean the server answered, so they end the target straight away,
as do cancellation and unsupported URLs.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_fixed

from .cancellation import CancelToken, OperationCancelled
from .email_extractor import extract_emails
from .fetcher import Fetcher, is_supported_url
from .models import (
    RETRYABLE_OUTCOMES,
    Cancelled,
    ExtractionResult,
    FetchOutcome,
    NetworkError,
    Success,
    Target,
    describe_outcome,
)

# Configure logging
logger = logging.getLogger(__name__)


def is_retryable(outcome: FetchOutcome) -> bool:
    return isinstance(outcome, RETRYABLE_OUTCOMES)


def _last_outcome(retry_state: RetryCallState) -> FetchOutcome:
    return retry_state.outcome.result()


def _cancellable_sleep(token: CancelToken) -> Callable[[float], Awaitable[None]]:
    """Sleep hook for tenacity that ends the retry loop once the token fires."""
    async def sleep(delay: float) -> None:
        if not await token.sleep(delay):
            raise OperationCancelled()
    return sleep


async def _fetch_once(
    target: Target,
    fetcher: Fetcher,
    timeout: Optional[float],
    token: Optional[CancelToken],
) -> FetchOutcome:
    try:
        return await fetcher.fetch(target, timeout, token)
    except Exception as e:
        logger.exception(f"Fetcher raised for {target.url}")
        return NetworkError(cause=str(e) or type(e).__name__, kind='network')


async def resolve(
    target: Target,
    fetcher: Fetcher,
    max_retries: int = 2,
    retry_delay: float = 1.0,
    timeout: Optional[float] = None,
    token: Optional[CancelToken] = None,
    extract: Callable[[str], Set[str]] = extract_emails,
) -> ExtractionResult:
    """
    Fetch ``target`` with retries and extract signals from the page.

    Args:
        target: Page to resolve
        fetcher: Fetch capability (network or fake)
        max_retries: Retries after the first attempt
        retry_delay: Seconds to wait between attempts
        timeout: Per-attempt deadline passed to the fetcher
        token: Run cancellation token
        extract: Body -> signals function

    Returns:
        A well-formed ExtractionResult; this function does not raise for
        per-target failures.
    """
    if not is_supported_url(target.url):
        logger.warning(f"Skipping invalid URL for {target.label!r}: {target.url!r}")
        return ExtractionResult(
            target=target,
            succeeded=False,
            error=f"invalid url: {target.url!r}",
            attempts=0,
        )

    if token is not None and token.cancelled:
        return ExtractionResult(target=target, succeeded=False, error='cancelled', attempts=0)

    def log_retry(retry_state: RetryCallState) -> None:
        logger.debug(
            f"Attempt {retry_state.attempt_number} for {target.url} failed "
            f"({describe_outcome(_last_outcome(retry_state))}), retrying in {retry_delay}s"
        )

    retrying = AsyncRetrying(
        retry=retry_if_result(is_retryable),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_fixed(retry_delay),
        sleep=_cancellable_sleep(token) if token is not None else asyncio.sleep,
        before_sleep=log_retry,
        retry_error_callback=_last_outcome,
    )

    outcome: FetchOutcome = Cancelled()
    attempts = 0
    try:
        async for attempt in retrying:
            outcome = await _fetch_once(target, fetcher, timeout, token)
            attempt.retry_state.set_result(outcome)
            attempts = attempt.retry_state.attempt_number
    except OperationCancelled:
        outcome = Cancelled()

    if isinstance(outcome, Success):
        signals = extract(outcome.body)
        logger.debug(
            f"Emails found in {target.label} ({target.url}): "
            f"{', '.join(sorted(signals)) if signals else 'None'}"
        )
        return ExtractionResult(
            target=target,
            signals=tuple(sorted(signals, key=str.lower)),
            succeeded=True,
            attempts=attempts,
        )

    error = describe_outcome(outcome)
    log = logger.debug if isinstance(outcome, Cancelled) else logger.warning
    log(f"Giving up on {target.url} after {attempts} attempt(s): {error}")
    return ExtractionResult(target=target, succeeded=False, error=error, attempts=attempts)
