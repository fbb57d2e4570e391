"""
Batch orchestration: split a large target list into fixed-size chunks,
run them one after another with a pause in between, and keep only the
results that produced emails.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from .cancellation import CancelToken
from .models import BatchReport, ExtractionResult, RunReport, Target

# Configure logging
logger = logging.getLogger(__name__)

BatchFunc = Callable[[List[Target]], Awaitable[List[ExtractionResult]]]


def chunk_targets(targets: Sequence[Target], batch_size: int) -> List[List[Target]]:
    """Split targets into consecutive chunks (the last one may be shorter)."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(targets[i:i + batch_size]) for i in range(0, len(targets), batch_size)]


async def process_in_batches(
    targets: Sequence[Target],
    run_batch: BatchFunc,
    batch_size: int = 50,
    inter_batch_delay: float = 3.0,
    token: Optional[CancelToken] = None,
) -> RunReport:
    """
    Process targets chunk by chunk.

    Chunk N+1 only starts once chunk N has fully finished. A chunk that
    raises is logged and recorded with its error; the run carries on with
    the next chunk. Once the token is cancelled the remaining chunks are
    recorded as unattempted.

    Args:
        targets: Targets to process
        run_batch: Coroutine function resolving one chunk
        batch_size: Targets per chunk
        inter_batch_delay: Idle seconds between chunks
        token: Run cancellation token

    Returns:
        RunReport with one BatchReport per chunk, in chunk order
    """
    chunks = chunk_targets(targets, batch_size)
    total = len(chunks)
    logger.info(f"Starting to scrape emails from {len(targets)} URLs in {total} batch(es)")

    reports: List[BatchReport] = []
    sites_with_emails = 0
    emails_found = 0

    for index, chunk in enumerate(chunks):
        if token is not None and token.cancelled:
            logger.info(f"Run cancelled, skipping batch {index + 1} of {total}")
            reports.append(BatchReport(index=index, size=len(chunk), error='cancelled'))
            continue

        logger.info(f"Processing batch {index + 1} of {total} ({len(chunk)} items)")
        try:
            results = await run_batch(chunk)
        except Exception as e:
            logger.exception(f"Error processing batch {index + 1}, continuing with next batch")
            reports.append(BatchReport(index=index, size=len(chunk), error=str(e) or type(e).__name__))
        else:
            report = BatchReport.from_results(index, len(chunk), results)
            reports.append(report)
            sites_with_emails += len(report.results)
            emails_found += report.signal_count
            logger.info(
                f"Batch complete: {report.succeeded}/{report.attempted} fetched, "
                f"{report.empty} without emails, {report.failed} failed. "
                f"Total sites with emails: {sites_with_emails}, total emails found: {emails_found}"
            )

        if index + 1 < total and inter_batch_delay > 0:
            logger.info(f"Taking a {inter_batch_delay}s break to avoid rate limiting")
            if token is None:
                await asyncio.sleep(inter_batch_delay)
            else:
                await token.sleep(inter_batch_delay)

    logger.info(f"Scraping completed! Found {sites_with_emails} sites with emails")
    return RunReport(batches=tuple(reports))
