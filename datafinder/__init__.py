"""
Data Finder - Find contact emails on a list of websites.

This package provides tools for:
- Fetching many sites concurrently with timeouts, retries and cancellation
- Extracting email addresses from page bodies
- Processing large lists in rate-limited batches
- Checking whether sites are live and responsive
- Exporting results to Excel/CSV/JSON
"""

from .config import (
    ScraperConfig,
    CONTACT_PATHS,
)

from .models import (
    Target,
    ExtractionResult,
    BatchReport,
    RunReport,
    SiteStatus,
)

from .email_extractor import (
    extract_emails,
    build_exclusions,
    DEFAULT_EXCLUDE_PATTERNS,
)

from .cancellation import CancelToken

from .fetcher import (
    Fetcher,
    HttpFetcher,
)

from .runner import BatchRunner

from .orchestrator import process_in_batches

from .scraper import (
    EmailScraper,
    scrape_emails_from_sites,
)

from .data_utils import (
    CandidateFileError,
    load_candidates,
    report_to_dataframe,
    site_statuses_to_dataframe,
    export_to_excel,
    export_to_csv,
    export_to_json,
    get_summary_stats,
)

__version__ = '1.0.0'

__all__ = [
    # Config
    'ScraperConfig',
    'CONTACT_PATHS',
    # Models
    'Target',
    'ExtractionResult',
    'BatchReport',
    'RunReport',
    'SiteStatus',
    # Extraction
    'extract_emails',
    'build_exclusions',
    'DEFAULT_EXCLUDE_PATTERNS',
    # Engine
    'CancelToken',
    'Fetcher',
    'HttpFetcher',
    'BatchRunner',
    'process_in_batches',
    'EmailScraper',
    'scrape_emails_from_sites',
    # Data
    'CandidateFileError',
    'load_candidates',
    'report_to_dataframe',
    'site_statuses_to_dataframe',
    'export_to_excel',
    'export_to_csv',
    'export_to_json',
    'get_summary_stats',
]
