"""
Configuration and constants for the Data Finder scraper.
"""
import os
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, falling back on bad values."""
    value = os.getenv(name, str(default))
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    """Read an int from the environment, falling back on bad values."""
    value = os.getenv(name, str(default))
    try:
        return int(value)
    except ValueError:
        return default


def _env_list(name: str) -> List[str]:
    """Read a comma-separated list from the environment."""
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(',') if item.strip()]


# Scraper Defaults - Reads from .env with fallbacks
DEFAULT_CONCURRENCY = _env_int("SCRAPER_CONCURRENCY", 10)
DEFAULT_TIMEOUT = _env_float("SCRAPER_TIMEOUT", 10.0)
DEFAULT_MAX_RETRIES = _env_int("SCRAPER_MAX_RETRIES", 2)
DEFAULT_RETRY_DELAY = _env_float("SCRAPER_RETRY_DELAY", 1.0)
DEFAULT_JITTER = _env_float("SCRAPER_JITTER", 0.2)
DEFAULT_MAX_BODY_BYTES = _env_int("SCRAPER_MAX_BODY_BYTES", 2 * 1024 * 1024)
DEFAULT_USER_AGENT = os.getenv(
    "SCRAPER_USER_AGENT", "Mozilla/5.0 (compatible; EmailScraper/1.0)"
)
EXTRA_EXCLUDE_PATTERNS = _env_list("SCRAPER_EXCLUDE_PATTERNS")

# Batch Rate Limiting
DEFAULT_BATCH_SIZE = _env_int("SCRAPER_BATCH_SIZE", 50)
DEFAULT_BATCH_DELAY = _env_float("SCRAPER_BATCH_DELAY", 3.0)  # seconds between batches

# Site Check Settings
SITE_CHECK_TIMEOUT = _env_float("SITE_CHECK_TIMEOUT", 7.0)
SITE_FAST_THRESHOLD = _env_float("SITE_FAST_THRESHOLD", 5.0)

# Secondary pages tried when a homepage has no emails (--deep)
CONTACT_PATHS = [
    '/contact',
    '/contact-us',
    '/about',
    '/about-us',
]


@dataclass(frozen=True)
class ScraperConfig:
    """
    Settings for one EmailScraper engine.

    Every engine gets its own copy, so two scrapers with different
    settings can run side by side.
    """

    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY
    exclude_patterns: Tuple[str, ...] = field(
        default_factory=lambda: tuple(EXTRA_EXCLUDE_PATTERNS)
    )
    batch_size: int = DEFAULT_BATCH_SIZE
    inter_batch_delay: float = DEFAULT_BATCH_DELAY
    jitter: float = DEFAULT_JITTER
    user_agent: str = DEFAULT_USER_AGENT
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    check_timeout: float = SITE_CHECK_TIMEOUT
    fast_threshold: float = SITE_FAST_THRESHOLD
    contact_paths: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")

    def with_overrides(self, **overrides: Optional[object]) -> 'ScraperConfig':
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        if not values:
            return self
        return replace(self, **values)
