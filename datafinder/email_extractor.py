"""
Module for extracting email addresses from page bodies.

Extraction sources:
1. Standard regex over the raw page text
2. ``mailto:`` links, URL-decoded (catches ``info%40shop.com``)

Every candidate then goes through the exclusion policy: a list of
case-insensitive substrings for image names, placeholder domains and
template addresses.
"""
import re
import logging
from typing import Iterable, List, Optional, Sequence, Set, Union
from urllib.parse import unquote

from bs4 import BeautifulSoup

# Configure logging
logger = logging.getLogger(__name__)

# =============================================================================
# REGEX PATTERNS
# =============================================================================

# Standard email pattern: local-part@domain.tld with an alphabetic TLD
EMAIL_PATTERN = re.compile(
    r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'
)

# =============================================================================
# EXCLUSION PATTERNS
# =============================================================================

# Substrings to exclude (common false positives), matched case-insensitively
DEFAULT_EXCLUDE_PATTERNS = [
    # File extensions (from image URLs like logo@2x.png)
    '.png',
    '.jpg',
    '.gif',
    '.jpeg',
    '.webp',
    '.svg',
    # Placeholder domains
    'example.com',
    'domain.com',
    'yourdomain',
    '@example',
    '@test',
    '@sample',
    # Template addresses
    'test@',
    'email@',
    'user@',
]


def build_exclusions(extra: Optional[Iterable[str]] = None) -> List[str]:
    """
    Combine the built-in exclusion list with caller-supplied patterns.

    Args:
        extra: Additional substrings to exclude

    Returns:
        Lower-cased exclusion list, defaults first, without duplicates
    """
    patterns = []
    for pattern in list(DEFAULT_EXCLUDE_PATTERNS) + list(extra or []):
        pattern = pattern.strip().lower()
        if pattern and pattern not in patterns:
            patterns.append(pattern)
    return patterns


def is_excluded(email: str, exclude_patterns: Sequence[str]) -> bool:
    """Check if an email contains any of the excluded substrings."""
    email_lower = email.lower()
    for pattern in exclude_patterns:
        if pattern.lower() in email_lower:
            return True
    return False


# =============================================================================
# EXTRACTION FUNCTIONS
# =============================================================================

def _mailto_hrefs(html: str) -> List[str]:
    """Return the raw ``href`` of every ``mailto:`` link."""
    if not html or 'mailto:' not in html.lower():
        return []

    hrefs = []
    try:
        soup = BeautifulSoup(html, 'html.parser')
        for link in soup.find_all('a', href=True):
            href = link.get('href', '').strip()
            if href.lower().startswith('mailto:'):
                hrefs.append(href)
    except Exception as e:
        logger.debug(f"mailto parsing error: {e}")

    return hrefs


def _decode_mailto(href: str) -> str:
    return unquote(href[len('mailto:'):]).split('?', 1)[0]


def extract_mailto_targets(html: str) -> List[str]:
    """Return the URL-decoded address part of every ``mailto:`` link."""
    return [address for address in map(_decode_mailto, _mailto_hrefs(html)) if address]


def extract_emails(
    body: Union[str, bytes, None],
    exclude_patterns: Optional[Sequence[str]] = None
) -> Set[str]:
    """
    Extract the email addresses found in a page body.

    Matches are deduplicated case-insensitively (the first spelling seen
    is kept) and anything containing an excluded substring is dropped.

    Args:
        body: Page text. Bytes are decoded with replacement characters.
        exclude_patterns: Exclusion list, defaults to ``build_exclusions()``

    Returns:
        Set of email addresses, empty when nothing usable was found
    """
    if not body:
        return set()

    if isinstance(body, (bytes, bytearray)):
        body = bytes(body).decode('utf-8', errors='replace')
    elif not isinstance(body, str):
        return set()

    if exclude_patterns is None:
        exclude_patterns = build_exclusions()

    # mailto hrefs are only scanned in decoded form, so escapes like %20
    # never end up inside a local part
    hrefs = _mailto_hrefs(body)
    text = body
    for href in hrefs:
        text = text.replace(href, ' ')

    candidates = EMAIL_PATTERN.findall(text)
    for href in hrefs:
        candidates.extend(EMAIL_PATTERN.findall(_decode_mailto(href)))

    emails = {}
    for email in candidates:
        key = email.lower()
        if key in emails:
            continue
        if is_excluded(email, exclude_patterns):
            continue
        emails[key] = email

    return set(emails.values())


def extract_emails_from_text(text: str) -> List[str]:
    """Extract emails with the default exclusions, sorted for display."""
    return sorted(extract_emails(text), key=str.lower)
