"""
Utilities for loading candidate sites and exporting scraping results.
"""
import io
import json
import logging
from pathlib import Path
from typing import Iterable, List, Union

import pandas as pd

from .models import RunReport, SiteStatus, Target

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ['Label', 'URL', 'Emails', 'Email_Count']


class CandidateFileError(ValueError):
    """The candidate file is missing, unreadable or has no usable rows."""


# =============================================================================
# LOADING
# =============================================================================

def dedupe_targets(targets: Iterable[Target]) -> List[Target]:
    """Drop targets whose URL was already seen (first occurrence wins)."""
    seen = set()
    unique = []
    for target in targets:
        if target.url in seen:
            continue
        seen.add(target.url)
        unique.append(target)
    return unique


def load_candidates(filepath: Union[str, Path]) -> List[Target]:
    """
    Load candidate sites from a JSON or CSV file.

    JSON files hold a list of ``{"title": ..., "link": ...}`` objects.
    CSV files need a ``link`` (or ``url``) column and may have a
    ``title`` (or ``label``) column. Rows without a link are skipped and
    duplicate links are dropped.

    Args:
        filepath: Path to the candidate file

    Returns:
        List of unique Targets

    Raises:
        CandidateFileError: If the file can't be read or has no candidates
    """
    path = Path(filepath)
    if not path.exists():
        raise CandidateFileError(f"Candidate file not found: {path}")

    try:
        if path.suffix.lower() == '.json':
            with open(path, encoding='utf-8') as f:
                data = json.load(f)
            rows = data if isinstance(data, list) else None
        else:
            df = pd.read_csv(path, dtype=str).fillna('')
            df.columns = [str(c).strip().lower() for c in df.columns]
            rows = df.to_dict(orient='records')
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise CandidateFileError(f"Could not read {path}: {e}") from e

    if rows is None:
        raise CandidateFileError(f"Expected a JSON list in {path}")

    targets = [Target.from_candidate(row) for row in rows if isinstance(row, dict)]
    targets = dedupe_targets(t for t in targets if t.url)

    if not targets:
        raise CandidateFileError(f"No candidates with a link found in {path}")

    logger.info(f"Loaded {len(targets)} candidate(s) from {path}")
    return targets


# =============================================================================
# EXPORT
# =============================================================================

def report_to_dataframe(report: RunReport) -> pd.DataFrame:
    """
    Flatten a RunReport into one row per site with emails.

    Args:
        report: Finished run report

    Returns:
        DataFrame with Label, URL, Emails (joined with "; ") and Email_Count
    """
    rows = [
        {
            'Label': result.target.label,
            'URL': result.target.url,
            'Emails': '; '.join(result.signals),
            'Email_Count': len(result.signals),
        }
        for result in report.entries
    ]
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def site_statuses_to_dataframe(statuses: List[SiteStatus]) -> pd.DataFrame:
    """Flatten site check results into a DataFrame."""
    rows = [
        {
            'Label': status.target.label,
            'URL': status.target.url,
            'Active': status.is_active,
            'Loads_Fast': status.loads_fast,
            'Seconds': round(status.elapsed, 2) if status.elapsed is not None else None,
        }
        for status in statuses
    ]
    return pd.DataFrame(rows, columns=['Label', 'URL', 'Active', 'Loads_Fast', 'Seconds'])


def export_to_excel(
    df: pd.DataFrame,
    filepath: Union[str, Path] = None,
    return_bytes: bool = False
) -> Union[None, bytes]:
    """
    Export DataFrame to Excel file.

    Args:
        df: DataFrame to export
        filepath: Output file path (ignored if return_bytes=True)
        return_bytes: If True, return bytes instead of writing to file

    Returns:
        None if writing to file, bytes if return_bytes=True
    """
    target = io.BytesIO() if return_bytes else filepath

    with pd.ExcelWriter(target, engine='xlsxwriter') as writer:
        df.to_excel(writer, index=False, sheet_name='Results')

        # Auto-adjust column widths
        worksheet = writer.sheets['Results']
        for idx, col in enumerate(df.columns):
            longest = df[col].astype(str).map(len).max() if len(df) else 0
            max_len = max(longest, len(col)) + 2
            worksheet.set_column(idx, idx, min(max_len, 50))

    if return_bytes:
        return target.getvalue()
    return None


def export_to_csv(
    df: pd.DataFrame,
    filepath: Union[str, Path] = None,
    return_bytes: bool = False
) -> Union[None, bytes]:
    """
    Export DataFrame to CSV file.

    Args:
        df: DataFrame to export
        filepath: Output file path (ignored if return_bytes=True)
        return_bytes: If True, return bytes instead of writing to file

    Returns:
        None if writing to file, bytes if return_bytes=True
    """
    if return_bytes:
        return df.to_csv(index=False).encode('utf-8')
    df.to_csv(filepath, index=False)
    return None


def export_to_json(report: RunReport, filepath: Union[str, Path]) -> None:
    """Write the signal-bearing results as a JSON list of {label, url, signals}."""
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(report.to_records(), f, indent=2)


def get_summary_stats(report: RunReport) -> dict:
    """
    Get summary statistics for a run.

    Args:
        report: Finished run report

    Returns:
        Dictionary of summary statistics
    """
    stats = dict(report.stats)
    attempted = stats['attempted']
    stats['extraction_rate'] = round(stats['with_signals'] / attempted * 100, 1) if attempted else 0
    return stats
