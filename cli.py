#!/usr/bin/env python3
"""
Data Finder - Command Line Interface

Usage:
    python cli.py --input sites.json
    python cli.py -i sites.csv -c 5 -b 20 --csv -o leads.csv
    python cli.py -i sites.json --deep --exclude "noreply@,.gov" -v
    python cli.py -i sites.json --check
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from datafinder import (
    CONTACT_PATHS,
    CandidateFileError,
    EmailScraper,
    ScraperConfig,
    load_candidates,
    report_to_dataframe,
    site_statuses_to_dataframe,
    export_to_excel,
    export_to_csv,
    export_to_json,
    get_summary_stats,
)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Find contact emails on a list of websites",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -i sites.json
  %(prog)s -i sites.csv -c 5 -b 20 --csv -o leads.csv
  %(prog)s -i sites.json --deep --exclude "noreply@,.gov" -v
  %(prog)s -i sites.json --check
        """
    )

    parser.add_argument(
        '-i', '--input',
        required=True,
        help='JSON list of {"title", "link"} objects, or a CSV with title/link columns'
    )

    parser.add_argument(
        '-o', '--output',
        default='ScrapedEmails.xlsx',
        help='Output file path (default: ScrapedEmails.xlsx)'
    )

    output_format = parser.add_mutually_exclusive_group()
    output_format.add_argument(
        '--csv',
        action='store_true',
        help='Export as CSV instead of Excel'
    )
    output_format.add_argument(
        '--json',
        action='store_true',
        help='Export as JSON instead of Excel'
    )

    parser.add_argument(
        '-c', '--concurrency',
        type=int,
        help='Concurrent requests per batch (default: 10)'
    )

    parser.add_argument(
        '-b', '--batch-size',
        type=int,
        help='Sites per batch (default: 50)'
    )

    parser.add_argument(
        '--delay',
        type=float,
        help='Seconds to pause between batches (default: 3)'
    )

    parser.add_argument(
        '--timeout',
        type=float,
        help='Per-request timeout in seconds (default: 10)'
    )

    parser.add_argument(
        '--retries',
        type=int,
        help='Retries per site on timeouts and network errors (default: 2)'
    )

    parser.add_argument(
        '--exclude',
        default='',
        help='Comma-separated extra substrings to exclude from results'
    )

    parser.add_argument(
        '--deep',
        action='store_true',
        help='Also try /contact and /about pages when a homepage has no emails'
    )

    parser.add_argument(
        '--check',
        action='store_true',
        help='Only check whether each site is live and loads fast'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Show detailed progress information'
    )

    return parser.parse_args(argv)


def build_config(args) -> ScraperConfig:
    """Apply command line overrides on top of the environment defaults."""
    config = ScraperConfig()
    extra_exclusions = [p.strip() for p in args.exclude.split(',') if p.strip()]
    return config.with_overrides(
        concurrency=args.concurrency,
        batch_size=args.batch_size,
        inter_batch_delay=args.delay,
        timeout=args.timeout,
        max_retries=args.retries,
        exclude_patterns=tuple(config.exclude_patterns) + tuple(extra_exclusions) if extra_exclusions else None,
        contact_paths=tuple(CONTACT_PATHS) if args.deep else None,
    )


async def run_scrape(targets, config):
    async with EmailScraper(config) as scraper:
        return await scraper.process(targets)


async def run_check(targets, config):
    async with EmailScraper(config) as scraper:
        return await scraper.check_sites(targets)


def resolve_output_path(args) -> Path:
    output_path = Path(args.output)
    suffix = '.csv' if args.csv else '.json' if args.json else '.xlsx'
    if output_path.suffix.lower() != suffix:
        output_path = output_path.with_suffix(suffix)
    return output_path


def main(argv=None):
    """Main CLI function."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    # httpx logs every request at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        targets = load_candidates(args.input)
    except CandidateFileError as e:
        print(f"Error: {e}")
        sys.exit(1)

    output_path = resolve_output_path(args)

    if args.check:
        print(f"\n🩺 Checking {len(targets)} sites...")
        statuses = asyncio.run(run_check(targets, config))
        df = site_statuses_to_dataframe(statuses)

        active = sum(1 for s in statuses if s.is_active)
        fast = sum(1 for s in statuses if s.loads_fast)
        print(f"\n📊 Summary:")
        print(f"   Sites checked: {len(statuses)}")
        print(f"   Active: {active}")
        print(f"   Loads fast: {fast}")

        if args.json:
            df.to_json(output_path, orient='records', indent=2)
        elif args.csv:
            export_to_csv(df, output_path)
        else:
            export_to_excel(df, output_path)
        print(f"\n💾 Results saved to: {output_path}")
        print("\n✨ Done!")
        return

    print(f"\n📧 Extracting emails from {len(targets)} sites...")
    print(f"   Concurrency: {config.concurrency}, batch size: {config.batch_size}")
    print()

    report = asyncio.run(run_scrape(targets, config))
    stats = get_summary_stats(report)

    print(f"\n📊 Summary:")
    print(f"   Sites attempted: {stats['attempted']}")
    print(f"   Fetched: {stats['succeeded']}")
    print(f"   With email: {stats['with_signals']}")
    print(f"   Failed: {stats['failed']}")
    print(f"   Emails found: {stats['signals']}")
    print(f"   Extraction rate: {stats['extraction_rate']}%")

    if args.json:
        export_to_json(report, output_path)
    else:
        df = report_to_dataframe(report)
        if args.csv:
            export_to_csv(df, output_path)
        else:
            export_to_excel(df, output_path)

    print(f"\n💾 Results saved to: {output_path}")

    if args.verbose and report.entries:
        print("\n📝 Sample results:")
        print(report_to_dataframe(report)[['Label', 'Emails']].head().to_string(index=False))

    print("\n✨ Done!")


if __name__ == "__main__":
    main()
