#!/usr/bin/env python3
"""
Bill Tracker CLI Entry Point
Scans palegis.us for bills matching the configured topics and writes the
dashboard JSON document.
"""

import os
import sys
import argparse
import logging
from datetime import datetime

import requests

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from pa_bill_tracker.pipeline.build_data import build_dataset, write_output
from pa_bill_tracker.pipeline.config import (
    ConfigError,
    initialize_environment,
    load_issues_config,
    load_known_bills,
    load_settings,
)
from pa_bill_tracker.pipeline.contact_cache import ContactCache
from pa_bill_tracker.scraping.page_fetcher import RequestPacer, make_fetcher
from pa_bill_tracker.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

LOG_TYPE = 'bill_tracker'
ACTION = 'build_data'


def build_parser(settings):
    parser = argparse.ArgumentParser(
        description='PA Bill Tracker - build dashboard data from palegis.us',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build public/data/bills.json from data/issues.json
  python run_build_data.py

  # Use other config files and write somewhere else
  python run_build_data.py --issues my-issues.json --output out/bills.json

  # Run without writing the output or the contact cache
  python run_build_data.py --dry-run
        """
    )

    parser.add_argument(
        '--issues',
        default=settings['issues_path'],
        help=f"Topic configuration JSON (default: {settings['issues_path']})"
    )

    parser.add_argument(
        '--known-bills',
        default=settings['known_bills_path'],
        help=f"Known bills JSON with hide/nicknames/descriptions/notes (default: {settings['known_bills_path']})"
    )

    parser.add_argument(
        '--output',
        default=settings['output_path'],
        help=f"Output JSON path (default: {settings['output_path']})"
    )

    parser.add_argument(
        '--cache',
        default=settings['cache_path'],
        help=f"Member contact cache path (default: {settings['cache_path']})"
    )

    parser.add_argument(
        '--delay',
        type=float,
        default=settings['request_delay'],
        help=f"Minimum seconds between requests (default: {settings['request_delay']})"
    )

    parser.add_argument(
        '--log-level',
        default=settings['log_level'],
        help=f"Logging level (default: {settings['log_level']})"
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Run the pipeline but do not write the output or the contact cache'
    )

    return parser


def run(args, settings) -> int:
    """Run the pipeline. Returns the process exit code."""
    start_time = datetime.now()

    logger.info(
        "PA Bill Tracker - building data...",
        extra={"log_type": LOG_TYPE, "action": ACTION, "status": "running"}
    )

    try:
        issues_config = load_issues_config(args.issues)
        known_bills = load_known_bills(args.known_bills)

        contact_cache = ContactCache(args.cache)
        contact_cache.load()

        with requests.Session() as session:
            fetcher = make_fetcher(session, timeout=settings['request_timeout'])
            document = build_dataset(
                issues_config,
                known_bills,
                contact_cache,
                fetcher=fetcher,
                pacer=RequestPacer(args.delay),
            )

        if args.dry_run:
            logger.info(f"Dry run: not writing {args.output} or {args.cache}")
        else:
            write_output(document, args.output)
            contact_cache.save()

    except ConfigError as e:
        logger.error(
            f"Fatal: {e}",
            extra={
                "log_type": LOG_TYPE,
                "action": ACTION,
                "status": "failed",
                "error_message": str(e),
                "duration_seconds": int((datetime.now() - start_time).total_seconds())
            }
        )
        return 1
    except Exception as e:
        logger.error(
            f"Fatal error: {e}",
            exc_info=True,
            extra={
                "log_type": LOG_TYPE,
                "action": ACTION,
                "status": "failed",
                "error_message": str(e),
                "duration_seconds": int((datetime.now() - start_time).total_seconds())
            }
        )
        return 1

    duration = int((datetime.now() - start_time).total_seconds())
    logger.info(
        "Bill tracker build complete",
        extra={
            "log_type": LOG_TYPE,
            "action": ACTION,
            "status": "success",
            "metadata": {
                "total_bills": document['totalBills'],
                "issues": {name: len(bills) for name, bills in document['issues'].items()},
                "session_year": document['sessionYear'],
                "dry_run": args.dry_run
            },
            "duration_seconds": duration
        }
    )

    logger.info("=" * 60)
    logger.info("Bill Tracker Build Complete")
    logger.info(f"  Bills: {document['totalBills']}")
    logger.info(f"  Issues: {len(document['issues'])}")
    logger.info(f"  Duration: {duration}s")
    logger.info("=" * 60)
    return 0


def main(argv=None):
    """CLI entry point for the bill tracker build."""
    initialize_environment()

    try:
        settings = load_settings()
    except ConfigError as e:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
        logger.error(f"Fatal: {e}")
        sys.exit(1)

    args = build_parser(settings).parse_args(argv)
    setup_logging(args.log_level, settings['activity_log_path'])

    sys.exit(run(args, settings))


if __name__ == '__main__':
    main()
