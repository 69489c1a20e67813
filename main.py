#!/usr/bin/env python3
"""
Chronicler - Daily "On This Day" ingestion

Main entry point. Fetches the selected events for one calendar day, enriches
and validates them, then writes them to the document store in one batch.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from chronicler.config import ConfigManager, config as default_config
from chronicler.observability import JsonLogFormatter, TextLogFormatter
from chronicler.pipeline import IngestOptions, run_ingestion


def setup_logging(config: ConfigManager = default_config):
    """Configure logging for the application."""
    level = getattr(logging, config.log_level, logging.INFO)

    if config.log_format == "json":
        formatter = JsonLogFormatter()
    else:
        formatter = TextLogFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handlers = [logging.StreamHandler(sys.stdout)]
    if config.log_filename:
        handlers.append(logging.FileHandler(config.log_filename))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Daily Historic ingestion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                   # Ingest today (UTC)
  python main.py --month 7 --day 20 --dry-run      # Show what would be written for July 20
  python main.py --serviceAccount creds.json       # Write using a credential file
        """
    )

    parser.add_argument("--month", type=int, help="Month to ingest, 1-12 (defaults to today, UTC)")
    parser.add_argument("--day", type=int, help="Day to ingest, 1-31 (defaults to today, UTC)")
    parser.add_argument("--year", type=int, help="Year for digest metadata (defaults to today, UTC)")
    parser.add_argument("--userAgent", dest="user_agent", help="User agent header for Wikimedia requests")
    parser.add_argument("--token", help="Optional Wikimedia API bearer token")
    parser.add_argument("--serviceAccount", dest="service_account_path",
                        help="Path to the service account JSON")
    parser.add_argument("--serviceAccountJson", dest="service_account_json",
                        help="Inline service account JSON (use with caution)")
    parser.add_argument("--projectId", dest="project_id", help="Override the store project id")
    parser.add_argument("--dry-run", "--dryRun", dest="dry_run", action="store_true",
                        help="Do not write to the store, only log the write plan")
    parser.add_argument("--config", dest="config_path", help="Path to the YAML configuration file")
    parser.add_argument("--version", action="version", version="Chronicler 0.1.0")

    return parser.parse_args(argv)


def build_options(args) -> IngestOptions:
    return IngestOptions(
        month=args.month,
        day=args.day,
        year=args.year,
        dry_run=args.dry_run,
        user_agent=args.user_agent,
        token=args.token,
        service_account_path=args.service_account_path,
        service_account_json=args.service_account_json,
        project_id=args.project_id,
    )


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = parse_arguments(argv)
    config = ConfigManager(args.config_path) if args.config_path else default_config
    setup_logging(config)

    try:
        result = asyncio.run(run_ingestion(build_options(args), config=config))
    except KeyboardInterrupt:
        logging.info("Ingestion interrupted by user")
        print("Ingestion interrupted.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logging.error(f"Ingestion failed: {e}")
        print(f"Ingestion failed: {e}", file=sys.stderr)
        sys.exit(1)

    if result.dry_run:
        print("[dry-run] Nothing was written.")
    else:
        print(f"Stored {len(result.events)} event(s) for {result.target_date.isoformat()}")


if __name__ == "__main__":
    main()
