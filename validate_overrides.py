#!/usr/bin/env python3
"""
Check the manual override file without running an ingestion.

Exits 0 when the file is valid or absent, 1 when it has problems.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from chronicler.config import config
from chronicler.enrichment import load_overrides
from chronicler.errors import OverrideError


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Validate the event override file")
    parser.add_argument(
        "path",
        nargs="?",
        help="Override file to check (defaults to INGEST_OVERRIDES_PATH or overrides/events.json)"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    path = args.path or config.overrides_path

    if not Path(path).exists():
        print(f"No overrides file at {path}; nothing to validate.")
        return 0

    try:
        overrides = load_overrides(path)
    except OverrideError as e:
        print(f"Overrides file {path} is invalid:", file=sys.stderr)
        for issue in e.issues:
            print(f"  - {issue}", file=sys.stderr)
        return 1

    print(f"Overrides file {path} is valid ({len(overrides.events)} event(s)).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
