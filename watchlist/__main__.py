"""
Command line screening

Usage:
    python -m watchlist list.csv "Marwan Mohammed ABU RAS" --dob 1958-07-01
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from watchlist.candidate_index import build_index
from watchlist.checker import Checker
from watchlist.config_manager import ConfigManager, setup_logging
from watchlist.csv_source import ON_ERROR_RAISE, ON_ERROR_SKIP, CsvRecordSource
from watchlist.exceptions import ConfigurationError, IndexBuildError, InvalidRequestError, ParseError
from watchlist.records import RecordSource, RecordType

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="watchlist",
        description="Screen a name against a watchlist CSV export"
    )
    parser.add_argument("list_csv", help="Watchlist CSV file")
    parser.add_argument("name", help="Full name to screen")
    parser.add_argument("--dob", help="Date of birth (YYYY-MM-DD)")
    parser.add_argument("--type", choices=[t.value for t in RecordType], help="Entity type filter")
    parser.add_argument("--source", choices=[s.value for s in RecordSource], help="Source list filter")
    parser.add_argument("--threshold", type=float, help="Acceptance threshold in [0, 1]")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--skip-malformed", action="store_true",
                        help="Skip malformed list entries instead of aborting")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ConfigManager(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    source = CsvRecordSource(
        args.list_csv,
        on_error=ON_ERROR_SKIP if args.skip_malformed else ON_ERROR_RAISE
    )
    try:
        with build_index(source, config) as index:
            matches = Checker(index, config=config).check(
                args.name,
                dob=args.dob,
                type=args.type,
                source=args.source,
                threshold=args.threshold,
            )
    except FileNotFoundError as e:
        logger.error("List file not found: %s", e.filename)
        return 1
    except ParseError as e:
        logger.error("Malformed list entry id=%s line=%s: %s", e.record_id, e.line, e)
        return 1
    except IndexBuildError as e:
        logger.error("Could not build index: %s", e)
        return 1
    except InvalidRequestError as e:
        logger.error("Invalid request (%s): %s", e.code, e)
        return 1

    print(json.dumps([m.to_dict() for m in matches], indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
