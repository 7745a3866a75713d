import argparse
import csv
import logging
import sys
from typing import List, Optional

from config import EngineConfig, LedgerPolicy, parse_log_level
from engine import PaymentsEngine
from writer import write_accounts

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments",
        description="Apply a CSV transaction log and print the final client balances.",
    )
    parser.add_argument("input", help="path to the transactions CSV")
    parser.add_argument("--workers", type=int, help="number of client shards (default: 1, serial)")
    parser.add_argument(
        "--policy",
        choices=["strict", "reference"],
        help="business rule preset (default: reference)",
    )
    parser.add_argument("--log-level", help="diagnostics level on stderr (default: WARNING)")
    return parser


def load_config(args: argparse.Namespace) -> EngineConfig:
    """Environment first, command-line flags override."""
    config = EngineConfig.from_env()
    if args.workers is not None:
        config.workers = args.workers
    if args.policy:
        config.policy = LedgerPolicy.named(args.policy)
    if args.log_level:
        config.log_level = parse_log_level(args.log_level)
    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ValueError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=config.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    engine = PaymentsEngine(config)
    try:
        accounts = engine.process_file(args.input)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        logger.error(f"Cannot read {args.input}: {e}")
        return 1

    write_accounts(accounts, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
