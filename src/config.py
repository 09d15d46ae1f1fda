import argparse
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass(frozen=True)
class EngineConfig:
    """
    Runtime options for a replay.

    strict: abort on the first malformed row or rejected transaction
        instead of logging it and moving on.
    log_level: threshold for messages written to stderr.
    """

    strict: bool = False
    log_level: str = "WARNING"

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments-engine",
        description="Replay a CSV of transactions and print the final account balances.",
    )
    parser.add_argument("input", help="path to the transactions CSV")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="stop at the first malformed row or rejected transaction",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=LOG_LEVELS,
        help="logging threshold for stderr (default: WARNING)",
    )
    return parser


def parse_args(argv: Optional[List[str]] = None) -> Tuple[str, EngineConfig]:
    """Return (input path, EngineConfig) from command line arguments."""
    args = build_parser().parse_args(argv)
    return args.input, EngineConfig(strict=args.strict, log_level=args.log_level)
