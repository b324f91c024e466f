"""
Command-line entry point.

Usage:
    python -m pipeline [start_offset] [--output PATH] [--log-level LEVEL]

Exit codes:
    0  clean end of stream
    1  missing OPENAI_API_KEY, or fatal failure (resume offset is logged)
    2  invalid arguments
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from core.config import settings
from core.exceptions import FatalRunError
from core.logging import setup_logging
from pipeline.classifier import ContractClassifier
from pipeline.fetcher import ContractPageFetcher
from pipeline.runner import RunSummary, ScreeningRunner

logger = logging.getLogger(__name__)


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid offset: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"offset must be >= 0, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contract-screener",
        description="Screen high-value government contracts and append flagged ones to an NDJSON log.",
    )
    parser.add_argument(
        "start_offset",
        nargs="?",
        type=non_negative_int,
        default=0,
        help="Record offset to start (or resume) from (default: 0)",
    )
    parser.add_argument(
        "--output",
        default=None,
        help=f"Result log path (default: {settings.OUTPUT_FILE})",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help=f"Log level (default: {settings.LOG_LEVEL})",
    )
    return parser


async def run_screening(start_offset: int, output_file: str) -> RunSummary:
    """Wire the real clients together and run one pass over the source."""
    classifier = ContractClassifier()
    try:
        async with ContractPageFetcher() as fetcher:
            runner = ScreeningRunner.for_output_file(output_file, fetcher, classifier)
            return await runner.run(start_offset)
    finally:
        await classifier.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if not settings.OPENAI_API_KEY:
        logger.error("Please set the OPENAI_API_KEY environment variable")
        return 1

    output_file = args.output or settings.OUTPUT_FILE

    logger.info("Starting contract analysis...")
    try:
        summary = asyncio.run(run_screening(args.start_offset, output_file))
    except FatalRunError as e:
        logger.error(
            f"Analysis stopped. Resume with: contract-screener {e.last_successful_offset}"
        )
        return 1

    logger.info(f"Analysis complete! Check {summary.output_file} for results")
    return 0


if __name__ == "__main__":
    sys.exit(main())
