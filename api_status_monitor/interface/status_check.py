#!/usr/bin/env python3
"""
Status Check CLI - Command-line entry point for the scheduled status check.

Usage:
    python -m api_status_monitor.interface.status_check [--config configs/status.yaml]
        [--snapshot PATH] [--status-file PATH] [--dry-run] [-v]

Exit codes:
    0: Check completed (individual endpoints may be down)
    3: FAIL - Configuration or persistence error
"""

import argparse
import logging
import sys
from typing import List, Optional

from api_status_monitor.health import run_status_check


def setup_logging(verbose: bool = False) -> None:
    """
    Setup logging configuration.

    Args:
        verbose: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check API endpoints and notify on status changes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0  - Check completed (endpoints may be down)
  3  - Configuration or persistence error (FAIL)

Examples:
  python -m api_status_monitor.interface.status_check
  python -m api_status_monitor.interface.status_check --config configs/status.yaml
  python -m api_status_monitor.interface.status_check --dry-run -v
        """,
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to config file (default: configs/status.yaml or configs/status.example.yaml)",
    )

    parser.add_argument(
        "--snapshot",
        default=None,
        help="Path to previous-status snapshot file (overrides config)",
    )

    parser.add_argument(
        "--status-file",
        default=None,
        help="Path to the published status.json file (overrides config)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Don't send notifications or write files, just print results",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code: 0 (completed), 3 (FAIL)
    """
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)
    logger.info("Starting API status check")

    if args.dry_run:
        logger.info("Dry-run mode: No notifications will be sent")

    try:
        exit_code = run_status_check(
            config_path=args.config,
            dry_run=args.dry_run,
            snapshot_path=args.snapshot,
            status_path=args.status_file,
        )
        logger.info("Status check completed with exit code: %d", exit_code)
        return exit_code
    except KeyboardInterrupt:
        logger.error("Status check interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
