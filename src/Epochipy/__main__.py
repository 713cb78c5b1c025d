#!/usr/bin/env python3
"""
Epochipy - Event-locked epoch analysis with multilevel models

This module serves as the entry point for the package when run as:
    python -m Epochipy CONFIG.json

It parses command line arguments, runs the analysis described by the
configuration file and writes the report (figures and CSV tables).

This file is part of Epochipy, licensed under the GNU Affero General Public License v3.0.
"""

import sys
import argparse
import logging
from pathlib import Path

# Set up logging before importing the rest of the package
from Epochipy.shared.logging_config import setup_logging


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="epochipy",
        description="Epochipy - Event-locked epoch analysis with multilevel models",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "config",
        nargs="?",
        type=str,
        help="Analysis configuration (JSON)"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default="epochipy_report",
        help="Directory for figures and tables"
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Run in development mode with increased logging"
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Directory to store log files"
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to the console only"
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit"
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the application."""
    args = parse_args(argv)

    if args.version:
        from Epochipy import __version__
        print(f"Epochipy version {__version__}")
        return 0

    if not args.config:
        print("Error: a configuration file is required (see --help).")
        return 2

    setup_logging(dev_mode=args.dev, log_dir=args.log_dir, log_to_file=not args.no_log_file)
    logger = logging.getLogger('Epochipy.main')

    logger.info("Starting Epochipy...")
    logger.debug(f"Command line arguments: {args}")

    from Epochipy.core.config import load_config
    from Epochipy.core.pipeline import run_analysis, write_report
    from Epochipy.shared.error_handling import ConvergenceError, EpochipyError

    try:
        config = load_config(Path(args.config))
        outcome = run_analysis(config)
        written = write_report(outcome, Path(args.output), config)
    except ConvergenceError as e:
        logger.error(f"Model fitting failed: {e}")
        for line in e.diagnostics:
            logger.error(f"  optimizer: {line}")
        print(f"Error: {e}")
        return 1
    except EpochipyError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}")
        return 1

    effect = outcome.model.summary_frame()
    logger.info(f"Fixed effects:\n{effect.to_string()}")
    print(f"Report written to {Path(args.output).resolve()} ({len(written)} files)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
