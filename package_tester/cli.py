"""Command-line interface for the package tester."""

import argparse
import asyncio
import logging
import re
import sys
from pathlib import Path

from .config import DEFAULT_CONFIG_PATH, TesterOptions, load_tester_config
from .constants import EXIT_ERROR, EXIT_SUCCESS, EXIT_TEST_FAILURE
from .errors import BatchFailedError, CommandError, ConfigError
from .runner import main as run_batch

logger = logging.getLogger(__name__)


def parse_n_processes(value: str) -> int:
    """Validate the --n-processes value.

    Raises:
        argparse.ArgumentTypeError: If the value is not a positive integer.
    """
    try:
        n_processes = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected n-processes to be a number, got '{value}'")
    if n_processes < 1:
        raise argparse.ArgumentTypeError(f"Expected n-processes to be at least 1, got {n_processes}")
    return n_processes


def parse_pattern(value: str) -> re.Pattern:
    try:
        return re.compile(value)
    except re.error as e:
        raise argparse.ArgumentTypeError(f"Invalid package pattern '{value}': {e}")


def parse_arguments(argv=None):
    """Parse and validate command-line arguments.

    Returns:
        argparse.Namespace: Parsed and validated arguments.
    """
    parser = argparse.ArgumentParser(
        description="Validate definitions packages: tsconfig, package.json, compile and lint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Package selection:
  With a PATTERN, every package whose name matches the regex is tested.
  With --all, every package is tested.
  With neither, packages changed on this branch and their dependents are tested.

Examples:
  # Test packages changed since origin/master:
  python -m package_tester

  # Test every package whose name starts with "react":
  python -m package_tester "^react" --n-processes 4

  # Test everything from inside a definitions checkout:
  python -m package_tester --all --run-from-definitely-typed
        """,
    )
    parser.add_argument("pattern", nargs="?", type=parse_pattern, help="Regex matched against package names")
    parser.add_argument("--all", action="store_true", help="Test every package (overrides PATTERN)")
    parser.add_argument(
        "-j",
        "--n-processes",
        type=parse_n_processes,
        default=None,
        help="Maximum number of packages processed at once (default: number of CPUs)",
    )
    parser.add_argument(
        "--run-from-definitely-typed",
        action="store_true",
        help="Use the current directory as the definitions checkout instead of the default snapshot",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the tester configuration YAML",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    return parser.parse_args(argv)


def tester_options(run_from_definitely_typed: bool) -> TesterOptions:
    if run_from_definitely_typed:
        return TesterOptions.from_cwd(Path.cwd())
    return TesterOptions.defaults()


def main(argv=None):
    """Main entry point for the CLI."""
    args = parse_arguments(argv)

    # Configure logging at application entry point
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    pattern = re.compile("") if args.all else args.pattern
    try:
        config = load_tester_config(args.config)
        asyncio.run(
            run_batch(
                tester_options(args.run_from_definitely_typed),
                n_processes=args.n_processes,
                pattern=pattern,
                config=config,
            )
        )
    except BatchFailedError as e:
        logger.error(f"{e.message} ({e.failure_count} failed)")
        sys.exit(EXIT_TEST_FAILURE)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(EXIT_ERROR)
    except CommandError as e:
        logger.error("%s\n%s\n%s", e.message, e.stdout, e.stderr)
        sys.exit(EXIT_ERROR)

    logger.info("All packages passed.")
    sys.exit(EXIT_SUCCESS)
