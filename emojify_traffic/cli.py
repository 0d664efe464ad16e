"""
Smoke-run command line for the Emojify workflow.

Runs a handful of iterations sequentially, without Locust, and prints
one line per iteration.  Useful to check that a freshly deployed
service (and the configuration pointing at it) works before starting a
long load test::

    BASE_URI=http://emojify.local python -m emojify_traffic --iterations 3

``--env-help`` lists every configuration variable with its default.

Exit codes:

- ``0`` -- every iteration succeeded
- ``1`` -- at least one iteration failed
- ``2`` -- the configuration is invalid
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

from . import __version__
from .config import HarnessSettings, WorkflowSettings, env_help, get_config
from .errors import ConfigurationError
from .reporting import (
    attach_error_log,
    configure_logging,
    detach_error_log,
    format_outcome,
    record_failure,
)
from .workflow import Workflow

logger = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the smoke runner."""
    parser = argparse.ArgumentParser(
        prog="emojify_traffic",
        description="Run Emojify workflow iterations against BASE_URI.",
    )
    parser.add_argument(
        "--env-help",
        action="store_true",
        help="List configuration environment variables and exit",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=1,
        help="Number of sequential iterations to run (default: 1)",
    )
    parser.add_argument(
        "--base-uri",
        default=None,
        help="Service root URL; overrides BASE_URI",
    )
    parser.add_argument(
        "--env",
        default=None,
        help="Configuration profile: development, testing or production",
    )
    parser.add_argument(
        "--error-log",
        default=None,
        help="File receiving one line per failed iteration",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every HTTP request",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, *, workflow: Workflow | None = None) -> int:
    """
    Entry point for ``python -m emojify_traffic``.

    Args:
        argv: Arguments without the program name; ``sys.argv`` when None.
        workflow: Prebuilt workflow, used by tests instead of one built
            from the configuration.

    Returns:
        One of the ``EXIT_*`` codes.
    """
    args = parse_args(argv)

    if args.env_help:
        print(f"Emojify Traffic version: {__version__}")
        print("Configuration values are set using environment variables:")
        print()
        print(env_help())
        return EXIT_PASS

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.iterations < 1:
        print("--iterations must be at least 1")
        return EXIT_CONFIG_ERROR

    if workflow is None:
        try:
            config_class = get_config(args.env)
            # Locust-only values are checked too, so one bad variable fails every entry point.
            HarnessSettings.from_config(config_class)
            settings = WorkflowSettings.from_config(config_class, base_uri=args.base_uri)
        except ConfigurationError as exc:
            print(f"Invalid configuration: {exc}")
            print()
            print(env_help())
            return EXIT_CONFIG_ERROR
        workflow = Workflow(settings)

    handler = attach_error_log(args.error_log) if args.error_log else None
    logger.info("Running %d iteration(s) against %s", args.iterations, workflow.settings.base_uri)

    failures = 0
    try:
        for index in range(1, args.iterations + 1):
            outcome = workflow()
            print(format_outcome(index, outcome))
            if not outcome:
                failures += 1
                record_failure(outcome)
    finally:
        if handler is not None:
            detach_error_log(handler)

    print(f"{args.iterations - failures}/{args.iterations} iteration(s) passed")
    return EXIT_FAILURES if failures else EXIT_PASS
