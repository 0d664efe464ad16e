"""
Error log and console formatting for iteration outcomes.

Failed iterations are written, one line each, to a dedicated
``emojify_traffic.errors`` logger.  :func:`attach_error_log` points that
logger at a file (``error.txt`` by default) so the failure causes of a
long run can be inspected afterwards without scrolling the console.
The logger does not propagate, so failures are not printed twice.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .models import WorkflowOutcome

ERROR_LOGGER_NAME = "emojify_traffic.errors"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

error_logger = logging.getLogger(ERROR_LOGGER_NAME)
error_logger.propagate = False


def configure_logging(level: int = logging.INFO) -> None:
    """Console logging for entry points (the CLI and the locustfile)."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def attach_error_log(path: str | Path) -> logging.Handler:
    """
    Send failed-iteration lines to *path*, truncating any previous run.

    Args:
        path: Destination file.  Parent directories must exist.

    Returns:
        The attached handler, so callers can remove and close it.
    """
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
    error_logger.addHandler(handler)
    error_logger.setLevel(logging.INFO)
    return handler


def detach_error_log(handler: logging.Handler) -> None:
    error_logger.removeHandler(handler)
    handler.close()


def record_failure(outcome: WorkflowOutcome) -> None:
    """Append the cause of a failed outcome to the error log."""
    if outcome.ok:
        return
    job_id = outcome.context.job_id or "-"
    error_logger.error("job=%s elapsed=%.3fs %s", job_id, outcome.elapsed, outcome.cause)


def format_outcome(index: int, outcome: WorkflowOutcome) -> str:
    """One console line per iteration for the smoke CLI."""
    status = "PASS" if outcome.ok else "FAIL"
    line = f"#{index:<4}{status:<6}{outcome.elapsed * 1000:>10.1f} ms"
    if outcome.context.job_id:
        line += f"  job={outcome.context.job_id}"
    if outcome.cause is not None:
        line += f"  {outcome.cause}"
    return line
