"""
Pass/fail gate for a finished Locust run.

Locust's ``--csv`` option writes a ``*_stats.csv`` file with one row per
request name.  Every workflow iteration is reported as one
``EmojifyFlow`` request, so that row describes whole user journeys.  This
module checks it (or the ``Aggregated`` row, for runs where the flow row
is missing) against the limits in :file:`thresholds.yml`:

- ``max_error_rate_percent`` -- failed iterations as a share of all
- ``max_p95_ms`` -- 95th-percentile iteration time

Exit codes let CI tell a slow service from a broken check:

- ``0`` -- every limit held
- ``1`` -- at least one limit was exceeded
- ``2`` -- the check could not run (missing file, bad YAML, bad CSV)

Usage::

    python -m emojify_traffic.thresholds --stats results/emojify_stats.csv
"""

from __future__ import annotations

import argparse
import csv
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NamedTuple

import yaml

FLOW_ROW_NAME = "EmojifyFlow"
AGGREGATED_ROW_NAME = "Aggregated"

LIMIT_KEYS = ("max_error_rate_percent", "max_p95_ms")

# Locust has labelled the p95 column differently across releases.
P95_COLUMNS = ("95%", "95%ile", "95th percentile", "p95")

EXIT_PASS = 0
EXIT_THRESHOLD_BREACH = 1
EXIT_SCRIPT_ERROR = 2


class Check(NamedTuple):
    """One metric compared against its limit."""

    label: str
    actual: float
    limit: float

    @property
    def passed(self) -> bool:
        return self.actual <= self.limit


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="emojify-thresholds",
        description="Fail a CI job when a Locust run breaches its performance limits.",
    )
    parser.add_argument("--stats", required=True, type=Path, help="Locust *_stats.csv file")
    parser.add_argument(
        "--thresholds",
        type=Path,
        default=Path("thresholds.yml"),
        help="YAML file with the limits (default: thresholds.yml)",
    )
    parser.add_argument(
        "--row",
        default=FLOW_ROW_NAME,
        help=f"Stats row to check (default: {FLOW_ROW_NAME})",
    )
    return parser.parse_args(argv)


def load_thresholds(path: Path) -> dict[str, float]:
    """
    Read the limits from *path*.

    Raises:
        ValueError: If a limit is missing or not a number.
    """
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    try:
        return {key: float(data[key]) for key in LIMIT_KEYS}
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(
            f"Thresholds file must define numeric {' and '.join(LIMIT_KEYS)}"
        ) from exc


def load_stats_row(stats_path: Path, name: str = FLOW_ROW_NAME) -> dict[str, str]:
    """
    Return the row called *name*, or the ``Aggregated`` row if it is absent.

    Locust puts ``Aggregated`` in the ``Name`` column in some releases and
    in the ``Type`` column in others, so both are checked.

    Raises:
        ValueError: If neither row is present.
    """
    with stats_path.open("r", encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))

    by_name = {row.get("Name"): row for row in rows}
    if name in by_name:
        return by_name[name]
    for row in rows:
        if AGGREGATED_ROW_NAME in (row.get("Name"), row.get("Type")):
            return row
    raise ValueError(f"Could not find '{name}' or '{AGGREGATED_ROW_NAME}' row in stats CSV")


def _cell(row: dict[str, str], column: str) -> float:
    text = (row.get(column) or "").strip().rstrip("%")
    if not text:
        raise ValueError(f"Missing value for {column!r}")
    try:
        return float(text)
    except ValueError as exc:
        raise ValueError(f"Non-numeric value for {column!r}: {text!r}") from exc


def extract_p95_ms(row: dict[str, str]) -> float:
    column = next((column for column in P95_COLUMNS if row.get(column)), None)
    if column is None:
        raise ValueError("Could not find p95 column in stats CSV")
    return _cell(row, column)


def compute_error_rate_percent(row: dict[str, str]) -> float:
    """
    Failed iterations as a percentage of all iterations.

    Raises:
        ValueError: If the counts are missing or ``Request Count`` is zero.
    """
    total = _cell(row, "Request Count")
    if total <= 0:
        raise ValueError("Request Count must be > 0 for threshold checks")
    return _cell(row, "Failure Count") / total * 100.0


def evaluate(row: dict[str, str], limits: dict[str, float]) -> list[Check]:
    return [
        Check("Error rate (%)", compute_error_rate_percent(row), limits["max_error_rate_percent"]),
        Check("P95 latency (ms)", extract_p95_ms(row), limits["max_p95_ms"]),
    ]


def format_report(row_name: str, checks: Sequence[Check]) -> str:
    """Render the checks as a fixed-width table for CI logs."""
    rule = "=" * 56
    lines = [f"Thresholds for {row_name}", rule]
    for check in checks:
        verdict = "PASS" if check.passed else "FAIL"
        lines.append(f"{check.label:<20}{check.actual:>12.2f} / {check.limit:<12.2f}{verdict:>9}")
    lines.append(rule)
    lines.append(f"Overall: {'PASS' if all(check.passed for check in checks) else 'FAIL'}")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for ``emojify-thresholds``; returns one of the ``EXIT_*`` codes."""
    args = parse_args(argv)

    try:
        limits = load_thresholds(args.thresholds)
        row = load_stats_row(args.stats, args.row)
        checks = evaluate(row, limits)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Threshold check failed: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR

    print(format_report(row.get("Name") or AGGREGATED_ROW_NAME, checks))
    if all(check.passed for check in checks):
        return EXIT_PASS
    return EXIT_THRESHOLD_BREACH


if __name__ == "__main__":
    raise SystemExit(main())
