"""
Locust entrypoint for the Emojify load test.

This is the file the ``locust`` CLI discovers and loads.  Locust is the
harness: it spawns ``--users`` concurrent users for ``--run-time``, and
each user runs the workflow back to back.  Every iteration is reported
to Locust as one request named ``EmojifyFlow`` whose response time is
the iteration's wall-clock time, so the stats table, CSV and HTML
reports describe whole user journeys rather than individual calls.

Usage examples::

    # Five users for thirty minutes, CSV stats for the threshold gate:
    locust -f emojify_traffic/locustfile.py --headless \\
        --host http://emojify.local --users 5 --spawn-rate 5 \\
        --run-time 30m --csv results/emojify

    # Tighter polling budget, custom error log:
    locust -f emojify_traffic/locustfile.py --poll-max-attempts 30 \\
        --error-log results/errors.txt ...

Every workflow option can also be set through the environment variables
listed by ``python -m emojify_traffic --env-help``.

Key Concepts Demonstrated:
- ``init_command_line_parser`` to expose workflow settings as CLI flags
- Firing a custom ``request`` event per iteration for Locust statistics
- A gevent timeout abandoning iterations that exceed their budget
"""

from __future__ import annotations

import logging
import time
from typing import Any

import gevent
from locust import User, constant, events, task
from locust.exception import StopUser

from emojify_traffic.config import (
    Config,
    HarnessSettings,
    WorkflowSettings,
    get_config,
    parse_count,
    parse_duration,
)
from emojify_traffic.errors import ConfigurationError, IterationTimeout
from emojify_traffic.models import WorkflowOutcome
from emojify_traffic.reporting import attach_error_log, detach_error_log, record_failure
from emojify_traffic.workflow import Workflow

logger = logging.getLogger(__name__)

FLOW_REQUEST_TYPE = "FLOW"
FLOW_NAME = "EmojifyFlow"

_error_log_handler: logging.Handler | None = None


@events.init_command_line_parser.add_listener
def _add_workflow_arguments(parser: Any) -> None:
    """
    Expose the workflow settings as ``locust`` CLI flags.

    ``USERS``, ``DURATION`` and ``SHOW_PROGRESS`` become the defaults of
    Locust's own ``--users``, ``--run-time`` and ``--only-summary``, so
    the ``LOCUST_*`` variables and explicit flags still take precedence.
    """
    defaults: type[Config] = get_config()
    try:
        harness = HarnessSettings.from_config(defaults)
    except ConfigurationError as exc:
        parser.error(f"Invalid configuration: {exc}")

    parser.set_defaults(
        num_users=harness.users,
        run_time=harness.run_time,
        only_summary=not harness.show_progress,
    )

    group = parser.add_argument_group("Emojify workflow")
    group.add_argument(
        "--iteration-timeout",
        type=parse_duration,
        env_var="TIMEOUT",
        default=harness.timeout,
        help="Wall-clock budget for one iteration, e.g. 60s (0 disables)",
    )
    group.add_argument(
        "--request-timeout",
        type=parse_duration,
        env_var="REQUEST_TIMEOUT",
        default=defaults.REQUEST_TIMEOUT,
        help="Timeout for each HTTP request",
    )
    group.add_argument(
        "--submit-delay",
        type=parse_duration,
        env_var="SUBMIT_DELAY",
        default=defaults.SUBMIT_DELAY,
        help="Pause between loading the page and submitting a picture",
    )
    group.add_argument(
        "--poll-interval",
        type=parse_duration,
        env_var="POLL_INTERVAL",
        default=defaults.POLL_INTERVAL,
        help="Pause between job status queries",
    )
    group.add_argument(
        "--poll-max-attempts",
        type=parse_count,
        env_var="POLL_MAX_ATTEMPTS",
        default=defaults.POLL_MAX_ATTEMPTS,
        help="Status queries before the job is declared stuck",
    )
    group.add_argument(
        "--error-log",
        type=str,
        env_var="ERROR_LOG",
        default=defaults.ERROR_LOG,
        help="File receiving one line per failed iteration ('' disables)",
    )


@events.init.add_listener
def _open_error_log(environment: Any, **_kwargs: Any) -> None:
    """Attach the error log file once per Locust process."""
    global _error_log_handler
    options = environment.parsed_options
    path = getattr(options, "error_log", None) if options is not None else None
    if path:
        _error_log_handler = attach_error_log(path)
        logger.info("Writing failed iterations to %s", path)


@events.quitting.add_listener
def _close_error_log(**_kwargs: Any) -> None:
    global _error_log_handler
    if _error_log_handler is not None:
        detach_error_log(_error_log_handler)
        _error_log_handler = None


def settings_from_options(options: Any, host: str | None) -> WorkflowSettings:
    """
    Build workflow settings from parsed Locust options.

    Args:
        options: ``environment.parsed_options``; ``None`` when Locust is
            used as a library, in which case the config class is used.
        host: Locust's ``--host`` (or the user class attribute), which
            takes precedence over ``BASE_URI``.
    """
    config_class = get_config()
    if options is None:
        return WorkflowSettings.from_config(config_class, base_uri=host)
    return WorkflowSettings.from_config(
        config_class,
        base_uri=host,
        request_timeout=options.request_timeout,
        submit_delay=options.submit_delay,
        poll_interval=options.poll_interval,
        poll_max_attempts=options.poll_max_attempts,
    )


def run_with_timeout(workflow: Workflow, seconds: float | None) -> WorkflowOutcome:
    """
    Run one iteration, abandoning it after *seconds* of wall-clock time.

    The poll stage's own attempt cap still applies underneath; this is
    the outer bound the harness imposes on the whole iteration.
    """
    if not seconds:
        return workflow()

    started = time.perf_counter()
    expired = IterationTimeout(seconds)
    try:
        with gevent.Timeout(seconds, expired):
            return workflow()
    except IterationTimeout as exc:
        if exc is not expired:
            raise
        return WorkflowOutcome.failure(exc, elapsed=time.perf_counter() - started)


class EmojifyUser(User):
    """
    One simulated Emojify user.

    Runs iterations back to back with no think-time between them; the
    workflow already pauses before submitting and between status
    queries, which is where a real user would be waiting.
    """

    host = Config.BASE_URI or None
    wait_time = constant(0)

    workflow: Workflow
    iteration_timeout: float

    def on_start(self) -> None:
        """Validate settings once per user and build its workflow."""
        options = self.environment.parsed_options
        try:
            settings = settings_from_options(options, self.host)
            if options is not None:
                self.iteration_timeout = options.iteration_timeout
            else:
                self.iteration_timeout = HarnessSettings.from_config(get_config()).timeout
        except ConfigurationError as exc:
            logger.error("Cannot start user: %s", exc)
            raise StopUser(str(exc)) from exc

        self.workflow = Workflow(settings)

    @task
    def emojify_flow(self) -> None:
        """Run one iteration and report it to Locust as a single request."""
        outcome = run_with_timeout(self.workflow, self.iteration_timeout)
        if not outcome:
            record_failure(outcome)

        self.environment.events.request.fire(
            request_type=FLOW_REQUEST_TYPE,
            name=FLOW_NAME,
            response_time=outcome.elapsed * 1000,
            response_length=0,
            exception=outcome.cause,
            context={"job_id": outcome.context.job_id},
        )
