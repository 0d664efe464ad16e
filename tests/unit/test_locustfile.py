"""
Unit tests for the Locust harness.

Locust normally monkey-patches the whole process through gevent when it
is imported.  These tests only need gevent's timer and hub, so patching
is switched off with ``LOCUST_SKIP_MONKEY_PATCH`` before the import and
the rest of the suite keeps real threads.

Key SDET Concepts Demonstrated:
- Driving a Locust user without starting a runner
- Capturing custom ``request`` events with a listener
- Cooperative stalls (``gevent.sleep``) to exercise wall-clock timeouts
"""

from __future__ import annotations

import os

os.environ.setdefault("LOCUST_SKIP_MONKEY_PATCH", "1")

import gevent  # noqa: E402
import pytest  # noqa: E402
from locust.argument_parser import get_parser  # noqa: E402
from locust.env import Environment  # noqa: E402
from locust.exception import StopUser  # noqa: E402

from emojify_traffic.config import get_config  # noqa: E402
from emojify_traffic.errors import IterationTimeout, StatusError  # noqa: E402
from emojify_traffic.locustfile import (  # noqa: E402
    FLOW_NAME,
    FLOW_REQUEST_TYPE,
    EmojifyUser,
    run_with_timeout,
)
from emojify_traffic.models import ResultContext, WorkflowOutcome  # noqa: E402
from emojify_traffic.stages import Stage  # noqa: E402
from tests.fakes import FakeSession  # noqa: E402

pytestmark = pytest.mark.unit


class StallingStage(Stage):
    """Stage double that yields to the gevent hub for far longer than any budget."""

    name = "poll"

    def execute(self, session, context):
        gevent.sleep(30)
        return context


class PassThroughStage(Stage):
    """Stage double that succeeds at once; the submit stage also sets a job id."""

    def __init__(self, settings, name):
        super().__init__(settings)
        self.name = name

    def execute(self, session, context):
        if self.name == "submit":
            return context.with_job_id("job-42")
        return context


def _parse_locust_args(*argv: str):
    return get_parser(default_config_files=[]).parse_args(list(argv))


# -----------------------------------------------------------------------------
# Iteration timeout
# -----------------------------------------------------------------------------

def test_stalled_workflow_fails_with_iteration_timeout(make_workflow, settings):
    # Arrange
    session = FakeSession()
    workflow = make_workflow(
        session,
        page_load=PassThroughStage(settings, "page_load"),
        submit=PassThroughStage(settings, "submit"),
        poll=StallingStage(settings),
    )

    # Act
    outcome = run_with_timeout(workflow, 0.2)

    # Assert
    assert isinstance(outcome.cause, IterationTimeout)
    assert outcome.cause.stage == ""
    assert 0.15 <= outcome.elapsed < 5
    assert session.closed


def test_zero_seconds_disables_the_timeout():
    expected = WorkflowOutcome.success(ResultContext(job_id="job-1"))

    def slow_workflow():
        gevent.sleep(0.05)
        return expected

    assert run_with_timeout(slow_workflow, 0) is expected


def test_finished_iteration_cancels_its_timer():
    expected = WorkflowOutcome.success(ResultContext(job_id="job-1"))

    outcome = run_with_timeout(lambda: expected, 0.05)
    # A timer left running would be raised into this sleep.
    gevent.sleep(0.1)

    assert outcome is expected


# -----------------------------------------------------------------------------
# EmojifyUser
# -----------------------------------------------------------------------------

@pytest.fixture
def environment():
    return Environment(user_classes=[EmojifyUser])


@pytest.fixture
def fired(environment):
    """Every ``request`` event fired on the environment."""
    events = []

    def _record(**kwargs):
        events.append(kwargs)

    environment.events.request.add_listener(_record)
    return events


def test_emojify_flow_fires_one_event_per_iteration(environment, fired):
    # Arrange
    cause = StatusError("http://emojify.test/v2/api/cache/job-7", 404, stage="verify")
    outcome = WorkflowOutcome.failure(cause, ResultContext(job_id="job-7"), elapsed=1.25)
    user = EmojifyUser(environment)
    user.workflow = lambda: outcome
    user.iteration_timeout = 0

    # Act
    user.emojify_flow()

    # Assert
    assert len(fired) == 1
    event = fired[0]
    assert event["request_type"] == FLOW_REQUEST_TYPE
    assert event["name"] == FLOW_NAME
    assert event["exception"] is cause
    assert event["response_time"] == pytest.approx(1250.0)
    assert event["context"] == {"job_id": "job-7"}


def test_successful_iteration_is_reported_without_exception(environment, fired):
    user = EmojifyUser(environment)
    user.workflow = lambda: WorkflowOutcome.success(ResultContext(job_id="job-1"), 0.5)
    user.iteration_timeout = 0

    user.emojify_flow()
    user.emojify_flow()

    assert [event["exception"] for event in fired] == [None, None]


def test_on_start_builds_workflow_from_config(environment):
    user = EmojifyUser(environment)
    user.host = "http://override.test/"

    user.on_start()

    assert user.workflow.settings.base_uri == "http://override.test"
    assert user.iteration_timeout > 0


def test_on_start_stops_user_on_invalid_configuration(environment, monkeypatch):
    monkeypatch.setattr(get_config("testing"), "BASE_URI", "")
    user = EmojifyUser(environment)
    user.host = None

    with pytest.raises(StopUser):
        user.on_start()


# -----------------------------------------------------------------------------
# Command line
# -----------------------------------------------------------------------------

def test_workflow_flags_default_from_config():
    options = _parse_locust_args()

    assert options.poll_max_attempts == 5
    assert options.request_timeout == pytest.approx(1.0)
    assert options.iteration_timeout > 0


def test_harness_variables_feed_locust_defaults(monkeypatch):
    # Arrange
    testing = get_config("testing")
    monkeypatch.setattr(testing, "USERS", "12")
    monkeypatch.setattr(testing, "DURATION", "90s")
    monkeypatch.setattr(testing, "SHOW_PROGRESS", "false")

    # Act
    options = _parse_locust_args()

    # Assert
    assert options.num_users == 12
    assert options.run_time == 90
    assert options.only_summary is True


def test_explicit_locust_flags_win_over_harness_variables(monkeypatch):
    monkeypatch.setattr(get_config("testing"), "USERS", "12")

    options = _parse_locust_args("--users", "3", "--run-time", "10s")

    assert options.num_users == 3
    assert options.run_time == 10


def test_invalid_harness_variable_is_a_usage_error(monkeypatch):
    monkeypatch.setattr(get_config("testing"), "USERS", "many")

    with pytest.raises(SystemExit) as excinfo:
        _parse_locust_args()

    assert excinfo.value.code == 2
