"""
Shared pytest fixtures for the Emojify Traffic test suite.

Fixtures provide validated settings pointing at a non-routable host, a
sleep recorder so no test ever actually waits, and a scripted fake
session pre-loaded with the happy path of one workflow iteration.

Key Concepts Demonstrated:
- Fixture dependencies (``happy_session`` builds on ``settings``)
- Test data factories for per-test scripting of HTTP responses
- Time control by injecting ``sleep`` instead of patching ``time``
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable

import pytest

# Set testing environment before importing the package
os.environ["TRAFFIC_ENV"] = "testing"

from emojify_traffic.config import WorkflowSettings
from emojify_traffic.endpoints import PICTURE_PATHS, SUBMIT_PATH, cache_path, status_path
from emojify_traffic.workflow import Workflow
from tests.fakes import FakeResponse, FakeSession

BASE_URI = "http://emojify.test"
JOB_ID = "job-42"


# -----------------------------------------------------------------------------
# Settings Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def settings() -> WorkflowSettings:
    """
    Provide settings for a small, fast workflow.

    Delays are non-zero so tests can assert on what was slept; the
    ``sleeps`` fixture makes sure nothing actually waits.
    """
    return WorkflowSettings(
        base_uri=BASE_URI,
        request_timeout=2.0,
        submit_delay=1.0,
        poll_interval=1.0,
        poll_max_attempts=5,
    )


@pytest.fixture
def sleeps() -> list[float]:
    """Collect every delay requested; pass ``sleeps.append`` as ``sleep``."""
    return []


# -----------------------------------------------------------------------------
# HTTP Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def session() -> FakeSession:
    """Provide an empty scripted session."""
    return FakeSession()


@pytest.fixture
def script_iteration(settings) -> Callable[..., FakeSession]:
    """
    Factory fixture scripting one complete iteration on a fake session.

    Example:
        def test_something(script_iteration):
            session = script_iteration(statuses=("FINISHED",))
    """

    def _script(
        session: FakeSession | None = None,
        *,
        job_id: str = JOB_ID,
        statuses: Iterable[str] = ("PROCESSING", "PROCESSING", "FINISHED"),
        asset_status: int = 200,
        cache_status: int = 200,
    ) -> FakeSession:
        session = session or FakeSession()
        for path in settings.asset_paths:
            session.add("GET", settings.url(path), FakeResponse(asset_status, b"asset"))
        session.add(
            "POST",
            settings.url(SUBMIT_PATH),
            FakeResponse(json_body={"id": job_id}),
        )
        session.add(
            "GET",
            settings.url(status_path(job_id)),
            *[FakeResponse(json_body={"id": job_id, "status": s}) for s in statuses],
        )
        session.add("GET", settings.url(cache_path(job_id)), FakeResponse(cache_status, b"png"))
        return session

    return _script


@pytest.fixture
def happy_session(script_iteration) -> FakeSession:
    """A session scripted for a successful ``job-42`` iteration."""
    return script_iteration()


@pytest.fixture
def make_workflow(settings, sleeps) -> Callable[..., Workflow]:
    """Build a workflow bound to a given fake session and the sleep recorder."""

    def _make(session: FakeSession, **kwargs) -> Workflow:
        kwargs.setdefault("choice", lambda paths: paths[0])
        return Workflow(
            settings,
            session_factory=lambda: session,
            sleep=sleeps.append,
            **kwargs,
        )

    return _make


@pytest.fixture
def first_picture_url(settings) -> str:
    return settings.url(PICTURE_PATHS[0])
