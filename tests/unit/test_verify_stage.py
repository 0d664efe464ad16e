"""
Unit tests for the artifact verification stage.
"""

from __future__ import annotations

import pytest
import requests

from emojify_traffic.endpoints import cache_path
from emojify_traffic.errors import StatusError, TransportError
from emojify_traffic.models import JobStatus, ResultContext
from emojify_traffic.stages import VerificationStage
from tests.fakes import FakeResponse, FakeSession

pytestmark = pytest.mark.unit


@pytest.fixture
def finished() -> ResultContext:
    return ResultContext().with_job_id("job-42").with_status(JobStatus.FINISHED)


def test_cached_artifact_passes(settings, finished):
    response = FakeResponse(200, b"\x89PNG")
    session = FakeSession().add("GET", settings.url(cache_path("job-42")), response)

    result = VerificationStage(settings).run(session, finished)

    assert result.ok
    assert result.context == finished
    assert response.closed


@pytest.mark.parametrize(
    "responder, error_type",
    [
        (FakeResponse(404), StatusError),
        (FakeResponse(204), StatusError),
        (requests.Timeout("slow"), TransportError),
        (None, TransportError),
    ],
)
def test_anything_but_200_fails(settings, finished, responder, error_type):
    session = FakeSession().add("GET", settings.url(cache_path("job-42")), responder)

    result = VerificationStage(settings).run(session, finished)

    assert isinstance(result.error, error_type)
    assert result.error.stage == "verify"
