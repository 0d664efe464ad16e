"""
Job polling stage.

Queries the job status endpoint at a fixed interval until the service
reports ``FINISHED``, with a hard cap on the number of queries::

    POLLING --FINISHED--------------> FINISHED   (success)
    POLLING --transport/status/parse-> FAILED    (immediately)
    POLLING --ERROR-----------------> FAILED    (JobFailed)
    POLLING --attempts used up------> EXHAUSTED (PollExhausted)

Running out of attempts is a failure, so a stuck job queue shows up in
the load test results.
"""

from __future__ import annotations

import logging

import requests

from ..endpoints import status_path
from ..errors import JobFailed, ParseError, PollExhausted
from ..models import JobStatus, ResultContext
from ..transport import send
from .base import Stage

logger = logging.getLogger(__name__)


class PollStage(Stage):
    """Wait for the submitted job to finish, within a fixed attempt budget."""

    name = "poll"

    def execute(self, session: requests.Session, context: ResultContext) -> ResultContext:
        job_id = context.require_job_id(self.name)
        url = self.settings.url(status_path(job_id))
        max_attempts = self.settings.poll_max_attempts
        status = JobStatus.UNKNOWN

        for attempt in range(1, max_attempts + 1):
            reply = send(
                session,
                "GET",
                url,
                stage=self.name,
                timeout=self.settings.request_timeout,
            )
            body = reply.json_object(self.name)

            reported_id = body.get("id")
            if reported_id is not None and reported_id != job_id:
                raise ParseError(
                    url,
                    f"status is for job {reported_id!r}, expected {job_id!r}",
                    stage=self.name,
                )

            status = JobStatus.parse(body.get("status"))
            logger.debug("Job %s attempt %d/%d: %s", job_id, attempt, max_attempts, status.value)

            if status is JobStatus.FINISHED:
                logger.info("Job %s finished after %d attempt(s)", job_id, attempt)
                return context.with_status(status).with_payload(reply.body)
            if status is JobStatus.ERROR:
                raise JobFailed(job_id, stage=self.name)

            # No sleep after the last attempt.
            if attempt < max_attempts:
                self._sleep(self.settings.poll_interval)

        logger.info("Job %s exhausted %d attempt(s) at status %s", job_id, max_attempts, status.value)
        raise PollExhausted(job_id, max_attempts, status.value, stage=self.name)
