"""Job submission stage: POST a picture URL, keep the returned job id."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Sequence

import requests

from ..config import WorkflowSettings
from ..endpoints import SUBMIT_PATH
from ..errors import ParseError
from ..models import ResultContext
from ..transport import send
from .base import Stage

logger = logging.getLogger(__name__)


class JobSubmissionStage(Stage):
    """
    Submit one randomly chosen picture for processing.

    The body is the picture's absolute URL as ``text/plain``; the service
    answers ``200`` with ``{"id": "<job id>"}``.  An absent, empty, or
    non-string ``id`` is a :class:`ParseError`: continuing with an empty
    id would only turn into a confusing 404 two stages later.
    """

    name = "submit"

    def __init__(
        self,
        settings: WorkflowSettings,
        *,
        sleep: Callable[[float], None] = time.sleep,
        choice: Callable[[Sequence[str]], str] = random.choice,
    ) -> None:
        super().__init__(settings, sleep=sleep)
        self._choice = choice

    def pick_picture(self) -> str:
        """Absolute URL of a picture, chosen uniformly at random."""
        return self.settings.url(self._choice(self.settings.picture_paths))

    def execute(self, session: requests.Session, context: ResultContext) -> ResultContext:
        picture_url = self.pick_picture()
        reply = send(
            session,
            "POST",
            self.settings.url(SUBMIT_PATH),
            stage=self.name,
            timeout=self.settings.request_timeout,
            data=picture_url.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )

        job_id = reply.json_object(self.name).get("id")
        if not isinstance(job_id, str) or not job_id.strip():
            raise ParseError(reply.url, "missing string 'id' field", stage=self.name)

        logger.info("Submitted %s as job %s", picture_url, job_id)
        return context.with_job_id(job_id).with_payload(reply.body)
