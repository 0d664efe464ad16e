"""Verification stage: the finished artifact must be served from the cache."""

from __future__ import annotations

import requests

from ..endpoints import cache_path
from ..models import ResultContext
from ..transport import send
from .base import Stage


class VerificationStage(Stage):
    """GET the cached artifact for the job; anything but 200 fails."""

    name = "verify"

    def execute(self, session: requests.Session, context: ResultContext) -> ResultContext:
        job_id = context.require_job_id(self.name)
        send(
            session,
            "GET",
            self.settings.url(cache_path(job_id)),
            stage=self.name,
            timeout=self.settings.request_timeout,
        )
        return context
