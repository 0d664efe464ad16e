"""
Concurrent page-load stage.

Loads the Emojify page the way a browser does: the HTML and every
static asset are requested at once, and the stage completes only when
all of them have come back.  One worker thread is used per path and the
pool is joined before the stage returns, so no request is ever left in
flight behind the next stage.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import requests

from ..errors import AggregateError, WorkflowError
from ..models import ResultContext
from ..transport import is_success, send
from .base import Stage

logger = logging.getLogger(__name__)


class ErrorCollector:
    """Mutex-guarded list of errors written by concurrent workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: list[WorkflowError] = []

    def add(self, error: WorkflowError) -> None:
        with self._lock:
            self._errors.append(error)

    def snapshot(self) -> list[WorkflowError]:
        with self._lock:
            return list(self._errors)

    def __len__(self) -> int:
        with self._lock:
            return len(self._errors)


class ConcurrentFetchStage(Stage):
    """GET every configured asset path in parallel; fail if any fail."""

    name = "page_load"

    def execute(self, session: requests.Session, context: ResultContext) -> ResultContext:
        paths = self.settings.asset_paths
        if not paths:
            return context

        errors = ErrorCollector()
        with ThreadPoolExecutor(
            max_workers=len(paths),
            thread_name_prefix="page-load",
        ) as pool:
            futures = [pool.submit(self._fetch, session, path, errors) for path in paths]

        # The pool has been joined; result() only re-raises programming
        # errors, since expected failures were collected in _fetch.
        for future in futures:
            future.result()

        if errors:
            raise AggregateError(errors.snapshot(), stage=self.name)

        logger.debug("Fetched %d asset(s) from %s", len(paths), self.settings.base_uri)
        return context

    def _fetch(self, session: requests.Session, path: str, errors: ErrorCollector) -> None:
        url = self.settings.url(path)
        try:
            send(
                session,
                "GET",
                url,
                stage=self.name,
                timeout=self.settings.request_timeout,
                accept=is_success,
            )
        except WorkflowError as exc:
            errors.add(exc)
