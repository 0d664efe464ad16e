"""
The Emojify user workflow, one iteration at a time.

:class:`Workflow` is the single entry point the harness calls, once per
simulated-user iteration::

    workflow = Workflow(WorkflowSettings(base_uri="http://emojify.local"))
    outcome = workflow()          # zero arguments, never raises on failure
    if not outcome:
        print(outcome.cause)

Stages run strictly in order -- page load, a fixed pause, submission,
polling, verification -- and the first failing stage ends the
iteration.  Its error becomes the outcome's cause and later stages are
never invoked.  Every iteration opens its own HTTP session and starts
from an empty :class:`ResultContext`, so concurrent iterations share no
mutable state.

Key Concepts Demonstrated:
- Short-circuiting pipeline driven by result values, not exceptions
- Constructor injection of settings, session factory and clock
- Per-iteration resource ownership (session opened and closed here)
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Sequence

import requests

from . import __version__
from .config import WorkflowSettings
from .models import ResultContext, WorkflowOutcome
from .stages import (
    ConcurrentFetchStage,
    JobSubmissionStage,
    PollStage,
    Stage,
    StageResult,
    VerificationStage,
)

logger = logging.getLogger(__name__)

USER_AGENT = f"emojify-traffic/{__version__}"


class Workflow:
    """
    Runs the four workflow stages for one simulated user iteration.

    Args:
        settings: Validated settings; the only configuration stages see.
        session_factory: Zero-argument callable returning a fresh
            ``requests.Session`` for each iteration.
        sleep: Used for the pause before submission and between status
            queries.  Tests pass a recorder so nothing actually waits.
        choice: Picks the picture to submit from a sequence of paths.
        page_load, submit, poll, verify: Replacement stages, mainly for
            tests.  Defaults are built from *settings*.
    """

    def __init__(
        self,
        settings: WorkflowSettings,
        *,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Callable[[float], None] = time.sleep,
        choice: Callable[[Sequence[str]], str] = random.choice,
        page_load: Stage | None = None,
        submit: Stage | None = None,
        poll: Stage | None = None,
        verify: Stage | None = None,
    ) -> None:
        self.settings = settings
        self._session_factory = session_factory
        self._sleep = sleep
        self.page_load = page_load or ConcurrentFetchStage(settings, sleep=sleep)
        self.submit = submit or JobSubmissionStage(settings, sleep=sleep, choice=choice)
        self.poll = poll or PollStage(settings, sleep=sleep)
        self.verify = verify or VerificationStage(settings, sleep=sleep)

    @property
    def stages(self) -> tuple[Stage, ...]:
        return (self.page_load, self.submit, self.poll, self.verify)

    def run(self) -> WorkflowOutcome:
        """
        Execute one iteration.

        Returns:
            ``WorkflowOutcome.success`` when every stage passed, otherwise
            a failure whose ``cause`` is the first stage error.
        """
        started = time.perf_counter()
        context = ResultContext()

        with self._open_session() as session:
            for stage in self.stages:
                if stage is self.submit:
                    # Fixed think-time between loading the page and submitting.
                    self._sleep(self.settings.submit_delay)

                result: StageResult = stage.run(session, context)
                if not result.ok:
                    elapsed = time.perf_counter() - started
                    logger.debug("Iteration failed after %.2fs at %s", elapsed, stage.name)
                    return WorkflowOutcome.failure(result.error, result.context, elapsed)
                context = result.context

        elapsed = time.perf_counter() - started
        logger.debug("Iteration succeeded in %.2fs (job %s)", elapsed, context.job_id)
        return WorkflowOutcome.success(context, elapsed)

    __call__ = run

    def _open_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers["User-Agent"] = USER_AGENT
        return session
