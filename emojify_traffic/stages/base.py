"""
Shared plumbing for workflow stages.

A stage is a stateless object built once from :class:`WorkflowSettings`
and reused by every iteration.  Per-iteration state (the HTTP session
and the :class:`ResultContext`) is passed to :meth:`Stage.run`, so two
users running the same stage objects concurrently never see each
other's data.

Inside a stage, failures are raised as
:class:`~emojify_traffic.errors.WorkflowError` subclasses because that
keeps the happy path readable.  :meth:`Stage.run` is the boundary: it
converts them into a :class:`StageResult` value, and the runner only
ever inspects that value.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

import requests

from ..config import WorkflowSettings
from ..errors import IterationTimeout, WorkflowError
from ..models import ResultContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageResult:
    """
    What a stage hands back to the runner.

    Attributes:
        context: The context to pass to the next stage.  On failure this
            is the context the stage received, unchanged.
        error: The failure, or ``None`` on success.
    """

    context: ResultContext
    error: WorkflowError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Stage(ABC):
    """
    Base class for one step of the workflow.

    Subclasses set :attr:`name` and implement :meth:`execute`.

    Attributes:
        name: Short identifier used in logs and on errors.
        settings: Validated workflow settings.
    """

    name: str = "stage"

    def __init__(
        self,
        settings: WorkflowSettings,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self._sleep = sleep

    def run(self, session: requests.Session, context: ResultContext) -> StageResult:
        """
        Execute the stage and report its result as a value.

        :class:`IterationTimeout` belongs to the harness and is re-raised
        untouched, without a stage tag.
        """
        logger.debug("Stage %s starting (job_id=%s)", self.name, context.job_id)
        try:
            new_context = self.execute(session, context)
        except IterationTimeout:
            raise
        except WorkflowError as exc:
            if not exc.stage:
                exc.stage = self.name
            logger.warning("Stage %s failed: %s", self.name, exc)
            return StageResult(context=context, error=exc)

        logger.debug("Stage %s finished (job_id=%s)", self.name, new_context.job_id)
        return StageResult(context=new_context)

    @abstractmethod
    def execute(self, session: requests.Session, context: ResultContext) -> ResultContext:
        """
        Perform the stage's HTTP interactions.

        Returns:
            A new context with this stage's contributions.

        Raises:
            WorkflowError: On any stage failure.
        """
