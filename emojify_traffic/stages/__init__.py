"""
Workflow stages, in the order the runner executes them:

- :mod:`.fetch` -- load the page and its assets concurrently
- :mod:`.submit` -- POST a picture and obtain a job id
- :mod:`.poll` -- wait for the job to finish, within an attempt budget
- :mod:`.verify` -- fetch the finished artifact from the cache
"""

from .base import Stage, StageResult
from .fetch import ConcurrentFetchStage, ErrorCollector
from .poll import PollStage
from .submit import JobSubmissionStage
from .verify import VerificationStage

__all__ = [
    "ConcurrentFetchStage",
    "ErrorCollector",
    "JobSubmissionStage",
    "PollStage",
    "Stage",
    "StageResult",
    "VerificationStage",
]
