"""
Emojify Traffic -- load generator for the Emojify application.

Simulates users who open the Emojify page, submit a picture, wait for
the asynchronous job to finish and fetch the result.  The workflow for
one user iteration lives in :mod:`emojify_traffic.workflow`; Locust
drives many of them concurrently through
:mod:`emojify_traffic.locustfile`.

Key Concepts Demonstrated:
- A single zero-argument iteration callable the harness can invoke
- Concurrent fan-out and join inside one iteration (page assets)
- Bounded polling that reports exhaustion as a failure
- Locust as the harness for scheduling, timing and reporting
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import WorkflowSettings, get_config
from .errors import (
    AggregateError,
    ConfigurationError,
    IterationTimeout,
    JobFailed,
    ParseError,
    PollExhausted,
    StatusError,
    TransportError,
    WorkflowError,
)
from .models import JobStatus, ResultContext, WorkflowOutcome
from .workflow import Workflow

__all__ = [
    "AggregateError",
    "ConfigurationError",
    "IterationTimeout",
    "JobFailed",
    "JobStatus",
    "ParseError",
    "PollExhausted",
    "ResultContext",
    "StatusError",
    "TransportError",
    "Workflow",
    "WorkflowError",
    "WorkflowOutcome",
    "WorkflowSettings",
    "get_config",
]
