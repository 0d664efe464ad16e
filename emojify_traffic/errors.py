"""
Error taxonomy for the Emojify workflow.

Every failure a stage can produce is a subclass of :class:`WorkflowError`.
Stages catch these internally and hand them back to the runner as plain
values (see :class:`~emojify_traffic.stages.base.StageResult`), so the
runner never depends on exceptions propagating through it.  The classes
are still real exceptions so that the harness can chain, log, or raise
them when that is the natural thing to do.

Key Concepts Demonstrated:
- One base class with a ``stage`` attribute so reports can group failures
- Distinct types for transport, status, parse, and exhaustion failures
- ``AggregateError`` keeping *every* underlying cause, not just the first
"""

from __future__ import annotations

from collections.abc import Iterable


class ConfigurationError(ValueError):
    """Raised when workflow settings are missing or out of range."""


class WorkflowError(Exception):
    """
    Base class for every stage-level failure.

    Attributes:
        stage: Name of the stage that produced the error (for example
            ``"submit"``).  Empty when the error was raised by the harness.
    """

    def __init__(self, message: str, *, stage: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class TransportError(WorkflowError):
    """Connection, DNS, TLS, or timeout failure below the HTTP layer."""

    def __init__(self, url: str, cause: BaseException, *, stage: str = "") -> None:
        super().__init__(f"{url} request failed: {cause}", stage=stage)
        self.url = url
        self.__cause__ = cause


class StatusError(WorkflowError):
    """The service answered, but not with a status the stage accepts."""

    def __init__(self, url: str, status_code: int, *, stage: str = "") -> None:
        super().__init__(f"{url} returned status {status_code}", stage=stage)
        self.url = url
        self.status_code = status_code


class ParseError(WorkflowError):
    """A response body was malformed or lacked a required field."""

    def __init__(self, url: str, reason: str, *, stage: str = "") -> None:
        super().__init__(f"{url} returned an unusable body: {reason}", stage=stage)
        self.url = url
        self.reason = reason


class AggregateError(WorkflowError):
    """
    One or more concurrent sub-requests failed.

    Attributes:
        errors: Every sub-request failure, in completion order.
    """

    def __init__(self, errors: Iterable[WorkflowError], *, stage: str = "") -> None:
        self.errors: list[WorkflowError] = list(errors)
        details = "; ".join(str(error) for error in self.errors)
        super().__init__(
            f"{len(self.errors)} request(s) failed: {details}",
            stage=stage,
        )

    def __len__(self) -> int:
        return len(self.errors)

    @property
    def urls(self) -> list[str]:
        """URLs of the failed sub-requests, where the cause carries one."""
        return [error.url for error in self.errors if hasattr(error, "url")]


class PollExhausted(WorkflowError):
    """The job never reached FINISHED within the poll attempt budget."""

    def __init__(self, job_id: str, attempts: int, last_status: str, *, stage: str = "") -> None:
        super().__init__(
            f"job {job_id} not finished after {attempts} attempt(s) "
            f"(last status: {last_status})",
            stage=stage,
        )
        self.job_id = job_id
        self.attempts = attempts
        self.last_status = last_status


class JobFailed(WorkflowError):
    """The service reported that it gave up processing the job."""

    def __init__(self, job_id: str, *, stage: str = "") -> None:
        super().__init__(f"job {job_id} reported status ERROR", stage=stage)
        self.job_id = job_id


class IterationTimeout(WorkflowError):
    """The harness abandoned an iteration that exceeded its wall-clock budget."""

    def __init__(self, seconds: float) -> None:
        super().__init__(f"iteration exceeded {seconds:g}s timeout")
        self.seconds = seconds
