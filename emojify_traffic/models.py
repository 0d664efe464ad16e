"""
Value types passed between workflow stages.

Stages never share mutable state.  Each one receives a
:class:`ResultContext`, and returns a *new* context carrying whatever it
contributed (the job id, the latest status, the raw payload).  The
runner turns the final context, or the first error, into a single
:class:`WorkflowOutcome` for the harness.

Key Concepts Demonstrated:
- ``str, Enum`` inheritance for JSON-friendly status values
- Frozen dataclasses with ``replace`` for copy-on-write context updates
- Write-once fields enforced at the point of assignment
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .errors import WorkflowError


class JobStatus(str, Enum):
    """
    Lifecycle states reported by the job status endpoint.

    Inherits from ``str`` so members compare equal to the raw strings in
    the service's JSON.  Values the service may add later are folded
    into ``UNKNOWN`` by :meth:`parse` rather than rejected.  Matching is
    exact: ``"finished"`` is not ``FINISHED``.
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    FINISHED = "FINISHED"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> JobStatus:
        """Map a raw status value onto a member, defaulting to ``UNKNOWN``."""
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.FINISHED, JobStatus.ERROR)


@dataclass(frozen=True)
class ResultContext:
    """
    Immutable carrier of data produced by one stage for a later one.

    Attributes:
        job_id: Identifier returned by the submission endpoint.  Write
            once: :meth:`with_job_id` refuses to replace a different id.
        status: Latest status observed by the poll stage.
        payload: Raw body of the most recent response a stage chose to
            keep (the submission response, then the final status body).
    """

    job_id: str | None = None
    status: JobStatus | None = None
    payload: bytes | None = None

    def with_job_id(self, job_id: str) -> ResultContext:
        if self.job_id is not None and self.job_id != job_id:
            raise ValueError(
                f"job id already set to {self.job_id!r}, refusing {job_id!r}"
            )
        return replace(self, job_id=job_id)

    def with_status(self, status: JobStatus) -> ResultContext:
        return replace(self, status=status)

    def with_payload(self, payload: bytes) -> ResultContext:
        return replace(self, payload=payload)

    def require_job_id(self, stage: str) -> str:
        """Return the job id, or raise if no earlier stage provided one."""
        if not self.job_id:
            raise WorkflowError("no job id in context", stage=stage)
        return self.job_id

    def as_dict(self) -> dict[str, Any]:
        """Populated keys in the order stages add them."""
        items = (
            ("job_id", self.job_id),
            ("status", self.status.value if self.status else None),
            ("payload", self.payload),
        )
        return {key: value for key, value in items if value is not None}


@dataclass(frozen=True)
class WorkflowOutcome:
    """
    Result of one workflow iteration.

    A successful outcome has ``cause is None``.  ``bool(outcome)`` is
    ``True`` only for success, so harness code can write
    ``if not outcome: ...``.

    Attributes:
        cause: The error of the first stage that failed, if any.
        context: The last context produced before the iteration ended.
        elapsed: Wall-clock seconds the iteration took.
    """

    cause: WorkflowError | None = None
    context: ResultContext = ResultContext()
    elapsed: float = 0.0

    @classmethod
    def success(cls, context: ResultContext, elapsed: float = 0.0) -> WorkflowOutcome:
        return cls(cause=None, context=context, elapsed=elapsed)

    @classmethod
    def failure(
        cls,
        cause: WorkflowError,
        context: ResultContext | None = None,
        elapsed: float = 0.0,
    ) -> WorkflowOutcome:
        return cls(cause=cause, context=context or ResultContext(), elapsed=elapsed)

    @property
    def ok(self) -> bool:
        return self.cause is None

    def __bool__(self) -> bool:
        return self.ok
