"""Domain models for the serverless job API.

All models use Pydantic v2 for validation and serialization.
"""

from enum import Enum
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobStatus(str, Enum):
    """Remote job lifecycle status (wire tokens are upper snake case)."""

    IN_QUEUE = "IN_QUEUE"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    CANCELLED = "CANCELLED"

    def __str__(self) -> str:
        return self.value

    def is_final(self) -> bool:
        """Return True when no further transition can occur."""
        return self in FINAL_STATUSES

    def is_completed(self) -> bool:
        """Return True only for successful completion."""
        return self is JobStatus.COMPLETED


FINAL_STATUSES: Final[frozenset[JobStatus]] = frozenset(
    {
        JobStatus.COMPLETED,
        JobStatus.FAILED,
        JobStatus.TIMED_OUT,
        JobStatus.CANCELLED,
    }
)


class _CamelModel(BaseModel):
    """Base for wire models that use camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class RunRequest(BaseModel):
    """Body of a job submission."""

    input: Any = Field(..., description="JSON-compatible job input")


class RunResponse(_CamelModel):
    """Response to a job submission."""

    id: str = Field(..., description="Remote job identifier")
    status: JobStatus | None = Field(default=None)
    output: Any | None = Field(default=None)


class JobStatusResponse(_CamelModel):
    """Response of the status endpoint."""

    status: JobStatus
    output: Any | None = Field(default=None)
    delay_time: int | None = Field(
        default=None, description="Queue delay in ms as reported remotely"
    )
    execution_time: int | None = Field(
        default=None, description="Execution time in ms as reported remotely"
    )


class StreamChunk(BaseModel):
    """One fragment of partial output."""

    output: Any


class StreamResponse(BaseModel):
    """Response of the stream endpoint: status plus newly available chunks."""

    status: JobStatus
    stream: list[StreamChunk] = Field(default_factory=list)


class JobStats(_CamelModel):
    """Job counters reported by the health endpoint."""

    completed: int
    failed: int
    in_progress: int
    in_queue: int
    retried: int


class WorkerStats(_CamelModel):
    """Worker counters reported by the health endpoint."""

    idle: int
    initializing: int
    ready: int
    running: int
    throttled: int


class EndpointHealth(BaseModel):
    """Snapshot of endpoint queue and worker counts."""

    jobs: JobStats
    workers: WorkerStats


__all__ = [
    "FINAL_STATUSES",
    "EndpointHealth",
    "JobStats",
    "JobStatus",
    "JobStatusResponse",
    "RunRequest",
    "RunResponse",
    "StreamChunk",
    "StreamResponse",
    "WorkerStats",
]
