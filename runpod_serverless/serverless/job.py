"""Job handle: deferred submission, status polling and result retrieval.

A ``Job`` is created unsubmitted. Awaiting it submits the input exactly once
and then polls the status endpoint until the remote job reaches a final
status. The direct accessors (``status``, ``output``, ``stream``,
``cancel``) each issue a single request and leave the await state alone.

Example:
    >>> job = endpoint.run({"prompt": "Hello"})
    >>> output = await job
"""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from enum import Enum
from typing import Any, TypeVar, overload

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from runpod_serverless.config.logging_config import get_logger
from runpod_serverless.domain.exceptions import (
    JobConsumedError,
    JobError,
    JobNotSubmittedError,
    NoOutputError,
    RunpodError,
    SerializationError,
)
from runpod_serverless.domain.models import (
    JobStatus,
    JobStatusResponse,
    RunRequest,
    RunResponse,
    StreamChunk,
    StreamResponse,
)
from runpod_serverless.observability.metrics import (
    JOB_OUTCOMES_TOTAL,
    JOB_STATUS_POLLS_TOTAL,
    JOBS_SUBMITTED_TOTAL,
)
from runpod_serverless.ports.transport import ApiResponse, TransportPort

logger = get_logger(__name__)

T = TypeVar("T")

# Returned by _step while the job has not produced a result yet.
_PENDING: Any = object()


class JobState(str, Enum):
    """Internal cursor of the await state machine."""

    NOT_SUBMITTED = "not_submitted"
    SUBMITTING = "submitting"
    POLLING = "polling"
    READY = "ready"
    FAILED = "failed"
    CONSUMED = "consumed"


def parse_response(response: ApiResponse, model: type[T]) -> T:
    """Decode a response body into ``model``.

    Raises:
        SerializationError: On malformed JSON or a shape mismatch
    """
    try:
        return TypeAdapter(model).validate_python(response.json())
    except PydanticValidationError as exc:
        raise SerializationError(f"Unexpected response shape: {exc}") from exc


def convert_output(value: Any, output_type: type[T]) -> T:
    """Validate a raw output payload into ``output_type``."""
    try:
        return TypeAdapter(output_type).validate_python(value)
    except PydanticValidationError as exc:
        raise SerializationError(
            f"Output does not match {getattr(output_type, '__name__', output_type)}: {exc}"
        ) from exc


class Job:
    """A unit of work on a serverless endpoint.

    Single-use: once ``await job`` has returned or raised, awaiting again
    raises ``JobConsumedError``. The handle is not synchronized; drive it
    from one task at a time.
    """

    def __init__(
        self,
        endpoint_id: str,
        input_payload: Any,
        transport: TransportPort,
        *,
        poll_interval_seconds: float = 0.0,
    ) -> None:
        self._endpoint_id = endpoint_id
        self._transport = transport
        self._poll_interval_seconds = max(poll_interval_seconds, 0.0)
        self._job_id: str | None = None
        self._pending_input: Any | None = input_payload
        self._state = JobState.NOT_SUBMITTED
        self._output: Any | None = None
        self._error: RunpodError | None = None
        self._driving = False

    @property
    def endpoint_id(self) -> str:
        return self._endpoint_id

    @property
    def job_id(self) -> str | None:
        """Remote job ID, or None until submission succeeds."""
        return self._job_id

    @property
    def state(self) -> JobState:
        return self._state

    def __repr__(self) -> str:
        return (
            f"Job(endpoint_id={self._endpoint_id!r}, job_id={self._job_id!r}, "
            f"state={self._state.value!r})"
        )

    # Resumable computation --------------------------------------------

    def __await__(self) -> Generator[Any, None, Any]:
        return self._drive().__await__()

    def wait(self) -> Any:
        """Block until the job finishes; for callers without an event loop.

        Raises:
            JobError: If called while an event loop is running (use
                ``await job`` there instead)
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self._drive())
        raise JobError("Job.wait() cannot run inside an event loop; await the job")

    async def submit(self) -> str:
        """Submit the job now without waiting for it to finish.

        Returns the job ID; a no-op when the job is already submitted. A
        later ``await job`` continues with polling. If submission fails the
        error is raised here and the job is consumed.
        """
        if self._job_id is not None:
            return self._job_id
        if self._driving:
            raise JobError("Job is already being awaited")

        self._driving = True
        try:
            while self._state in (JobState.NOT_SUBMITTED, JobState.SUBMITTING):
                await self._step()
        finally:
            self._driving = False

        if self._job_id is None:
            # FAILED or CONSUMED: _step raises the stored error
            await self._step()
            raise JobConsumedError()
        return self._job_id

    async def _drive(self) -> Any:
        if self._driving:
            raise JobError("Job is already being awaited")
        self._driving = True
        try:
            while True:
                result = await self._step()
                if result is not _PENDING:
                    return result
        finally:
            self._driving = False

    async def _step(self) -> Any:
        """Advance the state machine by one transition."""
        state = self._state

        if state is JobState.NOT_SUBMITTED:
            self._state = JobState.SUBMITTING
            await asyncio.sleep(0)
            return _PENDING

        if state is JobState.SUBMITTING:
            try:
                self._job_id = await self._submit()
            except RunpodError as exc:
                self._fail(exc, stage="submit")
            except BaseException:
                # The request may still reach the API; never send it again.
                self._fail(
                    JobError("Job submission was interrupted"), stage="submit"
                )
                self._pending_input = None
                raise
            else:
                self._pending_input = None
                self._state = JobState.POLLING
            return _PENDING

        if state is JobState.POLLING:
            try:
                response = await self._fetch_status()
            except RunpodError as exc:
                self._fail(exc, stage="poll")
                return _PENDING

            if response.status.is_final():
                logger.info(
                    "job_reached_final_state",
                    endpoint_id=self._endpoint_id,
                    job_id=self._job_id,
                    status=str(response.status),
                )
                JOB_OUTCOMES_TOTAL.labels(
                    endpoint=self._endpoint_id, outcome=response.status.value
                ).inc()
                self._output = response.output
                self._state = JobState.READY
            elif self._poll_interval_seconds > 0:
                await asyncio.sleep(self._poll_interval_seconds)
            return _PENDING

        if state is JobState.READY:
            output, self._output = self._output, None
            self._state = JobState.CONSUMED
            if output is None:
                raise NoOutputError()
            return output

        if state is JobState.FAILED:
            error, self._error = self._error, None
            self._state = JobState.CONSUMED
            if error is None:
                raise JobConsumedError()
            raise error

        raise JobConsumedError()

    def _fail(self, error: RunpodError, *, stage: str) -> None:
        logger.error(
            "job_failed",
            endpoint_id=self._endpoint_id,
            job_id=self._job_id,
            stage=stage,
            error=str(error),
        )
        JOB_OUTCOMES_TOTAL.labels(endpoint=self._endpoint_id, outcome="ERROR").inc()
        self._error = error
        self._state = JobState.FAILED

    async def _submit(self) -> str:
        logger.debug("job_submitting", endpoint_id=self._endpoint_id)
        payload = RunRequest(input=self._pending_input).model_dump(mode="json")
        response = await asyncio.to_thread(
            self._transport.post, f"{self._endpoint_id}/run", payload
        )
        run_response = parse_response(response, RunResponse)
        JOBS_SUBMITTED_TOTAL.labels(endpoint=self._endpoint_id).inc()
        logger.info(
            "job_submitted",
            endpoint_id=self._endpoint_id,
            job_id=run_response.id,
        )
        return run_response.id

    async def _fetch_status(self) -> JobStatusResponse:
        response = await self._fetch("status", JobStatusResponse)
        JOB_STATUS_POLLS_TOTAL.labels(endpoint=self._endpoint_id).inc()
        logger.debug(
            "job_status_polled",
            endpoint_id=self._endpoint_id,
            job_id=self._job_id,
            status=str(response.status),
        )
        return response

    # Direct accessors -------------------------------------------------

    def _require_job_id(self) -> str:
        if self._job_id is None:
            raise JobNotSubmittedError()
        return self._job_id

    async def _fetch(self, source: str, model: type[T]) -> T:
        job_id = self._require_job_id()
        response = await asyncio.to_thread(
            self._transport.get, f"{self._endpoint_id}/{source}/{job_id}"
        )
        return parse_response(response, model)

    async def status(self) -> JobStatus:
        """Return the current remote status of the job."""
        response = await self._fetch("status", JobStatusResponse)
        return response.status

    @overload
    async def output(self) -> Any: ...

    @overload
    async def output(self, output_type: type[T]) -> T: ...

    async def output(self, output_type: type[Any] | None = None) -> Any:
        """Return the job output, optionally validated into ``output_type``.

        Raises:
            NoOutputError: If the remote response carries no output
        """
        response = await self._fetch("status", JobStatusResponse)
        if response.output is None:
            raise NoOutputError()
        if output_type is None:
            return response.output
        return convert_output(response.output, output_type)

    async def stream(self) -> tuple[JobStatus, list[StreamChunk]]:
        """Return the current status and the chunks that are newly available.

        Nothing is buffered between calls; loop until ``status.is_final()``.
        """
        response = await self._fetch("stream", StreamResponse)
        return response.status, response.stream

    async def cancel(self) -> None:
        """Ask the remote system to cancel the job.

        Advisory only: a running await keeps polling until a final status.
        """
        job_id = self._require_job_id()
        await asyncio.to_thread(
            self._transport.post, f"{self._endpoint_id}/cancel/{job_id}"
        )
        logger.info(
            "job_cancel_requested", endpoint_id=self._endpoint_id, job_id=job_id
        )


__all__ = ["Job", "JobState", "convert_output", "parse_response"]
