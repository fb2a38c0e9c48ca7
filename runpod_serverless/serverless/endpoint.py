"""Endpoint facade for running jobs on a serverless endpoint."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, TypeVar, overload

from pydantic import TypeAdapter
from pydantic_core import PydanticSerializationError

from runpod_serverless.config.logging_config import get_logger
from runpod_serverless.domain.exceptions import SerializationError
from runpod_serverless.domain.models import EndpointHealth
from runpod_serverless.ports.transport import TransportPort
from runpod_serverless.serverless.job import Job, convert_output, parse_response

logger = get_logger(__name__)

T = TypeVar("T")

_INPUT_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


def serialize_input(value: Any) -> Any:
    """Convert job input into JSON-compatible data.

    Accepts anything pydantic can dump in JSON mode: mappings, sequences,
    scalars, pydantic models and dataclasses.

    Raises:
        SerializationError: If the value cannot be represented as JSON
    """
    try:
        return _INPUT_ADAPTER.dump_python(value, mode="json")
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise SerializationError(f"Job input is not serializable: {exc}") from exc


class Endpoint:
    """Entry point for jobs on one serverless endpoint.

    Holds no mutable state; share it freely. Every job it creates shares
    the same transport.

    Example:
        >>> endpoint = Endpoint("ENDPOINT_ID", transport)
        >>> job = endpoint.run({"prompt": "Hello, world!"})
        >>> output = await job
    """

    def __init__(
        self,
        endpoint_id: str,
        transport: TransportPort,
        *,
        poll_interval_seconds: float = 0.0,
    ) -> None:
        if not endpoint_id:
            raise ValueError("endpoint_id must not be empty")
        if poll_interval_seconds < 0:
            raise ValueError("poll_interval_seconds must not be negative")
        self._endpoint_id = endpoint_id
        self._transport = transport
        self._poll_interval_seconds = poll_interval_seconds

    @classmethod
    def from_endpoint_record(
        cls,
        record: Mapping[str, Any] | Any,
        transport: TransportPort,
        *,
        poll_interval_seconds: float = 0.0,
    ) -> Endpoint:
        """Build a runner from an endpoint description carrying an ``id``."""
        if isinstance(record, Mapping):
            endpoint_id = record.get("id")
        else:
            endpoint_id = getattr(record, "id", None)
        if not endpoint_id:
            raise ValueError("Endpoint record has no id")
        return cls(
            str(endpoint_id), transport, poll_interval_seconds=poll_interval_seconds
        )

    @property
    def endpoint_id(self) -> str:
        return self._endpoint_id

    def __repr__(self) -> str:
        return f"Endpoint(endpoint_id={self._endpoint_id!r})"

    def run(self, input_data: Any) -> Job:
        """Create an unsubmitted job; nothing is sent until it is awaited.

        Raises:
            SerializationError: If ``input_data`` cannot be represented as JSON
        """
        return Job(
            self._endpoint_id,
            serialize_input(input_data),
            self._transport,
            poll_interval_seconds=self._poll_interval_seconds,
        )

    @overload
    async def run_and_wait(self, input_data: Any) -> Any: ...

    @overload
    async def run_and_wait(self, input_data: Any, output_type: type[T]) -> T: ...

    async def run_and_wait(
        self, input_data: Any, output_type: type[Any] | None = None
    ) -> Any:
        """Submit a job and wait for its output."""
        output = await self.run(input_data)
        if output_type is None:
            return output
        return convert_output(output, output_type)

    async def health(self) -> EndpointHealth:
        """Return current queue and worker counts."""
        logger.debug("endpoint_health_requested", endpoint_id=self._endpoint_id)
        response = await asyncio.to_thread(
            self._transport.get, f"{self._endpoint_id}/health"
        )
        health = parse_response(response, EndpointHealth)
        logger.debug(
            "endpoint_health_retrieved",
            endpoint_id=self._endpoint_id,
            workers_ready=health.workers.ready,
            jobs_in_queue=health.jobs.in_queue,
        )
        return health

    async def purge_queue(self) -> None:
        """Drop all queued jobs of this endpoint."""
        await asyncio.to_thread(
            self._transport.post, f"{self._endpoint_id}/purge-queue"
        )
        logger.info("endpoint_queue_purged", endpoint_id=self._endpoint_id)


__all__ = ["Endpoint", "serialize_input"]
