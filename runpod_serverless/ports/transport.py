"""Port definition for the authenticated HTTP transport."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from runpod_serverless.domain.exceptions import SerializationError


@dataclass(frozen=True)
class ApiResponse:
    """Successful (2xx) response body as returned by a transport."""

    status_code: int
    content: bytes = field(default=b"", repr=False)

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            SerializationError: If the body is not valid JSON
        """
        try:
            return json.loads(self.content)
        except (ValueError, UnicodeDecodeError) as exc:
            raise SerializationError(f"Malformed JSON response: {exc}") from exc


@runtime_checkable
class TransportPort(Protocol):
    """Single-attempt, bearer-authenticated access to the API base URL.

    Implementations raise ``TransportError`` for connection failures and
    non-2xx responses. They never retry.
    """

    def get(self, path: str) -> ApiResponse:
        """Issue a GET for ``path`` relative to the base URL."""

    def post(self, path: str, payload: Any | None = None) -> ApiResponse:
        """Issue a POST for ``path``, sending ``payload`` as JSON if given."""


__all__ = ["ApiResponse", "TransportPort"]
