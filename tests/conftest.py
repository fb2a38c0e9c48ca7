"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from collections import defaultdict, deque
from collections.abc import Generator
from typing import Any

import pytest

from runpod_serverless.config.settings import reset_settings
from runpod_serverless.domain.exceptions import TransportError
from runpod_serverless.ports.transport import ApiResponse


def json_response(body: Any, status_code: int = 200) -> ApiResponse:
    """Build a successful transport response carrying ``body`` as JSON."""

    return ApiResponse(status_code=status_code, content=json.dumps(body).encode())


class ScriptedTransport:
    """In-memory transport replaying queued responses per (method, path).

    Queue entries are ``ApiResponse`` objects or exceptions to raise. The
    last queued entry for a route is repeated once the queue is drained, so
    tests can script "keep answering IN_PROGRESS" without counting polls.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], deque[ApiResponse | Exception]] = (
            defaultdict(deque)
        )
        self.calls: list[tuple[str, str, Any]] = []

    def script(
        self, method: str, path: str, *entries: ApiResponse | Exception | Any
    ) -> ScriptedTransport:
        for entry in entries:
            if not isinstance(entry, (ApiResponse, Exception)):
                entry = json_response(entry)
            self._routes[(method, path)].append(entry)
        return self

    def get(self, path: str) -> ApiResponse:
        return self._dispatch("GET", path, None)

    def post(self, path: str, payload: Any | None = None) -> ApiResponse:
        return self._dispatch("POST", path, payload)

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.calls if m == method and p == path)

    def _dispatch(self, method: str, path: str, payload: Any | None) -> ApiResponse:
        self.calls.append((method, path, payload))
        queue = self._routes.get((method, path))
        if not queue:
            raise TransportError(
                f"{method} {path} returned HTTP 404: not scripted",
                status_code=404,
                method=method,
                path=path,
            )
        entry = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(entry, Exception):
            raise entry
        return entry


@pytest.fixture
def transport() -> ScriptedTransport:
    """Provide an empty scripted transport."""

    return ScriptedTransport()


@pytest.fixture(autouse=True)
def isolated_settings(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Keep RunPod environment variables and cached settings out of tests."""

    for name in (
        "RUNPOD_API_KEY",
        "RUNPOD_API_URL",
        "RUNPOD_REST_URL",
        "RUNPOD_BASE_URL",
        "RUNPOD_TIMEOUT_SECS",
        "POLL_INTERVAL_SECONDS",
        "RUNPOD_ENDPOINT_ID",
        "LOG_LEVEL",
        "JSON_LOGS",
    ):
        monkeypatch.delenv(name, raising=False)

    reset_settings()
    yield
    reset_settings()
