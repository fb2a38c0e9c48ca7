"""HTTP transport adapter built on ``requests``.

One attempt per call: no retries, no backoff. Failures are translated into
``TransportError`` so callers never see ``requests`` exceptions.
"""

from __future__ import annotations

import time
from types import TracebackType
from typing import Any, Final

import requests

from runpod_serverless.config.logging_config import get_logger
from runpod_serverless.domain.exceptions import SerializationError, TransportError
from runpod_serverless.observability.metrics import HTTP_REQUEST_DURATION_SECONDS
from runpod_serverless.ports.transport import ApiResponse, TransportPort

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
ERROR_BODY_PREVIEW_LENGTH: Final[int] = 200


def mask_api_key(api_key: str) -> str:
    """Return a log-safe form of an API key."""
    if len(api_key) > 4:
        return f"{api_key[:4]}****"
    return "****"


class HttpTransport(TransportPort):
    """Bearer-authenticated JSON transport for the serverless API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize transport.

        Args:
            base_url: API root, e.g. https://api.runpod.io/v2
            api_key: Bearer token attached to every request
            timeout_seconds: Per-request timeout
            session: Optional pre-built session (connection reuse, tests)
        """
        if not base_url.strip():
            raise ValueError("base_url must not be empty")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def get(self, path: str) -> ApiResponse:
        return self._request("GET", path)

    def post(self, path: str, payload: Any | None = None) -> ApiResponse:
        return self._request("POST", path, payload)

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"HttpTransport(base_url={self._base_url!r}, "
            f"api_key={mask_api_key(self._api_key)!r}, "
            f"timeout_seconds={self._timeout_seconds})"
        )

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _request(
        self, method: str, path: str, payload: Any | None = None
    ) -> ApiResponse:
        url = self._url(path)
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

        start_time = time.perf_counter()
        try:
            response = self._session.request(
                method=method,
                url=url,
                headers=headers,
                json=payload,
                timeout=self._timeout_seconds,
            )
        except requests.exceptions.InvalidJSONError as exc:
            raise SerializationError(
                f"Request body is not JSON-compatible: {exc}"
            ) from exc
        except requests.RequestException as exc:
            logger.warning(
                "http_request_failed",
                method=method,
                path=path,
                error=str(exc),
            )
            raise TransportError(
                f"{method} {path} failed: {exc}", method=method, path=path
            ) from exc
        finally:
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method).observe(
                time.perf_counter() - start_time
            )

        elapsed_ms = round((time.perf_counter() - start_time) * 1000, 1)
        if not 200 <= response.status_code < 300:
            body_preview = response.text[:ERROR_BODY_PREVIEW_LENGTH]
            logger.warning(
                "http_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                elapsed_ms=elapsed_ms,
                body_preview=body_preview,
            )
            raise TransportError(
                f"{method} {path} returned HTTP {response.status_code}: {body_preview}",
                status_code=response.status_code,
                method=method,
                path=path,
            )

        logger.debug(
            "http_request_completed",
            method=method,
            path=path,
            status_code=response.status_code,
            elapsed_ms=elapsed_ms,
        )
        return ApiResponse(status_code=response.status_code, content=response.content)


__all__ = ["DEFAULT_TIMEOUT_SECONDS", "HttpTransport", "mask_api_key"]
