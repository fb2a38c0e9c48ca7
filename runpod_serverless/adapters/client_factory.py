"""Factories wiring settings into transports and endpoints."""

from runpod_serverless.adapters.http_transport import HttpTransport
from runpod_serverless.config.settings import Settings, get_settings
from runpod_serverless.ports.transport import TransportPort
from runpod_serverless.serverless.endpoint import Endpoint


def create_transport(settings: Settings | None = None) -> HttpTransport:
    """Build the HTTP transport for the serverless API.

    Args:
        settings: Settings to use (defaults to the global settings)

    Returns:
        Transport bound to the API URL, key and timeout from settings
    """
    settings = settings or get_settings()
    return HttpTransport(
        base_url=settings.runpod_api_url,
        api_key=settings.runpod_api_key.get_secret_value(),
        timeout_seconds=settings.runpod_timeout_secs,
    )


def create_endpoint(
    endpoint_id: str,
    settings: Settings | None = None,
    transport: TransportPort | None = None,
) -> Endpoint:
    """Build an Endpoint for ``endpoint_id``.

    Pass ``transport`` to share one connection pool between endpoints.

    Example:
        >>> endpoint = create_endpoint("ENDPOINT_ID")
        >>> output = await endpoint.run_and_wait({"prompt": "Hello"})
    """
    settings = settings or get_settings()
    return Endpoint(
        endpoint_id,
        transport or create_transport(settings),
        poll_interval_seconds=settings.poll_interval_seconds,
    )
