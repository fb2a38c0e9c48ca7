"""Client for RunPod serverless endpoints: submit, poll, stream and cancel jobs."""

from runpod_serverless.adapters.client_factory import create_endpoint, create_transport
from runpod_serverless.adapters.http_transport import HttpTransport
from runpod_serverless.config.settings import Settings, get_settings, load_settings
from runpod_serverless.domain.exceptions import (
    ConfigurationError,
    JobConsumedError,
    JobError,
    JobNotSubmittedError,
    NoOutputError,
    RunpodError,
    SerializationError,
    TransportError,
)
from runpod_serverless.domain.models import (
    EndpointHealth,
    JobStats,
    JobStatus,
    StreamChunk,
    WorkerStats,
)
from runpod_serverless.serverless import Endpoint, Job, JobState

__all__ = [
    "ConfigurationError",
    "Endpoint",
    "EndpointHealth",
    "HttpTransport",
    "Job",
    "JobConsumedError",
    "JobError",
    "JobNotSubmittedError",
    "JobState",
    "JobStats",
    "JobStatus",
    "NoOutputError",
    "RunpodError",
    "SerializationError",
    "Settings",
    "StreamChunk",
    "TransportError",
    "WorkerStats",
    "create_endpoint",
    "create_transport",
    "get_settings",
    "load_settings",
]
