"""Custom exception hierarchy for the RunPod serverless client.

Error taxonomy: transport, serialization, configuration, job state.
Nothing here is retried by the library; every error reaches the caller.
"""


class RunpodError(Exception):
    """Base exception for all library errors."""

    pass


class TransportError(RunpodError):
    """HTTP transport failure (connection error or non-2xx response)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        method: str | None = None,
        path: str | None = None,
    ) -> None:
        """Initialize with optional HTTP status and request coordinates."""
        self.status_code = status_code
        self.method = method
        self.path = path
        super().__init__(message)


class SerializationError(RunpodError):
    """JSON encode/decode or type validation errors."""

    pass


class ConfigurationError(RunpodError):
    """Invalid client configuration."""

    pass


class JobError(RunpodError):
    """Operation is invalid for the job's current state."""

    pass


class JobNotSubmittedError(JobError):
    """Job has no remote ID yet."""

    def __init__(self) -> None:
        super().__init__("Job has not been submitted yet")


class NoOutputError(JobError):
    """Job reached a terminal status without an output payload."""

    def __init__(self) -> None:
        super().__init__("Job has no output")


class JobConsumedError(JobError):
    """Job result was already handed out; jobs are single-use."""

    def __init__(self) -> None:
        super().__init__("Job result was already consumed")
