"""structlog configuration for the client.

Library modules only call ``get_logger``. Applications choose the renderer
by calling ``setup_logging`` once at startup; until then structlog's
defaults apply.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

LIBRARY_NAME = "runpod_serverless"

# Loggers of the HTTP stack underneath HttpTransport.
HTTP_LIBRARY_LOGGERS = ("urllib3", "requests")


def add_library_name(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict["app"] = LIBRARY_NAME
    return event_dict


def _build_processors(json_logs: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_library_name,
    ]
    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    verbose: bool = False,
) -> None:
    """Route structlog through stdlib logging on stdout.

    Args:
        log_level: Level name; unknown names fall back to INFO
        json_logs: Render one JSON object per line instead of console output
        verbose: Leave urllib3/requests at their own levels instead of
            raising them to WARNING
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    if not verbose:
        for name in HTTP_LIBRARY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=_build_processors(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def bind_context(**kwargs: Any) -> None:
    """Attach ``kwargs`` to every log entry emitted from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
