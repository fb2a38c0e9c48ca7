from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from runpod_serverless.config.logging_config import (
    _build_processors,
    add_library_name,
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_structlog() -> Iterator[None]:
    yield
    clear_context()
    structlog.reset_defaults()


def test_json_logs_carry_app_and_bound_context(
    caplog: pytest.LogCaptureFixture,
) -> None:
    setup_logging(log_level="INFO", json_logs=True)
    caplog.set_level(logging.INFO)

    bind_context(endpoint_id="ep1")
    get_logger("tests.logging").info("job_submitted", job_id="j1")

    entry = json.loads(caplog.records[-1].getMessage())
    assert entry["event"] == "job_submitted"
    assert entry["app"] == "runpod_serverless"
    assert entry["endpoint_id"] == "ep1"
    assert entry["job_id"] == "j1"
    assert entry["level"] == "info"


def test_http_library_loggers_quieted_unless_verbose() -> None:
    setup_logging(log_level="DEBUG")
    assert logging.getLogger("urllib3").level == logging.WARNING

    logging.getLogger("urllib3").setLevel(logging.NOTSET)
    setup_logging(log_level="DEBUG", verbose=True)
    assert logging.getLogger("urllib3").level == logging.NOTSET


def test_renderer_follows_json_flag() -> None:
    assert isinstance(_build_processors(True)[-1], structlog.processors.JSONRenderer)
    assert isinstance(_build_processors(False)[-1], structlog.dev.ConsoleRenderer)
    assert add_library_name in _build_processors(False)
