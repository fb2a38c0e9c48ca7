from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

from pydantic import SecretStr

from runpod_serverless.domain.models import JobStatus
from runpod_serverless.serverless.endpoint import Endpoint
from tests.conftest import ScriptedTransport


def _module() -> Any:
    return __import__("scripts.run_endpoint", fromlist=["main"])


def _settings() -> SimpleNamespace:
    return SimpleNamespace(
        log_level="INFO",
        json_logs=False,
        runpod_api_key=SecretStr("key"),
        runpod_api_url="https://api.example.test/v2",
        runpod_timeout_secs=30.0,
        poll_interval_seconds=0.0,
    )


def _args(command: str, **overrides: Any) -> SimpleNamespace:
    values = {
        "command": command,
        "endpoint_id": "ep1",
        "input": '{"prompt": "hi"}',
        "max_iterations": 5,
        "sleep": 0.0,
        "json_logs": False,
        "metrics_port": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_stream_job_stops_on_final_status() -> None:
    module = _module()
    transport = ScriptedTransport()
    transport.script("POST", "ep1/run", {"id": "j1"})
    transport.script(
        "GET",
        "ep1/stream/j1",
        {"status": "IN_PROGRESS", "stream": [{"output": "a"}]},
        {"status": "IN_PROGRESS", "stream": []},
        {"status": "COMPLETED", "stream": [{"output": "b"}, {"output": "c"}]},
    )
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    async def _scenario() -> tuple[JobStatus | None, list[Any]]:
        job = Endpoint("ep1", transport).run({"prompt": "hi"})
        await job.submit()
        return await module.stream_job(
            job, max_iterations=10, sleep_seconds=0.5, sleep=fake_sleep
        )

    status, outputs = asyncio.run(_scenario())

    assert status is JobStatus.COMPLETED
    assert outputs == ["a", "b", "c"]
    assert sleeps == [0.5, 0.5]
    assert transport.count("GET", "ep1/stream/j1") == 3


def test_stream_job_gives_up_after_max_iterations() -> None:
    module = _module()
    transport = ScriptedTransport()
    transport.script("POST", "ep1/run", {"id": "j1"})
    transport.script("GET", "ep1/stream/j1", {"status": "IN_QUEUE"})

    async def fake_sleep(delay: float) -> None:
        return None

    async def _scenario() -> tuple[JobStatus | None, list[Any]]:
        job = Endpoint("ep1", transport).run({})
        await job.submit()
        return await module.stream_job(
            job, max_iterations=3, sleep_seconds=1.0, sleep=fake_sleep
        )

    status, outputs = asyncio.run(_scenario())

    assert status is JobStatus.IN_QUEUE
    assert outputs == []
    assert transport.count("GET", "ep1/stream/j1") == 3


def test_main_runs_job_to_completion(mocker) -> None:
    module = _module()
    transport = ScriptedTransport()
    transport.script("POST", "ep1/run", {"id": "j1"})
    transport.script("GET", "ep1/status/j1", {"status": "COMPLETED", "output": "ok"})

    mocker.patch.object(module, "parse_args", return_value=_args("run"))
    mocker.patch.object(module, "get_settings", return_value=_settings())
    mocker.patch.object(module, "setup_logging")
    mocker.patch.object(
        module, "create_endpoint", return_value=Endpoint("ep1", transport)
    )

    exit_code = module.main([])

    assert exit_code == 0
    assert transport.calls[0] == ("POST", "ep1/run", {"input": {"prompt": "hi"}})


def test_main_cancel_reports_status(mocker, capsys) -> None:
    module = _module()
    transport = ScriptedTransport()
    transport.script("POST", "ep1/run", {"id": "j1"})
    transport.script("POST", "ep1/cancel/j1", {"status": "CANCELLED"})
    transport.script("GET", "ep1/status/j1", {"status": "CANCELLED"})

    mocker.patch.object(module, "parse_args", return_value=_args("cancel"))
    mocker.patch.object(module, "get_settings", return_value=_settings())
    mocker.patch.object(module, "setup_logging")
    mocker.patch.object(
        module, "create_endpoint", return_value=Endpoint("ep1", transport)
    )

    exit_code = module.main([])

    assert exit_code == 0
    assert "Status after cancel: CANCELLED" in capsys.readouterr().out
    assert [(m, p) for m, p, _ in transport.calls] == [
        ("POST", "ep1/run"),
        ("POST", "ep1/cancel/j1"),
        ("GET", "ep1/status/j1"),
    ]


def test_main_returns_error_code_on_failure(mocker) -> None:
    module = _module()
    transport = ScriptedTransport()

    mocker.patch.object(module, "parse_args", return_value=_args("health"))
    mocker.patch.object(module, "get_settings", return_value=_settings())
    mocker.patch.object(module, "setup_logging")
    mocker.patch.object(
        module, "create_endpoint", return_value=Endpoint("ep1", transport)
    )

    assert module.main([]) == 1


def test_main_requires_endpoint_id(mocker) -> None:
    module = _module()
    mocker.patch.object(
        module, "parse_args", return_value=_args("health", endpoint_id=None)
    )

    assert module.main([]) == 2


def test_main_starts_metrics_exporter_when_requested(mocker) -> None:
    module = _module()
    transport = ScriptedTransport()
    transport.script("POST", "ep1/purge-queue", {"removed": 0})

    mocker.patch.object(
        module, "parse_args", return_value=_args("purge", metrics_port=9105)
    )
    mocker.patch.object(module, "get_settings", return_value=_settings())
    mocker.patch.object(module, "setup_logging")
    exporter = mocker.patch.object(module, "ensure_metrics_exporter")
    mocker.patch.object(
        module, "create_endpoint", return_value=Endpoint("ep1", transport)
    )

    assert module.main([]) == 0
    exporter.assert_called_once_with(9105)


def test_main_rejects_malformed_input(mocker, capsys) -> None:
    module = _module()
    create_endpoint = mocker.patch.object(module, "create_endpoint")
    get_settings = mocker.patch.object(module, "get_settings")

    exit_code = module.main(["run", "--endpoint-id", "ep1", "--input", "{not json"])

    assert exit_code == 2
    assert "not valid JSON" in capsys.readouterr().out
    get_settings.assert_not_called()
    create_endpoint.assert_not_called()


def test_main_ignores_input_for_health(mocker) -> None:
    module = _module()
    transport = ScriptedTransport()
    transport.script(
        "GET",
        "ep1/health",
        {
            "jobs": {
                "completed": 1,
                "failed": 0,
                "inProgress": 0,
                "inQueue": 0,
                "retried": 0,
            },
            "workers": {
                "idle": 0,
                "initializing": 0,
                "ready": 1,
                "running": 0,
                "throttled": 0,
            },
        },
    )

    mocker.patch.object(
        module, "parse_args", return_value=_args("health", input="{not json")
    )
    mocker.patch.object(module, "get_settings", return_value=_settings())
    mocker.patch.object(module, "setup_logging")
    mocker.patch.object(
        module, "create_endpoint", return_value=Endpoint("ep1", transport)
    )

    assert module.main([]) == 0
