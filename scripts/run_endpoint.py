"""Run jobs against a serverless endpoint from the command line.

Usage:
    export RUNPOD_API_KEY="your-api-key-here"
    export RUNPOD_ENDPOINT_ID="your-endpoint-id"
    python scripts/run_endpoint.py health
    python scripts/run_endpoint.py run --input '{"prompt": "Hello, World!"}'
    python scripts/run_endpoint.py stream --max-iterations 30 --sleep 1
    python scripts/run_endpoint.py cancel --input '{"prompt": "This job will be cancelled"}'
    python scripts/run_endpoint.py purge
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).parent.parent))

from runpod_serverless.adapters.client_factory import create_endpoint
from runpod_serverless.config.logging_config import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)
from runpod_serverless.config.settings import get_settings
from runpod_serverless.domain.exceptions import RunpodError
from runpod_serverless.domain.models import JobStatus
from runpod_serverless.observability.metrics import ensure_metrics_exporter
from runpod_serverless.serverless.endpoint import Endpoint
from runpod_serverless.serverless.job import Job

logger = get_logger(__name__)

SleepCallable = Callable[[float], Awaitable[None]]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run jobs on a serverless endpoint")
    parser.add_argument(
        "command",
        choices=("health", "run", "stream", "cancel", "purge"),
        help="Operation to perform",
    )
    parser.add_argument(
        "--endpoint-id",
        default=os.environ.get("RUNPOD_ENDPOINT_ID"),
        help="Endpoint ID (defaults to RUNPOD_ENDPOINT_ID)",
    )
    parser.add_argument(
        "--input",
        default='{"prompt": "Hello, World!"}',
        help="Job input as a JSON document",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=30,
        help="Stream polls before giving up",
    )
    parser.add_argument(
        "--sleep",
        type=float,
        default=1.0,
        help="Seconds between stream polls",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs in JSON format",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port",
    )
    return parser.parse_args(argv)


async def stream_job(
    job: Job,
    *,
    max_iterations: int,
    sleep_seconds: float,
    sleep: SleepCallable = asyncio.sleep,
) -> tuple[JobStatus | None, list[Any]]:
    """Poll the stream endpoint until a final status or the iteration cap.

    Returns:
        Last observed status (None if never polled) and all chunk outputs
    """
    outputs: list[Any] = []
    status: JobStatus | None = None
    for iteration in range(max_iterations):
        status, chunks = await job.stream()
        for chunk in chunks:
            print(f"    - {chunk.output!r}")
            outputs.append(chunk.output)

        if status.is_final():
            print(f"  Stream completed with status: {status}")
            return status, outputs

        if iteration + 1 < max_iterations:
            await sleep(sleep_seconds)

    print(f"  Stream timeout after {max_iterations} iterations")
    return status, outputs


async def run_command(
    args: argparse.Namespace, endpoint: Endpoint, payload: Any = None
) -> int:
    if args.command == "health":
        health = await endpoint.health()
        print("  Jobs:")
        print(f"    - Completed: {health.jobs.completed}")
        print(f"    - Failed: {health.jobs.failed}")
        print(f"    - In Progress: {health.jobs.in_progress}")
        print(f"    - In Queue: {health.jobs.in_queue}")
        print("  Workers:")
        print(f"    - Ready: {health.workers.ready}")
        print(f"    - Running: {health.workers.running}")
        return 0

    if args.command == "purge":
        await endpoint.purge_queue()
        print("  Queue purged")
        return 0

    job = endpoint.run(payload)

    if args.command == "run":
        output = await job
        print(f"  Job output: {output!r}")
        return 0

    await job.submit()
    print(f"  Job submitted: {job.job_id}")

    if args.command == "stream":
        status, _ = await stream_job(
            job, max_iterations=args.max_iterations, sleep_seconds=args.sleep
        )
        return 0 if status is not None and status.is_completed() else 1

    await job.cancel()
    print("  Job cancel requested")
    print(f"  Status after cancel: {await job.status()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if not args.endpoint_id:
        print("Error: --endpoint-id or RUNPOD_ENDPOINT_ID is required")
        return 2

    payload: Any = None
    if args.command in ("run", "stream", "cancel"):
        try:
            payload = json.loads(args.input)
        except json.JSONDecodeError as exc:
            print(f"Error: --input is not valid JSON: {exc}")
            return 2

    try:
        settings = get_settings()
    except RunpodError as exc:
        print(f"Error loading configuration: {exc}")
        return 2

    setup_logging(
        log_level=settings.log_level,
        json_logs=args.json_logs or settings.json_logs,
    )

    if args.metrics_port is not None:
        ensure_metrics_exporter(args.metrics_port)

    endpoint = create_endpoint(args.endpoint_id, settings)
    print(f"Endpoint: {endpoint.endpoint_id}\n")

    bind_context(endpoint_id=endpoint.endpoint_id, command=args.command)
    try:
        return asyncio.run(run_command(args, endpoint, payload))
    except RunpodError as exc:
        logger.error("command_failed", error=str(exc))
        print(f"  Error: {exc}")
        return 1
    finally:
        clear_context()


if __name__ == "__main__":
    sys.exit(main())
