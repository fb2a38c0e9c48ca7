"""Serverless package exports."""

from runpod_serverless.serverless.endpoint import Endpoint
from runpod_serverless.serverless.job import Job, JobState

__all__ = [
    "Endpoint",
    "Job",
    "JobState",
]
