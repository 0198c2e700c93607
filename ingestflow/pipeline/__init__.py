"""Crash-resumable ingestion pipeline: job runtime, step log and job functions."""

from ingestflow.pipeline.progress_tracker import ProgressTracker
from ingestflow.pipeline.runtime import JobFunction, JobRuntime, failure_message
from ingestflow.pipeline.steps import StepContext

__all__ = [
    "JobFunction",
    "JobRuntime",
    "ProgressTracker",
    "StepContext",
    "failure_message",
]
