"""
Exception types raised by the orchestration stages.

Every error is either fatal to the whole run or explicitly ignored by the
caller; nothing here is retried.
"""

from typing import Any, Optional


class BenchmarkError(Exception):
    """Base class for all k8sbench errors."""


class UsageError(BenchmarkError):
    """Invalid or missing command-line argument."""


class ConfigurationError(BenchmarkError):
    """Missing or malformed configuration value."""


class MatrixError(ConfigurationError):
    """The benchmark matrix violates the slug uniqueness rules."""


class JobFailedError(BenchmarkError):
    """A benchmark Job reached the Failed state."""

    def __init__(self, job_name: str, status: Optional[Any] = None):
        super().__init__(f"Job failed: {job_name}")
        self.job_name = job_name
        self.status = status


class JobTimeoutError(BenchmarkError):
    """A benchmark Job did not finish within the configured timeout."""

    def __init__(self, job_name: str, timeout: float):
        super().__init__(f"Job {job_name} did not finish within {timeout:.0f}s")
        self.job_name = job_name
        self.timeout = timeout


class JobCancelledError(BenchmarkError):
    """Waiting for a Job was cancelled; the Job itself keeps running."""

    def __init__(self, job_name: str):
        super().__init__(f"Stopped waiting for Job {job_name}")
        self.job_name = job_name


class PlotError(BenchmarkError):
    """One or more chart renderings failed."""
