"""
Job instance model.

A JobInstance is one run of a benchmark case in the cluster. The cluster owns
the Job; k8sbench only names it, observes its state and deletes it.
"""

import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from k8sbench.models.case import BenchmarkCase


class JobState(Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    COMPLETE = "Complete"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETE, JobState.FAILED)


def generate_run_id(now: Optional[float] = None, rng: Optional[random.Random] = None) -> str:
    """
    Generate a run identifier unique across repeated runs of the same case.

    The identifier is the timestamp in 10^-4 s resolution without its first
    four digits, followed by a random number in [0, 32767].

    Args:
        now: Timestamp in seconds (default: current time)
        rng: Random generator (default: module-level random)

    Returns:
        Identifier such as ``894512345678-1234``
    """
    if now is None:
        now = time.time()
    ticks = str(int(now * 10000))[4:]
    suffix = (rng or random).randint(0, 32767)
    return f"{ticks}-{suffix}"


def job_state_from_status(status: Any) -> JobState:
    """
    Map a Kubernetes V1JobStatus (or None) to a JobState.

    A ``Complete`` or ``Failed`` condition with status ``"True"`` decides the
    terminal state, wherever it sits in the list. Newer controllers add
    ``SuccessCriteriaMet`` or ``FailureTarget`` ahead of it, and those are
    not terminal on their own. An active pod means Running; anything else is
    Pending.
    """
    if status is None:
        return JobState.PENDING

    for condition in getattr(status, "conditions", None) or []:
        if getattr(condition, "status", None) != "True":
            continue
        condition_type = getattr(condition, "type", None)
        if condition_type == "Complete":
            return JobState.COMPLETE
        if condition_type == "Failed":
            return JobState.FAILED

    if getattr(status, "active", None):
        return JobState.RUNNING
    return JobState.PENDING


@dataclass
class JobInstance:
    """One submitted Job of a benchmark case."""

    case: BenchmarkCase
    run_id: str = field(default_factory=generate_run_id)
    state: JobState = JobState.PENDING
    submit_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def name(self) -> str:
        return f"{self.case.slug}-{self.run_id}"

    @property
    def label(self) -> str:
        return self.case.slug

