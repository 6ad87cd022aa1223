"""
Benchmark case model.

A case is one (job type, job name, parameter, result column) combination of
the benchmark matrix. Its slug names the Kubernetes Jobs, labels them for
later lookup and prefixes the local CSV and chart files.
"""

import re
from dataclasses import dataclass

NETWORK_JOB_TYPES = ("iperf3", "ab", "fortio")

# Characters removed from a parameter expression to make it label and file safe
_SLUG_STRIP = re.compile(r"[$/ =]")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def slugify_parameter(parameter: str) -> str:
    """
    Turn a parameter expression into a label and filename safe token.

    Removes ``$``, ``/``, spaces and ``=`` and lower-cases the rest, so
    ``$CORES/2`` becomes ``cores2`` and ``-c 20 -qps=2000`` becomes
    ``-c20-qps2000``.
    """
    return _SLUG_STRIP.sub("", parameter).lower()


@dataclass(frozen=True)
class BenchmarkCase:
    """One entry of the benchmark matrix."""

    job_type: str  # Category, e.g. "sysbench", "stress-ng", "fortio"
    job_name: str  # Benchmark binary/mode inside the category
    parameter: str  # Expression with $ONE, $CORES or $CPUS placeholders
    result_column: str  # CSV column the charts plot

    @property
    def parameter_slug(self) -> str:
        return slugify_parameter(self.parameter)

    @property
    def slug(self) -> str:
        """Job name prefix, ``app`` label value and file prefix."""
        return f"{self.job_type}-{self.job_name}-{self.parameter_slug}"

    @property
    def identity(self) -> str:
        """Slug without separators, e.g. ``sysbenchcpuone``."""
        return _NON_ALNUM.sub("", self.slug.lower())

    @property
    def is_network(self) -> bool:
        return self.job_type in NETWORK_JOB_TYPES

    def __str__(self) -> str:
        return f"{self.job_type},{self.job_name},{self.parameter},{self.result_column}"
