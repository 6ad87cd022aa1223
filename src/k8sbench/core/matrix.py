"""
Benchmark matrix generation.

Expands the configured category lists into the ordered list of benchmark
cases. The order is the submission order of the benchmark stage:
memtier, stress-ng, sysbench, network.
"""

from typing import Callable, List, Optional

from k8sbench.config import CategoryLists
from k8sbench.errors import MatrixError
from k8sbench.models.case import BenchmarkCase

# Resource allocation variants: one core, all physical cores, all logical CPUs
CPU_VARIANTS = ("$ONE", "$CORES", "$CPUS")
# memtier runs client and server in the same pod, so each side gets half
MEMTIER_VARIANTS = ("$ONE", "$CORES/2", "$CPUS/2")

MEMTIER_RESULT = "Total-Ops/sec"
STRESSNG_RESULT = "bogo-ops/s"
SYSBENCH_CPU_RESULT = "Events/s"
SYSBENCH_RESULT = "MiB/sec"
IPERF3_RESULT = "MBit/s"
AB_RESULT = "HTTP-Req/s"
FORTIO_RESULT = "p999 latency ms"

FORTIO_HTTP_ARGS = "-c 20 -qps=2000 -t=60s"
FORTIO_GRPC_ARGS = "-grpc -s 10 -c 20 -qps=2000 -t=60s"


def memtier_cases(name: str) -> List[BenchmarkCase]:
    return [BenchmarkCase("memtier", name, p, MEMTIER_RESULT) for p in MEMTIER_VARIANTS]


def stressng_cases(name: str) -> List[BenchmarkCase]:
    return [BenchmarkCase("stress-ng", name, p, STRESSNG_RESULT) for p in CPU_VARIANTS]


def sysbench_cases(name: str) -> List[BenchmarkCase]:
    column = SYSBENCH_CPU_RESULT if name == "cpu" else SYSBENCH_RESULT
    return [BenchmarkCase("sysbench", name, p, column) for p in CPU_VARIANTS]


def network_cases(name: str) -> List[BenchmarkCase]:
    """
    Expand one network tool.

    Each tool has its own variants: iperf3 uses all three allocations,
    ab (against nginx) only the multi-core ones, fortio two fixed
    latency scenarios (HTTP and gRPC) without an allocation axis.
    Unknown tools yield no cases.
    """
    if name == "iperf3":
        return [BenchmarkCase("iperf3", "iperf3", p, IPERF3_RESULT) for p in CPU_VARIANTS]
    if name == "ab":
        return [BenchmarkCase("ab", "nginx", p, AB_RESULT) for p in ("$CORES", "$CPUS")]
    if name == "fortio":
        return [
            BenchmarkCase("fortio", "fortio", FORTIO_HTTP_ARGS, FORTIO_RESULT),
            BenchmarkCase("fortio", "fortio", FORTIO_GRPC_ARGS, FORTIO_RESULT),
        ]
    return []


def validate_matrix(cases: List[BenchmarkCase]) -> None:
    """
    Check the slug invariants of a matrix.

    Result files and Job labels are matched by slug prefix, so no slug may be
    a prefix of another, and no two cases may share a slug identity.

    Raises:
        MatrixError: On the first violation found
    """
    seen = {}
    for case in cases:
        other = seen.get(case.identity)
        if other is not None:
            raise MatrixError(
                f"Cases '{other}' and '{case}' both slugify to '{case.identity}'"
            )
        seen[case.identity] = case

    for case in cases:
        for other in cases:
            if other is case or other.slug == case.slug:
                continue
            if other.slug.startswith(case.slug):
                raise MatrixError(
                    f"Slug '{case.slug}' ({case}) is a prefix of '{other.slug}' ({other})"
                )


def generate_matrix(
    categories: CategoryLists,
    warn: Optional[Callable[[str], None]] = None,
) -> List[BenchmarkCase]:
    """
    Generate the ordered benchmark matrix.

    Args:
        categories: Enabled benchmark names per category
        warn: Called with a message for each unknown network tool

    Returns:
        List of BenchmarkCase in submission order

    Raises:
        MatrixError: If the generated cases violate the slug invariants
    """
    cases: List[BenchmarkCase] = []
    for name in categories.memtier:
        cases.extend(memtier_cases(name))
    for name in categories.stressng:
        cases.extend(stressng_cases(name))
    for name in categories.sysbench:
        cases.extend(sysbench_cases(name))
    for name in categories.network:
        expanded = network_cases(name)
        if not expanded and warn:
            warn(f"Unknown network benchmark '{name}' skipped")
        cases.extend(expanded)

    validate_matrix(cases)
    return cases
