"""
Stage selection and execution.

An invocation mode names a predefined combination of the four stages. The
stages always run in the order benchmark, gather, plot, cleanup, whatever
order the mode string lists them in.
"""

import threading
from typing import Callable, List, Optional

from k8sbench.config import BenchmarkConfig
from k8sbench.console import Console
from k8sbench.core.cleanup import Cleanup
from k8sbench.core.gatherer import ResultGatherer
from k8sbench.core.matrix import generate_matrix
from k8sbench.core.plotter import PlotRenderer
from k8sbench.core.submitter import JobSubmitter
from k8sbench.errors import UsageError
from k8sbench.infra.cluster import DEFAULT_POLL_INTERVAL, KubernetesCluster
from k8sbench.models.case import BenchmarkCase

STAGES = ("benchmark", "gather", "plot", "cleanup")
COMBINATIONS = (
    "benchmark+gather",
    "benchmark+gather+plot",
    "gather+plot",
    "gather+plot+cleanup",
    "benchmark+gather+cleanup",
    "benchmark+gather+plot+cleanup",
)
VALID_MODES = STAGES + COMBINATIONS


def parse_mode(mode: str) -> List[str]:
    """
    Turn a mode string into the stages to run, in canonical order.

    Raises:
        UsageError: If the mode is not one of VALID_MODES
    """
    if mode not in VALID_MODES:
        raise UsageError("Unknown argument")
    requested = set(mode.split("+"))
    return [stage for stage in STAGES if stage in requested]


def needs_cluster(stages: List[str]) -> bool:
    return any(stage != "plot" for stage in stages)


def connect_cluster(config: BenchmarkConfig) -> KubernetesCluster:
    return KubernetesCluster(namespace=config.namespace, kubeconfig=config.kubeconfig or None)


class Pipeline:
    """Runs the selected stages over the benchmark matrix."""

    def __init__(
        self,
        config: BenchmarkConfig,
        console: Console,
        cluster_factory: Optional[Callable[[BenchmarkConfig], object]] = None,
        plot_runner=None,
        cancel: Optional[threading.Event] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.config = config
        self.console = console
        self.cluster_factory = cluster_factory or connect_cluster
        self.plot_runner = plot_runner
        self.cancel = cancel
        self.poll_interval = poll_interval

    def cases(self) -> List[BenchmarkCase]:
        return generate_matrix(self.config.categories, warn=self.console.warning)

    def run(self, stages: List[str]) -> List[BenchmarkCase]:
        """
        Run the given stages.

        Returns:
            The benchmark matrix the stages ran over
        """
        cases = self.cases()
        cluster = self.cluster_factory(self.config) if needs_cluster(stages) else None

        if "benchmark" in stages:
            submitter = JobSubmitter(
                cluster, self.config, self.console, cancel=self.cancel, poll_interval=self.poll_interval
            )
            submitter.run(cases)
        if "gather" in stages:
            ResultGatherer(cluster, self.config, self.console).gather(cases)
        if "plot" in stages:
            PlotRenderer(self.config, self.console, runner=self.plot_runner).render(cases)
        if "cleanup" in stages:
            Cleanup(cluster, self.config, self.console).run(cases)
        return cases
