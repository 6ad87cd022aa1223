"""
Job submitter for the benchmark stage.

Runs the matrix one case at a time: label the nodes, start the network
server if the case needs one, create the Job and wait for it. The benchmark
node must only ever run one workload, so cases are never submitted
concurrently. A failed Job aborts the whole run.
"""

import threading
from datetime import datetime
from typing import Any, List, Optional

import yaml

from k8sbench.builders.manifests import build_job_manifest, helper_manifests
from k8sbench.config import BenchmarkConfig
from k8sbench.console import Console
from k8sbench.core.auxiliary import AuxiliaryServer
from k8sbench.core.node_roles import NodeRoleStrategy, Placement, get_strategy
from k8sbench.errors import JobFailedError
from k8sbench.infra.cluster import DEFAULT_POLL_INTERVAL
from k8sbench.models.case import BenchmarkCase
from k8sbench.models.job import JobInstance, JobState


def format_status(status: Any) -> str:
    """Render a Job status object as YAML for the terminal."""
    if status is None:
        return "(no status)"
    if hasattr(status, "to_dict"):
        status = status.to_dict()
    return yaml.safe_dump(status, default_flow_style=False, sort_keys=False).rstrip()


class JobSubmitter:
    """Submits benchmark cases sequentially and waits for each Job."""

    def __init__(
        self,
        cluster,
        config: BenchmarkConfig,
        console: Console,
        strategy: Optional[NodeRoleStrategy] = None,
        cancel: Optional[threading.Event] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Args:
            cluster: KubernetesCluster (or a compatible fake)
            config: Run configuration
            console: Output sink
            strategy: Node role strategy (default: from config.node_roles)
            cancel: Event that stops waiting for the current Job
            poll_interval: Seconds between status reads when polling
        """
        self.cluster = cluster
        self.config = config
        self.console = console
        self.strategy = strategy or get_strategy(config)
        self.cancel = cancel
        self.poll_interval = poll_interval
        self.auxiliary = AuxiliaryServer(cluster, config, console)
        self.instances: List[JobInstance] = []

    def deploy_helpers(self) -> None:
        self.console.log("Deploying helpers")
        for manifest in helper_manifests(self.config.namespace):
            result = self.cluster.apply(manifest)
            self.console.log(f"{manifest['kind'].lower()}/{manifest['metadata']['name']} {result}")

    def run(self, cases: List[BenchmarkCase]) -> List[JobInstance]:
        """
        Run every case in order.

        Returns:
            The completed Job instances

        Raises:
            JobFailedError: On the first failed Job; later cases are not run
        """
        self.deploy_helpers()
        for case in cases:
            self.run_case(case)
        self.console.log("done with benchmarking")
        return self.instances

    def run_case(self, case: BenchmarkCase) -> JobInstance:
        """Run one case to completion."""
        placement = self.strategy.assign(self.cluster, case)
        instance = JobInstance(case)
        self.instances.append(instance)

        if case.is_network:
            with self.auxiliary.running(case, instance.run_id, placement.server_selector) as port:
                self._run_job(instance, placement, port)
        else:
            self._run_job(instance, placement)

        self.console.log(f"finished {case.slug}")
        return instance

    def _run_job(self, instance: JobInstance, placement: Placement, port: Optional[int] = None) -> None:
        manifest = build_job_manifest(
            instance,
            self.config,
            node_selector=placement.client_selector,
            arch=placement.client_arch,
            port=port,
        )
        self.console.log(f"starting {instance.name}")
        self.cluster.apply(manifest)
        instance.submit_time = datetime.now()

        state, status = self.cluster.wait_for_job(
            instance.name,
            timeout=self.config.job_timeout,
            poll_interval=self.poll_interval,
            cancel=self.cancel,
        )
        instance.state = state
        instance.end_time = datetime.now()

        if state is JobState.FAILED:
            self.console.log(f"job {instance.name} status:\n{format_status(status)}")
            raise JobFailedError(instance.name, status)
