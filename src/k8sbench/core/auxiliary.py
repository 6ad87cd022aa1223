"""
Auxiliary network servers.

Network benchmarks need a server on a second node. The server Job and its
Service live exactly as long as the one client Job they serve.
"""

from contextlib import contextmanager
from typing import Iterator

from k8sbench.builders.manifests import build_server_manifests
from k8sbench.config import BenchmarkConfig
from k8sbench.console import Console
from k8sbench.errors import ConfigurationError
from k8sbench.models.case import BenchmarkCase

SERVER_PORTS = {
    "nginx": 8000,
    "iperf3": 6000,
}
FORTIO_HTTP_PORT = 8080
FORTIO_GRPC_PORT = 8079


def server_port(case: BenchmarkCase) -> int:
    """
    Return the server port of a network case.

    Raises:
        ConfigurationError: If the case has no known server
    """
    if case.job_name == "fortio":
        return FORTIO_GRPC_PORT if "grpc" in case.parameter else FORTIO_HTTP_PORT
    try:
        return SERVER_PORTS[case.job_name]
    except KeyError:
        raise ConfigurationError(f"Unknown network benchmark '{case.job_name}'")


class AuxiliaryServer:
    """Starts and stops the companion server of a network case."""

    def __init__(self, cluster, config: BenchmarkConfig, console: Console):
        self.cluster = cluster
        self.config = config
        self.console = console

    @contextmanager
    def running(self, case: BenchmarkCase, run_id: str, node_selector: str) -> Iterator[int]:
        """
        Run the server for the duration of the with-block.

        Args:
            case: Network case the server belongs to
            run_id: Run identifier of the client Job
            node_selector: Role label value of the server node

        Yields:
            Port the server listens on
        """
        port = server_port(case)
        manifests = build_server_manifests(case.job_name, run_id, port, node_selector, self.config)
        for manifest in manifests:
            self.cluster.apply(manifest)
        self.console.log(f"server {manifests[0]['metadata']['name']} listening on port {port}")
        try:
            yield port
        finally:
            for manifest in reversed(manifests):
                self.cluster.delete(manifest)
