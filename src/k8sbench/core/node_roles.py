"""
Node role strategies.

Benchmark pods find their node through the ``benchmark-node`` label. A
strategy decides, per case, which nodes get which role label, which role the
client Job and the network server select, and which image architecture the
client uses.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from k8sbench.config import BenchmarkConfig
from k8sbench.models.case import BenchmarkCase

BENCHMARK_ROLE = "benchmark-server"
NETWORK_ROLE = "network-server"
FIXED_X86_ROLE = "fixed-x86-server"
REFERENCE_ARCH = "amd64"


@dataclass
class Placement:
    """Where the pods of one case run."""
    client_selector: str
    client_arch: str
    server_selector: Optional[str] = None  # Only set for network cases


class NodeRoleStrategy(ABC):
    """Labels nodes for a case and reports the resulting placement."""

    def __init__(self, config: BenchmarkConfig):
        self.config = config

    @abstractmethod
    def assign(self, cluster, case: BenchmarkCase) -> Placement:
        """Label the nodes for a case and return its placement."""


class PeerRoles(NodeRoleStrategy):
    """
    Benchmark node plus one network peer.

    Network servers always run on the peer node, the client on the node
    under test.
    """

    def assign(self, cluster, case: BenchmarkCase) -> Placement:
        cluster.label_node(self.config.benchmark_node, BENCHMARK_ROLE)
        placement = Placement(client_selector=BENCHMARK_ROLE, client_arch=self.config.arch)
        if case.is_network:
            cluster.label_node(self.config.network_node, NETWORK_ROLE)
            placement.server_selector = NETWORK_ROLE
        return placement


class ReferenceRoles(PeerRoles):
    """
    Peer roles plus a fixed x86 reference client for latency tests.

    fortio measures latency, so its client runs on the fixed x86 node with
    the amd64 image and its server on the node under test. The fixed node is
    labeled after the network node, so both variables may name the same
    node.
    """

    def assign(self, cluster, case: BenchmarkCase) -> Placement:
        placement = super().assign(cluster, case)
        if case.job_type == "fortio":
            placement.server_selector = BENCHMARK_ROLE
            cluster.label_node(self.config.fixed_x86_node, FIXED_X86_ROLE)
            placement.client_selector = FIXED_X86_ROLE
            placement.client_arch = REFERENCE_ARCH
        return placement


STRATEGIES = {
    "peer": PeerRoles,
    "reference": ReferenceRoles,
}


def get_strategy(config: BenchmarkConfig) -> NodeRoleStrategy:
    return STRATEGIES[config.node_roles](config)
