"""
Tests for the benchmark stage: node roles, network servers and failure handling.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fake_cluster import FakeCluster

from k8sbench.config import BenchmarkConfig
from k8sbench.console import Console
from k8sbench.core.auxiliary import server_port
from k8sbench.core.matrix import generate_matrix, network_cases, sysbench_cases
from k8sbench.core.submitter import JobSubmitter, format_status
from k8sbench.errors import ConfigurationError, JobFailedError
from k8sbench.models.case import BenchmarkCase
from k8sbench.models.job import JobState


def make_config(**overrides) -> BenchmarkConfig:
    values = dict(
        kubeconfig="/tmp/kubeconfig",
        arch="arm64",
        cost="1.0",
        meta="test",
        benchmark_node="node-a",
        network_node="node-b",
        fixed_x86_node="node-x",
    )
    values.update(overrides)
    return BenchmarkConfig(**values)


def job_env(cluster: FakeCluster, job_name: str) -> dict:
    manifest = cluster.resources[("Job", job_name)]
    container = manifest["spec"]["template"]["spec"]["containers"][0]
    return {e["name"]: e["value"] for e in container["env"]}


def node_selector(cluster: FakeCluster, job_name: str) -> str:
    manifest = cluster.resources[("Job", job_name)]
    return manifest["spec"]["template"]["spec"]["nodeSelector"]["benchmark-node"]


def test_cases_run_in_order_one_at_a_time():
    cluster = FakeCluster()
    submitter = JobSubmitter(cluster, make_config(), Console())
    cases = sysbench_cases("cpu")

    instances = submitter.run(cases)

    assert [i.case for i in instances] == cases
    assert all(i.state is JobState.COMPLETE for i in instances)
    # Every Job is waited for before the next one is created
    job_events = [c for c in cluster.calls if c[0] in ("apply", "wait") and (c[0] == "wait" or c[1] == "Job")]
    kinds = [c[0] for c in job_events]
    assert kinds == ["apply", "wait"] * 3


def test_helpers_deployed_first():
    cluster = FakeCluster()
    JobSubmitter(cluster, make_config(), Console()).run(sysbench_cases("cpu"))

    assert cluster.calls[0] == ("apply", "Namespace", "benchmark")
    assert cluster.calls[1] == ("apply", "ServiceAccount", "benchmark")


def test_failed_job_aborts_before_next_case(capsys):
    failing = "sysbench-cpu-cores"
    cluster = FakeCluster(
        outcome=lambda name: JobState.FAILED if name.startswith(failing) else JobState.COMPLETE
    )
    submitter = JobSubmitter(cluster, make_config(), Console())

    with pytest.raises(JobFailedError) as excinfo:
        submitter.run(sysbench_cases("cpu"))

    assert excinfo.value.job_name.startswith(failing)
    created = cluster.applied("Job")
    assert len(created) == 2
    assert not any(name.startswith("sysbench-cpu-cpus") for name in created)
    assert "Failed" in capsys.readouterr().out


def test_job_manifest_carries_case_and_config():
    cluster = FakeCluster()
    config = make_config(iterations=3)
    case = BenchmarkCase("memtier", "redis", "$CORES/2", "Total-Ops/sec")

    instance = JobSubmitter(cluster, config, Console()).run_case(case)

    env = job_env(cluster, instance.name)
    assert env["JOBTYPE"] == "memtier"
    assert env["MODE"] == "redis"
    assert env["PARAMETER"] == "$CORES/2"
    assert env["PARAMETERQUOTE"] == "cores2"
    assert env["RESULT"] == "Total-Ops/sec"
    assert env["ARCH"] == "arm64"
    assert env["ITERATIONS"] == "3"
    assert env["ID"] == instance.run_id
    assert "PORT" not in env
    assert node_selector(cluster, instance.name) == "benchmark-server"
    assert cluster.node_labels == {"node-a": "benchmark-server"}


def test_network_case_runs_server_for_one_job():
    cluster = FakeCluster()
    case = network_cases("iperf3")[0]

    instance = JobSubmitter(cluster, make_config(), Console()).run_case(case)

    server = f"iperf3-server-{instance.run_id}"
    assert cluster.applied("Job") == [server, instance.name]
    assert cluster.applied("Service") == [server]
    assert cluster.deleted("Service") == [server]
    assert cluster.deleted("Job") == [server]
    # Server is removed only after the client Job finished
    wait_index = cluster.calls.index(("wait", instance.name))
    assert cluster.calls.index(("delete", "Job", server)) > wait_index

    env = job_env(cluster, instance.name)
    assert env["PORT"] == "6000"
    assert env["SERVER"] == server
    assert cluster.node_labels == {"node-a": "benchmark-server", "node-b": "network-server"}


def test_server_is_removed_when_client_fails():
    cluster = FakeCluster(outcome=lambda name: JobState.FAILED)
    case = network_cases("ab")[0]

    with pytest.raises(JobFailedError):
        JobSubmitter(cluster, make_config(), Console()).run_case(case)

    assert len(cluster.deleted("Service")) == 1


def test_fortio_client_runs_on_fixed_x86_node():
    cluster = FakeCluster()
    http_case, grpc_case = network_cases("fortio")
    submitter = JobSubmitter(cluster, make_config(), Console())

    instance = submitter.run_case(http_case)

    assert node_selector(cluster, instance.name) == "fixed-x86-server"
    assert job_env(cluster, instance.name)["ARCH"] == "amd64"
    server = f"fortio-server-{instance.run_id}"
    assert ("Service", server) not in cluster.resources
    server_manifest = cluster.manifests[("Service", server)]
    assert server_manifest["spec"]["ports"][0]["port"] == 8080
    assert cluster.node_labels["node-x"] == "fixed-x86-server"

    instance = submitter.run_case(grpc_case)
    assert job_env(cluster, instance.name)["PORT"] == "8079"


def test_fortio_server_runs_on_benchmark_node():
    cluster = FakeCluster()
    case = network_cases("fortio")[0]
    submitter = JobSubmitter(cluster, make_config(), Console())
    real_apply = cluster.apply
    server_selectors = []

    def spy(manifest):
        if manifest["kind"] == "Job" and "-server-" in manifest["metadata"]["name"]:
            server_selectors.append(manifest["spec"]["template"]["spec"]["nodeSelector"]["benchmark-node"])
        return real_apply(manifest)

    cluster.apply = spy
    submitter.run_case(case)
    assert server_selectors == ["benchmark-server"]


def test_fixed_node_may_equal_network_node():
    cluster = FakeCluster()
    config = make_config(fixed_x86_node="node-b")
    JobSubmitter(cluster, config, Console()).run_case(network_cases("fortio")[0])

    # The later label wins, as with an overwriting kubectl label
    assert cluster.node_labels["node-b"] == "fixed-x86-server"


def test_peer_roles_keep_fortio_on_benchmark_node():
    cluster = FakeCluster()
    config = make_config(node_roles="peer", fixed_x86_node="")
    instance = JobSubmitter(cluster, config, Console()).run_case(network_cases("fortio")[0])

    assert node_selector(cluster, instance.name) == "benchmark-server"
    assert job_env(cluster, instance.name)["ARCH"] == "arm64"
    assert "node-x" not in cluster.node_labels


def test_server_ports():
    assert server_port(BenchmarkCase("ab", "nginx", "$CPUS", "HTTP-Req/s")) == 8000
    assert server_port(BenchmarkCase("iperf3", "iperf3", "$ONE", "MBit/s")) == 6000
    with pytest.raises(ConfigurationError):
        server_port(BenchmarkCase("ab", "apache", "$CPUS", "HTTP-Req/s"))


def test_whole_network_matrix_cleans_up_every_server():
    cluster = FakeCluster()
    config = make_config()
    config.categories.memtier = []
    config.categories.stressng = []
    config.categories.sysbench = []
    cases = generate_matrix(config.categories)

    JobSubmitter(cluster, config, Console()).run(cases)

    servers = [name for name in cluster.applied("Job") if "-server-" in name]
    assert len(servers) == len(cases) == 7
    assert sorted(cluster.deleted("Job")) == sorted(servers)


def test_format_status():
    assert format_status(None) == "(no status)"
    assert "type: Failed" in format_status({"conditions": [{"type": "Failed"}]})
