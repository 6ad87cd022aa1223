"""
Unit tests for configuration loading.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from k8sbench.config import load_config, parse_name_list
from k8sbench.errors import ConfigurationError


BASE_ENV = {
    "KUBECONFIG": "/tmp/kubeconfig",
    "ARCH": "arm64",
    "COST": "1.5",
    "META": "sjc1",
    "BENCHMARKNODE": "node-a",
    "NETWORKNODE": "node-b",
    "FIXEDX86NODE": "node-x",
}


def test_full_environment():
    config = load_config(dict(BASE_ENV, ITERATIONS="3"))

    assert config.arch == "arm64"
    assert config.cost_value == 1.5
    assert config.benchmark_node == "node-a"
    assert config.fixed_x86_node == "node-x"
    assert config.iterations == 3
    assert config.namespace == "benchmark"
    assert config.node_roles == "reference"
    assert config.job_timeout is None
    assert config.categories.sysbench == ["fileio", "mem", "cpu"]


def test_missing_variables_are_listed():
    env = dict(BASE_ENV)
    del env["ARCH"]
    del env["FIXEDX86NODE"]

    with pytest.raises(ConfigurationError) as excinfo:
        load_config(env)
    assert "ARCH" in str(excinfo.value)
    assert "FIXEDX86NODE" in str(excinfo.value)


def test_plot_only_needs_no_cluster_variables():
    config = load_config({}, require_cluster=False)
    assert config.iterations == 1
    assert len(config.categories.stressng) == 13


def test_peer_roles_do_not_need_fixed_node():
    env = dict(BASE_ENV, NODE_ROLES="peer")
    del env["FIXEDX86NODE"]
    config = load_config(env)
    assert config.node_roles == "peer"
    assert "FIXEDX86NODE" not in config.describe()


def test_unknown_node_roles():
    with pytest.raises(ConfigurationError):
        load_config(dict(BASE_ENV, NODE_ROLES="mesh"))


def test_whitespace_disables_category():
    config = load_config(dict(BASE_ENV, STRESSNG=" ", SYSBENCH="cpu", MEMTIER=" ", NETWORK=" "))
    assert config.categories.stressng == []
    assert config.categories.memtier == []
    assert config.categories.network == []
    assert config.categories.sysbench == ["cpu"]


def test_parse_name_list_default():
    assert parse_name_list(None, "a b") == ["a", "b"]
    assert parse_name_list("  ", "a b") == []
    assert parse_name_list("c", "a b") == ["c"]


@pytest.mark.parametrize("value", ["0", "-2", "two"])
def test_invalid_iterations(value):
    with pytest.raises(ConfigurationError):
        load_config(dict(BASE_ENV, ITERATIONS=value))


def test_invalid_cost():
    with pytest.raises(ConfigurationError):
        load_config(dict(BASE_ENV, COST="cheap"))


def test_job_timeout():
    assert load_config(dict(BASE_ENV, JOB_TIMEOUT="600")).job_timeout == 600.0
    with pytest.raises(ConfigurationError):
        load_config(dict(BASE_ENV, JOB_TIMEOUT="-1"))


def test_describe_echoes_values():
    line = load_config(BASE_ENV).describe()
    assert 'ARCH="arm64"' in line
    assert 'ITERATIONS="1"' in line
    assert 'FIXEDX86NODE="node-x"' in line


def test_settings_file(tmp_path):
    settings = tmp_path / "settings.yaml"
    settings.write_text(
        "configuration:\n"
        "  arch: amd64\n"
        "  cost: 0.8\n"
        "  meta: ams1\n"
        "  sysbench: [cpu]\n"
        "  namespace: bench-test\n"
    )
    env = {
        "K8SBENCH_SETTINGS": str(settings),
        "KUBECONFIG": "/tmp/kubeconfig",
        "BENCHMARKNODE": "node-a",
        "NETWORKNODE": "node-b",
        "FIXEDX86NODE": "node-x",
        "META": "from-env",
    }
    config = load_config(env)

    assert config.arch == "amd64"
    assert config.cost == "0.8"
    assert config.meta == "from-env"
    assert config.categories.sysbench == ["cpu"]
    assert config.namespace == "bench-test"


def test_settings_file_unknown_key(tmp_path):
    settings = tmp_path / "settings.yaml"
    settings.write_text("configuration:\n  colour: blue\n")
    with pytest.raises(ConfigurationError, match="colour"):
        load_config({"K8SBENCH_SETTINGS": str(settings)}, require_cluster=False)


def test_settings_file_missing(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config({"K8SBENCH_SETTINGS": str(tmp_path / "nope.yaml")}, require_cluster=False)


def test_example_settings_file():
    path = Path(__file__).parent.parent / "examples" / "settings.yaml"
    config = load_config({"K8SBENCH_SETTINGS": str(path)})

    assert config.fixed_x86_node == "worker-x86-0"
    assert config.iterations == 3
    assert config.job_timeout == 1800.0
    assert config.categories.sysbench == ["cpu", "mem"]
    assert config.categories.memtier == []
    assert config.results_dir == Path("results")
