"""
Configuration module for k8sbench.

Reads the environment (and optionally a YAML settings file) once at startup
and produces a validated BenchmarkConfig that is passed into every stage.
Stage code never looks at os.environ itself.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import yaml

from k8sbench.errors import ConfigurationError


DEFAULT_MEMTIER = "memcached redis"
DEFAULT_STRESSNG = (
    "spawn hsearch crypt atomic tsearch qsort shm sem lsearch bsearch vecmath matrix memcpy"
)
DEFAULT_SYSBENCH = "fileio mem cpu"
DEFAULT_NETWORK = "iperf3 ab fortio"

DEFAULT_NAMESPACE = "benchmark"
DEFAULT_IMAGE_REPOSITORY = "quay.io/kinvolk"
NODE_ROLE_STRATEGIES = ("reference", "peer")

# Environment variable -> settings file key
ENV_KEYS = {
    "KUBECONFIG": "kubeconfig",
    "ARCH": "arch",
    "COST": "cost",
    "META": "meta",
    "BENCHMARKNODE": "benchmark_node",
    "NETWORKNODE": "network_node",
    "FIXEDX86NODE": "fixed_x86_node",
    "ITERATIONS": "iterations",
    "MEMTIER": "memtier",
    "STRESSNG": "stressng",
    "SYSBENCH": "sysbench",
    "NETWORK": "network",
    "JOB_TIMEOUT": "job_timeout",
    "NODE_ROLES": "node_roles",
    "NAMESPACE": "namespace",
    "IMAGE_REPOSITORY": "image_repository",
    "RESULTS_DIR": "results_dir",
}


@dataclass
class CategoryLists:
    """Benchmark names enabled per category, in configured order."""
    memtier: List[str] = field(default_factory=lambda: DEFAULT_MEMTIER.split())
    stressng: List[str] = field(default_factory=lambda: DEFAULT_STRESSNG.split())
    sysbench: List[str] = field(default_factory=lambda: DEFAULT_SYSBENCH.split())
    network: List[str] = field(default_factory=lambda: DEFAULT_NETWORK.split())


@dataclass
class BenchmarkConfig:
    """
    Validated configuration bundle for one invocation.

    Cluster fields are empty when only the plot stage runs.
    """
    kubeconfig: str = ""
    arch: str = ""
    cost: str = ""
    meta: str = ""
    benchmark_node: str = ""
    network_node: str = ""
    fixed_x86_node: str = ""
    iterations: int = 1
    categories: CategoryLists = field(default_factory=CategoryLists)
    node_roles: str = "reference"
    namespace: str = DEFAULT_NAMESPACE
    image_repository: str = DEFAULT_IMAGE_REPOSITORY
    results_dir: Path = field(default_factory=lambda: Path("."))
    job_timeout: Optional[float] = None

    @property
    def cost_value(self) -> float:
        return float(self.cost)

    def describe(self) -> str:
        """Return the configuration line echoed at startup."""
        parts = [
            f'KUBECONFIG="{self.kubeconfig}"',
            f'ARCH="{self.arch}"',
            f'COST="{self.cost}"',
            f'META="{self.meta}"',
            f'ITERATIONS="{self.iterations}"',
            f'BENCHMARKNODE="{self.benchmark_node}"',
            f'NETWORKNODE="{self.network_node}"',
        ]
        if self.node_roles == "reference":
            parts.append(f'FIXEDX86NODE="{self.fixed_x86_node}"')
        return " ".join(parts)


def parse_name_list(value: Optional[str], default: str) -> List[str]:
    """
    Parse a space-separated category list.

    An unset value takes the default; a blank value disables the category.
    """
    if value is None:
        value = default
    return value.split()


def load_settings_file(path: Path) -> Dict[str, str]:
    """
    Load a YAML settings file.

    The file holds a ``configuration`` mapping keyed by the lower-case names
    in ENV_KEYS. Lists are joined with spaces so they parse like the
    environment variables.

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    if not path.is_file():
        raise ConfigurationError(f"Settings file not found: {path}")

    with open(path, "r") as file:
        try:
            yaml_data = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid settings file {path}: {e}") from e

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")

    section = yaml_data.get("configuration", {}) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'configuration' in {path} must be a mapping")

    known = set(ENV_KEYS.values())
    settings = {}
    for key, value in section.items():
        if key not in known:
            raise ConfigurationError(f"Unknown setting '{key}' in {path}")
        if isinstance(value, (list, tuple)):
            value = " ".join(str(v) for v in value)
        settings[key] = "" if value is None else str(value)
    return settings


def _merge_sources(environ: Mapping[str, str]) -> Dict[str, Optional[str]]:
    """Combine settings file values with the environment; the environment wins."""
    values: Dict[str, Optional[str]] = {key: None for key in ENV_KEYS.values()}

    settings_path = environ.get("K8SBENCH_SETTINGS")
    if settings_path:
        values.update(load_settings_file(Path(settings_path)))

    for env_name, key in ENV_KEYS.items():
        if env_name in environ:
            values[key] = environ[env_name]
    return values


def _parse_positive_int(name: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'")
    if number < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {number}")
    return number


def _parse_timeout(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        timeout = float(value)
    except ValueError:
        raise ConfigurationError(f"JOB_TIMEOUT must be a number of seconds, got '{value}'")
    if timeout <= 0:
        raise ConfigurationError("JOB_TIMEOUT must be positive")
    return timeout


def load_config(environ: Optional[Mapping[str, str]] = None, require_cluster: bool = True) -> BenchmarkConfig:
    """
    Build the configuration bundle from the environment.

    Args:
        environ: Mapping to read from (default: os.environ)
        require_cluster: Whether the cluster variables must be present.
            Only the plot-only mode runs without them.

    Returns:
        Validated BenchmarkConfig

    Raises:
        ConfigurationError: If a required variable is missing or malformed
    """
    if environ is None:
        environ = os.environ
    values = _merge_sources(environ)

    node_roles = values["node_roles"] or "reference"
    if node_roles not in NODE_ROLE_STRATEGIES:
        raise ConfigurationError(
            f"NODE_ROLES must be one of {', '.join(NODE_ROLE_STRATEGIES)}, got '{node_roles}'"
        )

    if require_cluster:
        required = ["KUBECONFIG", "ARCH", "COST", "META", "BENCHMARKNODE", "NETWORKNODE"]
        if node_roles == "reference":
            required.append("FIXEDX86NODE")
        missing = [name for name in required if values[ENV_KEYS[name]] is None]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        try:
            float(values["cost"])
        except ValueError:
            raise ConfigurationError(f"COST must be a number, got '{values['cost']}'")

    categories = CategoryLists(
        memtier=parse_name_list(values["memtier"], DEFAULT_MEMTIER),
        stressng=parse_name_list(values["stressng"], DEFAULT_STRESSNG),
        sysbench=parse_name_list(values["sysbench"], DEFAULT_SYSBENCH),
        network=parse_name_list(values["network"], DEFAULT_NETWORK),
    )

    return BenchmarkConfig(
        kubeconfig=values["kubeconfig"] or "",
        arch=values["arch"] or "",
        cost=values["cost"] or "",
        meta=values["meta"] or "",
        benchmark_node=values["benchmark_node"] or "",
        network_node=values["network_node"] or "",
        fixed_x86_node=values["fixed_x86_node"] or "",
        iterations=_parse_positive_int("ITERATIONS", values["iterations"] or "1"),
        categories=categories,
        node_roles=node_roles,
        namespace=values["namespace"] or DEFAULT_NAMESPACE,
        image_repository=values["image_repository"] or DEFAULT_IMAGE_REPOSITORY,
        results_dir=Path(values["results_dir"] or "."),
        job_timeout=_parse_timeout(values["job_timeout"]),
    )

