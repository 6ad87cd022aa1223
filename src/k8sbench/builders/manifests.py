"""
Manifest builders for the benchmark resources.

Builds the Kubernetes objects as plain dictionaries that the API client
accepts directly:
- helper resources (namespace and service account)
- the benchmark Job of a case
- the companion server Job and Service of a network case
"""

from typing import Any, Dict, List, Optional

from k8sbench.config import BenchmarkConfig
from k8sbench.models.job import JobInstance

NODE_ROLE_LABEL = "benchmark-node"
APP_LABEL = "app"
SERVICE_ACCOUNT = "benchmark"


def helper_manifests(namespace: str) -> List[Dict[str, Any]]:
    """Build the shared helper resources deployed before benchmarking."""
    return [
        {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {"name": namespace},
        },
        {
            "apiVersion": "v1",
            "kind": "ServiceAccount",
            "metadata": {"name": SERVICE_ACCOUNT, "namespace": namespace},
        },
    ]


def _env(values: Dict[str, str]) -> List[Dict[str, str]]:
    return [{"name": key, "value": str(value)} for key, value in values.items()]


def image_for(repository: str, name: str, arch: str) -> str:
    return f"{repository}/{name}:latest-{arch}"


def server_name(job_name: str, run_id: str) -> str:
    return f"{job_name}-server-{run_id}"


def build_job_manifest(
    instance: JobInstance,
    config: BenchmarkConfig,
    node_selector: str,
    arch: str,
    port: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Build the benchmark Job for one case run.

    Args:
        instance: Job instance (case plus run identifier)
        config: Run configuration
        node_selector: Value of the benchmark-node label the pod must run on
        arch: Image architecture suffix for this Job
        port: Server port for network cases

    Returns:
        Job manifest dictionary
    """
    case = instance.case
    env = {
        "JOBTYPE": case.job_type,
        "MODE": case.job_name,
        "ID": instance.run_id,
        "PARAMETER": case.parameter,
        "PARAMETERQUOTE": case.parameter_slug,
        "RESULT": case.result_column,
        "ARCH": arch,
        "COST": config.cost,
        "META": config.meta,
        "ITERATIONS": str(config.iterations),
    }
    if port is not None:
        env["SERVER"] = server_name(case.job_name, instance.run_id)
        env["PORT"] = str(port)

    labels = {APP_LABEL: instance.label}
    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": {
            "name": instance.name,
            "namespace": config.namespace,
            "labels": labels,
        },
        "spec": {
            "backoffLimit": 0,
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "restartPolicy": "Never",
                    "serviceAccountName": SERVICE_ACCOUNT,
                    "nodeSelector": {NODE_ROLE_LABEL: node_selector},
                    "containers": [
                        {
                            "name": "benchmark",
                            "image": image_for(config.image_repository, case.job_type, arch),
                            "imagePullPolicy": "Always",
                            "env": _env(env),
                        }
                    ],
                },
            },
        },
    }


def build_server_manifests(
    job_name: str,
    run_id: str,
    port: int,
    node_selector: str,
    config: BenchmarkConfig,
) -> List[Dict[str, Any]]:
    """
    Build the companion server Job and its Service for a network case.

    Args:
        job_name: Network tool (nginx, iperf3, fortio)
        run_id: Run identifier of the client Job the server belongs to
        port: Port the server listens on
        node_selector: Value of the benchmark-node label for the server pod
        config: Run configuration (namespace, image repository, arch)

    Returns:
        [Job, Service] manifest dictionaries
    """
    name = server_name(job_name, run_id)
    labels = {APP_LABEL: name}
    job = {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": {"name": name, "namespace": config.namespace, "labels": labels},
        "spec": {
            "backoffLimit": 0,
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "restartPolicy": "Never",
                    "serviceAccountName": SERVICE_ACCOUNT,
                    "nodeSelector": {NODE_ROLE_LABEL: node_selector},
                    "containers": [
                        {
                            "name": "server",
                            "image": image_for(config.image_repository, f"{job_name}-server", config.arch),
                            "imagePullPolicy": "Always",
                            "env": _env({"PORT": str(port), "MODE": job_name}),
                            "ports": [{"containerPort": port}],
                        }
                    ],
                },
            },
        },
    }
    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": name, "namespace": config.namespace, "labels": dict(labels)},
        "spec": {
            "selector": dict(labels),
            "ports": [{"port": port, "targetPort": port}],
        },
    }
    return [job, service]
