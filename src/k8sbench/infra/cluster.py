"""
Kubernetes access for the orchestration stages.

KubernetesCluster wraps the official Python client with the handful of
operations the stages need: labeling nodes, applying and deleting manifests,
waiting for Jobs, and listing Jobs, pods and logs by label selector.
"""

import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from k8sbench.builders.manifests import NODE_ROLE_LABEL
from k8sbench.errors import JobCancelledError, JobTimeoutError
from k8sbench.models.job import JobState, job_state_from_status

DEFAULT_POLL_INTERVAL = 1.0
# Server-side timeout of one watch request; the stream is reopened after it
WATCH_WINDOW_SECONDS = 30


def wait_for_state(
    job_name: str,
    read_state: Callable[[], Tuple[JobState, Any]],
    timeout: Optional[float] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    cancel: Optional[threading.Event] = None,
    clock: Callable[[], float] = time.monotonic,
) -> Tuple[JobState, Any]:
    """
    Poll a Job until it reaches a terminal state.

    Args:
        job_name: Job name, used in error messages
        read_state: Returns (JobState, raw status) for the Job
        timeout: Seconds before giving up (None waits forever)
        poll_interval: Seconds between reads
        cancel: Event that aborts the wait when set
        clock: Monotonic clock

    Returns:
        (terminal JobState, raw status)

    Raises:
        JobTimeoutError: If the timeout passes first
        JobCancelledError: If the cancel event is set
    """
    start = clock()
    while True:
        if cancel is not None and cancel.is_set():
            raise JobCancelledError(job_name)

        state, status = read_state()
        if state.is_terminal:
            return state, status

        if timeout is not None and clock() - start > timeout:
            raise JobTimeoutError(job_name, timeout)

        if cancel is not None:
            if cancel.wait(poll_interval):
                raise JobCancelledError(job_name)
        else:
            time.sleep(poll_interval)


class KubernetesCluster:
    """Cluster facade used by the submitter, gatherer and cleanup stages."""

    def __init__(
        self,
        namespace: str,
        kubeconfig: Optional[str] = None,
        api_client: Optional[client.ApiClient] = None,
    ):
        """
        Connect to the cluster.

        Args:
            namespace: Namespace holding the benchmark Jobs
            kubeconfig: Path to a kubeconfig file; without one, in-cluster
                configuration is tried before the default kubeconfig
            api_client: Preconfigured API client (skips config loading)
        """
        self.namespace = namespace
        if api_client is None:
            self._load_config(kubeconfig)
            api_client = client.ApiClient()
        self.api_client = api_client
        self.core_v1 = client.CoreV1Api(api_client)
        self.batch_v1 = client.BatchV1Api(api_client)

    @staticmethod
    def _load_config(kubeconfig: Optional[str]) -> None:
        if kubeconfig:
            config.load_kube_config(config_file=kubeconfig)
            return
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config()

    # =========================================================================
    # Nodes
    # =========================================================================

    def label_node(self, node: str, role: str) -> None:
        """Set the benchmark-node role label on a node, overwriting any old value."""
        body = {"metadata": {"labels": {NODE_ROLE_LABEL: role}}}
        self.core_v1.patch_node(node, body)

    # =========================================================================
    # Manifests
    # =========================================================================

    def apply(self, manifest: Dict[str, Any]) -> str:
        """
        Create a resource, or update it if it already exists.

        Jobs cannot be updated in place; an existing Job of the same name is
        left untouched.

        Returns:
            "created", "configured" or "unchanged"
        """
        kind = manifest["kind"]
        name = manifest["metadata"]["name"]
        namespace = manifest["metadata"].get("namespace", self.namespace)

        try:
            if kind == "Namespace":
                self.core_v1.create_namespace(body=manifest)
            elif kind == "ServiceAccount":
                self.core_v1.create_namespaced_service_account(namespace=namespace, body=manifest)
            elif kind == "Service":
                self.core_v1.create_namespaced_service(namespace=namespace, body=manifest)
            elif kind == "Job":
                self.batch_v1.create_namespaced_job(namespace=namespace, body=manifest)
            else:
                raise ValueError(f"Unsupported resource kind: {kind}")
            return "created"
        except ApiException as e:
            if e.status != 409:
                raise

        if kind == "Namespace":
            self.core_v1.patch_namespace(name, body=manifest)
        elif kind == "ServiceAccount":
            self.core_v1.patch_namespaced_service_account(name, namespace, body=manifest)
        elif kind == "Service":
            self.core_v1.patch_namespaced_service(name, namespace, body=manifest)
        else:
            return "unchanged"
        return "configured"

    def delete(self, manifest: Dict[str, Any], ignore_missing: bool = True) -> bool:
        """
        Delete the resource described by a manifest.

        Returns:
            True if deleted, False if it was already gone
        """
        kind = manifest["kind"]
        name = manifest["metadata"]["name"]
        namespace = manifest["metadata"].get("namespace", self.namespace)

        try:
            if kind == "Namespace":
                self.core_v1.delete_namespace(name)
            elif kind == "ServiceAccount":
                self.core_v1.delete_namespaced_service_account(name, namespace)
            elif kind == "Service":
                self.core_v1.delete_namespaced_service(name, namespace)
            elif kind == "Job":
                self.batch_v1.delete_namespaced_job(
                    name, namespace, propagation_policy="Background"
                )
            else:
                raise ValueError(f"Unsupported resource kind: {kind}")
        except ApiException as e:
            if e.status == 404 and ignore_missing:
                return False
            raise
        return True

    # =========================================================================
    # Jobs
    # =========================================================================

    def read_job_state(self, name: str) -> Tuple[JobState, Any]:
        """Return (JobState, V1JobStatus) for a Job."""
        job = self.batch_v1.read_namespaced_job_status(name, self.namespace)
        return job_state_from_status(job.status), job.status

    def wait_for_job(
        self,
        name: str,
        timeout: Optional[float] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel: Optional[threading.Event] = None,
    ) -> Tuple[JobState, Any]:
        """
        Wait until a Job is Complete or Failed.

        Follows the Job with the watch API; if the watch stream breaks, the
        remaining wait falls back to polling every poll_interval seconds.

        Returns:
            (terminal JobState, V1JobStatus)

        Raises:
            JobTimeoutError: If the timeout passes first
            JobCancelledError: If the cancel event is set
        """
        start = time.monotonic()

        def remaining() -> Optional[float]:
            if timeout is None:
                return None
            return timeout - (time.monotonic() - start)

        try:
            result = self._watch_job(name, timeout, remaining, cancel)
        except (ApiException, HTTPError):
            result = None
        if result is not None:
            return result

        left = remaining()
        return wait_for_state(
            name,
            lambda: self.read_job_state(name),
            timeout=None if left is None else max(left, 0.0),
            poll_interval=poll_interval,
            cancel=cancel,
        )

    def _watch_job(
        self,
        name: str,
        timeout: Optional[float],
        remaining: Callable[[], Optional[float]],
        cancel: Optional[threading.Event],
    ) -> Optional[Tuple[JobState, Any]]:
        while True:
            if cancel is not None and cancel.is_set():
                raise JobCancelledError(name)
            left = remaining()
            if left is not None and left <= 0:
                raise JobTimeoutError(name, timeout)

            window = WATCH_WINDOW_SECONDS if left is None else max(1, min(WATCH_WINDOW_SECONDS, int(left)))
            w = watch.Watch()
            for event in w.stream(
                self.batch_v1.list_namespaced_job,
                namespace=self.namespace,
                field_selector=f"metadata.name={name}",
                timeout_seconds=window,
            ):
                job = event["object"]
                state = job_state_from_status(job.status)
                if state.is_terminal:
                    w.stop()
                    return state, job.status
                if cancel is not None and cancel.is_set():
                    w.stop()
                    raise JobCancelledError(name)

    def list_jobs(self, selector: str) -> List[str]:
        """Return the names of Jobs matching a label selector."""
        jobs = self.batch_v1.list_namespaced_job(self.namespace, label_selector=selector)
        return [job.metadata.name for job in jobs.items]

    def delete_job(self, name: str) -> None:
        self.batch_v1.delete_namespaced_job(name, self.namespace, propagation_policy="Background")

    # =========================================================================
    # Pods
    # =========================================================================

    def list_job_pods(self, job_name: str) -> List[str]:
        """Return the pod names of a Job."""
        pods = self.core_v1.list_namespaced_pod(self.namespace, label_selector=f"job-name={job_name}")
        return [pod.metadata.name for pod in pods.items]

    def read_pod_log(self, pod_name: str) -> str:
        """Return a pod's log, decoding undecodable bytes with replacement."""
        response = self.core_v1.read_namespaced_pod_log(
            pod_name, self.namespace, _preload_content=False
        )
        try:
            return response.data.decode("utf-8", errors="replace")
        finally:
            response.release_conn()
