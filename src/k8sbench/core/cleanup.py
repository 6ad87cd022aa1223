"""
Cleanup stage.

Deletes the benchmark Jobs of every case, then the helper resources.
Removing the helpers is best-effort; failing to delete a Job is not.
"""

from typing import List

from kubernetes.client.rest import ApiException

from k8sbench.builders.manifests import APP_LABEL, helper_manifests
from k8sbench.config import BenchmarkConfig
from k8sbench.console import Console
from k8sbench.models.case import BenchmarkCase


class Cleanup:
    """Deletes Jobs by case label and removes the helper resources."""

    def __init__(self, cluster, config: BenchmarkConfig, console: Console):
        self.cluster = cluster
        self.config = config
        self.console = console

    def delete_case_jobs(self, case: BenchmarkCase) -> List[str]:
        deleted = []
        for job_name in self.cluster.list_jobs(f"{APP_LABEL}={case.slug}"):
            self.cluster.delete_job(job_name)
            self.console.log(f"job {job_name} deleted")
            deleted.append(job_name)
        return deleted

    def delete_helpers(self) -> None:
        # The namespace goes last; deleting it removes anything left inside
        for manifest in reversed(helper_manifests(self.config.namespace)):
            name = f"{manifest['kind'].lower()}/{manifest['metadata']['name']}"
            try:
                self.cluster.delete(manifest)
                self.console.log(f"{name} deleted")
            except ApiException as e:
                self.console.warning(f"could not delete {name}: {e.reason}")

    def run(self, cases: List[BenchmarkCase]) -> List[str]:
        """
        Delete all Jobs of the given cases and the helpers.

        Returns:
            Names of the deleted Jobs
        """
        deleted = []
        for case in cases:
            deleted.extend(self.delete_case_jobs(case))
        self.delete_helpers()
        self.console.log("done with cleanup")
        return deleted
