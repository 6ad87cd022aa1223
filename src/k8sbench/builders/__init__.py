"""
Builders for the Kubernetes resources created by k8sbench.

Contains:
- manifests: Job, server and helper manifest dictionaries
"""

from .manifests import (
    build_job_manifest,
    build_server_manifests,
    helper_manifests,
)
