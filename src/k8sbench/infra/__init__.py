"""
Infrastructure access for k8sbench.

Contains:
- cluster: Kubernetes API facade (nodes, manifests, Jobs, pods, logs)
"""

from .cluster import KubernetesCluster, wait_for_state
