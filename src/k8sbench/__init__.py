"""
k8sbench - benchmark matrix orchestration for Kubernetes clusters.

Runs a fixed set of benchmark workloads as Kubernetes Jobs, gathers their
CSV output into local files, renders charts and cleans up afterwards.
"""

__version__ = "0.1.0"
