"""
Core orchestration logic of k8sbench.

Contains:
- matrix: benchmark matrix generation
- node_roles: node labeling strategies
- auxiliary: companion servers for network benchmarks
- submitter: sequential Job submission (benchmark stage)
- gatherer: CSV collection from Job logs (gather stage)
- plotter: parallel chart rendering (plot stage)
- cleanup: Job and helper deletion (cleanup stage)
- pipeline: stage selection and ordering
"""

from .matrix import generate_matrix, validate_matrix
from .pipeline import Pipeline, parse_mode
