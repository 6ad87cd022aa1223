"""
Data models for k8sbench.

Contains:
- case: BenchmarkCase and slug rules
- job: JobInstance and JobState
"""

from .case import BenchmarkCase, slugify_parameter
from .job import JobInstance, JobState
