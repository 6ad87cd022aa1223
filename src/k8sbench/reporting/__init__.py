"""
Chart rendering for gathered benchmark results.

Contains:
- plot: the k8sbench-plot helper (CSV files to SVG/PNG bar charts)
"""
