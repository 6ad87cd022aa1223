"""
Plot renderer.

Runs the plotting helper for every case, all cases in parallel. Each case
gets four renderings: the plain chart and the cost-normalized chart, both
as SVG and PNG, fed with every local CSV file of the case.
"""

import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from k8sbench.config import BenchmarkConfig
from k8sbench.console import Console
from k8sbench.errors import PlotError
from k8sbench.models.case import BenchmarkCase

PLOT_COMMAND = [sys.executable, "-m", "k8sbench.reporting.plot"]


def run_plot_command(command: Sequence[str]) -> int:
    """Run one plotting command in its own process group."""
    return subprocess.run(list(command), start_new_session=True).returncode


def case_csv_files(results_dir: Path, case: BenchmarkCase) -> List[Path]:
    """Return all local CSV files of a case, across runs and architectures."""
    if not results_dir.is_dir():
        return []
    return sorted(
        p for p in results_dir.iterdir()
        if p.is_file() and p.name.startswith(case.slug) and p.name.endswith("csv")
    )


def plot_commands(case: BenchmarkCase, files: List[Path], results_dir: Path) -> List[List[str]]:
    """Build the four plotting commands of a case."""
    inputs = [str(f) for f in files]
    commands = []
    for cost in (False, True):
        stem = f"{case.slug}-cost" if cost else case.slug
        for suffix in (".svg", ".png"):
            command = list(PLOT_COMMAND)
            if cost:
                command.append("--cost")
            command.append("--parameter")
            command.append(f"--outfile={results_dir / (stem + suffix)}")
            command.append(case.result_column)
            command.extend(inputs)
            commands.append(command)
    return commands


class PlotRenderer:
    """Renders the charts of all cases concurrently."""

    def __init__(
        self,
        config: BenchmarkConfig,
        console: Console,
        runner: Optional[Callable[[Sequence[str]], int]] = None,
    ):
        self.config = config
        self.console = console
        self.runner = runner or run_plot_command

    def render_case(self, case: BenchmarkCase) -> List[str]:
        """
        Render the four charts of one case.

        Returns:
            Output files whose rendering failed
        """
        results_dir = Path(self.config.results_dir)
        files = case_csv_files(results_dir, case)
        if not files:
            self.console.log(f"no CSV files for {case.slug}, skipping")
            return []

        failed = []
        for command in plot_commands(case, files, results_dir):
            if self.runner(command) != 0:
                outfile = next(arg for arg in command if arg.startswith("--outfile="))
                failed.append(outfile.split("=", 1)[1])
        return failed

    def render(self, cases: List[BenchmarkCase]) -> None:
        """
        Render all cases in parallel and wait for every one of them.

        Raises:
            PlotError: If any rendering failed
        """
        failed: List[str] = []
        if cases:
            with ThreadPoolExecutor(max_workers=len(cases)) as executor:
                for result in executor.map(self.render_case, cases):
                    failed.extend(result)

        if failed:
            raise PlotError(f"Plotting failed for: {', '.join(failed)}")
        self.console.log("done plotting")
