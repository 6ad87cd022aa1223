"""
Result gatherer.

Collects the CSV output of every benchmark Job still present in the cluster
into local files. Rows are appended and never deduplicated: gathering the
same Jobs twice doubles their rows. A Job without CSV output (still
running, or crashed before printing) leaves no file behind.
"""

from pathlib import Path
from typing import Dict, Iterable, List

from k8sbench.builders.manifests import APP_LABEL
from k8sbench.config import BenchmarkConfig
from k8sbench.console import Console
from k8sbench.models.case import BenchmarkCase

CSV_MARKER = "CSV:"


def extract_csv_lines(log: str) -> List[str]:
    """Return the log lines starting with the CSV marker, marker stripped."""
    return [line[len(CSV_MARKER):] for line in log.splitlines() if line.startswith(CSV_MARKER)]


def result_file_name(job_name: str, arch: str) -> str:
    return f"{job_name}{arch}.csv"


def append_rows(path: Path, rows: Iterable[str]) -> int:
    """Append rows to a CSV file, creating it if needed. Returns the row count."""
    count = 0
    with open(path, "a") as f:
        for row in rows:
            f.write(row + "\n")
            count += 1
    return count


class ResultGatherer:
    """Downloads Job logs and appends their CSV rows to local files."""

    def __init__(self, cluster, config: BenchmarkConfig, console: Console):
        self.cluster = cluster
        self.config = config
        self.console = console

    def gather_case(self, case: BenchmarkCase) -> List[Path]:
        """
        Gather every Job of one case.

        Returns:
            Paths of the files written
        """
        results_dir = Path(self.config.results_dir)
        results_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for job_name in self.cluster.list_jobs(f"{APP_LABEL}={case.slug}"):
            rows: List[str] = []
            for pod_name in self.cluster.list_job_pods(job_name):
                rows.extend(extract_csv_lines(self.cluster.read_pod_log(pod_name)))

            if not rows:
                self.console.log(f"{job_name}: no CSV rows, skipping")
                continue

            path = results_dir / result_file_name(job_name, self.config.arch)
            count = append_rows(path, rows)
            self.console.log(f"{job_name}: {count} row(s) -> {path.name}")
            written.append(path)
        return written

    def gather(self, cases: List[BenchmarkCase]) -> Dict[str, List[Path]]:
        """Gather all cases in order."""
        files = {case.slug: self.gather_case(case) for case in cases}
        self.console.log("done gathering")
        return files
