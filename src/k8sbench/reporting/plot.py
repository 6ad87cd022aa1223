"""
Plotting helper for gathered benchmark results.

Renders one bar chart per benchmark case from the CSV files of all clusters
and architectures present locally:
- one bar per series (metadata + architecture of the run)
- bar height is the mean of the result column, error bar the std deviation
- with --cost, values are divided by the cost per hour of the series

Usage:
    k8sbench-plot [--cost] [--parameter] --outfile=OUT RESULT CSV...
"""

import argparse
import csv
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np


# Configure matplotlib for non-interactive backend
plt.switch_backend("Agg")

SUPPORTED_FORMATS = (".svg", ".png")


@dataclass
class Series:
    """Values of one bar in the chart."""
    label: str
    values: List[float] = field(default_factory=list)

    @property
    def mean(self) -> float:
        return float(np.mean(self.values)) if self.values else 0.0

    @property
    def std(self) -> float:
        return float(np.std(self.values)) if self.values else 0.0


def setup_plot_style():
    """Set up consistent plot styling."""
    plt.style.use("default")
    plt.rcParams.update(
        {
            "font.size": 10,
            "axes.titlesize": 12,
            "axes.labelsize": 10,
            "xtick.labelsize": 9,
            "ytick.labelsize": 9,
            "figure.dpi": 100,
            "savefig.dpi": 150,
            "savefig.bbox": "tight",
        }
    )


def read_rows(path: Path) -> List[Dict[str, str]]:
    """
    Read a gathered CSV file into dictionaries keyed by lower-case column name.

    The first line is the header. Appended runs repeat the header; those
    lines are skipped. Rows with a different column count are ignored.
    """
    with open(path, newline="", errors="replace") as f:
        lines = [row for row in csv.reader(f) if row]

    if not lines:
        return []

    header = [name.strip() for name in lines[0]]
    keys = [name.lower() for name in header]
    rows = []
    for line in lines[1:]:
        cells = [cell.strip() for cell in line]
        if cells == header or len(cells) != len(keys):
            continue
        rows.append(dict(zip(keys, cells)))
    return rows


def _float(value: Optional[str]) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def series_label(row: Dict[str, str], fallback: str, with_parameter: bool) -> str:
    parts = [row[key] for key in ("meta", "arch") if row.get(key)]
    label = " ".join(parts) if parts else fallback
    if with_parameter and row.get("parameter"):
        label = f"{label} ({row['parameter']})"
    return label


def collect_series(
    result: str,
    paths: Sequence[Path],
    cost: bool = False,
    parameter: bool = False,
) -> List[Series]:
    """
    Group the result values of all files into labeled series.

    Args:
        result: Result column name (matched case-insensitively)
        paths: Gathered CSV files
        cost: Divide each value by the row's cost column
        parameter: Add the parameter value to the series labels

    Returns:
        Series in order of first appearance
    """
    column = result.strip().lower()
    series: Dict[str, Series] = {}

    for path in paths:
        for row in read_rows(Path(path)):
            value = _float(row.get(column))
            if value is None:
                continue
            if cost:
                row_cost = _float(row.get("cost"))
                if not row_cost:
                    continue
                value = value / row_cost

            label = series_label(row, Path(path).stem, parameter)
            series.setdefault(label, Series(label)).values.append(value)

    return list(series.values())


def plot_series(series: List[Series], result: str, output_path: Path, cost: bool = False) -> None:
    """
    Draw a bar chart with one bar per series.

    Args:
        series: Series to draw
        result: Result column name, used as axis label
        output_path: Output file (.svg or .png)
        cost: Whether the values are cost-normalized
    """
    setup_plot_style()

    labels = [s.label for s in series]
    means = [s.mean for s in series]
    stds = [s.std for s in series]

    fig, ax = plt.subplots(figsize=(max(6, len(series) * 1.2), 5))
    x = np.arange(len(series))
    colors = plt.cm.viridis(np.linspace(0.2, 0.8, len(series)))
    bars = ax.bar(x, means, yerr=stds, capsize=4, color=colors)

    for bar, value in zip(bars, means):
        ax.text(
            bar.get_x() + bar.get_width() / 2.0,
            bar.get_height(),
            f"{value:.2f}",
            ha="center",
            va="bottom",
            fontsize=8,
        )

    y_label = f"{result} per $/h" if cost else result
    ax.set_ylabel(y_label)
    ax.set_title(f"{Path(output_path).stem}: {y_label}")
    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=30, ha="right")
    ax.grid(True, axis="y", alpha=0.3)
    ax.set_ylim(bottom=0)

    plt.tight_layout()
    plt.savefig(output_path)
    plt.close(fig)


def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="k8sbench-plot",
        description="Plot gathered k8sbench CSV files as a bar chart",
    )
    parser.add_argument("result", help="Result column to plot, e.g. 'Events/s'")
    parser.add_argument("csv_files", nargs="+", type=Path, help="Gathered CSV files")
    parser.add_argument("--outfile", required=True, type=Path, help="Output file (.svg or .png)")
    parser.add_argument("--cost", action="store_true", help="Divide values by the cost per hour")
    parser.add_argument(
        "--parameter", action="store_true", help="Show the parameter value in the bar labels"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = create_argument_parser().parse_args(argv)

    if args.outfile.suffix.lower() not in SUPPORTED_FORMATS:
        print(f"Error: unsupported output format '{args.outfile.suffix}'", file=sys.stderr)
        return 1

    missing = [str(p) for p in args.csv_files if not p.is_file()]
    if missing:
        print(f"Error: file(s) not found: {', '.join(missing)}", file=sys.stderr)
        return 1

    series = collect_series(args.result, args.csv_files, cost=args.cost, parameter=args.parameter)
    # No values (e.g. no cost column in cost mode) skips the chart
    if not series:
        kind = "cost-normalized " if args.cost else ""
        print(f"No {kind}'{args.result}' values in {len(args.csv_files)} file(s), skipping {args.outfile.name}")
        return 0

    plot_series(series, args.result, args.outfile, cost=args.cost)
    print(f"✓ {args.outfile}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
