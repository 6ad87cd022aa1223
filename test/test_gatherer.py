"""
Tests for the gather stage.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fake_cluster import FakeCluster

from k8sbench.config import BenchmarkConfig
from k8sbench.console import Console
from k8sbench.core.gatherer import ResultGatherer, extract_csv_lines, result_file_name
from k8sbench.models.case import BenchmarkCase


CASE = BenchmarkCase("sysbench", "cpu", "$ONE", "Events/s")

LOG = """\
Running the test with following options:
CSV:arch,cost,meta,parameter,Events/s
CSV:arm64,1.0,sjc1,1,1234.5
threads: 1
CSV:arm64,1.0,sjc1,1,1240.1
done
"""


def make_gatherer(cluster, tmp_path) -> ResultGatherer:
    config = BenchmarkConfig(arch="arm64", cost="1.0", meta="sjc1", results_dir=tmp_path)
    return ResultGatherer(cluster, config, Console())


def test_extract_csv_lines():
    assert extract_csv_lines(LOG) == [
        "arch,cost,meta,parameter,Events/s",
        "arm64,1.0,sjc1,1,1234.5",
        "arm64,1.0,sjc1,1,1240.1",
    ]
    assert extract_csv_lines("no results here\n") == []


def test_marker_must_start_the_line():
    assert extract_csv_lines("  CSV:a,b\nlog CSV:c\n") == []


def test_result_file_name():
    assert result_file_name("sysbench-cpu-one-123-4", "arm64") == "sysbench-cpu-one-123-4arm64.csv"


def test_gather_writes_one_file_per_job(tmp_path):
    cluster = FakeCluster()
    cluster.add_job("sysbench-cpu-one-111-1", {"app": CASE.slug}, log=LOG)
    cluster.add_job("sysbench-cpu-one-222-2", {"app": CASE.slug}, log="CSV:x\n")
    cluster.add_job("sysbench-cpu-cores-333-3", {"app": "sysbench-cpu-cores"}, log=LOG)

    files = make_gatherer(cluster, tmp_path).gather([CASE])

    assert sorted(p.name for p in files[CASE.slug]) == [
        "sysbench-cpu-one-111-1arm64.csv",
        "sysbench-cpu-one-222-2arm64.csv",
    ]
    first = (tmp_path / "sysbench-cpu-one-111-1arm64.csv").read_text()
    assert first.splitlines() == extract_csv_lines(LOG)
    assert not (tmp_path / "sysbench-cpu-cores-333-3arm64.csv").exists()


def test_gather_twice_doubles_rows(tmp_path):
    cluster = FakeCluster()
    cluster.add_job("sysbench-cpu-one-111-1", {"app": CASE.slug}, log=LOG)
    gatherer = make_gatherer(cluster, tmp_path)

    gatherer.gather([CASE])
    gatherer.gather([CASE])

    lines = (tmp_path / "sysbench-cpu-one-111-1arm64.csv").read_text().splitlines()
    assert len(lines) == 6
    assert lines[:3] == lines[3:]


def test_gather_appends_to_existing_file(tmp_path):
    existing = tmp_path / "sysbench-cpu-one-111-1arm64.csv"
    existing.write_text("old,row\n")
    cluster = FakeCluster()
    cluster.add_job("sysbench-cpu-one-111-1", {"app": CASE.slug}, log="CSV:new,row\n")

    make_gatherer(cluster, tmp_path).gather([CASE])

    assert existing.read_text() == "old,row\nnew,row\n"


def test_job_without_csv_output_writes_no_file(tmp_path, capsys):
    cluster = FakeCluster()
    cluster.add_job("sysbench-cpu-one-111-1", {"app": CASE.slug}, log="crashed\n")

    files = make_gatherer(cluster, tmp_path).gather([CASE])

    assert files == {CASE.slug: []}
    assert not (tmp_path / "sysbench-cpu-one-111-1arm64.csv").exists()
    out = capsys.readouterr().out
    assert "sysbench-cpu-one-111-1: no CSV rows, skipping" in out
    assert "done gathering" in out


def test_empty_job_does_not_touch_existing_file(tmp_path):
    existing = tmp_path / "sysbench-cpu-one-111-1arm64.csv"
    existing.write_text("arch,Events/s\narm64,1\n")
    cluster = FakeCluster()
    cluster.add_job("sysbench-cpu-one-111-1", {"app": CASE.slug}, log="")

    make_gatherer(cluster, tmp_path).gather([CASE])

    assert existing.read_text() == "arch,Events/s\narm64,1\n"


def test_no_jobs_writes_nothing(tmp_path):
    files = make_gatherer(FakeCluster(), tmp_path).gather([CASE])
    assert files == {CASE.slug: []}
    assert list(tmp_path.iterdir()) == []
