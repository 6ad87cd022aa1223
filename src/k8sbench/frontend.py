"""
Frontend module for k8sbench.

Parses the single mode argument, loads the configuration and runs the
selected stages. Exit codes: 0 on success and --help, 1 on any usage,
configuration, Job or cluster error, 130 when interrupted.
"""

import argparse
import os
import sys
from typing import List, Mapping, Optional

from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException

from k8sbench.config import load_config
from k8sbench.console import get_console
from k8sbench.core.pipeline import COMBINATIONS, Pipeline, needs_cluster, parse_mode
from k8sbench.errors import BenchmarkError, UsageError

HELP_TEXT = f"""\
  benchmark: Runs benchmarks as Kubernetes Jobs on the cluster (starts sequentially with waiting for completion)
  gather:    Write the Kubernetes Job output to local CSV files
  plot:      Plot all existing CSVs in the current folder as SVGs and PNGs
  cleanup:   Deletes the Kubernetes Jobs (optional cleanup)
  (Valid combinations: {' '.join(COMBINATIONS)})
Required env variables:
  KUBECONFIG:    Specifies the cluster to use
  ARCH:          Specifies which container image suffix to use (either arm64 or amd64)
  COST:          Stores an additional cost/hour value, e.g., 1.0
  META:          Stores additional metadata about the benchmark run, use it to provide the location, e.g., sjc1 as the datacenter region
  BENCHMARKNODE: Specifies the node where the benchmark work load runs on.
  NETWORKNODE:   Specifies the node to label as second server for the network benchmarks. It should have the same hardware as BENCHMARKNODE.
  FIXEDX86NODE:  Specifies the node which is used as client to measure latencies. It should be the same x86 hardware for all clusters
                 (Can be NETWORKNODE if they have the same type). Not needed with NODE_ROLES=peer.
Optional env variables:
  ITERATIONS=1:                   Number of runs inside a Job
  NETWORK="iperf3 ab fortio":     Space-separated list of network benchmarks to run (limited to the named ones)
  MEMTIER="memcached redis":      Space-separated list of memtier benchmarks to run (limited to the named ones)
  SYSBENCH="fileio mem cpu":      Space-separated list of sysbench benchmarks to run (limited to the named ones)
  STRESSNG="(default in source)": Space-separated list of stress-ng benchmarks to run (accepts any valid names)
                                  To disable a category set it to a whitespace string, e.g., STRESSNG=" " SYSBENCH=" " disables both.
  NODE_ROLES=reference:           "reference" runs fortio clients on FIXEDX86NODE, "peer" only uses BENCHMARKNODE and NETWORKNODE
  JOB_TIMEOUT:                    Seconds to wait for each Job before giving up (default: no limit)
  NAMESPACE=benchmark:            Namespace for the benchmark Jobs
  IMAGE_REPOSITORY=quay.io/kinvolk: Registry path of the benchmark images
  RESULTS_DIR=.:                  Directory for CSV files, charts and the session log
  K8SBENCH_SETTINGS:              YAML file with a 'configuration' mapping of the settings above (env variables win)
The benchmark results are stored in the cluster as long as the jobs are not cleaned-up.
The gather process exports them to local files and combines the result with any existing local files.
Therefore, the intended usage is to gather the results for various clusters into one directory.
By keeping the cleanup process of Jobs in the cluster optional, multiple clients can access the results without sharing the CSV files.
Old results can be cleaned-up to speed up the gathering and they are included in the plotted graphs as long as their CSV files are still in the current folder."""


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports errors as UsageError instead of exiting with 2."""

    def error(self, message):
        raise UsageError(message)


def create_argument_parser() -> ArgumentParser:
    """
    Create and configure the command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = ArgumentParser(
        prog="k8sbench",
        usage="%(prog)s benchmark|gather|plot|cleanup|COMBINATION",
        add_help=False,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help and exit")
    parser.add_argument("mode", nargs="?", help="Stage or combination of stages to run")
    return parser


def print_help(parser: ArgumentParser) -> None:
    print(parser.format_usage().rstrip())
    print(HELP_TEXT)


def main(argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Run k8sbench.

    Args:
        argv: Command-line arguments without the program name
        environ: Environment to read the configuration from

    Returns:
        Process exit code
    """
    if argv is None:
        argv = sys.argv[1:]
    if environ is None:
        environ = os.environ

    parser = create_argument_parser()
    try:
        args = parser.parse_args(argv)
        if args.help:
            print_help(parser)
            return 0
        if args.mode is None:
            raise UsageError("missing mode argument")
        stages = parse_mode(args.mode)
    except UsageError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        print(parser.format_usage().rstrip(), file=sys.stderr)
        return 1

    try:
        config = load_config(environ, require_cluster=needs_cluster(stages))
    except BenchmarkError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    console = get_console(config.results_dir)
    if needs_cluster(stages):
        console.log(config.describe())

    try:
        Pipeline(config, console).run(stages)
    except BenchmarkError as e:
        console.error(str(e))
        return 1
    except ApiException as e:
        console.error(f"Kubernetes API error: {e.status} {e.reason}")
        return 1
    except ConfigException as e:
        console.error(f"Failed to load Kubernetes config: {e}")
        return 1
    except KeyboardInterrupt:
        console.error("Interrupted; a running benchmark Job is left in the cluster")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
