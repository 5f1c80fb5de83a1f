"""Console entry point for the cluster rolling upgrader CLI."""

from __future__ import annotations

import argparse
import logging
from typing import List

from config import ClusterHandle, UpgraderConfig
from errors import UpgradeError
from log_utils import setup_logging
from upgrader import ClusterUpgrader

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description=(
            "Rolling cluster upgrade: upgrades the control-plane machine, "
            "waits for it to rejoin ready, then upgrades all workers concurrently."
        )
    )
    parser.add_argument(
        "--kubeconfig",
        help="Path to the cluster kubeconfig (default: ~/.kube/config, "
        "or in-cluster configuration when that file is missing)",
    )
    parser.add_argument("--context", help="Kubeconfig context to use")
    parser.add_argument(
        "--version",
        required=True,
        help="Target Kubernetes version (e.g. 1.12.3)",
    )
    parser.add_argument(
        "--namespace", default="default", help="Namespace of the Machine objects"
    )
    parser.add_argument(
        "--poll-interval",
        type=int,
        default=5,
        help="Seconds between node readiness checks (default: 5)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=600,
        help="Seconds each machine may take to become ready (default: 600)",
    )
    parser.add_argument(
        "--shutdown-grace-period",
        type=float,
        default=30.0,
        help="Seconds to wait for in-flight workers after a failure (default: 30)",
    )
    parser.add_argument("--request-timeout", type=int, default=30)
    parser.add_argument("--max-retries", type=int, default=3)
    parser.add_argument("--report-file", help="Write a JSON report to this path")
    parser.add_argument(
        "--dry-run", action="store_true", help="Validate and print the plan only"
    )
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv: List[str] | None = None) -> int:
    """CLI main for console_scripts entry point."""
    parser = build_parser()
    args = parser.parse_args(args=argv)
    if args.poll_interval <= 0:
        parser.error("--poll-interval must be a positive number of seconds")
    if args.timeout <= 0:
        parser.error("--timeout must be a positive number of seconds")

    setup_logging(verbose=args.verbose)

    config = UpgraderConfig.from_args(args)
    cluster = ClusterHandle.from_config(config)

    upgrader = ClusterUpgrader(
        cluster,
        target_version=config.target_version,
        poll_interval=config.poll_interval,
        timeout=config.timeout,
        shutdown_grace_period=config.shutdown_grace_period,
        dry_run=config.dry_run,
        report_file=config.report_file,
    )
    try:
        upgrader.run()
    except UpgradeError as e:
        logger.debug(f"Upgrade aborted with {type(e).__name__}")
        return 1
    return 0
