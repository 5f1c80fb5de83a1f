"""
Rolling upgrade of a cluster: control plane first, then all workers.
"""

import json
import logging
import time
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from errors import (
    ControlPlaneTimeout,
    ControlPlaneUpdateFailed,
    MultipleControlPlanesFound,
    NoControlPlaneFound,
    PollTimeoutError,
    RepositoryError,
    UpgradeError,
    WorkerFailure,
)
from fanout import WorkerFanout
from models import Machine, MachineRole, UpgradeResult
from poller import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_TIMEOUT, wait_until_ready
from readiness import machine_ready
from versions import normalize_version

logger = logging.getLogger(__name__)


class UpgradePhase(Enum):
    """Phases of a cluster upgrade run."""

    START = "start"
    DISCOVERING = "discovering"
    UPGRADING_CONTROL_PLANE = "upgrading_control_plane"
    CONTROL_PLANE_FAILED = "control_plane_failed"
    UPGRADING_WORKERS = "upgrading_workers"
    COMPLETED = "completed"
    WORKER_FAILED = "worker_failed"


class ClusterUpgrader:
    """Upgrades the control-plane machine, then every worker machine."""

    def __init__(
        self,
        cluster,
        target_version: str,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_POLL_TIMEOUT,
        shutdown_grace_period: float = 30.0,
        dry_run: bool = False,
        report_file: Optional[str] = None,
    ):
        """
        Initialize the cluster upgrader.

        Args:
            cluster: ClusterHandle with the machine repository and node oracle
            target_version: Version applied to every machine (e.g. "1.2.3")
            poll_interval: Interval between readiness checks (seconds)
            timeout: Time each machine may take to become ready (seconds)
            shutdown_grace_period: Time to wait for cancelled workers (seconds)
            dry_run: If True, validate and log the plan without updating
            report_file: Optional path for a JSON report of the run
        """
        self.cluster = cluster
        self.target_version = target_version
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.shutdown_grace_period = shutdown_grace_period
        self.dry_run = dry_run
        self.report_file = report_file

        self.phase = UpgradePhase.START
        self.stats = self._empty_stats()

        # Timing and results tracking
        self.run_start_time: Optional[float] = None
        self.run_end_time: Optional[float] = None
        self.results: List[UpgradeResult] = []
        self.error: Optional[UpgradeError] = None

    def _enter(self, phase: UpgradePhase) -> None:
        logger.debug(f"Phase {self.phase.value} -> {phase.value}")
        self.phase = phase

    def discover(self) -> List[Machine]:
        """
        List the cluster's machines.

        Raises:
            RepositoryError: If listing fails or returns no machines
        """
        self._enter(UpgradePhase.DISCOVERING)
        try:
            machines = self.cluster.machines.list_machines()
        except Exception as e:
            raise RepositoryError(f"Failed to list machines: {e}") from e

        if not machines:
            raise RepositoryError("No machines found in the cluster")

        logger.info(f"Found {len(machines)} machine(s)")
        for machine in machines:
            logger.info(
                f"  {machine.name}: role={machine.role.value}, "
                f"kubelet={machine.kubelet_version or 'N/A'}, "
                f"node={machine.node_ref or 'N/A'}"
            )
        return machines

    @staticmethod
    def find_control_plane(machines: List[Machine]) -> Machine:
        """
        Return the single control-plane machine.

        Raises:
            NoControlPlaneFound: If no machine has the control-plane role
            MultipleControlPlanesFound: If more than one machine does
        """
        control_planes = [m for m in machines if m.role is MachineRole.CONTROL_PLANE]
        if not control_planes:
            raise NoControlPlaneFound(len(machines))
        if len(control_planes) > 1:
            raise MultipleControlPlanesFound([m.name for m in control_planes])
        return control_planes[0]

    def upgrade_control_plane(self, machine: Machine) -> None:
        """
        Update the control-plane machine and wait for its node.

        Raises:
            ControlPlaneUpdateFailed: If the update is rejected
            ControlPlaneTimeout: If the node is not ready in time
        """
        self._enter(UpgradePhase.UPGRADING_CONTROL_PLANE)
        logger.info(f"Upgrading the control plane: {machine.name}")
        start = time.time()

        machine.kubelet_version = self.target_version
        machine.control_plane_version = self.target_version
        try:
            updated = self.cluster.machines.update_machine(machine)
        except Exception as e:
            self._record(machine, "failed", start, error=str(e))
            raise ControlPlaneUpdateFailed(machine.name, e) from e

        try:
            # Errors are expected while the API server restarts.
            wait_until_ready(
                lambda: machine_ready(self.cluster, updated.name, self.target_version),
                interval=self.poll_interval,
                timeout=self.timeout,
                description=f"control plane {updated.name}",
            )
        except PollTimeoutError as e:
            self._record(machine, "failed", start, error=str(e))
            raise ControlPlaneTimeout(updated.name, self.timeout) from e

        self._record(machine, "success", start)
        logger.info(f"✓ Finished upgrading control plane {updated.name}")

    def upgrade_workers(self, workers: List[Machine]) -> None:
        """
        Upgrade all workers concurrently.

        Raises:
            WorkerFailure: For the first failing worker in listing order
        """
        self._enter(UpgradePhase.UPGRADING_WORKERS)
        logger.info(f"Upgrading {len(workers)} worker(s) in the cluster")

        fanout = WorkerFanout(
            self.cluster,
            poll_interval=self.poll_interval,
            timeout=self.timeout,
            grace_period=self.shutdown_grace_period,
        )
        try:
            fanout.run(workers, self.target_version)
        finally:
            for result in fanout.results:
                self._count(result)
                self.results.append(result)

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            "total": 0,
            "control_plane": 0,
            "workers": 0,
            "upgraded": 0,
            "failed": 0,
            "cancelled": 0,
        }

    def run(self) -> Dict:
        """
        Execute the cluster upgrade.

        Returns:
            Statistics dictionary

        Raises:
            UpgradeError: The first failure encountered
        """
        self.run_start_time = time.time()
        self.results = []
        self.error = None
        self.stats = self._empty_stats()

        logger.info("=" * 70)
        logger.info("Cluster Rolling Upgrade")
        logger.info("=" * 70)
        logger.info(f"Target version: {self.target_version}")
        logger.info(f"Dry run: {self.dry_run}")
        logger.info(f"Poll interval: {self.poll_interval}s")
        logger.info(f"Timeout per machine: {self.timeout}s")
        logger.info(f"Shutdown grace period: {self.shutdown_grace_period}s")
        logger.info(f"Start time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info("=" * 70)

        try:
            # Machine specs carry bare versions ("1.2.3").
            self.target_version = normalize_version(self.target_version)
            machines = self.discover()
            control_plane = self.find_control_plane(machines)
            workers = [m for m in machines if m is not control_plane]

            self.stats["total"] = len(machines)
            self.stats["control_plane"] = 1
            self.stats["workers"] = len(workers)

            if self.dry_run:
                self._plan(control_plane, workers)
                self._enter(UpgradePhase.COMPLETED)
                return self.stats

            try:
                self.upgrade_control_plane(control_plane)
            except UpgradeError:
                self._enter(UpgradePhase.CONTROL_PLANE_FAILED)
                raise

            try:
                self.upgrade_workers(workers)
            except WorkerFailure:
                self._enter(UpgradePhase.WORKER_FAILED)
                raise

            self._enter(UpgradePhase.COMPLETED)
            logger.info("✓ Successfully upgraded the cluster")
            return self.stats
        except UpgradeError as e:
            self.error = e
            logger.error(f"Cluster upgrade FAILED: {e}")
            raise
        finally:
            self.run_end_time = time.time()
            self._print_report()

    def _plan(self, control_plane: Machine, workers: List[Machine]) -> None:
        """Log the upgrade plan without touching any machine."""
        logger.info(
            f"DRY RUN: Would upgrade control plane {control_plane.name} "
            f"({control_plane.kubelet_version or 'N/A'} -> {self.target_version})"
        )
        self._record(control_plane, "dry_run")
        for worker in workers:
            logger.info(
                f"DRY RUN: Would upgrade worker {worker.name} "
                f"({worker.kubelet_version or 'N/A'} -> {self.target_version})"
            )
            self._record(worker, "dry_run")

    def _record(
        self,
        machine: Machine,
        status: str,
        start: Optional[float] = None,
        error: Optional[str] = None,
    ) -> None:
        end = time.time() if start is not None else None
        result = UpgradeResult(
            machine_name=machine.name,
            role=machine.role,
            status=status,
            start_time=start,
            end_time=end,
            duration_seconds=(end - start) if start is not None else None,
            target_version=self.target_version,
            error_message=error,
        )
        self._count(result)
        self.results.append(result)

    def _count(self, result: UpgradeResult) -> None:
        if result.status == "success":
            self.stats["upgraded"] += 1
        elif result.status == "failed":
            self.stats["failed"] += 1
        elif result.status == "cancelled":
            self.stats["cancelled"] += 1

    def _format_duration(self, seconds: float) -> str:
        """Format duration in human-readable format."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            mins = int(seconds // 60)
            secs = seconds % 60
            return f"{mins}m {secs:.0f}s"
        else:
            hours = int(seconds // 3600)
            mins = int((seconds % 3600) // 60)
            secs = seconds % 60
            return f"{hours}h {mins}m {secs:.0f}s"

    def _print_report(self):
        """Print timing and per-machine status report."""
        total_duration = self.run_end_time - self.run_start_time

        logger.info("")
        logger.info("=" * 70)
        logger.info("UPGRADE REPORT")
        logger.info("=" * 70)

        logger.info("")
        logger.info("TIMING SUMMARY")
        logger.info("-" * 40)
        logger.info(
            f"Start time:      {datetime.fromtimestamp(self.run_start_time).strftime('%Y-%m-%d %H:%M:%S')}"
        )
        logger.info(
            f"End time:        {datetime.fromtimestamp(self.run_end_time).strftime('%Y-%m-%d %H:%M:%S')}"
        )
        logger.info(f"Total duration:  {self._format_duration(total_duration)}")
        logger.info(f"Final phase:     {self.phase.value}")

        logger.info("")
        logger.info("STATISTICS")
        logger.info("-" * 40)
        for k, v in self.stats.items():
            logger.info(f"{k:20s}: {v}")

        if self.results:
            logger.info("")
            logger.info("MACHINES")
            logger.info("-" * 40)
            logger.info(f"{'Machine':<25} {'Role':<15} {'Status':<10} {'Detail'}")
            logger.info("-" * 70)
            for r in self.results:
                if r.error_message:
                    detail = (
                        (r.error_message[:40] + "...")
                        if len(r.error_message) > 40
                        else r.error_message
                    )
                elif r.duration_seconds is not None:
                    detail = self._format_duration(r.duration_seconds)
                else:
                    detail = "N/A"
                logger.info(
                    f"{r.machine_name:<25} {r.role.value:<15} {r.status:<10} {detail}"
                )

        logger.info("")
        logger.info("=" * 70)

        if self.report_file:
            self._export_results_json(self.report_file)

    def _export_results_json(self, filename: str):
        """Export results to JSON file for further processing."""
        report = {
            "target_version": self.target_version,
            "dry_run": self.dry_run,
            "phase": self.phase.value,
            "error": str(self.error) if self.error else None,
            "start_time": datetime.fromtimestamp(self.run_start_time).isoformat(),
            "end_time": datetime.fromtimestamp(self.run_end_time).isoformat(),
            "total_duration_seconds": self.run_end_time - self.run_start_time,
            "statistics": self.stats,
            "results": [
                {
                    "machine_name": r.machine_name,
                    "role": r.role.value,
                    "status": r.status,
                    "start_time": (
                        datetime.fromtimestamp(r.start_time).isoformat()
                        if r.start_time
                        else None
                    ),
                    "end_time": (
                        datetime.fromtimestamp(r.end_time).isoformat()
                        if r.end_time
                        else None
                    ),
                    "duration_seconds": r.duration_seconds,
                    "target_version": r.target_version,
                    "error_message": r.error_message,
                }
                for r in self.results
            ],
        }

        try:
            with open(filename, "w") as f:
                json.dump(report, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to write report {filename}: {e}")
            return
        logger.info(f"Detailed report exported to: {filename}")


def upgrade_cluster(target_version: str, cluster, **options) -> Dict:
    """
    Upgrade every machine of a cluster to target_version.

    Args:
        target_version: Version applied to every machine
        cluster: ClusterHandle with the machine repository and node oracle
        **options: Extra ClusterUpgrader arguments

    Returns:
        Statistics dictionary

    Raises:
        UpgradeError: The first failure encountered
    """
    return ClusterUpgrader(cluster, target_version, **options).run()
