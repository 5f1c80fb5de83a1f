"""
Concurrent upgrade of worker machines.
"""

import logging
import threading
import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor, wait
from typing import List, Optional

from errors import PollCancelledError, RepositoryError, WorkerFailure
from models import Machine, UpgradeResult
from poller import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_TIMEOUT, wait_until_ready
from readiness import machine_ready

logger = logging.getLogger(__name__)


class WorkerFanout:
    """Upgrades worker machines concurrently, one task per machine."""

    def __init__(
        self,
        cluster,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_POLL_TIMEOUT,
        grace_period: float = 30.0,
    ):
        """
        Args:
            cluster: ClusterHandle used to read and update machines
            poll_interval: Seconds between readiness checks
            timeout: Seconds each worker may take to become ready
            grace_period: Seconds to wait for outstanding tasks after a failure
        """
        self.cluster = cluster
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.grace_period = grace_period

        self.results: List[UpgradeResult] = []
        self._stop = threading.Event()

    def run(self, machines: List[Machine], target_version: str) -> List[UpgradeResult]:
        """
        Upgrade all machines and wait until each is ready.

        Outcomes are read in the order of `machines`, so the reported failure
        is the first failing machine in that order, whichever task finished
        first. Remaining tasks are then cancelled and given grace_period
        seconds to stop.

        Returns:
            Per-machine results in input order

        Raises:
            WorkerFailure: For the first failing machine
        """
        self.results = []
        self._stop.clear()
        if not machines:
            return self.results

        executor = ThreadPoolExecutor(
            max_workers=len(machines), thread_name_prefix="worker-upgrade"
        )
        futures: List[Future] = []
        starts: List[float] = []
        for machine in machines:
            starts.append(time.time())
            futures.append(
                executor.submit(self._upgrade_worker, machine, target_version)
            )

        failure: Optional[WorkerFailure] = None
        try:
            for index, (machine, future) in enumerate(zip(machines, futures)):
                try:
                    future.result()
                except Exception as e:
                    failure = WorkerFailure(machine.name, e)
                    logger.error(f"✗ {failure}")
                    self._stop.set()
                    self._drain(futures[index + 1 :])
                    break
                remaining = len(machines) - index - 1
                if remaining:
                    logger.info(f"{remaining} worker(s) still being checked")
        finally:
            self._stop.set()
            executor.shutdown(wait=False, cancel_futures=True)
            self._collect(machines, futures, starts, target_version)

        if failure is not None:
            raise failure
        return self.results

    def _drain(self, outstanding: List[Future]) -> None:
        """Wait for cancelled tasks to stop, up to the grace period."""
        pending = [f for f in outstanding if not f.done()]
        if not pending:
            return
        logger.warning(
            f"Cancelling {len(pending)} outstanding worker upgrade(s), "
            f"waiting up to {self.grace_period:.0f}s"
        )
        _, not_done = wait(pending, timeout=self.grace_period)
        if not_done:
            logger.warning(
                f"{len(not_done)} worker upgrade(s) still running after grace period"
            )

    def _upgrade_worker(self, machine: Machine, target_version: str) -> float:
        """Update one worker and wait for its node. Runs on a pool thread."""
        if self._stop.is_set():
            raise PollCancelledError(f"Upgrade of {machine.name} cancelled")

        logger.info(f"Upgrading {machine.name}")
        try:
            current = self.cluster.machines.get_machine(machine.name)
        except Exception as e:
            raise RepositoryError(f"Failed to read machine {machine.name}: {e}") from e

        if self._stop.is_set():
            raise PollCancelledError(f"Upgrade of {machine.name} cancelled")

        current.kubelet_version = target_version
        updated = self.cluster.machines.update_machine(current)
        logger.info(f"Submitted update of {updated.name} to {target_version}")

        wait_until_ready(
            lambda: machine_ready(self.cluster, updated.name, target_version),
            interval=self.poll_interval,
            timeout=self.timeout,
            description=f"worker {updated.name}",
            stop_event=self._stop,
        )
        logger.info(f"✓ Worker {updated.name} upgraded to {target_version}")
        return time.time()

    def _collect(
        self,
        machines: List[Machine],
        futures: List[Future],
        starts: List[float],
        target_version: str,
    ) -> None:
        for machine, future, start in zip(machines, futures, starts):
            result = UpgradeResult(
                machine_name=machine.name,
                role=machine.role,
                status="success",
                start_time=start,
                target_version=target_version,
            )
            if not future.done():
                result.status = "cancelled"
                result.error_message = "Still running when the upgrade stopped"
            else:
                try:
                    result.end_time = future.result()
                    result.duration_seconds = result.end_time - start
                except (CancelledError, PollCancelledError) as e:
                    result.status = "cancelled"
                    result.error_message = str(e) or "Cancelled"
                except Exception as e:
                    result.status = "failed"
                    result.error_message = str(e)
            self.results.append(result)
