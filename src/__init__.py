"""
Cluster Rolling Upgrader.
"""

from clients import ClusterApiClient
from config import ClusterHandle, UpgraderConfig
from errors import UpgradeError
from fanout import WorkerFanout
from log_utils import setup_logging
from models import Machine, MachineRole, Node, UpgradeResult
from poller import wait_until_ready
from upgrader import ClusterUpgrader, upgrade_cluster

__all__ = [
    "ClusterApiClient",
    "ClusterHandle",
    "UpgraderConfig",
    "UpgradeError",
    "WorkerFanout",
    "setup_logging",
    "Machine",
    "MachineRole",
    "Node",
    "UpgradeResult",
    "wait_until_ready",
    "ClusterUpgrader",
    "upgrade_cluster",
]
