"""
Unit tests for the machine readiness check.
"""

import unittest
from unittest.mock import MagicMock
from config import ClusterHandle
from models import Node
from readiness import machine_ready

from cluster_fakes import make_machine


class TestMachineReady(unittest.TestCase):
    """Test machine_ready."""

    def setUp(self):
        self.repository = MagicMock()
        self.oracle = MagicMock()
        self.cluster = ClusterHandle(machines=self.repository, nodes=self.oracle)
        self.repository.get_machine.return_value = make_machine("w1")

    def test_ready_node_at_target_version(self):
        """A ready node reporting "v" + target is ready."""
        self.oracle.get_node.return_value = Node(
            name="node-w1", ready=True, kubelet_version="v1.2.3"
        )

        self.assertTrue(machine_ready(self.cluster, "w1", "1.2.3"))
        self.oracle.get_node.assert_called_once_with("node-w1")

    def test_ready_node_at_old_version(self):
        self.oracle.get_node.return_value = Node(
            name="node-w1", ready=True, kubelet_version="v1.1.0"
        )

        self.assertFalse(machine_ready(self.cluster, "w1", "1.2.3"))

    def test_not_ready_node_at_target_version(self):
        self.oracle.get_node.return_value = Node(
            name="node-w1", ready=False, kubelet_version="v1.2.3"
        )

        self.assertFalse(machine_ready(self.cluster, "w1", "1.2.3"))

    def test_machine_without_node(self):
        """A machine that has not materialized a node is not ready."""
        machine = make_machine("w1")
        machine.node_ref = None
        self.repository.get_machine.return_value = machine

        self.assertFalse(machine_ready(self.cluster, "w1", "1.2.3"))
        self.oracle.get_node.assert_not_called()

    def test_node_errors_propagate(self):
        """Read errors are left to the poller."""
        self.oracle.get_node.side_effect = RuntimeError("connection refused")

        with self.assertRaises(RuntimeError):
            machine_ready(self.cluster, "w1", "1.2.3")


if __name__ == "__main__":
    unittest.main()
