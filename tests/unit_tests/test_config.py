"""
Unit tests for configuration.
"""

import unittest
from argparse import Namespace
from unittest.mock import patch
from config import ClusterHandle, UpgraderConfig


class TestUpgraderConfig(unittest.TestCase):
    """Test UpgraderConfig data model."""

    def test_config_defaults(self):
        """Test default configuration values."""
        config = UpgraderConfig(target_version="1.2.3")
        self.assertEqual(config.target_version, "1.2.3")
        self.assertIsNone(config.kubeconfig)
        self.assertIsNone(config.context)
        self.assertEqual(config.namespace, "default")
        self.assertEqual(config.poll_interval, 5)
        self.assertEqual(config.timeout, 600)
        self.assertEqual(config.shutdown_grace_period, 30.0)
        self.assertFalse(config.dry_run)
        self.assertEqual(config.request_timeout, 30)
        self.assertEqual(config.max_retries, 3)
        self.assertIsNone(config.report_file)
        self.assertFalse(config.verbose)

    def test_config_from_args(self):
        """Test creating config from command-line arguments."""
        args = Namespace(
            version="1.2.3",
            kubeconfig="/etc/kube/admin.conf",
            context="mgmt",
            namespace="capi",
            poll_interval=10,
            timeout=900,
            shutdown_grace_period=5.0,
            dry_run=True,
            request_timeout=15,
            max_retries=2,
            report_file="report.json",
            verbose=True,
        )
        config = UpgraderConfig.from_args(args)

        self.assertEqual(config.target_version, "1.2.3")
        self.assertEqual(config.kubeconfig, "/etc/kube/admin.conf")
        self.assertEqual(config.context, "mgmt")
        self.assertEqual(config.namespace, "capi")
        self.assertEqual(config.poll_interval, 10)
        self.assertEqual(config.timeout, 900)
        self.assertEqual(config.shutdown_grace_period, 5.0)
        self.assertTrue(config.dry_run)
        self.assertEqual(config.request_timeout, 15)
        self.assertEqual(config.max_retries, 2)
        self.assertEqual(config.report_file, "report.json")
        self.assertTrue(config.verbose)


class TestClusterHandle(unittest.TestCase):
    """Test ClusterHandle construction."""

    @patch("config.load_api_client")
    @patch("config.ClusterApiClient")
    def test_from_config_shares_one_client(self, mock_client_class, mock_load):
        """One client serves as both repository and oracle."""
        config = UpgraderConfig(
            target_version="1.2.3",
            kubeconfig="/etc/kube/admin.conf",
            context="mgmt",
            namespace="capi",
        )

        cluster = ClusterHandle.from_config(config)

        mock_load.assert_called_once_with(kubeconfig="/etc/kube/admin.conf", context="mgmt")
        mock_client_class.assert_called_once_with(
            mock_load.return_value,
            namespace="capi",
            timeout_s=30,
            max_retries=3,
            base_delay=1.0,
        )
        self.assertIs(cluster.machines, mock_client_class.return_value)
        self.assertIs(cluster.nodes, mock_client_class.return_value)


if __name__ == "__main__":
    unittest.main()
