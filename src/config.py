"""
Configuration management for the cluster rolling upgrader.
"""

from dataclasses import dataclass
from typing import Optional

from clients import ClusterApiClient, MachineRepository, NodeStatusOracle, load_api_client


@dataclass
class UpgraderConfig:
    """Configuration for cluster upgrade runs."""

    target_version: str
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    namespace: str = "default"
    poll_interval: int = 5
    timeout: int = 600
    shutdown_grace_period: float = 30.0
    dry_run: bool = False
    request_timeout: int = 30
    max_retries: int = 3
    base_delay: float = 1.0
    report_file: Optional[str] = None
    verbose: bool = False

    @classmethod
    def from_args(cls, args) -> "UpgraderConfig":
        """
        Create configuration from command-line arguments.

        Args:
            args: Parsed argparse arguments

        Returns:
            UpgraderConfig instance
        """
        return cls(
            target_version=args.version,
            kubeconfig=args.kubeconfig,
            context=args.context,
            namespace=args.namespace,
            poll_interval=args.poll_interval,
            timeout=args.timeout,
            shutdown_grace_period=args.shutdown_grace_period,
            dry_run=args.dry_run,
            request_timeout=args.request_timeout,
            max_retries=args.max_retries,
            report_file=args.report_file,
            verbose=args.verbose,
        )


@dataclass
class ClusterHandle:
    """Connections to the cluster, built once and passed to the upgrader."""

    machines: MachineRepository
    nodes: NodeStatusOracle

    @classmethod
    def from_config(cls, config: UpgraderConfig) -> "ClusterHandle":
        """Connect to the cluster described by config."""
        api_client = load_api_client(kubeconfig=config.kubeconfig, context=config.context)
        client = ClusterApiClient(
            api_client,
            namespace=config.namespace,
            timeout_s=config.request_timeout,
            max_retries=config.max_retries,
            base_delay=config.base_delay,
        )
        return cls(machines=client, nodes=client)
