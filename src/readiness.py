"""
Readiness check for an upgraded machine.
"""

import logging

from versions import versions_match

logger = logging.getLogger(__name__)


def machine_ready(cluster, machine_name: str, target_version: str) -> bool:
    """
    Check whether a machine's Node is ready and runs the target version.

    Errors reading the machine or node propagate to the caller; the
    poller treats them as "not ready yet".

    Args:
        cluster: ClusterHandle used to read machines and nodes
        machine_name: Name of the Machine object
        target_version: Version the node's kubelet must report

    Returns:
        True if the node is ready at the target version
    """
    machine = cluster.machines.get_machine(machine_name)
    if not machine.node_ref:
        logger.debug(f"{machine_name} has no node yet")
        return False

    node = cluster.nodes.get_node(machine.node_ref)
    if not node.ready:
        logger.debug(
            f"node {node.name} of {machine_name} is not ready: {node.conditions}"
        )
        return False

    if versions_match(node.kubelet_version, target_version):
        logger.info(f"✓ node {node.name} of {machine_name} is ready")
        return True

    logger.debug(
        f"node {node.name} of {machine_name} runs kubelet "
        f"{node.kubelet_version}, target {target_version}"
    )
    return False
