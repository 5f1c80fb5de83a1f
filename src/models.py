"""
Data models for the cluster rolling upgrader.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class MachineRole(Enum):
    """Role a machine plays in the cluster."""

    CONTROL_PLANE = "control-plane"
    WORKER = "worker"


@dataclass
class Machine:
    """Desired state of a cluster member (Cluster API Machine object)."""

    name: str
    role: MachineRole
    kubelet_version: str = ""
    control_plane_version: str = ""
    node_ref: Optional[str] = None  # Node name, unset until provisioned
    resource_version: str = ""
    raw: Dict = field(default_factory=dict, repr=False)

    @property
    def is_control_plane(self) -> bool:
        return self.role is MachineRole.CONTROL_PLANE

    @classmethod
    def from_dict(cls, obj: Dict) -> "Machine":
        """
        Build a Machine from a Cluster API document.

        A machine with a desired control-plane version is the control plane.
        """
        metadata = obj.get("metadata", {})
        versions = obj.get("spec", {}).get("versions", {})
        node_ref = (obj.get("status") or {}).get("nodeRef") or {}

        control_plane_version = versions.get("controlPlane", "") or ""
        return cls(
            name=metadata.get("name", ""),
            role=(
                MachineRole.CONTROL_PLANE
                if control_plane_version
                else MachineRole.WORKER
            ),
            kubelet_version=versions.get("kubelet", "") or "",
            control_plane_version=control_plane_version,
            node_ref=node_ref.get("name") or None,
            resource_version=metadata.get("resourceVersion", ""),
            raw=obj,
        )

    def to_dict(self) -> Dict:
        """Render the machine back into its API document, keeping unknown fields."""
        obj = copy.deepcopy(self.raw)
        metadata = obj.setdefault("metadata", {})
        metadata["name"] = self.name
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version

        versions = obj.setdefault("spec", {}).setdefault("versions", {})
        versions["kubelet"] = self.kubelet_version
        if self.control_plane_version:
            versions["controlPlane"] = self.control_plane_version
        return obj


@dataclass
class Node:
    """Observed state of a running host."""

    name: str
    ready: bool
    kubelet_version: str = ""
    conditions: List[Dict] = field(default_factory=list)

    @classmethod
    def from_dict(cls, obj: Dict) -> "Node":
        status = obj.get("status", {})
        conditions = status.get("conditions", []) or []
        ready = any(
            c.get("type") == "Ready" and c.get("status") == "True"
            for c in conditions
        )
        return cls(
            name=obj.get("metadata", {}).get("name", ""),
            ready=ready,
            kubelet_version=status.get("nodeInfo", {}).get("kubeletVersion", ""),
            conditions=conditions,
        )


@dataclass
class UpgradeResult:
    """Result of upgrading one machine."""

    machine_name: str
    role: MachineRole
    status: str  # "success", "failed", "cancelled", "dry_run"
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    duration_seconds: Optional[float] = None
    target_version: Optional[str] = None
    error_message: Optional[str] = None
