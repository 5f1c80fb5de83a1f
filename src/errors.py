"""
Exceptions raised by the cluster rolling upgrader.
"""

from typing import List, Optional


class UpgradeError(Exception):
    """Base class for every terminal upgrade failure."""


class RepositoryError(UpgradeError):
    """Machines could not be listed or read from the cluster API."""


class NoControlPlaneFound(UpgradeError):
    """The machine set has no control-plane machine."""

    def __init__(self, machine_count: int):
        self.machine_count = machine_count
        super().__init__(
            f"No control-plane machine found among {machine_count} machine(s)"
        )


class MultipleControlPlanesFound(UpgradeError):
    """More than one control-plane machine; multi-master is not supported."""

    def __init__(self, machine_names: List[str]):
        self.machine_names = machine_names
        super().__init__(
            "Expected exactly one control-plane machine, found "
            f"{len(machine_names)}: {', '.join(machine_names)}"
        )


class UnsupportedVersionError(UpgradeError, ValueError):
    """A version string is not a plain MAJOR.MINOR.PATCH release."""


class ControlPlaneUpdateFailed(UpgradeError):
    """Submitting the control-plane machine update failed."""

    def __init__(self, machine_name: str, cause: Exception):
        self.machine_name = machine_name
        self.cause = cause
        super().__init__(f"Update of control plane {machine_name} failed: {cause}")


class ControlPlaneTimeout(UpgradeError):
    """The control-plane node did not come back ready at the target version."""

    def __init__(self, machine_name: str, timeout: float):
        self.machine_name = machine_name
        self.timeout = timeout
        super().__init__(
            f"Control plane {machine_name} not ready after {timeout:g}s"
        )


class WorkerFailure(UpgradeError):
    """A worker machine failed to upgrade."""

    def __init__(self, machine_name: str, cause: Optional[Exception]):
        self.machine_name = machine_name
        self.cause = cause
        super().__init__(f"Upgrade of worker {machine_name} failed: {cause}")


class PollTimeoutError(TimeoutError):
    """A readiness poll ran out of time."""


class PollCancelledError(Exception):
    """A readiness poll was cancelled before its condition held."""
