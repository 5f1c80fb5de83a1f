"""
In-memory stand-ins for the machine repository and node oracle.
"""

import copy
import threading
import time
from typing import Dict, Iterable, List, Optional

from models import Machine, MachineRole, Node


def make_machine(
    name: str, control_plane: bool = False, version: str = "1.1.0"
) -> Machine:
    """Build a provisioned machine running version."""
    return Machine(
        name=name,
        role=MachineRole.CONTROL_PLANE if control_plane else MachineRole.WORKER,
        kubelet_version=version,
        control_plane_version=version if control_plane else "",
        node_ref=f"node-{name}",
        resource_version="1",
    )


class FakeCluster:
    """
    Machines and nodes of a fake cluster.

    A node reports ready at the new version once its machine has been
    updated and the node has been checked `checks_until_ready` times since.
    Every update and every ready observation is appended to `events`.
    """

    def __init__(
        self,
        machines: List[Machine],
        never_ready: Iterable[str] = (),
        update_errors: Optional[Dict[str, Exception]] = None,
        update_delays: Optional[Dict[str, float]] = None,
        node_errors: Optional[Dict[str, int]] = None,
        checks_until_ready: int = 1,
        list_error: Optional[Exception] = None,
    ):
        self._lock = threading.Lock()
        self._machines = {m.name: copy.deepcopy(m) for m in machines}
        self._order = [m.name for m in machines]
        self.never_ready = set(never_ready)
        self.update_errors = update_errors or {}
        self.update_delays = update_delays or {}
        self.node_errors = dict(node_errors or {})
        self.checks_until_ready = checks_until_ready
        self.list_error = list_error

        self.events: List[tuple] = []
        self.updates: List[Machine] = []
        self._upgraded: Dict[str, str] = {}
        self._checks: Dict[str, int] = {}

    # MachineRepository

    def list_machines(self) -> List[Machine]:
        if self.list_error is not None:
            raise self.list_error
        with self._lock:
            return [copy.deepcopy(self._machines[n]) for n in self._order]

    def get_machine(self, name: str) -> Machine:
        with self._lock:
            return copy.deepcopy(self._machines[name])

    def update_machine(self, machine: Machine) -> Machine:
        delay = self.update_delays.get(machine.name)
        if delay:
            time.sleep(delay)
        with self._lock:
            self.events.append(("update", machine.name))
            self.updates.append(copy.deepcopy(machine))
            error = self.update_errors.get(machine.name)
            if error is not None:
                raise error
            stored = copy.deepcopy(machine)
            stored.resource_version = str(int(stored.resource_version or 0) + 1)
            self._machines[machine.name] = stored
            self._upgraded[machine.name] = machine.kubelet_version
            self._checks[machine.name] = 0
            return copy.deepcopy(stored)

    # NodeStatusOracle

    def get_node(self, name: str) -> Node:
        machine_name = name[len("node-") :]
        with self._lock:
            if self.node_errors.get(machine_name, 0) > 0:
                self.node_errors[machine_name] -= 1
                raise RuntimeError(f"connection refused reading {name}")

            machine = self._machines[machine_name]
            if machine_name in self._upgraded and machine_name not in self.never_ready:
                self._checks[machine_name] += 1
                if self._checks[machine_name] >= self.checks_until_ready:
                    self.events.append(("ready", machine_name))
                    return Node(
                        name=name,
                        ready=True,
                        kubelet_version="v" + self._upgraded[machine_name],
                    )
            return Node(
                name=name, ready=False, kubelet_version="v" + machine.kubelet_version
            )

    def update_count(self, name: Optional[str] = None) -> int:
        with self._lock:
            return len([e for e in self.events if e[0] == "update" and name in (None, e[1])])
