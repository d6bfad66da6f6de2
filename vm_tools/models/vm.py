"""VM model and related types."""

from dataclasses import dataclass, field
from enum import Enum

from vm_tools.models.hardware import DiskInfo, NetworkInfo


class VMState(Enum):
    """Virtual machine state as reported by the control plane."""

    RUNNING = "running"
    STOPPED = "stopped"
    PAUSED = "paused"
    SUSPENDED = "suspended"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        """Human-readable state name."""
        names: dict[VMState, str] = {
            VMState.RUNNING: "running",
            VMState.STOPPED: "shut off",
            VMState.PAUSED: "paused",
            VMState.SUSPENDED: "suspended",
            VMState.UNKNOWN: "unknown",
        }
        return names[self]

    @property
    def color_key(self) -> str:
        """Color key for this state."""
        return self.value


class Operation(Enum):
    """Operations whose validity depends on the current VM state."""

    START = "start"
    SHUTDOWN = "shutdown"
    DESTROY = "destroy"
    DELETE = "delete"
    CLONE = "clone"
    OPTIMIZE = "optimize"


# UNKNOWN is only reachable after a successful state query, so the domain is
# known to exist and starting it is left to the control plane to accept.
_ACTIONABLE: dict[Operation, frozenset[VMState]] = {
    Operation.START: frozenset({VMState.STOPPED, VMState.SUSPENDED, VMState.UNKNOWN}),
    Operation.SHUTDOWN: frozenset({VMState.RUNNING}),
    Operation.DESTROY: frozenset(set(VMState) - {VMState.STOPPED}),
    Operation.DELETE: frozenset(VMState),
    Operation.CLONE: frozenset({VMState.STOPPED}),
    Operation.OPTIMIZE: frozenset({VMState.STOPPED}),
}


def is_actionable_for(state: VMState, operation: Operation) -> bool:
    """Check whether ``operation`` may be issued against a VM in ``state``."""
    return state in _ACTIONABLE[operation]


@dataclass(frozen=True)
class VMTemplate:
    """Named hardware profile used when creating VMs."""

    memory_mb: int
    vcpus: int
    disk_size_gb: int
    os_type: str = "linux"  # "windows" guests keep their clock in local time
    arch: str = "x86_64"
    machine_type: str = "q35"
    boot_order: tuple[str, ...] = ("hd", "cdrom")
    features: tuple[str, ...] = ("acpi", "apic")


@dataclass(frozen=True)
class VMInfo:
    """Snapshot of a virtual machine, rebuilt on every query."""

    name: str
    uuid: str
    state: VMState
    memory_mb: int = 0
    vcpus: int = 0
    uptime_seconds: int | None = None
    cpu_percent: float | None = None
    memory_percent: float | None = None
    disks: tuple[DiskInfo, ...] = field(default_factory=tuple)
    interfaces: tuple[NetworkInfo, ...] = field(default_factory=tuple)
    created_at: int = 0
    last_started: int | None = None

    @property
    def is_running(self) -> bool:
        """Check if VM is running."""
        return self.state == VMState.RUNNING

    @property
    def is_stopped(self) -> bool:
        """Check if VM is stopped."""
        return self.state == VMState.STOPPED

    def is_actionable_for(self, operation: Operation) -> bool:
        """Check whether ``operation`` is valid from this snapshot's state."""
        return is_actionable_for(self.state, operation)

    @property
    def disk_paths(self) -> list[str]:
        """Paths of file-backed hard disks (install media excluded)."""
        return [d.path for d in self.disks if d.device == "disk" and d.path]

    @property
    def memory_display(self) -> str:
        """Format memory for display."""
        if self.memory_mb >= 1024:
            return f"{self.memory_mb / 1024:.1f}G"
        return f"{self.memory_mb}M"

    @property
    def primary_ip(self) -> str | None:
        """First known IP address across the VM's interfaces."""
        for iface in self.interfaces:
            if iface.ip_address:
                return iface.ip_address
        return None
