"""Network definitions and reconciliation values."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class NetworkDefinition:
    """A libvirt virtual network as seen by ``net-list`` and ``net-info``."""

    name: str
    active: bool
    autostart: bool = False
    bridge: str = ""
    persistent: bool = True


class NetworkIssueType(Enum):
    """Kinds of network misconfiguration."""

    DUPLICATE_MAC_ADDRESS = "DuplicateMacAddress"
    INACTIVE_NETWORK = "InactiveNetwork"
    INVALID_NETWORK_REFERENCE = "InvalidNetworkReference"
    CONFLICTING_CONFIGURATION = "ConflictingConfiguration"
    MISSING_BRIDGE = "MissingBridge"

    def __str__(self) -> str:
        return self.value

    @property
    def auto_fixable(self) -> bool:
        """Whether the issue can be repaired without structural descriptor edits."""
        return self in (
            NetworkIssueType.DUPLICATE_MAC_ADDRESS,
            NetworkIssueType.INACTIVE_NETWORK,
        )


@dataclass(frozen=True)
class NetworkInterface:
    """The reconciler's working view of one interface."""

    mac_address: str
    network: str
    bridge: str
    is_active: bool


@dataclass(frozen=True)
class NetworkMismatch:
    """A detected issue and the configuration that would resolve it."""

    interface_name: str
    issue_type: NetworkIssueType
    suggested_config: NetworkInterface
    current_config: NetworkInterface | None = None


@dataclass(frozen=True)
class BridgeDiscovery:
    """Host bridges found by discovery, in strategy priority order."""

    bridges: tuple[str, ...] = ()
    partial: bool = False
    warnings: tuple[str, ...] = ()


@dataclass
class NetworkAnalysis:
    """Result of analysing one VM.

    ``partial`` is set when a fleet-wide dimension (MAC addresses, bridges,
    networks) could not be fully gathered, so fewer issues may be reported
    than actually exist.
    """

    vm_name: str
    mismatches: list[NetworkMismatch] = field(default_factory=list)
    partial: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.mismatches


@dataclass(frozen=True)
class FixResult:
    """Outcome of one remediation attempt."""

    mismatch: NetworkMismatch
    applied: bool
    message: str
    manual_command: str | None = None
