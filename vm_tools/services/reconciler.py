"""Detection and repair of VM network misconfiguration."""

import logging
from collections import Counter
from dataclasses import dataclass, replace

from vm_tools.config import DEFAULT_BRIDGE, DEFAULT_BRIDGE_PREFIX, DEFAULT_NETWORK
from vm_tools.errors import VMError
from vm_tools.models import (
    BridgeDiscovery,
    FixResult,
    NetworkAnalysis,
    NetworkDefinition,
    NetworkInfo,
    NetworkInterface,
    NetworkIssueType,
    NetworkMismatch,
)
from vm_tools.services.descriptor import replace_mac_address
from vm_tools.services.network import NetworkService
from vm_tools.services.virsh import VirshClient
from vm_tools.utils.mac import generate_mac_address

logger = logging.getLogger(__name__)


@dataclass
class _FleetView:
    """Fleet-wide data shared by the analysis of several VMs."""

    macs: list[str]
    networks: dict[str, NetworkDefinition] | None
    discovery: BridgeDiscovery
    warnings: list[str]
    reserved: set[str]

    @property
    def partial(self) -> bool:
        return bool(self.warnings)


def _label(iface: NetworkInfo) -> str:
    # stopped domains report "-" for the host-side device
    if iface.interface and iface.interface != "-":
        return iface.interface
    return iface.mac_address


class NetworkReconciler:
    """Finds network issues per VM and repairs the safe ones.

    Detection is best effort: when fleet-wide MAC addresses, networks or
    bridges cannot be gathered, that dimension is treated as empty and the
    analysis is marked partial.
    """

    def __init__(
        self,
        client: VirshClient,
        network_service: NetworkService | None = None,
        default_network: str = DEFAULT_NETWORK,
    ) -> None:
        self.client = client
        self.network_service = network_service or NetworkService(client.runner)
        self.default_network = default_network

    # Fleet data

    def _gather(self) -> _FleetView:
        warnings: list[str] = []

        networks: dict[str, NetworkDefinition] | None = None
        try:
            networks = {net.name: net for net in self.client.list_networks()}
        except VMError as e:
            warnings.append(f"Networks unavailable: {e}")

        macs: list[str] = []
        try:
            names = self.client.list_domain_names(all=True)
        except VMError as e:
            warnings.append(f"Fleet MAC addresses unavailable: {e}")
            names = []
        for vm_name in names:
            try:
                macs.extend(self.client.get_interface_macs(vm_name))
            except VMError as e:
                warnings.append(f"MAC addresses of VM '{vm_name}' unavailable: {e}")

        discovery = self.network_service.discover_bridges(
            networks.values() if networks else ()
        )
        warnings.extend(f"Bridge discovery: {w}" for w in discovery.warnings)

        return _FleetView(
            macs=macs,
            networks=networks,
            discovery=discovery,
            warnings=warnings,
            reserved=set(),
        )

    # Analysis

    def analyze(self, name: str) -> NetworkAnalysis:
        """Analyse one VM's interfaces against the fleet."""
        return self._analyze(name, self._gather())

    def analyze_fleet(self) -> list[NetworkAnalysis]:
        """Analyse every defined VM, sharing one pass of fleet data."""
        fleet = self._gather()
        analyses: list[NetworkAnalysis] = []
        for vm_name in self.client.list_domain_names(all=True):
            try:
                analyses.append(self._analyze(vm_name, fleet))
            except VMError as e:
                logger.warning("Skipping VM %s: %s", vm_name, e)
                analyses.append(NetworkAnalysis(vm_name=vm_name, partial=True, warnings=[str(e)]))
        return analyses

    def _analyze(self, name: str, fleet: _FleetView) -> NetworkAnalysis:
        iface_infos = self.client.get_domain_interfaces(
            name, list(fleet.networks.values()) if fleet.networks else None
        )
        analysis = NetworkAnalysis(
            vm_name=name,
            partial=fleet.partial,
            warnings=list(fleet.warnings),
        )

        counts = Counter(mac.lower() for mac in fleet.macs)
        in_use = set(counts) | {i.mac_address for i in iface_infos}

        current: list[tuple[str, NetworkInterface, NetworkDefinition | None]] = []
        unplaced: set[int] = set()
        for index, info in enumerate(iface_infos):
            definition = fleet.networks.get(info.network) if info.network and fleet.networks else None
            bridge = info.bridge or (DEFAULT_BRIDGE if info.network else "")
            active = definition.active if definition is not None else not info.network
            if definition is None and not info.bridge:
                unplaced.add(index)
            current.append((_label(info), NetworkInterface(info.mac_address, info.network, bridge, active), definition))

        def report(label: str, kind: NetworkIssueType, suggested: NetworkInterface, config: NetworkInterface) -> None:
            analysis.mismatches.append(NetworkMismatch(
                interface_name=label,
                issue_type=kind,
                suggested_config=suggested,
                current_config=config,
            ))

        for index, (label, config, definition) in enumerate(current):
            if counts[config.mac_address] > 1:
                new_mac = generate_mac_address(exclude=in_use | fleet.reserved)
                fleet.reserved.add(new_mac)
                report(label, NetworkIssueType.DUPLICATE_MAC_ADDRESS, replace(config, mac_address=new_mac), config)

            if config.network and fleet.networks is not None:
                if definition is None:
                    report(label, NetworkIssueType.INVALID_NETWORK_REFERENCE,
                           self._fallback_network(config, fleet.networks), config)
                elif not definition.active:
                    report(label, NetworkIssueType.INACTIVE_NETWORK, replace(config, is_active=True), config)

            bridges = fleet.discovery.bridges
            # placeholder bridges were never observed on the host
            if index not in unplaced and config.bridge and bridges and config.bridge not in bridges:
                report(label, NetworkIssueType.MISSING_BRIDGE,
                       replace(config, bridge=self._fallback_bridge(bridges)), config)

        self._check_conflicts(current, report)

        for mismatch in analysis.mismatches:
            logger.info("%s %s: %s", name, mismatch.interface_name, mismatch.issue_type)
        return analysis

    def _fallback_network(self, config: NetworkInterface, networks: dict[str, NetworkDefinition]) -> NetworkInterface:
        default = networks.get(self.default_network)
        if default is not None and default.active:
            return replace(config, network=default.name, bridge=default.bridge or DEFAULT_BRIDGE, is_active=True)
        # not known to work yet
        return NetworkInterface(config.mac_address, self.default_network, DEFAULT_BRIDGE, False)

    def _fallback_bridge(self, bridges: tuple[str, ...]) -> str:
        for bridge in bridges:
            if bridge.startswith(DEFAULT_BRIDGE_PREFIX):
                return bridge
        return bridges[0] if bridges else DEFAULT_BRIDGE

    def _check_conflicts(self, current, report) -> None:
        flagged: set[str] = set()
        for i, (label_a, a, _) in enumerate(current):
            for label_b, b, _ in current[i + 1:]:
                if a.bridge != b.bridge or a.network == b.network or a.is_active == b.is_active:
                    continue
                for label, config in ((label_a, a), (label_b, b)):
                    if label not in flagged:
                        flagged.add(label)
                        report(label, NetworkIssueType.CONFLICTING_CONFIGURATION,
                               replace(config, is_active=True), config)

        for label, config, definition in current:
            if definition is None or not definition.bridge or not config.bridge:
                continue
            if definition.bridge != config.bridge:
                report(label, NetworkIssueType.CONFLICTING_CONFIGURATION,
                       replace(config, bridge=definition.bridge, is_active=definition.active), config)

    # Remediation

    def manual_fix_command(self, name: str, mismatch: NetworkMismatch) -> str:
        """The command an operator runs to resolve a mismatch by hand."""
        if mismatch.issue_type == NetworkIssueType.INACTIVE_NETWORK:
            return f"virsh net-start {mismatch.suggested_config.network}"
        return f"virsh edit {name}"

    def auto_fix(self, name: str, mismatches: list[NetworkMismatch]) -> list[FixResult]:
        """Repair what can be repaired safely; report the rest."""
        results: list[FixResult] = []
        for mismatch in mismatches:
            if mismatch.issue_type == NetworkIssueType.DUPLICATE_MAC_ADDRESS:
                result = self._fix_mac(name, mismatch)
            elif mismatch.issue_type == NetworkIssueType.INACTIVE_NETWORK:
                result = self._fix_network(name, mismatch)
            else:
                result = FixResult(
                    mismatch=mismatch,
                    applied=False,
                    message=f"{mismatch.issue_type} needs a manual descriptor edit",
                    manual_command=self.manual_fix_command(name, mismatch),
                )
            if result.applied:
                logger.info("%s: %s", name, result.message)
            else:
                logger.warning("%s: %s", name, result.message)
            results.append(result)
        return results

    def _fix_mac(self, name: str, mismatch: NetworkMismatch) -> FixResult:
        old = mismatch.current_config.mac_address if mismatch.current_config else mismatch.interface_name
        new = mismatch.suggested_config.mac_address
        manual = self.manual_fix_command(name, mismatch)
        try:
            xml = self.client.dump_xml(name, inactive=True)
            # each mismatch covers a single interface
            updated = replace_mac_address(xml, old, new, count=1)
            if updated == xml:
                return FixResult(mismatch, False, f"MAC {old} not found in descriptor of '{name}'", manual)
            self.client.define_domain(updated)
        except VMError as e:
            return FixResult(mismatch, False, f"Failed to replace MAC {old}: {e}", manual)
        return FixResult(mismatch, True, f"Replaced MAC {old} with {new}")

    def _fix_network(self, name: str, mismatch: NetworkMismatch) -> FixResult:
        network = mismatch.suggested_config.network
        try:
            started = self.client.start_network(network)
        except VMError as e:
            return FixResult(mismatch, False, str(e), self.manual_fix_command(name, mismatch))
        if started:
            return FixResult(mismatch, True, f"Started network '{network}'")
        return FixResult(mismatch, True, f"Network '{network}' is already active")
