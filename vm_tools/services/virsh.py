"""Control-plane client driving the ``virsh`` command line."""

import logging
import os
import tempfile

from vm_tools.config import LIBVIRT_URI, VIRSH
from vm_tools.errors import ControlPlaneError, ErrorKind, VMError, classify_stderr, error_from_stderr
from vm_tools.models import DiskInfo, NetworkDefinition, NetworkInfo, VMInfo, VMState
from vm_tools.services.executor import CommandResult, CommandRunner
from vm_tools.services.image import DiskImageService
from vm_tools.services.parsers import (
    DomainStats,
    parse_domain_list,
    parse_domblklist,
    parse_dominfo,
    parse_domiflist,
    parse_domstate,
    parse_domstats,
    parse_interface_bridges,
    parse_net_info,
    parse_net_list,
)

logger = logging.getLogger(__name__)


class VirshClient:
    """Typed access to the virsh subcommands VM Tools depends on.

    Failed commands raise a :class:`VMError` classified from virsh's stderr.
    Secondary details (disk sizes, bridges, stats) are best effort and never
    fail the query they belong to.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        uri: str = LIBVIRT_URI,
        images: DiskImageService | None = None,
    ) -> None:
        self.runner = runner or CommandRunner()
        self.uri = uri
        self.images = images

    def _virsh(self, *args: str) -> CommandResult:
        return self.runner.run([VIRSH, "-c", self.uri, *args])

    def _checked(self, action: str, *args: str) -> str:
        """Run a virsh subcommand and return stdout, raising on failure."""
        result = self._virsh(*args)
        if not result.ok:
            raise error_from_stderr(result.stderr, action)
        return result.stdout

    def check_connection(self) -> None:
        """Verify libvirtd answers on the configured URI."""
        result = self._virsh("version")
        if not result.ok:
            raise ControlPlaneError(
                f"Failed to connect to libvirt at {self.uri}: {result.stderr.strip()}. "
                "Try: sudo systemctl restart libvirtd"
            )

    # Domains

    def list_domain_names(self, all: bool = True) -> list[str]:
        """List VM names without fetching details."""
        args = ["list", "--all"] if all else ["list"]
        return [row.name for row in parse_domain_list(self._checked("list domains", *args))]

    def list_domains(self, all: bool = True) -> list[VMInfo]:
        """List VMs with details, falling back to listing data per VM."""
        args = ["list", "--all"] if all else ["list"]
        rows = parse_domain_list(self._checked("list domains", *args))

        vms: list[VMInfo] = []
        for row in rows:
            try:
                vms.append(self.get_domain_info(row.name))
            except VMError as e:
                logger.debug("Using listing data for %s: %s", row.name, e)
                vms.append(VMInfo(name=row.name, uuid="unknown", state=row.state))
        return vms

    def domain_exists(self, name: str) -> bool:
        """Check whether a VM with this name is defined."""
        result = self._virsh("dominfo", name)
        if result.ok:
            return True
        if classify_stderr(result.stderr) == ErrorKind.NOT_FOUND:
            return False
        raise error_from_stderr(result.stderr, f"check VM '{name}'")

    def get_domain_info(self, name: str) -> VMInfo:
        """Get a detailed snapshot of one VM."""
        detail = parse_dominfo(self._checked(f"get info for VM '{name}'", "dominfo", name))

        memory_percent: float | None = None
        if detail.state == VMState.RUNNING:
            memory_percent = self.get_domain_stats(name).memory_percent

        return VMInfo(
            name=name,
            uuid=detail.uuid,
            state=detail.state,
            memory_mb=detail.memory_mb,
            vcpus=detail.vcpus,
            memory_percent=memory_percent,
            disks=tuple(self._best_effort(self.get_domain_disks, name)),
            interfaces=tuple(self._best_effort(self.get_domain_interfaces, name)),
        )

    def _best_effort(self, func, name: str) -> list:
        try:
            return func(name)
        except VMError as e:
            logger.debug("%s(%s) failed: %s", func.__name__, name, e)
            return []

    def get_domain_state(self, name: str) -> VMState:
        """Get only the state of a VM."""
        return parse_domstate(self._checked(f"get state of VM '{name}'", "domstate", name))

    def get_domain_stats(self, name: str) -> DomainStats:
        """Get CPU and balloon counters; empty stats when unavailable."""
        result = self._virsh("domstats", name, "--cpu-total", "--balloon")
        if not result.ok:
            return DomainStats()
        return parse_domstats(result.stdout)

    def start_domain(self, name: str) -> None:
        self._checked(f"start VM '{name}'", "start", name)

    def shutdown_domain(self, name: str) -> None:
        self._checked(f"shut down VM '{name}'", "shutdown", name)

    def destroy_domain(self, name: str) -> None:
        self._checked(f"destroy VM '{name}'", "destroy", name)

    def undefine_domain(self, name: str) -> None:
        self._checked(f"undefine VM '{name}'", "undefine", name)

    def define_domain(self, xml: str) -> None:
        """Register a domain descriptor with libvirt."""
        fd, path = tempfile.mkstemp(prefix="vm-tools-domain-", suffix=".xml")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(xml)
            # readable by an escalated virsh as well
            os.chmod(path, 0o644)
            self._checked("define VM", "define", path)
        finally:
            try:
                os.unlink(path)
            except OSError as e:
                logger.debug("Could not remove %s: %s", path, e)

    def dump_xml(self, name: str, inactive: bool = False) -> str:
        """Get a VM's descriptor, the persistent one when ``inactive``."""
        args = ["dumpxml", name, "--inactive"] if inactive else ["dumpxml", name]
        return self._checked(f"get descriptor of VM '{name}'", *args)

    def get_domain_disks(self, name: str) -> list[DiskInfo]:
        """List a VM's block devices with best-effort sizes."""
        rows = parse_domblklist(
            self._checked(f"list disks of VM '{name}'", "domblklist", name, "--details")
        )

        disks: list[DiskInfo] = []
        for row in rows:
            size = used = 0
            fmt = "unknown"
            if self.images is not None and row.device == "disk" and row.source:
                info = self.images.try_info(row.source)
                if info is not None:
                    size, used, fmt = info.virtual_size, info.actual_size, info.format
            disks.append(DiskInfo(
                target=row.target,
                path=row.source,
                device=row.device,
                size_bytes=size,
                used_bytes=used,
                format=fmt,
            ))
        return disks

    def get_interface_macs(self, name: str) -> list[str]:
        """MAC addresses of a VM's interfaces."""
        rows = parse_domiflist(self._checked(f"list interfaces of VM '{name}'", "domiflist", name))
        return [row.mac for row in rows]

    def get_domain_interfaces(
        self,
        name: str,
        networks: list[NetworkDefinition] | None = None,
    ) -> list[NetworkInfo]:
        """List a VM's interfaces with the bridge each is attached to.

        The bridge comes from the live descriptor when the VM runs, then from
        the referenced network's definition, else stays empty.
        """
        rows = parse_domiflist(self._checked(f"list interfaces of VM '{name}'", "domiflist", name))
        if not rows:
            return []

        observed: dict[str, str] = {}
        result = self._virsh("dumpxml", name)
        if result.ok:
            observed = parse_interface_bridges(result.stdout)

        recorded: dict[str, str] = {}
        if networks is not None:
            recorded = {net.name: net.bridge for net in networks}

        interfaces: list[NetworkInfo] = []
        for row in rows:
            if row.type == "bridge":
                network, bridge = "", row.source
            else:
                network = row.source
                bridge = observed.get(row.mac) or recorded.get(network, "")
            interfaces.append(NetworkInfo(
                interface=row.interface,
                network=network,
                mac_address=row.mac,
                bridge=bridge,
                model=row.model,
            ))
        return interfaces

    # Networks

    def list_networks(self) -> list[NetworkDefinition]:
        """List all virtual networks with their bridge, active or not."""
        rows = parse_net_list(self._checked("list networks", "net-list", "--all"))

        networks: list[NetworkDefinition] = []
        for row in rows:
            bridge = ""
            result = self._virsh("net-info", row.name)
            if result.ok:
                bridge = parse_net_info(result.stdout).bridge
            else:
                logger.debug("net-info %s failed: %s", row.name, result.stderr.strip())
            networks.append(NetworkDefinition(
                name=row.name,
                active=row.active,
                autostart=row.autostart,
                bridge=bridge,
                persistent=row.persistent,
            ))
        return networks

    def get_network(self, name: str) -> NetworkDefinition:
        """Get one network's definition."""
        detail = parse_net_info(self._checked(f"get network '{name}'", "net-info", name))
        return NetworkDefinition(
            name=detail.name or name,
            active=detail.active,
            autostart=detail.autostart,
            bridge=detail.bridge,
            persistent=detail.persistent,
        )

    def start_network(self, name: str) -> bool:
        """Start a network. Returns False if it was already active."""
        result = self._virsh("net-start", name)
        if result.ok:
            return True
        if classify_stderr(result.stderr) == ErrorKind.ALREADY_RUNNING:
            return False
        raise error_from_stderr(result.stderr, f"start network '{name}'")
