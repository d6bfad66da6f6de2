"""VM lifecycle operations."""

import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace
from pathlib import Path

from vm_tools.config import (
    DEFAULT_DISK_GB,
    DEFAULT_NETWORK,
    DEFAULT_RAM_MB,
    DEFAULT_VCPUS,
    IMAGES_DIR,
    ISO_DIR,
    MONITOR_INTERVAL,
    START_POLL_ATTEMPTS,
    START_POLL_INTERVAL,
    TEMPLATES,
)
from vm_tools.errors import (
    AlreadyExistsError,
    AlreadyRunningError,
    ControlPlaneError,
    InvalidInputError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    NotRunningError,
    VMError,
)
from vm_tools.models import (
    NetworkAnalysis,
    NetworkDefinition,
    Operation,
    VMInfo,
    VMState,
    VMTemplate,
    is_actionable_for,
)
from vm_tools.services.descriptor import DomainSpec, render_domain_xml
from vm_tools.services.executor import CommandRunner
from vm_tools.services.image import DiskImageService
from vm_tools.services.network import NetworkService
from vm_tools.services.reconciler import NetworkReconciler
from vm_tools.services.virsh import VirshClient
from vm_tools.utils.locks import NameLocks
from vm_tools.utils.mac import generate_mac_address
from vm_tools.utils.validation import (
    safe_child_path,
    validate_cpus,
    validate_disk_size,
    validate_memory,
    validate_vm_name,
)
from vm_tools.utils.waiting import WaitOutcome, pause, wait_until

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateResult:
    name: str
    uuid: str
    disk_path: Path
    network: str
    mac_address: str
    xml: str


@dataclass
class DeleteResult:
    name: str
    deleted: bool
    removed_disks: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return not self.deleted


@dataclass(frozen=True)
class CloneResult:
    source: str
    target: str
    uuid: str
    disk_paths: tuple[Path, ...]
    network: str
    mac_address: str


@dataclass
class OptimizationReport:
    """Suggestions for a stopped VM, including its network analysis."""

    name: str
    analysis: NetworkAnalysis
    suggestions: list[str] = field(default_factory=list)


class VMManager:
    """Orchestrates multi-step VM operations on top of virsh and qemu-img.

    Start, stop, create, delete and clone hold a per-name lock while they
    change a VM. The start poll runs after the lock is released.
    """

    def __init__(
        self,
        client: VirshClient | None = None,
        images: DiskImageService | None = None,
        network_service: NetworkService | None = None,
        images_dir: Path = IMAGES_DIR,
        iso_dir: Path = ISO_DIR,
        default_network: str = DEFAULT_NETWORK,
        locks: NameLocks | None = None,
        poll_interval: float = START_POLL_INTERVAL,
        poll_attempts: int = START_POLL_ATTEMPTS,
    ) -> None:
        runner = client.runner if client is not None else CommandRunner()
        self.images = images or DiskImageService(runner)
        self.client = client or VirshClient(runner, images=self.images)
        self.network_service = network_service or NetworkService(runner)
        self.reconciler = NetworkReconciler(self.client, self.network_service, default_network)
        self.images_dir = images_dir
        self.iso_dir = iso_dir
        self.default_network = default_network
        self.locks = locks or NameLocks()
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts

    # Queries

    def list_vms(self, all: bool = True, running_only: bool = False) -> list[VMInfo]:
        """List VMs, optionally only the running ones."""
        vms = self.client.list_domains(all=all)
        if running_only:
            vms = [vm for vm in vms if vm.is_running]
        return vms

    def get_vm(self, name: str) -> VMInfo:
        """Get a detailed snapshot of one VM."""
        validate_vm_name(name)
        return self.client.get_domain_info(name)

    def list_networks(self) -> list[NetworkDefinition]:
        return self.client.list_networks()

    def select_network(self) -> str:
        """Pick the network new VMs attach to.

        The configured default wins if active, then the first active network.
        """
        active = [net.name for net in self.client.list_networks() if net.active]
        if self.default_network in active:
            return self.default_network
        if active:
            logger.info("Network '%s' inactive, using '%s'", self.default_network, active[0])
            return active[0]
        raise NetworkError(
            f"No active network available. Start one with: virsh net-start {self.default_network}"
        )

    # Start / stop

    def _poll_state(self, name: str) -> VMState:
        try:
            return self.client.get_domain_state(name)
        except VMError as e:
            logger.debug("State check for %s failed: %s", name, e)
            return VMState.UNKNOWN

    def start_vm(
        self,
        name: str,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> bool:
        """Start a VM and wait for it to report running.

        Returns False if it did not report running before the poll budget,
        ``timeout`` or ``cancel`` ended the wait. The start itself was
        issued either way.
        """
        validate_vm_name(name)
        with self.locks.hold(name):
            state = self.client.get_domain_state(name)
            if state == VMState.RUNNING:
                raise AlreadyRunningError(f"VM '{name}' is already running")
            if state == VMState.PAUSED:
                raise InvalidStateError(f"VM '{name}' is paused. Resume it with: virsh resume {name}")

            self.client.start_domain(name)
            logger.info("Start issued for %s", name)

        outcome = wait_until(
            lambda: self._poll_state(name) == VMState.RUNNING,
            self.poll_interval,
            attempts=self.poll_attempts,
            timeout=timeout,
            cancel=cancel,
        )
        if outcome == WaitOutcome.SATISFIED:
            logger.info("VM %s is running", name)
            return True

        logger.warning("VM %s did not report running yet (%s); it may still be starting", name, outcome.value)
        return False

    def stop_vm(self, name: str, force: bool = False) -> None:
        """Request a graceful shutdown, or power off when ``force``."""
        validate_vm_name(name)
        with self.locks.hold(name):
            state = self.client.get_domain_state(name)
            if force:
                if not is_actionable_for(state, Operation.DESTROY):
                    raise NotRunningError(f"VM '{name}' is not running")
                self.client.destroy_domain(name)
                logger.info("Forced off %s", name)
            else:
                if not is_actionable_for(state, Operation.SHUTDOWN):
                    raise NotRunningError(f"VM '{name}' is not running ({state.display_name})")
                self.client.shutdown_domain(name)
                logger.info("Shutdown requested for %s", name)

    # Create / delete / clone

    def _macs_in_use(self) -> set[str]:
        macs: set[str] = set()
        try:
            for vm_name in self.client.list_domain_names(all=True):
                macs.update(self.client.get_interface_macs(vm_name))
        except VMError as e:
            logger.debug("Could not collect MAC addresses in use: %s", e)
        return macs

    def _resolve_template(self, template: str) -> VMTemplate:
        try:
            return TEMPLATES[template]
        except KeyError:
            raise InvalidInputError(
                f"Unknown template '{template}'. Available: {', '.join(sorted(TEMPLATES))}"
            ) from None

    def _resolve_iso(self, iso_path: Path | str) -> Path:
        """Bare file names are looked up in the ISO directory."""
        iso = Path(iso_path)
        if not iso.exists() and iso.name == str(iso_path):
            candidate = self.iso_dir / iso.name
            if candidate.exists():
                return candidate
        if not iso.exists():
            raise NotFoundError(f"ISO not found: {iso}")
        return iso.resolve()

    def create_vm(
        self,
        name: str,
        memory_mb: int = DEFAULT_RAM_MB,
        vcpus: int = DEFAULT_VCPUS,
        disk_size_gb: int = DEFAULT_DISK_GB,
        iso_path: Path | str | None = None,
        template: str | None = None,
    ) -> CreateResult:
        """Create a disk image and define a new VM on it.

        A template overrides the memory, CPU and disk size arguments.
        """
        validate_vm_name(name)
        tmpl = self._resolve_template(template) if template else VMTemplate(memory_mb, vcpus, disk_size_gb)
        validate_memory(tmpl.memory_mb)
        validate_cpus(tmpl.vcpus)
        validate_disk_size(tmpl.disk_size_gb)

        iso = self._resolve_iso(iso_path) if iso_path else None

        with self.locks.hold(name):
            if self.client.domain_exists(name):
                raise AlreadyExistsError(f"VM '{name}' already exists")

            disk_path = safe_child_path(self.images_dir, name, ".qcow2")
            if disk_path.exists():
                raise AlreadyExistsError(f"Disk image already exists: {disk_path}")

            network = self.select_network()
            mac = generate_mac_address(exclude=self._macs_in_use())
            spec = DomainSpec(
                name=name,
                uuid=str(uuid.uuid4()),
                memory_mb=tmpl.memory_mb,
                vcpus=tmpl.vcpus,
                disk_path=disk_path,
                network=network,
                mac_address=mac,
                arch=tmpl.arch,
                machine=tmpl.machine_type,
                boot_order=tmpl.boot_order,
                features=tmpl.features,
                clock_offset="localtime" if tmpl.os_type == "windows" else "utc",
                iso_path=iso,
            )
            xml = render_domain_xml(spec)

            self.images.create(disk_path, tmpl.disk_size_gb)
            try:
                self.client.define_domain(xml)
            except VMError:
                logger.error("Defining %s failed; disk image %s was left in place", name, disk_path)
                raise

        logger.info("Created VM %s (%d MB, %d vCPU, %s)", name, tmpl.memory_mb, tmpl.vcpus, network)
        return CreateResult(name, spec.uuid, disk_path, network, mac, xml)

    def _remove_image(self, path: Path | str) -> str | None:
        """Delete an image file. Returns a warning instead of raising."""
        try:
            Path(path).unlink()
            return None
        except FileNotFoundError:
            return f"Disk {path} was already gone"
        except PermissionError:
            result = self.client.runner.run(["rm", "-f", "--", str(path)])
            if result.ok:
                return None
            return f"Failed to delete disk {path}: {result.stderr.strip()}"
        except OSError as e:
            return f"Failed to delete disk {path}: {e}"

    def delete_vm(
        self,
        name: str,
        force: bool = False,
        confirm: Callable[[str], bool] | None = None,
    ) -> DeleteResult:
        """Delete a VM and its disk images.

        Without ``force`` the ``confirm`` callback must approve. Failing to
        delete a disk is reported as a warning and does not stop the others.
        """
        validate_vm_name(name)
        self.client.get_domain_info(name)

        if not force:
            if confirm is None:
                raise InvalidInputError(f"Deleting VM '{name}' needs confirmation or force")
            if not confirm(name):
                logger.info("Deletion of %s cancelled", name)
                return DeleteResult(name, deleted=False)

        with self.locks.hold(name):
            info = self.client.get_domain_info(name)
            if not info.is_stopped:
                try:
                    self.client.destroy_domain(name)
                except NotRunningError:
                    pass

            disk_paths = info.disk_paths
            self.client.undefine_domain(name)

            result = DeleteResult(name, deleted=True)
            for path in disk_paths:
                warning = self._remove_image(path)
                if warning:
                    logger.warning(warning)
                    result.warnings.append(warning)
                else:
                    result.removed_disks.append(path)

        logger.info("Deleted VM %s", name)
        return result

    def clone_vm(self, source: str, target: str) -> CloneResult:
        """Copy a stopped VM's disks and define them as a new VM.

        Every copy is verified before the clone is defined. On failure the
        copies made so far are removed.
        """
        validate_vm_name(source)
        validate_vm_name(target)
        if source == target:
            raise InvalidInputError("Clone target must differ from the source")

        with self.locks.hold_many(source, target):
            info = self.client.get_domain_info(source)
            if not info.is_actionable_for(Operation.CLONE):
                raise InvalidStateError(
                    f"VM '{source}' must be shut off to clone (currently {info.state.display_name})"
                )
            if self.client.domain_exists(target):
                raise AlreadyExistsError(f"VM '{target}' already exists")

            sources = info.disk_paths
            if not sources:
                raise InvalidStateError(f"VM '{source}' has no disk to clone")

            targets = [
                safe_child_path(self.images_dir, target, ".qcow2" if i == 0 else f"-{i}.qcow2")
                for i in range(len(sources))
            ]
            for path in targets:
                if path.exists():
                    raise AlreadyExistsError(f"Disk image already exists: {path}")

            copied: list[Path] = []
            try:
                for src, dst in zip(sources, targets):
                    self.images.convert(src, dst)
                    copied.append(dst)

                missing = [str(p) for p in targets if self.images.try_info(p) is None]
                if missing:
                    raise ControlPlaneError(f"Disk copies missing after clone: {', '.join(missing)}")

                network = self.select_network()
                new_uuid = str(uuid.uuid4())
                while new_uuid == info.uuid:
                    new_uuid = str(uuid.uuid4())
                mac = generate_mac_address(exclude=self._macs_in_use())

                spec = DomainSpec(
                    name=target,
                    uuid=new_uuid,
                    memory_mb=info.memory_mb or DEFAULT_RAM_MB,
                    vcpus=info.vcpus or DEFAULT_VCPUS,
                    disk_path=targets[0],
                    network=network,
                    mac_address=mac,
                    extra_disks=tuple(targets[1:]),
                )
                self.client.define_domain(render_domain_xml(spec))
            except VMError:
                for path in copied:
                    warning = self._remove_image(path)
                    if warning:
                        logger.warning(warning)
                raise

        logger.info("Cloned %s to %s", source, target)
        return CloneResult(source, target, new_uuid, tuple(targets), network, mac)

    # Monitoring and maintenance

    def monitor(
        self,
        name: str,
        interval: float = MONITOR_INTERVAL,
        cancel: threading.Event | None = None,
        iterations: int | None = None,
    ) -> Iterator[VMInfo]:
        """Yield a fresh snapshot of a VM every ``interval`` seconds.

        CPU usage is derived from the change in guest CPU time between two
        snapshots, so the first snapshot has none.
        """
        validate_vm_name(name)
        previous: tuple[int, float] | None = None
        count = 0

        while True:
            info = self.client.get_domain_info(name)
            cpu_percent = None
            cpu_time = self.client.get_domain_stats(name).cpu_time_ns if info.is_running else None
            now = time.monotonic()

            if cpu_time is not None:
                if previous is not None and info.vcpus:
                    elapsed = now - previous[1]
                    if elapsed > 0:
                        used = (cpu_time - previous[0]) / (elapsed * 1e9 * info.vcpus)
                        cpu_percent = max(0.0, min(100.0, used * 100))
                previous = (cpu_time, now)
            else:
                previous = None

            yield replace(info, cpu_percent=cpu_percent)

            count += 1
            if iterations is not None and count >= iterations:
                return
            if not pause(interval, cancel):
                return

    def optimize_vm(self, name: str) -> OptimizationReport:
        """Review a stopped VM's configuration and suggest improvements."""
        validate_vm_name(name)
        info = self.client.get_domain_info(name)
        if not info.is_actionable_for(Operation.OPTIMIZE):
            raise InvalidStateError(f"VM '{name}' must be shut off to optimize")

        report = OptimizationReport(name, self.reconciler.analyze(name))

        if len(info.interfaces) > 2:
            report.suggestions.append(
                f"{len(info.interfaces)} network interfaces attached; remove unused ones with: virsh edit {name}"
            )

        try:
            default = self.client.get_network(self.default_network)
        except NotFoundError:
            default = None
        if default is not None and not default.active:
            report.suggestions.append(
                f"Default network '{default.name}' is inactive. Start it with: virsh net-start {default.name}"
            )

        for mismatch in report.analysis.mismatches:
            report.suggestions.append(
                f"{mismatch.interface_name}: {mismatch.issue_type}. "
                f"Fix with: {self.reconciler.manual_fix_command(name, mismatch)}"
            )
        return report
