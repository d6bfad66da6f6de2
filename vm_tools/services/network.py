"""Host bridge detection."""

import logging
from collections.abc import Iterable
from pathlib import Path

from vm_tools.config import BRIDGE_NAME_PATTERN, IP, SYS_CLASS_NET
from vm_tools.errors import VMError
from vm_tools.models import BridgeDiscovery, NetworkDefinition
from vm_tools.services.executor import CommandRunner
from vm_tools.services.parsers import parse_ip_link_bridges

logger = logging.getLogger(__name__)


class NetworkService:
    """Service for detecting the bridges present on the host."""

    def __init__(self, runner: CommandRunner | None = None, sys_class_net: Path = SYS_CLASS_NET) -> None:
        self.runner = runner or CommandRunner()
        self.sys_class_net = sys_class_net

    def _from_ip_link(self) -> list[str]:
        result = self.runner.run([IP, "-o", "link", "show", "type", "bridge"], escalate=False)
        if not result.ok:
            raise OSError(result.stderr.strip() or f"{IP} exited with {result.returncode}")
        return parse_ip_link_bridges(result.stdout)

    def _from_sysfs(self) -> list[str]:
        bridges: list[str] = []
        for iface in self.sys_class_net.iterdir():
            if BRIDGE_NAME_PATTERN.match(iface.name) or (iface / "bridge").exists():
                bridges.append(iface.name)
        return sorted(bridges)

    def discover_bridges(self, networks: Iterable[NetworkDefinition] = ()) -> BridgeDiscovery:
        """Union of the bridges seen by every detection strategy.

        Order is ``ip link`` first, then sysfs, then bridges recorded by
        network definitions. A strategy that fails marks the result partial.
        """
        found: list[str] = []
        warnings: list[str] = []

        def add(names: Iterable[str]) -> None:
            for name in names:
                if name and name not in found:
                    found.append(name)

        try:
            add(self._from_ip_link())
        except (OSError, VMError) as e:
            logger.debug("Bridge listing via ip failed: %s", e)
            warnings.append(f"ip link: {e}")

        try:
            add(self._from_sysfs())
        except OSError as e:
            logger.debug("Bridge listing via %s failed: %s", self.sys_class_net, e)
            warnings.append(f"{self.sys_class_net}: {e}")

        add(net.bridge for net in networks)

        return BridgeDiscovery(bridges=tuple(found), partial=bool(warnings), warnings=tuple(warnings))
