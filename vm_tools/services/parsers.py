"""Parsers for virsh, ip and qemu-img text output.

Each command has exactly one parser here, so a change in output format is a
one-place fix. Parsers only interpret syntax and never raise on unexpected
input: short rows are skipped, unknown keys ignored, and unrecognised values
degrade to ``VMState.UNKNOWN``, zero or empty.
"""

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from vm_tools.models import ImageInfo, VMState

HEADER_LINES = 2

_STATES: dict[str, VMState] = {
    "running": VMState.RUNNING,
    "shut off": VMState.STOPPED,
    "paused": VMState.PAUSED,
    "suspended": VMState.SUSPENDED,
}


def parse_state(text: str, listing: bool = False) -> VMState:
    """Map a virsh state string to a VMState.

    In listing context ``virsh list`` output may be cut at the first word, so
    a bare ``shut`` also means stopped.
    """
    normalized = " ".join(text.split()).lower()
    if listing and normalized == "shut":
        return VMState.STOPPED
    return _STATES.get(normalized, VMState.UNKNOWN)


def skip_header(text: str) -> list[str]:
    """Return the data lines of a listing, dropping exactly two header lines."""
    return text.splitlines()[HEADER_LINES:]


def _rows(text: str, min_tokens: int) -> list[list[str]]:
    """Tokenize listing rows, skipping those with too few columns."""
    rows: list[list[str]] = []
    for line in skip_header(text):
        parts = line.split()
        if len(parts) >= min_tokens:
            rows.append(parts)
    return rows


def _key_values(text: str) -> dict[str, str]:
    """Parse ``Key: value`` lines, splitting on the first colon."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            values[key.strip()] = value.strip()
    return values


def _to_int(value: str | None, default: int = 0) -> int:
    if not value:
        return default
    try:
        return int(value.split()[0])
    except (ValueError, IndexError):
        return default


def _yes(value: str | None) -> bool:
    return (value or "").strip().lower() in ("yes", "enable", "enabled")


@dataclass(frozen=True)
class DomainRow:
    """A row of ``virsh list``."""

    id: str
    name: str
    state: VMState


def parse_domain_list(text: str) -> list[DomainRow]:
    """Parse ``virsh list [--all]``: columns id, name, state words."""
    return [
        DomainRow(id=parts[0], name=parts[1], state=parse_state(" ".join(parts[2:]), listing=True))
        for parts in _rows(text, 3)
    ]


@dataclass(frozen=True)
class DomainDetail:
    """Fields of ``virsh dominfo``."""

    uuid: str = ""
    state: VMState = VMState.UNKNOWN
    max_memory_kb: int = 0
    used_memory_kb: int = 0
    vcpus: int = 0
    cpu_time_seconds: float | None = None
    persistent: bool = False
    autostart: bool = False

    @property
    def memory_mb(self) -> int:
        return self.max_memory_kb // 1024


def parse_dominfo(text: str) -> DomainDetail:
    """Parse ``virsh dominfo``; unrecognised keys are ignored."""
    values = _key_values(text)

    cpu_time: float | None = None
    raw_time = values.get("CPU time", "").rstrip("s")
    if raw_time:
        try:
            cpu_time = float(raw_time)
        except ValueError:
            cpu_time = None

    return DomainDetail(
        uuid=values.get("UUID", ""),
        state=parse_state(values.get("State", "")),
        max_memory_kb=_to_int(values.get("Max memory")),
        used_memory_kb=_to_int(values.get("Used memory")),
        vcpus=_to_int(values.get("CPU(s)")),
        cpu_time_seconds=cpu_time,
        persistent=_yes(values.get("Persistent")),
        autostart=_yes(values.get("Autostart")),
    )


def parse_domstate(text: str) -> VMState:
    """Parse ``virsh domstate``: a single state line."""
    for line in text.splitlines():
        if line.strip():
            return parse_state(line)
    return VMState.UNKNOWN


@dataclass(frozen=True)
class BlockRow:
    """A row of ``virsh domblklist --details``."""

    type: str
    device: str
    target: str
    source: str


def parse_domblklist(text: str) -> list[BlockRow]:
    """Parse ``virsh domblklist --details``: type, device, target, source."""
    rows: list[BlockRow] = []
    for parts in _rows(text, 4):
        source = " ".join(parts[3:])
        rows.append(BlockRow(
            type=parts[0],
            device=parts[1],
            target=parts[2],
            source="" if source == "-" else source,
        ))
    return rows


@dataclass(frozen=True)
class InterfaceRow:
    """A row of ``virsh domiflist``."""

    interface: str
    type: str
    source: str
    model: str
    mac: str


def parse_domiflist(text: str) -> list[InterfaceRow]:
    """Parse ``virsh domiflist``: interface, type, source, model, MAC."""
    return [
        InterfaceRow(
            interface=parts[0],
            type=parts[1],
            source=parts[2],
            model=parts[3],
            mac=parts[4].lower(),
        )
        for parts in _rows(text, 5)
    ]


@dataclass(frozen=True)
class NetworkRow:
    """A row of ``virsh net-list --all``."""

    name: str
    active: bool
    autostart: bool
    persistent: bool


def parse_net_list(text: str) -> list[NetworkRow]:
    """Parse ``virsh net-list --all``: name, state, autostart, persistent."""
    return [
        NetworkRow(
            name=parts[0],
            active=parts[1] == "active",
            autostart=parts[2] == "yes",
            persistent=len(parts) < 4 or parts[3] == "yes",
        )
        for parts in _rows(text, 3)
    ]


@dataclass(frozen=True)
class NetworkDetail:
    """Fields of ``virsh net-info``."""

    name: str = ""
    uuid: str = ""
    active: bool = False
    autostart: bool = False
    persistent: bool = False
    bridge: str = ""


def parse_net_info(text: str) -> NetworkDetail:
    """Parse ``virsh net-info``."""
    values = _key_values(text)
    return NetworkDetail(
        name=values.get("Name", ""),
        uuid=values.get("UUID", ""),
        active=_yes(values.get("Active")),
        autostart=_yes(values.get("Autostart")),
        persistent=_yes(values.get("Persistent")),
        bridge=values.get("Bridge", ""),
    )


@dataclass(frozen=True)
class DomainStats:
    """Counters from ``virsh domstats --cpu-total --balloon``."""

    cpu_time_ns: int | None = None
    balloon_current_kb: int | None = None
    balloon_available_kb: int | None = None
    balloon_unused_kb: int | None = None
    balloon_rss_kb: int | None = None

    @property
    def memory_percent(self) -> float | None:
        """Guest memory in use, from the balloon driver when it reports."""
        if self.balloon_available_kb and self.balloon_unused_kb is not None:
            used = self.balloon_available_kb - self.balloon_unused_kb
            return max(0.0, used / self.balloon_available_kb * 100)
        if self.balloon_current_kb and self.balloon_rss_kb is not None:
            return min(100.0, self.balloon_rss_kb / self.balloon_current_kb * 100)
        return None


def parse_domstats(text: str) -> DomainStats:
    """Parse ``key=value`` lines of ``virsh domstats``."""
    values: dict[str, int] = {}
    for line in text.splitlines():
        key, sep, value = line.strip().partition("=")
        if not sep:
            continue
        try:
            values[key] = int(value)
        except ValueError:
            continue

    return DomainStats(
        cpu_time_ns=values.get("cpu.time"),
        balloon_current_kb=values.get("balloon.current"),
        balloon_available_kb=values.get("balloon.available"),
        balloon_unused_kb=values.get("balloon.unused"),
        balloon_rss_kb=values.get("balloon.rss"),
    )


def parse_ip_link_bridges(text: str) -> list[str]:
    """Parse ``ip -o link show type bridge`` into bridge names."""
    # 3: virbr0: <NO-CARRIER,BROADCAST,MULTICAST,UP> mtu 1500 ...
    names: list[str] = []
    for line in text.splitlines():
        parts = line.split(":", 2)
        if len(parts) < 3:
            continue
        name = parts[1].strip().split("@", 1)[0]
        if name and name not in names:
            names.append(name)
    return names


def parse_interface_bridges(xml_text: str) -> dict[str, str]:
    """Map MAC address to the bridge recorded in a domain descriptor.

    Running domains carry the bridge a network interface was actually
    plugged into as ``<source network=... bridge=...>``.
    """
    try:
        xml = ET.fromstring(xml_text)
    except ET.ParseError:
        return {}

    bridges: dict[str, str] = {}
    for iface in xml.findall(".//devices/interface"):
        mac = iface.find("mac")
        source = iface.find("source")
        if mac is None or source is None:
            continue
        address = mac.get("address")
        bridge = source.get("bridge")
        if address and bridge:
            bridges[address.lower()] = bridge
    return bridges


def parse_image_info(text: str) -> ImageInfo | None:
    """Parse ``qemu-img info --output=json``."""
    try:
        info = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(info, dict):
        return None

    try:
        virtual_size = int(info.get("virtual-size", 0) or 0)
        actual_size = int(info.get("actual-size", 0) or 0)
    except (TypeError, ValueError):
        virtual_size = actual_size = 0

    return ImageInfo(
        filename=str(info.get("filename", "")),
        format=str(info.get("format", "unknown")),
        virtual_size=virtual_size,
        actual_size=actual_size,
    )
