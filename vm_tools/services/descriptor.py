"""Domain descriptor (libvirt XML) rendering."""

import re
import string
from dataclasses import dataclass, field
from pathlib import Path
from xml.sax.saxutils import escape

from vm_tools.config import (
    DEFAULT_ARCH,
    DEFAULT_DISK_FORMAT,
    DEFAULT_MACHINE,
    DEFAULT_OS_TYPE,
    EMULATOR,
)

_ATTR_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def _x(value: object) -> str:
    """Escape a value for use in element text or a quoted attribute."""
    return escape(str(value), _ATTR_ENTITIES)


@dataclass(frozen=True)
class DomainSpec:
    """Everything needed to render a domain descriptor."""

    name: str
    uuid: str
    memory_mb: int
    vcpus: int
    disk_path: Path
    network: str
    mac_address: str
    arch: str = DEFAULT_ARCH
    machine: str = DEFAULT_MACHINE
    os_type: str = DEFAULT_OS_TYPE
    boot_order: tuple[str, ...] = ("hd", "cdrom")
    features: tuple[str, ...] = ("acpi", "apic")
    clock_offset: str = "utc"
    iso_path: Path | None = None
    extra_disks: tuple[Path, ...] = field(default_factory=tuple)


def _disk_target(index: int) -> str:
    """vda, vdb, ... for the index-th virtio disk."""
    return "vd" + string.ascii_lowercase[index]


def _disk_xml(path: Path, index: int) -> str:
    return f"""
    <disk type="file" device="disk">
      <driver name="qemu" type="{DEFAULT_DISK_FORMAT}"/>
      <source file="{_x(path)}"/>
      <target dev="{_disk_target(index)}" bus="virtio"/>
    </disk>"""


def render_domain_xml(spec: DomainSpec) -> str:
    """Render a libvirt domain definition for ``spec``."""
    disks_xml = _disk_xml(spec.disk_path, 0)
    for index, path in enumerate(spec.extra_disks, start=1):
        disks_xml += _disk_xml(path, index)

    cdrom_xml = ""
    if spec.iso_path:
        cdrom_xml = f"""
    <disk type="file" device="cdrom">
      <driver name="qemu" type="raw"/>
      <source file="{_x(spec.iso_path)}"/>
      <target dev="sda" bus="sata"/>
      <readonly/>
    </disk>"""

    boot_xml = "\n    ".join(f'<boot dev="{_x(dev)}"/>' for dev in spec.boot_order)
    features_xml = "\n    ".join(f"<{_x(feature)}/>" for feature in spec.features)

    return f"""<domain type="kvm">
  <name>{_x(spec.name)}</name>
  <uuid>{_x(spec.uuid)}</uuid>
  <memory unit="MiB">{spec.memory_mb}</memory>
  <currentMemory unit="MiB">{spec.memory_mb}</currentMemory>
  <vcpu placement="static">{spec.vcpus}</vcpu>
  <os>
    <type arch="{_x(spec.arch)}" machine="{_x(spec.machine)}">{_x(spec.os_type)}</type>
    {boot_xml}
  </os>
  <features>
    {features_xml}
  </features>
  <clock offset="{_x(spec.clock_offset)}"/>
  <cpu mode="host-passthrough"/>
  <devices>
    <emulator>{_x(EMULATOR)}</emulator>{disks_xml}{cdrom_xml}
    <interface type="network">
      <mac address="{_x(spec.mac_address)}"/>
      <source network="{_x(spec.network)}"/>
      <model type="virtio"/>
    </interface>
    <graphics type="vnc" port="-1" autoport="yes" listen="127.0.0.1"/>
    <video>
      <model type="virtio"/>
    </video>
    <serial type="pty">
      <target port="0"/>
    </serial>
    <console type="pty">
      <target type="serial" port="0"/>
    </console>
    <channel type="unix">
      <target type="virtio" name="org.qemu.guest_agent.0"/>
    </channel>
  </devices>
</domain>
"""


def replace_mac_address(xml: str, old: str, new: str, count: int = 0) -> str:
    """Swap the ``<mac address=...>`` value ``old`` for ``new``.

    Matches either quote style and any letter case. Only the first ``count``
    occurrences are replaced, all of them when ``count`` is 0. Returns
    ``xml`` unchanged if ``old`` does not occur.
    """
    pattern = re.compile(
        r"""(<mac\s+address=)(['"])""" + re.escape(old) + r"\2",
        re.IGNORECASE,
    )
    return pattern.sub(lambda m: f"{m.group(1)}{m.group(2)}{new}{m.group(2)}", xml, count=count)
