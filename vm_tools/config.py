"""Configuration and constants for VM Tools."""

import re
from pathlib import Path

from vm_tools.models.vm import VMTemplate

# Paths
IMAGES_DIR: Path = Path("/var/lib/libvirt/images")
ISO_DIR: Path = IMAGES_DIR / "iso"
LOCK_DIR: Path = Path("/run/lock/vm-tools")
SYS_CLASS_NET: Path = Path("/sys/class/net")

# External tools
LIBVIRT_URI: str = "qemu:///system"
VIRSH: str = "virsh"
QEMU_IMG: str = "qemu-img"
IP: str = "ip"
ESCALATION_PREFIX: tuple[str, ...] = ("sudo", "-n")
COMMAND_TIMEOUT: float = 120.0

# Networking
DEFAULT_NETWORK: str = "default"
DEFAULT_BRIDGE: str = "virbr0"
DEFAULT_BRIDGE_PREFIX: str = "virbr"
BRIDGE_NAME_PATTERN: re.Pattern[str] = re.compile(r"^(virbr|br)\d+$")
# QEMU/KVM locally administered prefix, reserved for addresses we generate
MAC_PREFIX: str = "52:54:00"

# Default VM settings
DEFAULT_RAM_MB: int = 2048
DEFAULT_VCPUS: int = 2
DEFAULT_DISK_GB: int = 20
DEFAULT_DISK_FORMAT: str = "qcow2"
DEFAULT_ARCH: str = "x86_64"
DEFAULT_MACHINE: str = "q35"
DEFAULT_OS_TYPE: str = "hvm"
EMULATOR: str = "/usr/bin/qemu-system-x86_64"

# Validation limits
MAX_NAME_LENGTH: int = 64
MIN_RAM_MB: int = 128
MAX_RAM_MB: int = 1024 * 1024
MIN_VCPUS: int = 1
MAX_VCPUS: int = 256
MIN_DISK_GB: int = 1
MAX_DISK_GB: int = 10240

# Polling and locking
START_POLL_INTERVAL: float = 1.0
START_POLL_ATTEMPTS: int = 30
MONITOR_INTERVAL: float = 2.0
LOCK_TIMEOUT: float = 30.0

# Logging
LOG_FORMAT: str = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_LEVEL: str = "WARNING"

# VM templates
TEMPLATES: dict[str, VMTemplate] = {
    "ubuntu": VMTemplate(
        memory_mb=2048,
        vcpus=2,
        disk_size_gb=20,
        os_type="linux",
        features=("acpi", "apic", "pae"),
    ),
    "windows": VMTemplate(
        memory_mb=4096,
        vcpus=2,
        disk_size_gb=40,
        os_type="windows",
        features=("acpi", "apic", "hyperv"),
    ),
    "minimal": VMTemplate(
        memory_mb=512,
        vcpus=1,
        disk_size_gb=8,
        os_type="linux",
        boot_order=("hd",),
    ),
}

# Color scheme
COLORS: dict[str, str] = {
    "running": "green",
    "stopped": "red",
    "paused": "yellow",
    "suspended": "cyan",
    "unknown": "white",
    "header": "cyan",
    "error": "red",
    "success": "green",
    "warning": "yellow",
    "info": "cyan",
}
