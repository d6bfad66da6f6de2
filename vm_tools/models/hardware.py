"""Hardware-related models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DiskInfo:
    """Disk information.

    Sizes are best effort: when the image utility cannot describe the file
    they stay zero.
    """

    target: str  # e.g., "vda", "sda"
    path: str
    device: str = "disk"  # "disk" or "cdrom"
    size_bytes: int = 0
    used_bytes: int = 0
    format: str = "unknown"  # e.g., "qcow2", "raw"

    @property
    def size_display(self) -> str:
        """Format size for display."""
        gb = self.size_bytes / (1024**3)
        if gb >= 1:
            return f"{gb:.1f} GB"
        mb = self.size_bytes / (1024**2)
        return f"{mb:.1f} MB"


@dataclass(frozen=True)
class NetworkInfo:
    """Network interface as attached in a VM's definition."""

    interface: str  # e.g., "vnet0", "-" when the VM is off
    network: str  # libvirt network name, "" for direct bridge attachment
    mac_address: str
    bridge: str
    ip_address: str | None = None
    model: str = "virtio"


@dataclass(frozen=True)
class ImageInfo:
    """Disk image details reported by the image utility."""

    filename: str
    format: str
    virtual_size: int
    actual_size: int
