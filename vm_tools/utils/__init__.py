"""Utility functions for VM Tools."""

from vm_tools.utils.formatting import (
    format_bytes,
    format_duration,
    format_percent,
    truncate,
)
from vm_tools.utils.mac import generate_mac_address, is_generated_mac
from vm_tools.utils.validation import (
    safe_child_path,
    validate_cpus,
    validate_disk_size,
    validate_memory,
    validate_vm_name,
)

__all__ = [
    "format_bytes",
    "format_duration",
    "format_percent",
    "truncate",
    "generate_mac_address",
    "is_generated_mac",
    "safe_child_path",
    "validate_cpus",
    "validate_disk_size",
    "validate_memory",
    "validate_vm_name",
]
