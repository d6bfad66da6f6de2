"""Data models for VM Tools."""

from vm_tools.models.hardware import DiskInfo, ImageInfo, NetworkInfo
from vm_tools.models.network import (
    BridgeDiscovery,
    FixResult,
    NetworkAnalysis,
    NetworkDefinition,
    NetworkInterface,
    NetworkIssueType,
    NetworkMismatch,
)
from vm_tools.models.vm import VMInfo, VMState, VMTemplate, Operation, is_actionable_for

__all__ = [
    "VMInfo",
    "VMState",
    "VMTemplate",
    "Operation",
    "is_actionable_for",
    "DiskInfo",
    "ImageInfo",
    "NetworkInfo",
    "NetworkDefinition",
    "NetworkInterface",
    "NetworkIssueType",
    "NetworkMismatch",
    "NetworkAnalysis",
    "BridgeDiscovery",
    "FixResult",
]
