"""Services for VM Tools."""

from vm_tools.services.descriptor import DomainSpec, render_domain_xml, replace_mac_address
from vm_tools.services.executor import CommandResult, CommandRunner
from vm_tools.services.image import DiskImageService
from vm_tools.services.lifecycle import (
    CloneResult,
    CreateResult,
    DeleteResult,
    OptimizationReport,
    VMManager,
)
from vm_tools.services.network import NetworkService
from vm_tools.services.reconciler import NetworkReconciler
from vm_tools.services.virsh import VirshClient

__all__ = [
    "CommandResult",
    "CommandRunner",
    "DiskImageService",
    "DomainSpec",
    "render_domain_xml",
    "replace_mac_address",
    "NetworkService",
    "NetworkReconciler",
    "VirshClient",
    "VMManager",
    "CreateResult",
    "DeleteResult",
    "CloneResult",
    "OptimizationReport",
]
