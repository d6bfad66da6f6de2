"""Input validation.

VM names end up in image paths and lock file names, so name validation is a
hard precondition of every operation that takes one.
"""

import re
from pathlib import Path

from vm_tools.config import (
    MAX_DISK_GB,
    MAX_NAME_LENGTH,
    MAX_RAM_MB,
    MAX_VCPUS,
    MIN_DISK_GB,
    MIN_RAM_MB,
    MIN_VCPUS,
)
from vm_tools.errors import InvalidInputError, SecurityError

_NAME_CHARS = re.compile(r"[A-Za-z0-9_-]+")


def validate_vm_name(name: str) -> str:
    """Validate a VM name and return it unchanged.

    Raises:
        SecurityError: the name contains path traversal sequences.
        InvalidInputError: the name is empty, too long, uses characters
            other than ASCII letters, digits, hyphen and underscore, or
            starts or ends with a hyphen.
    """
    if not name or not name.strip():
        raise InvalidInputError("VM name cannot be empty")

    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInputError(f"VM name too long (max {MAX_NAME_LENGTH} characters)")

    if ".." in name or "/" in name or "\\" in name:
        raise SecurityError(
            f"VM name contains characters that could lead to path traversal: {name!r}"
        )

    if not _NAME_CHARS.fullmatch(name):
        raise InvalidInputError(
            "VM name can only contain alphanumeric characters, hyphens, and underscores"
        )

    if name.startswith("-") or name.endswith("-"):
        raise InvalidInputError("VM name cannot start or end with a hyphen")

    return name


def validate_memory(memory_mb: int) -> None:
    """Validate memory size in MB."""
    if memory_mb < MIN_RAM_MB:
        raise InvalidInputError(f"Memory must be at least {MIN_RAM_MB}MB")
    if memory_mb > MAX_RAM_MB:
        raise InvalidInputError("Memory cannot exceed 1TB")


def validate_cpus(vcpus: int) -> None:
    """Validate vCPU count."""
    if vcpus < MIN_VCPUS:
        raise InvalidInputError(f"CPU count must be at least {MIN_VCPUS}")
    if vcpus > MAX_VCPUS:
        raise InvalidInputError(f"CPU count cannot exceed {MAX_VCPUS}")


def validate_disk_size(size_gb: int) -> None:
    """Validate disk size in GB."""
    if size_gb < MIN_DISK_GB:
        raise InvalidInputError(f"Disk size must be at least {MIN_DISK_GB}GB")
    if size_gb > MAX_DISK_GB:
        raise InvalidInputError("Disk size cannot exceed 10TB")


def safe_child_path(directory: Path, name: str, suffix: str) -> Path:
    """Build ``directory/<name><suffix>`` from a validated name.

    The resolved path is re-checked to stay inside ``directory``.
    """
    validate_vm_name(name)
    base = directory.resolve()
    path = (base / f"{name}{suffix}").resolve()
    if path.parent != base:
        raise SecurityError(f"Path escapes {base}: {path}")
    return path
