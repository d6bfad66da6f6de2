"""Disk image operations through ``qemu-img``."""

import logging
from pathlib import Path

from vm_tools.config import DEFAULT_DISK_FORMAT, QEMU_IMG
from vm_tools.errors import ControlPlaneError, VMError
from vm_tools.models import ImageInfo
from vm_tools.services.executor import CommandRunner
from vm_tools.services.parsers import parse_image_info

logger = logging.getLogger(__name__)


class DiskImageService:
    """Create, copy, inspect and grow disk images."""

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    def _run(self, action: str, path: Path | str, *args: str) -> str:
        result = self.runner.run([QEMU_IMG, *args])
        if not result.ok:
            raise ControlPlaneError(f"Failed to {action} {path}: {result.stderr.strip()}")
        return result.stdout

    def create(self, path: Path, size_gb: int, fmt: str = DEFAULT_DISK_FORMAT) -> None:
        """Create an empty image of ``size_gb`` gigabytes."""
        logger.info("Creating %s disk %s (%dG)", fmt, path, size_gb)
        self._run("create disk", path, "create", "-f", fmt, str(path), f"{size_gb}G")

    def convert(self, source: Path | str, target: Path) -> None:
        """Copy ``source`` into a standalone qcow2 image at ``target``."""
        logger.info("Copying disk %s to %s", source, target)
        self._run(
            "copy disk", source,
            "convert", "-f", DEFAULT_DISK_FORMAT, "-O", DEFAULT_DISK_FORMAT,
            str(source), str(target),
        )

    def info(self, path: Path | str) -> ImageInfo:
        """Get format and sizes of an image."""
        stdout = self._run("inspect disk", path, "info", "--output=json", str(path))
        info = parse_image_info(stdout)
        if info is None:
            raise ControlPlaneError(f"Failed to inspect disk {path}: unreadable qemu-img output")
        return info

    def try_info(self, path: Path | str) -> ImageInfo | None:
        """Like :meth:`info`, but None when the image cannot be inspected."""
        try:
            return self.info(path)
        except VMError as e:
            logger.debug("No image info for %s: %s", path, e)
            return None

    def resize(self, path: Path, size_gb: int) -> None:
        """Grow an image to ``size_gb`` gigabytes."""
        logger.info("Resizing disk %s to %dG", path, size_gb)
        self._run("resize disk", path, "resize", str(path), f"{size_gb}G")
