"""Per-VM advisory locking.

Create, delete and clone are multi-step sequences that the control plane
does not make atomic. Each holds a lock keyed by VM name for its whole
duration: a ``threading.Lock`` serializes callers in this process and an
``flock`` on ``<lock_dir>/<name>.lock`` serializes separate processes.
"""

import fcntl
import logging
import os
import threading
import time
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path

from vm_tools.config import LOCK_DIR, LOCK_TIMEOUT
from vm_tools.errors import OperationTimeoutError
from vm_tools.utils.validation import safe_child_path

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1


class NameLocks:
    """Keyed advisory locks, one per VM name."""

    def __init__(self, lock_dir: Path | None = LOCK_DIR, timeout: float = LOCK_TIMEOUT) -> None:
        self.lock_dir = lock_dir
        self.timeout = timeout
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _get_lock(self, name: str) -> threading.Lock:
        """Get or create the in-process lock for a name."""
        with self._guard:
            if name not in self._locks:
                self._locks[name] = threading.Lock()
            return self._locks[name]

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        """Hold the lock for ``name``, raising OperationTimeoutError if busy."""
        lock = self._get_lock(name)
        if not lock.acquire(timeout=self.timeout):
            raise OperationTimeoutError(
                f"Another operation on VM '{name}' is in progress"
            )
        try:
            fd = self._acquire_file(name)
            try:
                yield
            finally:
                if fd is not None:
                    fcntl.flock(fd, fcntl.LOCK_UN)
                    os.close(fd)
        finally:
            lock.release()

    @contextmanager
    def hold_many(self, *names: str) -> Iterator[None]:
        """Hold several names at once, always acquired in sorted order."""
        with ExitStack() as stack:
            for name in sorted(set(names)):
                stack.enter_context(self.hold(name))
            yield

    def _acquire_file(self, name: str) -> int | None:
        """Take the cross-process lock. None when no lock dir is usable."""
        if self.lock_dir is None:
            return None

        try:
            self.lock_dir.mkdir(parents=True, exist_ok=True)
            path = safe_child_path(self.lock_dir, name, ".lock")
            fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            logger.warning("Lock directory %s unusable, locking in-process only: %s", self.lock_dir, e)
            return None

        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return fd
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    raise OperationTimeoutError(
                        f"Another process holds the lock for VM '{name}'"
                    ) from None
                time.sleep(_POLL_INTERVAL)
