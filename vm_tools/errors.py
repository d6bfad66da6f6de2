"""Error types for VM Tools.

Every failure that reaches the caller is a :class:`VMError` carrying an
:class:`ErrorKind` tag. Failures reported by ``virsh`` are classified from
their stderr text through :data:`STDERR_PATTERNS`. That classification is best
effort: virsh messages are not a stable interface, so nothing that must be
correct may depend on a specific kind being detected. Unmatched text always
falls back to :class:`ControlPlaneError`.
"""

from enum import Enum


class ErrorKind(Enum):
    """Error classification."""

    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    ALREADY_RUNNING = "already_running"
    NOT_RUNNING = "not_running"
    INVALID_STATE = "invalid_state"
    CONTROL_PLANE = "control_plane"
    RESOURCE_UNAVAILABLE = "resource_unavailable"
    NETWORK = "network"
    TIMEOUT = "timeout"
    SECURITY = "security"
    INVALID_INPUT = "invalid_input"


class VMError(Exception):
    """Base error for all VM operations."""

    kind: ErrorKind = ErrorKind.CONTROL_PLANE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(VMError):
    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(VMError):
    kind = ErrorKind.ALREADY_EXISTS


class AlreadyRunningError(VMError):
    kind = ErrorKind.ALREADY_RUNNING


class NotRunningError(VMError):
    kind = ErrorKind.NOT_RUNNING


class InvalidStateError(VMError):
    kind = ErrorKind.INVALID_STATE


class ControlPlaneError(VMError):
    """Opaque failure reported by virsh or the image utility."""

    kind = ErrorKind.CONTROL_PLANE


class ResourceUnavailableError(VMError):
    kind = ErrorKind.RESOURCE_UNAVAILABLE


class NetworkError(VMError):
    kind = ErrorKind.NETWORK


class OperationTimeoutError(VMError):
    kind = ErrorKind.TIMEOUT


class SecurityError(VMError):
    """Rejected identifier or path."""

    kind = ErrorKind.SECURITY


class InvalidInputError(VMError):
    kind = ErrorKind.INVALID_INPUT


ERROR_CLASSES: dict[ErrorKind, type[VMError]] = {
    cls.kind: cls
    for cls in (
        NotFoundError,
        AlreadyExistsError,
        AlreadyRunningError,
        NotRunningError,
        InvalidStateError,
        ControlPlaneError,
        ResourceUnavailableError,
        NetworkError,
        OperationTimeoutError,
        SecurityError,
        InvalidInputError,
    )
}

# Checked in order, first match wins. Lowercase substrings.
STDERR_PATTERNS: list[tuple[str, ErrorKind]] = [
    ("domain not found", ErrorKind.NOT_FOUND),
    ("network not found", ErrorKind.NOT_FOUND),
    ("failed to get domain", ErrorKind.NOT_FOUND),
    ("failed to get network", ErrorKind.NOT_FOUND),
    ("not found", ErrorKind.NOT_FOUND),
    ("already active", ErrorKind.ALREADY_RUNNING),
    ("domain is already running", ErrorKind.ALREADY_RUNNING),
    ("not running", ErrorKind.NOT_RUNNING),
    ("domain is not active", ErrorKind.NOT_RUNNING),
    ("already exists", ErrorKind.ALREADY_EXISTS),
]


def classify_stderr(stderr: str) -> ErrorKind | None:
    """Map virsh stderr text to an error kind, or None when nothing matches."""
    text = stderr.lower()
    for pattern, kind in STDERR_PATTERNS:
        if pattern in text:
            return kind
    return None


def error_from_stderr(stderr: str, action: str) -> VMError:
    """Build a classified error for a failed control-plane command."""
    detail = stderr.strip() or "no error output"
    kind = classify_stderr(stderr) or ErrorKind.CONTROL_PLANE
    return ERROR_CLASSES[kind](f"Failed to {action}: {detail}")
