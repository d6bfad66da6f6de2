"""Classification of virsh stderr text."""

from __future__ import annotations

import pytest

from vm_tools.errors import (
    AlreadyRunningError,
    ControlPlaneError,
    ErrorKind,
    NotFoundError,
    NotRunningError,
    classify_stderr,
    error_from_stderr,
)


@pytest.mark.parametrize(
    ("stderr", "kind"),
    [
        (
            "error: failed to get domain 'ghost'\n"
            "error: Domain not found: no domain with matching name 'ghost'",
            ErrorKind.NOT_FOUND,
        ),
        (
            "error: failed to get network 'lab'\n"
            "error: Network not found: no network with matching name 'lab'",
            ErrorKind.NOT_FOUND,
        ),
        ("error: Failed to start domain 'web'\nerror: Requested operation is not valid: domain is already active",
         ErrorKind.ALREADY_RUNNING),
        ("error: Failed to start network lab\nerror: network is already active", ErrorKind.ALREADY_RUNNING),
        ("error: Failed to shutdown domain 'db'\nerror: Requested operation is not valid: domain is not running",
         ErrorKind.NOT_RUNNING),
        ("error: Failed to define domain\nerror: operation failed: domain 'web' already exists with uuid x",
         ErrorKind.ALREADY_EXISTS),
        ("error: failed to connect to the hypervisor", None),
        ("", None),
    ],
)
def test_classify_literal_stderr(stderr, kind):
    assert classify_stderr(stderr) == kind


def test_error_from_stderr_builds_specific_classes():
    assert isinstance(error_from_stderr("error: Domain not found", "start VM 'x'"), NotFoundError)
    assert isinstance(error_from_stderr("domain is already active", "start VM 'x'"), AlreadyRunningError)
    assert isinstance(error_from_stderr("domain is not running", "shut down VM 'x'"), NotRunningError)


def test_unmatched_stderr_is_opaque_control_plane_error():
    err = error_from_stderr("  something odd happened \n", "define VM")

    assert isinstance(err, ControlPlaneError)
    assert err.kind == ErrorKind.CONTROL_PLANE
    assert err.message == "Failed to define VM: something odd happened"


def test_empty_stderr_still_has_message():
    assert error_from_stderr("", "undefine VM 'x'").message == "Failed to undefine VM 'x': no error output"
