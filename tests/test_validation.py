"""Unit tests for input validation."""

from __future__ import annotations

import pytest

from vm_tools.errors import InvalidInputError, SecurityError
from vm_tools.utils.validation import (
    safe_child_path,
    validate_cpus,
    validate_disk_size,
    validate_memory,
    validate_vm_name,
)


@pytest.mark.parametrize("name", ["web-01", "db_2", "a", "A" * 64])
def test_accepts_valid_names(name):
    assert validate_vm_name(name) == name


@pytest.mark.parametrize("name", ["../etc", "a/b", "a\\b", "x..y"])
def test_traversal_names_raise_security_error(name):
    with pytest.raises(SecurityError):
        validate_vm_name(name)


@pytest.mark.parametrize("name", ["", "   ", "a" * 65, "-abc", "abc-", "web 01", "web.01", "wéb", "web\n", "abc-\n"])
def test_malformed_names_raise_invalid_input(name):
    with pytest.raises(InvalidInputError):
        validate_vm_name(name)


def test_size_limits():
    validate_memory(128)
    validate_cpus(1)
    validate_disk_size(1)

    with pytest.raises(InvalidInputError):
        validate_memory(64)
    with pytest.raises(InvalidInputError):
        validate_cpus(0)
    with pytest.raises(InvalidInputError):
        validate_cpus(257)
    with pytest.raises(InvalidInputError):
        validate_disk_size(10241)


def test_safe_child_path_stays_inside_directory(tmp_path):
    path = safe_child_path(tmp_path, "demo", ".qcow2")

    assert path == tmp_path.resolve() / "demo.qcow2"


def test_safe_child_path_rejects_escaping_names(tmp_path):
    with pytest.raises(SecurityError):
        safe_child_path(tmp_path, "../demo", ".qcow2")


def test_safe_child_path_rejects_symlinked_escape(tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    images = tmp_path / "images"
    images.mkdir()
    (images / "demo.qcow2").symlink_to(outside / "demo.qcow2")

    with pytest.raises(SecurityError):
        safe_child_path(images, "demo", ".qcow2")
