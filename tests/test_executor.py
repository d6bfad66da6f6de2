"""Command execution and the single escalated retry."""

from __future__ import annotations

import subprocess

import pytest

import vm_tools.services.executor as executor
from vm_tools.errors import OperationTimeoutError, ResourceUnavailableError
from vm_tools.services.executor import CommandRunner
from vm_tools.services.virsh import VirshClient


class _Proc:
    def __init__(self, returncode: int, stdout: str = "", stderr: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def _script(monkeypatch, *answers):
    """Make subprocess.run answer in order; returns the recorded argv lists."""
    calls: list[list[str]] = []
    queue = list(answers)

    def fake_run(argv, **kwargs):
        calls.append(argv)
        answer = queue.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    monkeypatch.setattr(executor.subprocess, "run", fake_run)
    return calls


@pytest.fixture(autouse=True)
def _unprivileged(monkeypatch):
    monkeypatch.setattr(executor.os, "geteuid", lambda: 1000)


def test_success_is_not_retried(monkeypatch):
    calls = _script(monkeypatch, _Proc(0, "ok\n"))

    result = CommandRunner().run(["virsh", "list"])

    assert result.ok
    assert result.stdout == "ok\n"
    assert result.escalated is False
    assert calls == [["virsh", "list"]]


def test_failure_is_retried_once_with_escalation(monkeypatch):
    calls = _script(monkeypatch, _Proc(1, "", "permission denied"), _Proc(1, "", "still failing"))

    result = CommandRunner().run(["virsh", "start", "web"])

    assert calls == [["virsh", "start", "web"], ["sudo", "-n", "virsh", "start", "web"]]
    assert result.escalated is True
    assert result.stderr == "still failing"
    assert result.args == ("virsh", "start", "web")


def test_escalated_retry_can_succeed(monkeypatch):
    _script(monkeypatch, _Proc(1, "", "denied"), _Proc(0, "started"))

    result = CommandRunner().run(["virsh", "start", "web"])

    assert result.ok
    assert result.escalated


def test_no_retry_when_root(monkeypatch):
    monkeypatch.setattr(executor.os, "geteuid", lambda: 0)
    calls = _script(monkeypatch, _Proc(1, "", "boom"))

    result = CommandRunner().run(["virsh", "start", "web"])

    assert not result.ok
    assert len(calls) == 1


def test_no_retry_when_escalation_disabled(monkeypatch):
    calls = _script(monkeypatch, _Proc(1, "", "boom"))

    CommandRunner(escalation_prefix=()).run(["virsh", "start", "web"])

    assert len(calls) == 1


def test_no_retry_when_caller_opts_out(monkeypatch):
    calls = _script(monkeypatch, _Proc(1, "", "boom"))

    CommandRunner().run(["ip", "-o", "link"], escalate=False)

    assert len(calls) == 1


def test_missing_escalation_binary_returns_original_failure(monkeypatch):
    _script(monkeypatch, _Proc(1, "", "denied"), FileNotFoundError("sudo"))

    result = CommandRunner().run(["virsh", "start", "web"])

    assert result.stderr == "denied"
    assert result.escalated is False


def test_missing_command_raises_resource_unavailable(monkeypatch):
    _script(monkeypatch, FileNotFoundError("qemu-img"))

    with pytest.raises(ResourceUnavailableError, match="qemu-img"):
        CommandRunner().run(["qemu-img", "info", "x"])


def test_timeout_raises(monkeypatch):
    _script(monkeypatch, subprocess.TimeoutExpired(["virsh", "list"], 5))

    with pytest.raises(OperationTimeoutError):
        CommandRunner(timeout=5).run(["virsh", "list"])


def test_refused_escalation_keeps_the_original_error(monkeypatch):
    _script(
        monkeypatch,
        _Proc(1, "", "error: Domain not found: no domain with matching name 'demo'\n"),
        _Proc(1, "", "sudo: a password is required\n"),
    )

    result = CommandRunner().run(["virsh", "dominfo", "demo"])

    assert "Domain not found" in result.stderr
    assert result.escalated is False


def test_missing_domain_is_detected_when_sudo_refuses(monkeypatch):
    _script(
        monkeypatch,
        _Proc(1, "", "error: failed to get domain 'demo'\nerror: Domain not found\n"),
        _Proc(1, "", "sudo: a password is required\n"),
    )

    assert VirshClient(CommandRunner()).domain_exists("demo") is False


def test_already_active_network_is_detected_when_sudo_refuses(monkeypatch):
    _script(
        monkeypatch,
        _Proc(1, "", "error: Requested operation is not valid: network is already active\n"),
        _Proc(1, "", "sudo: a password is required\n"),
    )

    assert VirshClient(CommandRunner()).start_network("lab") is False
