"""Scripted stand-in for CommandRunner and canned command output."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from vm_tools.services.executor import CommandResult

URI = "test:///fake"

Response = CommandResult | Callable[[tuple[str, ...]], CommandResult]


class FakeRunner:
    """Answers commands from a table keyed by the exact argv.

    Registering the same argv several times queues the answers; the last one
    repeats. Unregistered commands fail with ``unexpected command``.
    """

    def __init__(self) -> None:
        self.responses: dict[tuple[str, ...], list[Response]] = {}
        self.prefixes: list[tuple[tuple[str, ...], Callable[[tuple[str, ...]], CommandResult]]] = []
        self.calls: list[tuple[str, ...]] = []

    def on(self, *argv: str, stdout: str = "", stderr: str = "", returncode: int = 0) -> FakeRunner:
        result = CommandResult(tuple(argv), returncode, stdout, stderr)
        self.responses.setdefault(tuple(argv), []).append(result)
        return self

    def on_call(self, *argv: str, handler: Callable[[tuple[str, ...]], CommandResult]) -> FakeRunner:
        self.responses.setdefault(tuple(argv), []).append(handler)
        return self

    def on_prefix(self, *prefix: str, handler: Callable[[tuple[str, ...]], CommandResult]) -> FakeRunner:
        """Answer every command starting with ``prefix`` that has no exact entry."""
        self.prefixes.append((tuple(prefix), handler))
        return self

    def virsh(self, *args: str, **kwargs) -> FakeRunner:
        return self.on("virsh", "-c", URI, *args, **kwargs)

    def capture_defines(self) -> list[str]:
        """Accept ``virsh define`` and record the XML of each defined file."""
        defined: list[str] = []

        def handler(argv: tuple[str, ...]) -> CommandResult:
            defined.append(Path(argv[-1]).read_text())
            return CommandResult(argv, 0, "Domain defined\n", "")

        self.on_prefix("virsh", "-c", URI, "define", handler=handler)
        return defined

    def run(self, args, escalate: bool = True, timeout: float | None = None) -> CommandResult:
        argv = tuple(args)
        self.calls.append(argv)
        queue = self.responses.get(argv)
        if not queue:
            for prefix, handler in self.prefixes:
                if argv[: len(prefix)] == prefix:
                    return handler(argv)
            return CommandResult(argv, 1, "", f"unexpected command: {' '.join(argv)}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(response):
            return response(argv)
        return response

    def virsh_calls(self, subcommand: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[:3] == ("virsh", "-c", URI) and c[3:4] == (subcommand,)]


def domain_list(*rows: tuple[str, str, str]) -> str:
    lines = [" Id   Name           State", "-" * 36]
    lines.extend(f" {id_:<4} {name:<14} {state}" for id_, name, state in rows)
    return "\n".join(lines) + "\n"


def dominfo(name: str, uuid: str, state: str = "shut off", memory_kb: int = 2097152, vcpus: int = 2) -> str:
    return (
        f"Id:             {'1' if state == 'running' else '-'}\n"
        f"Name:           {name}\n"
        f"UUID:           {uuid}\n"
        "OS Type:        hvm\n"
        f"State:          {state}\n"
        f"CPU(s):         {vcpus}\n"
        f"Max memory:     {memory_kb} KiB\n"
        f"Used memory:    {memory_kb} KiB\n"
        "Persistent:     yes\n"
        "Autostart:      disable\n"
        "Managed save:   no\n"
        "Security model: apparmor\n"
    )


def domiflist(*rows: tuple[str, str, str, str]) -> str:
    """Rows of (interface, type, source, mac)."""
    lines = [" Interface   Type      Source    Model    MAC", "-" * 64]
    lines.extend(f" {iface:<11} {type_:<9} {source:<9} virtio   {mac}" for iface, type_, source, mac in rows)
    return "\n".join(lines) + "\n"


def domblklist(*rows: tuple[str, str, str]) -> str:
    """Rows of (device, target, source)."""
    lines = [" Type   Device   Target   Source", "-" * 50]
    lines.extend(f" file   {device:<8} {target:<8} {source}" for device, target, source in rows)
    return "\n".join(lines) + "\n"


def net_list(*rows: tuple[str, bool]) -> str:
    lines = [" Name      State      Autostart   Persistent", "-" * 48]
    lines.extend(
        f" {name:<9} {'active' if active else 'inactive':<10} {'yes':<11} yes"
        for name, active in rows
    )
    return "\n".join(lines) + "\n"


def net_info(name: str, active: bool, bridge: str) -> str:
    return (
        f"Name:           {name}\n"
        "UUID:           8d3a5c3e-0000-4000-8000-000000000001\n"
        f"Active:         {'yes' if active else 'no'}\n"
        "Persistent:     yes\n"
        "Autostart:      yes\n"
        f"Bridge:         {bridge}\n"
    )


def ip_link(*bridges: str) -> str:
    return "".join(
        f"{i + 3}: {name}: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc noqueue state UP "
        f"mode DEFAULT group default qlen 1000\\    link/ether 52:54:00:aa:bb:{i:02x} brd ff:ff:ff:ff:ff:ff\n"
        for i, name in enumerate(bridges)
    )


def image_info(path: str, virtual_size: int = 21474836480, actual_size: int = 196624) -> str:
    return (
        "{\n"
        f'    "virtual-size": {virtual_size},\n'
        f'    "filename": "{path}",\n'
        '    "format": "qcow2",\n'
        f'    "actual-size": {actual_size},\n'
        '    "dirty-flag": false\n'
        "}\n"
    )


NOT_FOUND = "error: failed to get domain '{name}'\nerror: Domain not found: no domain with matching name '{name}'\n"
