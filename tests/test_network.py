"""Host bridge discovery."""

from __future__ import annotations

from tests.fakes import ip_link
from vm_tools.models import NetworkDefinition
from vm_tools.services import NetworkService


def _ip(runner, *names: str) -> None:
    runner.on("ip", "-o", "link", "show", "type", "bridge", stdout=ip_link(*names))


def test_union_of_all_sources_in_priority_order(runner, sys_net):
    _ip(runner, "br0")
    (sys_net / "virbr1").mkdir()
    (sys_net / "lanbr").mkdir()
    (sys_net / "lanbr" / "bridge").mkdir()
    (sys_net / "eth0").mkdir()
    networks = [NetworkDefinition("default", active=True, bridge="virbr0")]

    discovery = NetworkService(runner, sys_class_net=sys_net).discover_bridges(networks)

    assert discovery.bridges == ("br0", "lanbr", "virbr1", "virbr0")
    assert not discovery.partial


def test_duplicates_are_reported_once(runner, sys_net):
    _ip(runner, "virbr0")
    (sys_net / "virbr0").mkdir()

    discovery = NetworkService(runner, sys_class_net=sys_net).discover_bridges(
        [NetworkDefinition("default", active=True, bridge="virbr0")]
    )

    assert discovery.bridges == ("virbr0",)


def test_failed_strategies_mark_result_partial(runner, tmp_path):
    service = NetworkService(runner, sys_class_net=tmp_path / "missing")

    discovery = service.discover_bridges([NetworkDefinition("default", active=False, bridge="virbr0")])

    assert discovery.bridges == ("virbr0",)
    assert discovery.partial
    assert len(discovery.warnings) == 2


def test_ip_is_never_escalated(runner, sys_net):
    seen = []
    original = runner.run

    def run(args, escalate=True, timeout=None):
        seen.append(escalate)
        return original(args, escalate=escalate, timeout=timeout)

    runner.run = run
    _ip(runner)

    NetworkService(runner, sys_class_net=sys_net).discover_bridges()

    assert seen == [False]
