"""Domain descriptor rendering and MAC rewriting."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

from vm_tools.services.descriptor import DomainSpec, render_domain_xml, replace_mac_address


def _spec(**overrides) -> DomainSpec:
    values = dict(
        name="web",
        uuid="0b6e3a52-7d4f-4c1e-9a55-2f0c9d1e8a10",
        memory_mb=4096,
        vcpus=4,
        disk_path=Path("/var/lib/libvirt/images/web.qcow2"),
        network="default",
        mac_address="52:54:00:12:34:56",
    )
    values.update(overrides)
    return DomainSpec(**values)


def test_rendered_descriptor_is_well_formed():
    root = ET.fromstring(render_domain_xml(_spec()))

    assert root.get("type") == "kvm"
    assert root.find("memory").get("unit") == "MiB"
    assert root.findtext("memory") == root.findtext("currentMemory") == "4096"
    assert root.findtext("vcpu") == "4"
    assert [b.get("dev") for b in root.findall("./os/boot")] == ["hd", "cdrom"]
    assert root.find("./devices/graphics").get("listen") == "127.0.0.1"
    assert root.find("clock").get("offset") == "utc"


def test_extra_disks_and_install_media_get_their_own_targets():
    root = ET.fromstring(render_domain_xml(_spec(
        extra_disks=(Path("/images/web-1.qcow2"),),
        iso_path=Path("/srv/iso/install.iso"),
    )))

    disks = root.findall("./devices/disk[@device='disk']")
    assert [d.find("target").get("dev") for d in disks] == ["vda", "vdb"]
    cdrom = root.find("./devices/disk[@device='cdrom']")
    assert cdrom.find("source").get("file") == "/srv/iso/install.iso"
    assert cdrom.find("readonly") is not None


def test_values_are_escaped():
    root = ET.fromstring(render_domain_xml(_spec(disk_path=Path('/images/a"b&c.qcow2'))))

    assert root.find("./devices/disk/source").get("file") == '/images/a"b&c.qcow2'


def test_replace_mac_address_keeps_quote_style_and_ignores_case():
    xml = "<interface><mac address='52:54:00:AA:BB:CC'/></interface><mac address=\"52:54:00:aa:bb:cd\"/>"

    out = replace_mac_address(xml, "52:54:00:aa:bb:cc", "52:54:00:01:02:03")

    assert "<mac address='52:54:00:01:02:03'/>" in out
    assert '"52:54:00:aa:bb:cd"' in out


def test_replace_mac_address_without_match_is_a_no_op():
    xml = "<mac address='52:54:00:00:00:01'/>"

    assert replace_mac_address(xml, "52:54:00:00:00:02", "52:54:00:00:00:03") == xml


def test_replace_mac_address_can_limit_replacements():
    xml = "<mac address='52:54:00:11:22:33'/><mac address='52:54:00:11:22:33'/>"

    out = replace_mac_address(xml, "52:54:00:11:22:33", "52:54:00:01:02:03", count=1)

    assert out == "<mac address='52:54:00:01:02:03'/><mac address='52:54:00:11:22:33'/>"
