"""Generated MAC addresses."""

from __future__ import annotations

import random
import re

from vm_tools.utils.mac import generate_mac_address, is_generated_mac


def test_generated_addresses_use_the_local_prefix():
    mac = generate_mac_address()

    assert re.fullmatch(r"52:54:00(:[0-9a-f]{2}){3}", mac)
    assert is_generated_mac(mac)


def test_excluded_addresses_are_skipped():
    first = generate_mac_address(rng=random.Random(7))

    again = generate_mac_address(exclude=[first.upper()], rng=random.Random(7))

    assert again != first


def test_foreign_addresses_are_not_ours():
    assert not is_generated_mac("00:16:3e:00:00:01")
