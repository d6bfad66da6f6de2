"""MAC address generation."""

import random
from collections.abc import Iterable

from vm_tools.config import MAC_PREFIX


def generate_mac_address(
    exclude: Iterable[str] = (),
    prefix: str = MAC_PREFIX,
    rng: random.Random | None = None,
) -> str:
    """Generate a locally administered MAC address under ``prefix``.

    Addresses in ``exclude`` (compared case-insensitively) are never returned.
    """
    rng = rng or random.SystemRandom()
    taken = {mac.lower() for mac in exclude}
    while True:
        suffix = ":".join(f"{rng.randrange(256):02x}" for _ in range(3))
        mac = f"{prefix}:{suffix}".lower()
        if mac not in taken:
            return mac


def is_generated_mac(mac: str, prefix: str = MAC_PREFIX) -> bool:
    """Check whether ``mac`` lies in the range we generate addresses from."""
    return mac.lower().startswith(prefix.lower() + ":")
