# ==================================================
# icon_cache/hashing.py
# ==================================================
from __future__ import annotations

MASK32 = 0xFFFFFFFF


def icon_name_hash(name: str | bytes) -> int:
    """Hash used to place icon names in the cache's buckets.

    ``h = h * 31 + byte`` over the UTF-8 bytes of the name, kept to an
    unsigned 32-bit value after every step.
    """
    if isinstance(name, str):
        name = name.encode("utf-8")
    h = 0
    for c in name:
        h = ((h << 5) - h + c) & MASK32
    return h
