# SPDX-License-Identifier: MIT
"""Byte size units used for size limits."""
from __future__ import annotations

import re
from typing import Union

# Decimal units
KB = 1_000
MB = 1_000 * KB
GB = 1_000 * MB

# Binary units
KiB = 1_024
MiB = 1_024 * KiB
GiB = 1_024 * MiB

UNITS = {
    "": 1,
    "B": 1,
    "KB": KB,
    "MB": MB,
    "GB": GB,
    "KIB": KiB,
    "MIB": MiB,
    "GIB": GiB,
}

_SIZE = re.compile(r"^\s*(-?\d+)\s*([A-Za-z]*)\s*$")


def parse_size(value: Union[int, str]) -> int:
    """Turn ``"10MiB"``, ``"500 KB"`` or ``1024`` into a byte count."""
    if isinstance(value, bool):
        raise ValueError(f"invalid size {value!r}")
    if isinstance(value, int):
        return value
    match = _SIZE.match(str(value))
    if not match or match.group(2).upper() not in UNITS:
        raise ValueError(f"invalid size {value!r}; expected e.g. 1024, '500KB' or '10MiB'")
    return int(match.group(1)) * UNITS[match.group(2).upper()]


__all__ = ["KB", "MB", "GB", "KiB", "MiB", "GiB", "UNITS", "parse_size"]
