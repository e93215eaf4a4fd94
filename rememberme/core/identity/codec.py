from __future__ import annotations

"""
Structured user identifiers: `PPCC-RRRR`.

- PP   partition. "00" is reserved for administrators; 01-99 are regular users.
- CC   check digits, a function of PP and RRRR.
- RRRR random body.

IMPORTANT:
The check digits are a corruption detector, not a MAC. The algorithm is public
and there are only 100 possible check values, so anyone can forge a valid
administrator identifier. Use `is_admin_identifier` to reject tampered or
truncated identifiers before branching UI on the embedded role; the
authoritative admin decision stays with the server.
"""

import random
import re
from typing import Any, Optional

ADMIN_PARTITION = "00"
USER_PARTITION_MIN = 1
USER_PARTITION_MAX = 99

WEIGHTS = (3, 7, 11, 13)

# [0-9] rather than \d: str patterns match any Unicode digit with \d.
_ID_RE = re.compile(r"([0-9]{2})([0-9]{2})-([0-9]{4})")

_system_rng = random.SystemRandom()


def checksum(partition: str, random_part: str) -> str:
    digits = [int(c) for c in f"{partition}{random_part}"]
    n = len(digits)

    # Luhn: every second digit from the right is doubled.
    luhn_sum = 0
    for i in range(n - 1, -1, -1):
        d = digits[i]
        if (n - i) % 2 == 0:
            d *= 2
            if d > 9:
                d -= 9
        luhn_sum += d

    weight_sum = sum(d * WEIGHTS[i % len(WEIGHTS)] for i, d in enumerate(digits))

    xor_result = 0
    for d in digits:
        xor_result ^= d

    return f"{(luhn_sum + weight_sum + xor_result) % 100:02d}"


def generate_identifier(is_admin: bool = False, *, rng: Optional[random.Random] = None) -> str:
    r = rng or _system_rng
    if is_admin:
        partition = ADMIN_PARTITION
    else:
        partition = f"{r.randint(USER_PARTITION_MIN, USER_PARTITION_MAX):02d}"
    random_part = f"{r.randint(0, 9999):04d}"
    return f"{partition}{checksum(partition, random_part)}-{random_part}"


def _parse(value: Any) -> Optional[re.Match]:
    if not isinstance(value, str):
        return None
    m = _ID_RE.fullmatch(value)
    if m is None:
        return None
    partition, check, random_part = m.groups()
    if checksum(partition, random_part) != check:
        return None
    return m


def validate_identifier(value: Any) -> bool:
    return _parse(value) is not None


def is_admin_identifier(value: Any) -> bool:
    m = _parse(value)
    return m is not None and m.group(1) == ADMIN_PARTITION


def get_partition(value: Any) -> Optional[str]:
    m = _parse(value)
    return m.group(1) if m else None


def get_check_digits(value: Any) -> Optional[str]:
    m = _parse(value)
    return m.group(2) if m else None


def get_random_part(value: Any) -> Optional[str]:
    m = _parse(value)
    return m.group(3) if m else None


def format_for_display(value: Any) -> str:
    m = _parse(value)
    if m is None:
        return "Invalid ID"
    prefix = "Admin" if m.group(1) == ADMIN_PARTITION else "User"
    return f"{prefix}-{value}"
