"""
Small helpers for ids and content hashes.
"""

from __future__ import annotations

import secrets
import time

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    """Signed base-36 rendering (``-`` prefix for negatives)."""
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_DIGITS[rem])
    return sign + "".join(reversed(out))


def rolling_hash(text: str) -> str:
    """
    32-bit rolling hash of ``text`` as base-36.

    ``h = h * 31 + code`` over UTF-16 code units, wrapped to a signed 32-bit
    integer after every step.
    """
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = (h * 31 + code) & 0xFFFFFFFF
        if h >= 0x80000000:
            h -= 0x100000000
    return to_base36(h)


def generate_bot_id() -> str:
    """Random base-36 token followed by the base-36 millisecond timestamp."""
    return to_base36(secrets.randbits(52)) + to_base36(int(time.time() * 1000))
