"""Room naming shared with the reservation backend."""

from __future__ import annotations

import string

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def string_hash(text: str) -> int:
    """
    32-bit rolling hash over UTF-16 code units (h = h * 31 + c)

    Must stay bit-for-bit identical to the backend's countdown room hash.
    """
    encoded = text.encode("utf-16-le")
    result = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        result = _to_int32((result << 5) - result + code_unit)
    return result


def room_for_user_agent(user_agent: str) -> str:
    """Room the reservation backend uses for a client's hold countdown"""
    return f"hold:{_base36(abs(string_hash(user_agent or '')))}"
