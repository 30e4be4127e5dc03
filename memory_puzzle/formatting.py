# memory_puzzle/formatting.py
from __future__ import annotations

import math
from typing import Sequence

KEYCAP_DIGITS = ("0️⃣", "1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣")
PLAIN_DIGITS = tuple("0123456789")
CLOCK_SEPARATOR = "🟰"


def _whole(value: float) -> int:
    if not math.isfinite(value):
        return 0
    return max(0, math.floor(value))


def to_ordinal_digits(value: float, min_width: int = 2, digits: Sequence[str] = KEYCAP_DIGITS) -> str:
    """Render a non-negative integer with one glyph per decimal digit, zero-padded."""
    raw = str(_whole(value)).rjust(max(0, min_width), "0")
    return "".join(digits[int(ch)] for ch in raw)


def to_clock_string(
    milliseconds: float,
    digits: Sequence[str] = KEYCAP_DIGITS,
    separator: str = CLOCK_SEPARATOR,
) -> str:
    total_seconds = _whole(milliseconds / 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{to_ordinal_digits(minutes, 2, digits)}{separator}{to_ordinal_digits(seconds, 2, digits)}"
