"""Checksum predicates for Australian identifiers and card numbers.

Every predicate strips whitespace first and returns False for anything
that is not the right number of digits.  They never raise.
"""

from __future__ import annotations
import re
from typing import Callable

_WS = re.compile(r"\s+")

_ABN_WEIGHTS = (10, 1, 3, 5, 7, 9, 11, 13, 15, 17, 19)
_TFN_WEIGHTS_8 = (10, 7, 8, 4, 6, 3, 5, 2)
_TFN_WEIGHTS_9 = (1, 4, 3, 7, 5, 8, 6, 9, 10)
_MEDICARE_WEIGHTS = (1, 3, 7, 9, 1, 3, 7, 9)


def _digits(raw: str, lengths: range | tuple[int, ...]) -> list[int] | None:
    if not isinstance(raw, str):
        return None
    s = _WS.sub("", raw)
    if len(s) not in lengths or not s.isascii() or not s.isdigit():
        return None
    return [int(c) for c in s]


def is_valid_abn(raw: str) -> bool:
    """ABN: 11 digits, first digit minus one, weighted sum divisible by 89."""
    d = _digits(raw, (11,))
    if d is None:
        return False
    d[0] -= 1
    return sum(n * w for n, w in zip(d, _ABN_WEIGHTS)) % 89 == 0


def is_valid_tfn(raw: str) -> bool:
    """TFN: 8 or 9 digits, weighted sum divisible by 11."""
    d = _digits(raw, (8, 9))
    if d is None:
        return False
    weights = _TFN_WEIGHTS_9 if len(d) == 9 else _TFN_WEIGHTS_8
    return sum(n * w for n, w in zip(d, weights)) % 11 == 0


def is_valid_medicare(raw: str) -> bool:
    """Medicare: 10 or 11 digits, ninth digit is the check digit."""
    d = _digits(raw, (10, 11))
    if d is None:
        return False
    total = sum(n * w for n, w in zip(d[:8], _MEDICARE_WEIGHTS))
    return total % 10 == d[8]


def luhn_valid(raw: str) -> bool:
    """Luhn checksum over 12–19 digits."""
    d = _digits(raw, range(12, 20))
    if d is None:
        return False
    total = 0
    for i, n in enumerate(reversed(d)):
        if i % 2:
            n *= 2
            if n > 9:
                n -= 9
        total += n
    return total % 10 == 0


# Label → predicate, for the detectors that gate on a checksum
VALIDATORS: dict[str, Callable[[str], bool]] = {
    "ABN": is_valid_abn,
    "TFN": is_valid_tfn,
    "MEDICARE": is_valid_medicare,
    "CREDIT_CARD": luhn_valid,
}
