"""Placeholder tokens and the ids inside them.

Two grammars are in use:

    positional   [LABEL_HASH]           e.g. [PERSON_3FA94C1B]
    semantic     [LABEL_ID:VARIANT]     e.g. [PERSON_A1B2C3:FIRST]

HASH and ID are upper-case hex, so a placeholder can never be mistaken
for the label-only text around it.
"""

from __future__ import annotations
import hashlib
import re
import secrets
import unicodedata
from typing import Mapping

VARIANTS = ("FULL", "FIRST", "LAST")

_KEY = r"[A-Z][A-Z0-9_]*_[A-F0-9]{2,}"
_VARIANT = "|".join(VARIANTS)

POSITIONAL_TOKEN = re.compile(r"\[(" + _KEY + r")\]")
SEMANTIC_TOKEN = re.compile(r"\[(" + _KEY + "):(" + _VARIANT + r")\]")
# Either form; used to keep substitutions out of existing placeholders
ANY_TOKEN = re.compile(r"\[" + _KEY + "(?::(?:" + _VARIANT + r"))?\]")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def _sha(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest().upper()


def stable_id(value: str, length: int = 6) -> str:
    """Short deterministic hex id for a value (at least 2 chars)."""
    return _sha(value)[:max(2, length)]


def normalize_for_key(value: str) -> str:
    """Fold a value to its canonical form: no accents, lower-case, words only."""
    folded = unicodedata.normalize("NFKD", value)
    folded = "".join(c for c in folded if not unicodedata.combining(c))
    return _NON_ALNUM.sub(" ", folded.lower()).strip()


def make_token(
    label: str,
    text: str,
    *,
    deterministic: bool = True,
    taken: Mapping[str, str] | None = None,
) -> str:
    """Build a positional token (without brackets) for ``text``.

    Deterministic tokens hash the exact text, so the same value always
    gets the same token.  Random tokens are fresh per call.  ``taken``
    maps tokens already issued to their values; a token that would
    collide with a different value is lengthened (deterministic) or
    redrawn (random).
    """
    taken = taken or {}
    if deterministic:
        digest = _sha(text)
        for length in range(8, len(digest) + 1, 2):
            token = f"{label}_{digest[:length]}"
            if taken.get(token, text) == text:
                return token
        raise ValueError(f"hash collision for {label} value")  # exhausted sha256

    while True:
        token = f"{label}_{secrets.token_hex(4).upper()}"
        if token not in taken:
            return token


def positional_placeholder(token: str) -> str:
    return f"[{token}]"


def semantic_placeholder(key: str, variant: str = "FULL") -> str:
    if variant not in VARIANTS:
        raise ValueError(f"unknown placeholder variant {variant!r}")
    return f"[{key}:{variant}]"
