"""Regex layer — deterministic patterns for structured Australian PII.

Numeric identifiers are gated on their checksum: a regex hit whose
checksum fails is dropped here and never reaches the reconciler.  Looser
patterns (email, phone, DOB, street address, company names) have no
checksum and are emitted as-is.  All matches are returned; overlaps are
resolved later by the reconciler.
"""

from __future__ import annotations
import re
from typing import Callable

from .types import DetectionSource, Entity
from .validators import is_valid_abn, is_valid_medicare, is_valid_tfn, luhn_valid

_STATES = r"(?:NSW|QLD|VIC|WA|SA|TAS|ACT|NT)"
_STREET_TYPES = (
    r"(?:Street|St|Road|Rd|Avenue|Ave|Boulevard|Blvd|Close|Lane|Way|Place|"
    r"Cres|Court|Ct|Drive|Dr|Parade)"
)

# Each pattern: (label, compiled_regex, checksum or None)
_PATTERNS: list[tuple[str, re.Pattern, Callable[[str], bool] | None]] = [
    ("ABN", re.compile(r"(?<!\d)\d{2}\s?\d{3}\s?\d{3}\s?\d{3}(?!\d)"), is_valid_abn),
    ("TFN", re.compile(r"(?<!\d)\d{3}\s?\d{3}\s?\d{3}(?!\d)"), is_valid_tfn),
    ("MEDICARE", re.compile(r"(?<!\d)\d{4}\s?\d{5}\s?\d(?!\d)"), is_valid_medicare),

    # Card numbers: 12–19 digits, optional space/dash separators
    ("CREDIT_CARD", re.compile(r"(?<!\d)\d(?:[ \-]?\d){11,18}(?!\d)"),
     lambda s: luhn_valid(s.replace("-", ""))),

    ("EMAIL", re.compile(
        r"\b[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,}\b", re.IGNORECASE
    ), None),

    # Australian landline / mobile, with or without +61
    ("PHONE", re.compile(
        r"(?<![\w+])(?:\+?61\s?|0)[2-478]\s?\d{2,4}\s?\d{3}\s?\d{3}\b"
    ), None),

    ("DOB", re.compile(
        r"\b(?:0?[1-9]|[12]\d|3[01])/(?:0?[1-9]|1[0-2])/(?:19|20)\d{2}\b"
    ), None),

    ("ADDRESS", re.compile(
        rf"\b\d+\s+[A-Z][a-zA-Z]+\s+{_STREET_TYPES}\b.*?{_STATES}\s*\d{{4}}\b"
    ), None),

    ("ORG", re.compile(
        r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+"
        r"(?:Pty\s+Ltd|Ltd|Trust|Fund|Super|Superannuation|Bank|Council|Department)\b"
    ), None),
]

# AFSL / AR numbers only count when a licence cue precedes them
_LICENCE = re.compile(
    r"\b(AFSL|A\.?F\.?S\.?L\.?|Authorised\s+Representative(?:\s+Number)?|AR)"
    r"\s*[:#\-]?\s*(\d{6,8})\b",
    re.IGNORECASE,
)


def scan_regex(text: str) -> list[Entity]:
    """Run all structured patterns against text.  Returns every passing match."""
    matches: list[Entity] = []
    for label, pattern, checksum in _PATTERNS:
        for m in pattern.finditer(text):
            if checksum is not None and not checksum(m.group()):
                continue
            matches.append(Entity(
                text=m.group(),
                label=label,
                start=m.start(),
                end=m.end(),
                source=DetectionSource.REGEX,
            ))

    for m in _LICENCE.finditer(text):
        cue = m.group(1).replace(".", "").upper()
        matches.append(Entity(
            text=m.group(2),
            label="AFSL" if cue.startswith("AFSL") else "AR",
            start=m.start(2),
            end=m.end(2),
            source=DetectionSource.REGEX,
        ))

    return sorted(matches, key=lambda e: (e.start, -e.length))
