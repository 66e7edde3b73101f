"""Positional redaction — replace exact character ranges, right-to-left.

Usage:
    result = redact_positional(text, entities)
    print(result.text)       # "Call [PERSON_3FA94C1B] on [PHONE_0C1D22E9]"
    original = unredact_positional(result.text, result.mapping)

Offsets may be stale (the reconciler collapsed whitespace, or the
document was edited after detection).  Before each replacement the span
is checked against the entity text; on a mismatch the text is searched
for within a bounded window around the expected position.  Entities that
cannot be found are skipped and logged, never fatal.

Spans that overlap an accepted replacement are clipped to their uncovered
head, or merged with it when they reach past it, so matched text is never
left in clear.
"""

from __future__ import annotations
import logging
import re
from dataclasses import replace
from typing import Iterable, Mapping

from .placeholders import make_token, positional_placeholder
from .reconcile import coerce_entity
from .types import Entity, RedactionResult

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 64

_WS = re.compile(r"\s+")


def redact_positional(
    text: str,
    entities: Iterable[Entity],
    *,
    deterministic: bool = True,
    window: int = DEFAULT_WINDOW,
) -> RedactionResult:
    """Replace each entity span with a ``[LABEL_HASH]`` token.

    Args:
        text: Source document.
        entities: Reconciled entities.  Not mutated.
        deterministic: Hash the value for the token (stable across runs)
            instead of drawing a random one per occurrence.
        window: How far either side of the recorded span to search when
            the span no longer matches.

    Returns:
        RedactionResult whose ``mapping`` is token → exact replaced text.
    """
    unique: list[Entity] = []
    seen: set[tuple[int, int]] = set()
    for obj in entities:
        e = coerce_entity(obj)
        if e is None:
            logger.warning("Skipped malformed entity")
            continue
        if (e.start, e.end) in seen:
            continue
        seen.add((e.start, e.end))
        unique.append(e)

    skipped: list[Entity] = []
    # Non-overlapping spans of the original text, each replaced once
    accepted: list[Entity] = []

    for e in sorted(unique, key=lambda x: x.start, reverse=True):
        # Rescue never reaches into text that is already claimed
        frontier = min((a.start for a in accepted), default=len(text))
        span = _locate(text, e, frontier, window)
        if span is None:
            logger.warning(
                "Skipped %s span %d:%d: text not found within %d chars",
                e.label, e.start, e.end, window,
            )
            skipped.append(e)
            continue
        _place(text, replace(e, start=span[0], end=span[1]), accepted)

    mapping: dict[str, str] = {}
    applied: list[Entity] = []
    pieces: list[str] = []
    pos = 0
    for e in sorted(accepted, key=lambda x: x.start):
        original = text[e.start:e.end]
        token = make_token(e.label, original, deterministic=deterministic, taken=mapping)
        mapping[token] = original
        pieces.append(text[pos:e.start])
        pieces.append(positional_placeholder(token))
        pos = e.end
        applied.append(replace(e, text=original))
    pieces.append(text[pos:])

    return RedactionResult(
        text="".join(pieces),
        entities=applied,
        mapping=mapping,
        skipped=skipped,
        mode="positional",
    )


def _place(text: str, e: Entity, accepted: list[Entity]) -> None:
    """Add ``e`` to the accepted spans without overlapping any of them.

    A span whose tail lies inside one accepted span is clipped to its
    head.  A span already inside one accepted span adds nothing.  Any
    other overlap is merged into one span; the longest span's label wins.
    """
    hits = [a for a in accepted if a.start < e.end and e.start < a.end]
    if not hits:
        accepted.append(e)
        return
    if len(hits) == 1:
        a = hits[0]
        if a.start <= e.start and e.end <= a.end:
            logger.debug("%s span %d:%d already covered", e.label, e.start, e.end)
            return
        if e.start < a.start and e.end <= a.end:
            head = text[e.start:a.start].rstrip()
            if head:
                accepted.append(replace(e, end=e.start + len(head)))
            return
    for a in hits:
        accepted.remove(a)
    longest = max([e, *hits], key=lambda x: x.length)
    accepted.append(replace(
        longest,
        start=min(x.start for x in [e, *hits]),
        end=max(x.end for x in [e, *hits]),
    ))


def unredact_positional(text: str, mapping: Mapping[str, str]) -> str:
    """Replace ``[token]`` occurrences with their original text.

    Unknown tokens are left as they are.
    """
    lookup = {positional_placeholder(k): v for k, v in mapping.items() if isinstance(v, str)}
    if not lookup:
        return text
    # Longest first so no token matches as a prefix of another
    pattern = re.compile("|".join(
        re.escape(t) for t in sorted(lookup, key=len, reverse=True)
    ))
    return pattern.sub(lambda m: lookup[m.group()], text)


# ----------------------------------------------------------------------
# Span alignment
# ----------------------------------------------------------------------

def _locate(text: str, e: Entity, limit: int, window: int) -> tuple[int, int] | None:
    """Find the span to replace for ``e``.

    A match at the recorded offsets is used as is, even past ``limit``;
    rescued spans always end before ``limit``.
    """
    wanted = e.text.strip()
    if not wanted:
        return None
    span = _match_at(text, e.start, e.end, wanted)
    if span is not None:
        return span
    return _rescue(text, e.start, e.end, wanted, limit, window)


def _match_at(text: str, start: int, end: int, wanted: str) -> tuple[int, int] | None:
    if end > len(text):
        return None
    piece = text[start:end]
    if piece == wanted:
        return start, end
    stripped = piece.strip()
    if stripped != wanted and _WS.sub(" ", stripped) != _WS.sub(" ", wanted):
        return None
    lead = len(piece) - len(piece.lstrip())
    return start + lead, start + lead + len(stripped)


def _rescue(
    text: str, start: int, end: int, wanted: str, limit: int, window: int,
) -> tuple[int, int] | None:
    lo = max(0, start - window)
    hi = min(limit, end + window, len(text))
    if hi <= lo:
        return None

    hits: list[tuple[int, int]] = []
    i = text.find(wanted, lo, hi)
    while i != -1:
        hits.append((i, i + len(wanted)))
        i = text.find(wanted, i + 1, hi)

    if not hits and " " in wanted:
        # Normalization may have collapsed whitespace the document still has
        loose = re.compile(r"\s+".join(re.escape(part) for part in wanted.split()))
        hits = [(m.start(), m.end()) for m in loose.finditer(text, lo, hi)]

    if not hits:
        return None
    return min(hits, key=lambda h: abs(h[0] - start))
