"""Reconciler — turns noisy candidates from every detector into one list.

Pipeline, in order:

  1. coerce    drop anything that is not a well-formed candidate
  2. normalize collapse whitespace, remap labels, business-suffix → ORG,
               reject degenerate text
  3. names     optional dictionary boost / filter for model PERSONs
  4. filter    regex always passes, model must clear its label threshold
  5. overlaps  ratio-gated resolution (see ``_wins``)
  6. dedupe    exact duplicates, PERSON substrings of a longer PERSON
  7. merge     adjacent ADDRESS fragments

The result is sorted by start offset.  ``reconcile`` never raises on bad
candidates; they are excluded and logged at debug level.
"""

from __future__ import annotations
import logging
import math
import re
from dataclasses import replace
from typing import Any, Iterable

from .names import NameLookup
from .types import LABELS, DetectionSource, Entity

logger = logging.getLogger(__name__)

# Detector vocabularies → closed label set
LABEL_MAP: dict[str, str] = {
    "PER": "PERSON",
    "PERSON": "PERSON",
    "LOC": "ADDRESS",
    "LOCATION": "ADDRESS",
    "GPE": "ADDRESS",
    "ORG": "ORG",
    "ORGANIZATION": "ORG",
    "MISC": "ORG",
    "EMAIL_ADDRESS": "EMAIL",
    "PHONE_NUMBER": "PHONE",
    "DATE_OF_BIRTH": "DOB",
    "AU_ABN": "ABN",
    "AU_TFN": "TFN",
    "AU_MEDICARE": "MEDICARE",
    "BANK_ACCOUNT": "BANK_ACCT",
}

# Model thresholds: a false ORG/ADDRESS costs more than a missed PERSON
DEFAULT_THRESHOLDS: dict[str, float] = {
    "PERSON": 0.60,
    "ORG": 0.70,
    "ADDRESS": 0.70,
}
DEFAULT_THRESHOLD = 0.80
CONSERVATIVE_MARGIN = 0.10

OVERLAP_RATIO = 0.4
ADDRESS_MERGE_GAP = 5
NAME_BOOST_SCORE = 0.90

_WS = re.compile(r"\s+")
_FREE_TEXT_LABELS = frozenset({"PERSON", "ORG", "ADDRESS"})
_BUSINESS_SUFFIX = re.compile(
    r"\b(?:Pty\.?\s+Ltd|Ltd|Limited|Unit\s+Trust|Trust|Superannuation\s+Fund|Fund)\b",
    re.IGNORECASE,
)


def coerce_entity(obj: Any) -> Entity | None:
    """Return a well-formed Entity, or None if obj cannot be one."""
    try:
        e = obj if isinstance(obj, Entity) else Entity.from_dict(obj)
        source = DetectionSource(e.source)
    except (KeyError, TypeError, ValueError, AttributeError):
        logger.debug("Discarding malformed candidate: %r", obj)
        return None

    if not isinstance(e.text, str) or not e.text:
        return None
    for offset in (e.start, e.end):
        if not isinstance(offset, int) or isinstance(offset, bool):
            return None
    if e.start < 0 or e.start >= e.end:
        return None
    if e.score is not None and (
        not isinstance(e.score, (int, float)) or not math.isfinite(e.score)
    ):
        return None
    return e if source is e.source else replace(e, source=source)


def _source_rank(source: DetectionSource) -> int:
    match source:
        case DetectionSource.REGEX:
            return 1
        case DetectionSource.MODEL:
            return 0
    raise ValueError(f"unknown detection source: {source!r}")


def _is_multi_token_person(e: Entity) -> bool:
    return e.label == "PERSON" and len(e.text.split()) >= 2


def _overlap(a: Entity, b: Entity) -> int:
    return min(a.end, b.end) - max(a.start, b.start)


def _wins(challenger: Entity, incumbent: Entity) -> bool:
    """Decide a true conflict (overlap ratio >= OVERLAP_RATIO)."""
    if challenger.label != incumbent.label:
        if _is_multi_token_person(challenger):
            return True
        if _is_multi_token_person(incumbent):
            return False

    rc, ri = _source_rank(challenger.source), _source_rank(incumbent.source)
    if rc != ri:
        return rc > ri

    sc = 1.0 if challenger.score is None else challenger.score
    si = 1.0 if incumbent.score is None else incumbent.score
    if sc != si:
        return sc > si
    return challenger.length > incumbent.length


class Reconciler:
    """Resolves candidates from regex and model detectors.

    Args:
        thresholds: Per-label minimum model score (merged over defaults).
        default_threshold: Minimum model score for labels not listed.
        names: Optional name lookup used to boost/filter model PERSONs.
        conservative: Raise every model threshold by 0.10 (precision bias).
    """

    def __init__(
        self,
        thresholds: dict[str, float] | None = None,
        *,
        default_threshold: float = DEFAULT_THRESHOLD,
        names: NameLookup | None = None,
        conservative: bool = False,
    ) -> None:
        self.thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
        self.default_threshold = default_threshold
        self.names = names
        self.conservative = conservative

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def normalize(self, e: Entity) -> Entity | None:
        text = _WS.sub(" ", e.text).strip()
        if len(text) < 2:
            return None

        label = str(e.label).upper()
        label = LABEL_MAP.get(label, label)
        if label not in LABELS:
            logger.debug("Discarding candidate with unknown label %r", e.label)
            return None

        if label in _FREE_TEXT_LABELS and _BUSINESS_SUFFIX.search(text):
            label = "ORG"
        elif label == "PERSON" and " " not in text and text.isalpha() and text.isupper():
            # ALLCAPS single token: almost always a code, not a name
            return None

        return replace(e, text=text, label=label)

    def apply_names(self, e: Entity) -> Entity | None:
        if self.names is None or e.label != "PERSON" or e.source is not DetectionSource.MODEL:
            return e
        tokens = e.text.split()
        if len(tokens) >= 2:
            if self.names.is_first_name(tokens[0]) and self.names.is_last_name(tokens[-1]):
                return replace(e, score=max(e.score or 0.0, NAME_BOOST_SCORE))
            return e
        if self.names.is_first_name(tokens[0]) or self.names.is_last_name(tokens[0]):
            return e
        return None

    def threshold(self, label: str) -> float:
        t = self.thresholds.get(label, self.default_threshold)
        if self.conservative:
            t = min(1.0, t + CONSERVATIVE_MARGIN)
        return t

    def passes_confidence(self, e: Entity) -> bool:
        match e.source:
            case DetectionSource.REGEX:
                return True
            case DetectionSource.MODEL:
                return (e.score or 0.0) >= self.threshold(e.label)
        return False

    def resolve_overlaps(self, entities: Iterable[Entity]) -> list[Entity]:
        accepted: list[Entity] = []
        for e in sorted(entities, key=lambda x: (x.start, -x.length)):
            beaten: list[Entity] = []
            keep = True
            for a in accepted:
                ov = _overlap(a, e)
                if ov <= 0:
                    continue
                if ov / min(a.length, e.length) < OVERLAP_RATIO:
                    continue  # minor overlap, both stay
                if _wins(e, a):
                    beaten.append(a)
                else:
                    logger.debug("Overlap: kept %s %r over %s %r", a.label, a.text, e.label, e.text)
                    keep = False
                    break
            if not keep:
                continue
            if beaten:
                for b in beaten:
                    logger.debug("Overlap: kept %s %r over %s %r", e.label, e.text, b.label, b.text)
                accepted = [a for a in accepted if not any(a is b for b in beaten)]
            accepted.append(e)
        return sorted(accepted, key=lambda x: x.start)

    @staticmethod
    def dedupe(entities: list[Entity]) -> list[Entity]:
        seen: set[tuple[int, int, str, str]] = set()
        unique: list[Entity] = []
        for e in entities:
            key = (e.start, e.end, e.label, e.text.lower())
            if key in seen:
                continue
            seen.add(key)
            unique.append(e)

        persons = [e.text.lower() for e in unique if e.label == "PERSON"]
        return [
            e for e in unique
            if not (e.label == "PERSON" and any(
                len(p) > len(e.text) and e.text.lower() in p for p in persons
            ))
        ]

    @staticmethod
    def merge_addresses(entities: list[Entity], text: str | None = None) -> list[Entity]:
        merged: list[Entity] = []
        for e in entities:
            prev = merged[-1] if merged else None
            if (
                prev is not None
                and prev.label == "ADDRESS"
                and e.label == "ADDRESS"
                and e.start - prev.end < ADDRESS_MERGE_GAP
            ):
                merged[-1] = _join(prev, e, text)
            else:
                merged.append(e)
        return merged

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def reconcile(self, candidates: Iterable[Any], text: str | None = None) -> list[Entity]:
        """Reconcile candidates from all detectors.

        Args:
            candidates: Entity objects or detector dicts, in any order.
            text: The source document, used to take the exact text of
                merged addresses.  Optional.
        """
        working: list[Entity] = []
        for obj in candidates:
            e = coerce_entity(obj)
            if e is not None:
                e = self.normalize(e)
            if e is not None:
                e = self.apply_names(e)
            if e is not None and self.passes_confidence(e):
                working.append(e)

        resolved = self.resolve_overlaps(working)
        unique = self.dedupe(resolved)
        return self.merge_addresses(unique, text)


def _join(a: Entity, b: Entity, text: str | None) -> Entity:
    start, end = a.start, max(a.end, b.end)
    if text is not None and end <= len(text):
        joined = text[start:end]
    elif b.start >= a.end:
        joined = f"{a.text} {b.text}"
    else:
        joined = a.text
    scores = [s for s in (a.score, b.score) if s is not None]
    both_regex = a.source is DetectionSource.REGEX and b.source is DetectionSource.REGEX
    return Entity(
        text=joined,
        label="ADDRESS",
        start=start,
        end=end,
        score=min(scores) if scores else None,
        source=DetectionSource.REGEX if both_regex else DetectionSource.MODEL,
    )


def reconcile(
    candidates: Iterable[Any],
    text: str | None = None,
    *,
    names: NameLookup | None = None,
) -> list[Entity]:
    """Reconcile with default thresholds."""
    return Reconciler(names=names).reconcile(candidates, text)
