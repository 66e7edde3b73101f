"""Core types."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class DetectionSource(str, Enum):
    """Where a candidate came from.  Used for precedence, never for display."""
    REGEX = "regex"
    MODEL = "model"


# Closed label set every entity is mapped onto before redaction
LABELS: frozenset[str] = frozenset({
    "PERSON", "ORG", "ADDRESS",
    "EMAIL", "PHONE", "DOB",
    "ABN", "TFN", "MEDICARE", "CREDIT_CARD", "AFSL", "AR",
    "BSB", "BANK_ACCT",
})


@dataclass(frozen=True, slots=True)
class Entity:
    """A single detected PII span."""
    text: str              # substring as seen by the detector
    label: str             # e.g. "PERSON", "ABN"
    start: int             # half-open offsets at detection time
    end: int
    score: float | None = None   # None for deterministic detections
    source: DetectionSource = DetectionSource.REGEX

    @property
    def length(self) -> int:
        return self.end - self.start

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "label": self.label,
            "start": self.start,
            "end": self.end,
            "score": self.score,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        """Build from a detector candidate dict.  Raises on bad input."""
        score = data.get("score")
        return cls(
            text=data["text"],
            label=str(data["label"]),
            start=data["start"],
            end=data["end"],
            score=None if score is None else float(score),
            source=DetectionSource(data.get("source", "regex")),
        )


@dataclass(frozen=True, slots=True)
class PersonEntry:
    """Semantic map entry for a PERSON value."""
    full: str
    first: str
    last: str
    canonical: str
    label: str = "PERSON"

    def to_dict(self) -> dict[str, str]:
        return {
            "label": self.label,
            "full": self.full,
            "first": self.first,
            "last": self.last,
            "canonical": self.canonical,
        }


@dataclass(frozen=True, slots=True)
class ValueEntry:
    """Semantic map entry for any non-PERSON value."""
    label: str
    full: str
    canonical: str

    def to_dict(self) -> dict[str, str]:
        return {"label": self.label, "full": self.full, "canonical": self.canonical}


MapEntry = Union[PersonEntry, ValueEntry]


def entry_from_dict(data: Any, key: str | None = None) -> MapEntry:
    """Rebuild a map entry from its dict form.

    The label defaults to the key prefix (``PERSON_A1B2C3`` → ``PERSON``).
    Raises KeyError / TypeError / ValueError on a malformed entry.
    """
    if isinstance(data, (PersonEntry, ValueEntry)):
        return data
    if not isinstance(data, dict):
        raise TypeError(f"map entry must be an object, got {type(data).__name__}")
    label = data.get("label") or (key.rsplit("_", 1)[0] if key and "_" in key else None)
    if not label:
        raise ValueError("map entry has no label")
    full, canonical = data["full"], data["canonical"]
    fields = [full, canonical]
    if label == "PERSON":
        first, last = data.get("first") or "", data.get("last") or ""
        fields += [first, last]
    if not all(isinstance(f, str) for f in fields):
        raise TypeError("map entry fields must be strings")
    if label == "PERSON":
        return PersonEntry(full=full, first=first, last=last, canonical=canonical)
    return ValueEntry(label=str(label), full=full, canonical=canonical)


@dataclass(slots=True)
class RedactionResult:
    """Result of redacting a document."""
    text: str                                        # redacted text with placeholders
    entities: list[Entity] = field(default_factory=list)
    # positional: token → original text; semantic: LABEL_ID → entry
    mapping: dict[str, Any] = field(default_factory=dict)
    skipped: list[Entity] = field(default_factory=list)   # alignment failures
    mode: str = "positional"
