"""Semantic redaction — value-based, offset-free.

Every unique value gets one map entry keyed ``LABEL_ID``, where ID is a
hash of the value's canonical form.  Redaction then replaces every
whole-word occurrence of that value anywhere in the document, not just
the spans a detector reported:

    [PERSON_A1B2C3:FULL]    "Daniel O'Rourke"
    [PERSON_A1B2C3:FIRST]   "Daniel" on its own
    [PERSON_A1B2C3:LAST]    "O'Rourke" on its own

The map can travel inside the document as YAML front matter between
``---`` lines, so a redacted file carries its own reversal key.

Round trips are exact for mentions whose casing matches the detected
value.  Case-insensitive matches come back in the detected casing.
"""

from __future__ import annotations
import logging
import re
from collections import Counter
from typing import Any, Iterable, Mapping

import yaml

from .placeholders import ANY_TOKEN, SEMANTIC_TOKEN, normalize_for_key, semantic_placeholder, stable_id
from .reconcile import LABEL_MAP, coerce_entity
from .types import LABELS, MapEntry, PersonEntry, RedactionResult, ValueEntry, entry_from_dict

logger = logging.getLogger(__name__)

ID_LENGTH = 6
MIN_VARIANT_LENGTH = 2

_HONORIFICS = frozenset({"mr", "mrs", "ms", "miss", "dr", "prof", "sir"})
_FRONT_MATTER = re.compile(r"\A---\n(.*?)\n---\n\n", re.DOTALL)


# ----------------------------------------------------------------------
# Map construction
# ----------------------------------------------------------------------

def build_entry(text: str, label: str, canonical: str) -> MapEntry:
    if label != "PERSON":
        return ValueEntry(label=label, full=text, canonical=canonical)
    parts = text.split()
    while len(parts) > 1 and parts[0].rstrip(".").lower() in _HONORIFICS:
        parts = parts[1:]
    first = parts[0] if parts else text
    last = " ".join(parts[1:])
    return PersonEntry(full=text, first=first, last=last, canonical=canonical)


def _value_of(obj: Any) -> tuple[str, str] | None:
    """(label, text) for an entity or candidate dict; None if unusable."""
    if isinstance(obj, Mapping):
        label, text = obj.get("label"), obj.get("text")
    else:
        label, text = getattr(obj, "label", None), getattr(obj, "text", None)
    if not isinstance(label, str) or not isinstance(text, str):
        return None
    label = LABEL_MAP.get(label.upper(), label.upper())
    text = text.strip()
    if label not in LABELS or not text:
        return None
    return label, text


def _unique_key(label: str, canonical: str, mapping: Mapping[str, MapEntry]) -> str:
    for length in range(ID_LENGTH, 65, 2):
        key = f"{label}_{stable_id(canonical, length)}"
        existing = mapping.get(key)
        if existing is None or existing.canonical == canonical:
            return key
    raise ValueError(f"id collision for {label} value")  # exhausted sha256


def create_redaction_map(
    entities: Iterable[Any],
    *,
    mapping: Mapping[str, MapEntry] | None = None,
) -> dict[str, MapEntry]:
    """One entry per unique normalized value.

    A value detected under several labels is keyed once, under the label
    it carries most often (ties go to the label seen first).  Values
    already in ``mapping`` keep their existing key.
    """
    result: dict[str, MapEntry] = dict(mapping or {})
    known = {entry.canonical for entry in result.values()}

    occurrences: dict[str, list[tuple[str, str]]] = {}
    for obj in entities:
        value = _value_of(obj)
        if value is None:
            continue
        canonical = normalize_for_key(value[1])
        if canonical:
            occurrences.setdefault(canonical, []).append(value)

    for canonical, seen in occurrences.items():
        if canonical in known:
            continue
        labels = Counter(label for label, _ in seen)
        order = [label for label, _ in seen]
        label = max(labels, key=lambda lb: (labels[lb], -order.index(lb)))
        if len(labels) > 1:
            logger.debug("Value seen as %s; keyed as %s", sorted(labels), label)
        text = next(t for lb, t in seen if lb == label)
        key = _unique_key(label, canonical, result)
        result[key] = build_entry(text, label, canonical)
        known.add(canonical)

    return result


def add_manual_entry(mapping: dict[str, MapEntry], text: str, label: str) -> str:
    """Append a user-added value to an existing map and return its key.

    Existing entries are never changed; a value already present returns
    its current key.
    """
    value = _value_of({"label": label, "text": text})
    if value is None:
        raise ValueError(f"cannot add {label!r} value {text!r} to the map")
    label, text = value
    canonical = normalize_for_key(text)
    if not canonical:
        raise ValueError(f"value {text!r} has no canonical form")
    for key, entry in mapping.items():
        if entry.canonical == canonical:
            return key
    key = _unique_key(label, canonical, mapping)
    mapping[key] = build_entry(text, label, canonical)
    return key


# ----------------------------------------------------------------------
# Redaction / unredaction
# ----------------------------------------------------------------------

def _sub_outside_placeholders(pattern: re.Pattern, replacement: str, text: str) -> str:
    """Substitute only in the text between existing placeholders."""
    out: list[str] = []
    pos = 0
    for m in ANY_TOKEN.finditer(text):
        out.append(pattern.sub(lambda _: replacement, text[pos:m.start()]))
        out.append(m.group())
        pos = m.end()
    out.append(pattern.sub(lambda _: replacement, text[pos:]))
    return "".join(out)


def _replace_value(text: str, value: str, replacement: str, case_insensitive: bool) -> str:
    flags = re.IGNORECASE if case_insensitive else 0
    pattern = re.compile(rf"(?<!\w){re.escape(value)}(?!\w)", flags)
    return _sub_outside_placeholders(pattern, replacement, text)


def redact_semantic(
    text: str,
    entities: Iterable[Any],
    *,
    redact_person_first_last: bool = True,
    case_insensitive: bool = True,
    embed_front_matter: bool = False,
    mapping: Mapping[str, MapEntry] | None = None,
) -> RedactionResult:
    """Replace every occurrence of every detected value.

    Full values go first, longest first; standalone PERSON first/last
    names are replaced only after every full value is done.
    """
    entities = list(entities)
    rmap = create_redaction_map(entities, mapping=mapping)
    out = text

    for key, entry in sorted(rmap.items(), key=lambda kv: len(kv[1].full), reverse=True):
        out = _replace_value(out, entry.full, semantic_placeholder(key, "FULL"), case_insensitive)

    if redact_person_first_last:
        variants: list[tuple[str, str, str]] = []
        for key, entry in rmap.items():
            if not isinstance(entry, PersonEntry):
                continue
            for variant, value in (("FIRST", entry.first), ("LAST", entry.last)):
                if len(value) >= MIN_VARIANT_LENGTH and value != entry.full:
                    variants.append((value, key, variant))
        for value, key, variant in sorted(variants, key=lambda v: len(v[0]), reverse=True):
            out = _replace_value(out, value, semantic_placeholder(key, variant), case_insensitive)

    if embed_front_matter:
        out = embed_map(rmap, out)

    applied = [e for e in (coerce_entity(obj) for obj in entities) if e is not None]
    return RedactionResult(text=out, entities=applied, mapping=rmap, mode="semantic")


def _variant_value(entry: MapEntry, variant: str) -> str:
    if isinstance(entry, PersonEntry):
        value = {"FIRST": entry.first, "LAST": entry.last}.get(variant)
        if value:
            return value
    return entry.full


def unredact_semantic(
    text: str,
    mapping: Mapping[str, Any] | None = None,
) -> tuple[str, dict[str, MapEntry] | None]:
    """Restore ``[LABEL_ID:VARIANT]`` placeholders.

    A map embedded as front matter wins over ``mapping``.  Unknown
    placeholders are left untouched.

    Returns:
        (restored text, the map that was used or None)
    """
    embedded, body = extract_front_matter(text)
    rmap = embedded if embedded is not None else _entries(mapping or {})
    if not rmap:
        return body, None

    def restore(m: re.Match) -> str:
        entry = rmap.get(m.group(1))
        if entry is None:
            logger.debug("Unknown placeholder %s left in place", m.group())
            return m.group()
        return _variant_value(entry, m.group(2))

    return SEMANTIC_TOKEN.sub(restore, body), rmap


# ----------------------------------------------------------------------
# Front matter
# ----------------------------------------------------------------------

def _entries(raw: Mapping[str, Any]) -> dict[str, MapEntry]:
    entries: dict[str, MapEntry] = {}
    for key, value in raw.items():
        try:
            entries[str(key)] = entry_from_dict(value, key=str(key))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed map entry %s: %s", key, e)
    return entries


def embed_map(mapping: Mapping[str, MapEntry], body: str) -> str:
    """Prefix ``body`` with a YAML front-matter block holding the map."""
    data = {"redactionMap": {key: entry.to_dict() for key, entry in mapping.items()}}
    dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{dumped}---\n\n{body}"


def extract_front_matter(doc: str) -> tuple[dict[str, MapEntry] | None, str]:
    """Split an embedded map off the document.

    Returns (None, doc) when there is no front matter, or when it is not
    a redaction map.
    """
    m = _FRONT_MATTER.match(doc)
    if not m:
        return None, doc
    try:
        data = yaml.safe_load(m.group(1))
    except yaml.YAMLError as e:
        logger.warning("Front matter is not valid YAML, treating as text: %s", e)
        return None, doc
    if not isinstance(data, dict) or not isinstance(data.get("redactionMap"), dict):
        return None, doc
    return _entries(data["redactionMap"]), doc[m.end():]
