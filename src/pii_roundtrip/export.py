"""Export and import of redaction maps.

Plaintext artifact:

    {"version": "1", "timestamp": "2026-01-31T09:00:00+00:00",
     "mapping": {"PERSON_A1B2C3": {"label": "PERSON", "full": ..., ...},
                 "EMAIL_9F00D2E1": "jo@example.com"}}

Semantic maps carry entry objects; positional maps carry plain strings.
``save_mapping`` optionally wraps the artifact with the mapping vault.

Every failure on the way in is a distinct exception: missing file, file
too large, not JSON / missing fields, unknown version, wrong passphrase.
"""

from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from .exceptions import (
    ArtifactNotFoundError,
    MalformedArtifactError,
    PassphraseRequiredError,
    SizeLimitError,
    UnsupportedVersionError,
)
from .types import PersonEntry, ValueEntry, entry_from_dict
from .vault import decrypt_json, encrypt_json, is_encrypted_artifact

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1"
DEFAULT_MAX_IMPORT_BYTES = 5 * 1024 * 1024


def build_export(mapping: Mapping[str, Any]) -> dict[str, Any]:
    """Wrap a map in the versioned export envelope."""
    serialized: dict[str, Any] = {}
    for key, value in mapping.items():
        if isinstance(value, (PersonEntry, ValueEntry)):
            serialized[key] = value.to_dict()
        else:
            serialized[key] = value
    return {
        "version": EXPORT_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "mapping": serialized,
    }


def read_export(data: Any) -> dict[str, Any]:
    """Validate an export envelope and return its mapping.

    String values are positional entries; objects become map entries.
    """
    if not isinstance(data, dict):
        raise MalformedArtifactError("Mapping export must be a JSON object")
    if "version" not in data or "mapping" not in data:
        raise MalformedArtifactError("Mapping export is missing 'version' or 'mapping'")
    if str(data["version"]) != EXPORT_VERSION:
        raise UnsupportedVersionError(f"Unsupported mapping export version: {data['version']!r}")
    raw = data["mapping"]
    if not isinstance(raw, dict):
        raise MalformedArtifactError("'mapping' must be an object")

    mapping: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, str):
            mapping[key] = value
            continue
        try:
            mapping[key] = entry_from_dict(value, key=key)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedArtifactError(f"Malformed mapping entry {key!r}: {e}") from e
    return mapping


def _check_size(size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise SizeLimitError("Mapping file", size, max_bytes)


def parse_export(
    raw: str | bytes,
    *,
    passphrase: str | None = None,
    max_bytes: int = DEFAULT_MAX_IMPORT_BYTES,
) -> dict[str, Any]:
    """Parse a serialized export (plaintext or encrypted) into a mapping."""
    size = len(raw) if isinstance(raw, bytes) else len(raw.encode("utf-8"))
    _check_size(size, max_bytes)
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedArtifactError(f"Mapping file is not valid JSON: {e}") from e

    if is_encrypted_artifact(data):
        if not passphrase:
            raise PassphraseRequiredError("Mapping file is encrypted; a passphrase is required")
        data = decrypt_json(data, passphrase)
    return read_export(data)


def save_mapping(
    path: str | Path,
    mapping: Mapping[str, Any],
    *,
    passphrase: str | None = None,
) -> Path:
    """Write a map to disk, encrypted when a passphrase is given."""
    path = Path(path).expanduser()
    artifact: dict[str, Any] = build_export(mapping)
    if passphrase:
        artifact = encrypt_json(artifact, passphrase)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(artifact, f, ensure_ascii=False, indent=2)
    logger.info("Saved %d mapping entries to %s (%s)",
                len(mapping), path, "encrypted" if passphrase else "plaintext")
    return path


def load_mapping(
    path: str | Path,
    *,
    passphrase: str | None = None,
    max_bytes: int = DEFAULT_MAX_IMPORT_BYTES,
) -> dict[str, Any]:
    """Read a map written by ``save_mapping``.

    The file size is checked before anything is read.
    """
    path = Path(path).expanduser()
    try:
        size = path.stat().st_size
    except FileNotFoundError as e:
        raise ArtifactNotFoundError(f"Mapping file not found: {path}") from e
    _check_size(size, max_bytes)
    return parse_export(path.read_bytes(), passphrase=passphrase, max_bytes=max_bytes)
