"""YAML/dict config loader for pii-roundtrip.

Supports loading from a YAML file or a plain dict (for embedding in a
larger application config).

Example YAML:

    pii_roundtrip:
      mode: semantic             # "positional" or "semantic"
      reversible: true
      deterministic: true
      rescue_window: 64
      use_presidio: true
      language: en
      score_threshold: 0.35
      thresholds:
        PERSON: 0.6
        ORG: 0.7
      conservative: false
      embed_front_matter: false
      max_document_chars: 2000000
      max_import_bytes: 5242880
      skip_types:
        - DOB
      allow_list:
        - reception@example.com
      names:
        first: ~/.pii-roundtrip/first_names.txt
        last: ~/.pii-roundtrip/last_names.txt
"""

from __future__ import annotations
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .export import DEFAULT_MAX_IMPORT_BYTES
from .names import NameDictionary
from .positional import DEFAULT_WINDOW
from .reconcile import DEFAULT_THRESHOLD
from .redactor import DEFAULT_MAX_DOCUMENT_CHARS, Redactor, RedactorConfig


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "pii_roundtrip" key or flat
    if "pii_roundtrip" in data:
        data = data["pii_roundtrip"] or {}
    if not isinstance(data, dict):
        raise ConfigurationError("pii_roundtrip config must be a mapping")

    names = data.get("names") or {}
    try:
        return {
            "mode": data.get("mode", "positional"),
            "reversible": bool(data.get("reversible", True)),
            "deterministic": bool(data.get("deterministic", True)),
            "rescue_window": int(data.get("rescue_window", DEFAULT_WINDOW)),
            "use_presidio": bool(data.get("use_presidio", True)),
            "language": data.get("language", "en"),
            "score_threshold": float(data.get("score_threshold", 0.35)),
            "entities": data.get("entities"),
            "thresholds": {
                str(k).upper(): float(v) for k, v in (data.get("thresholds") or {}).items()
            },
            "default_threshold": float(data.get("default_threshold", DEFAULT_THRESHOLD)),
            "conservative": bool(data.get("conservative", False)),
            "case_insensitive": bool(data.get("case_insensitive", True)),
            "redact_person_first_last": bool(data.get("redact_person_first_last", True)),
            "embed_front_matter": bool(data.get("embed_front_matter", False)),
            "max_document_chars": int(data.get("max_document_chars", DEFAULT_MAX_DOCUMENT_CHARS)),
            "max_import_bytes": int(data.get("max_import_bytes", DEFAULT_MAX_IMPORT_BYTES)),
            "skip_types": {str(t).upper() for t in data.get("skip_types") or []},
            "allow_list": set(data.get("allow_list") or []),
            "names_first": names.get("first"),
            "names_last": names.get("last"),
        }
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Invalid pii_roundtrip config: {e}") from e


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    with open(Path(path).expanduser(), encoding="utf-8") as f:
        try:
            return load_config(yaml.safe_load(f))
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Config file {path} is not valid YAML: {e}") from e


def build_config(cfg: dict[str, Any]) -> RedactorConfig:
    config = RedactorConfig(
        mode=cfg["mode"],
        reversible=cfg["reversible"],
        deterministic=cfg["deterministic"],
        rescue_window=cfg["rescue_window"],
        use_presidio=cfg["use_presidio"],
        language=cfg["language"],
        score_threshold=cfg["score_threshold"],
        presidio_entities=cfg.get("entities"),
        thresholds=cfg["thresholds"],
        default_threshold=cfg["default_threshold"],
        conservative=cfg["conservative"],
        case_insensitive=cfg["case_insensitive"],
        redact_person_first_last=cfg["redact_person_first_last"],
        embed_front_matter=cfg["embed_front_matter"],
        max_document_chars=cfg["max_document_chars"],
        skip_types=cfg["skip_types"],
        allow_list=cfg["allow_list"],
    )
    config.validate()
    return config


def create_redactor(config: dict[str, Any]) -> Redactor:
    """Create a fully configured redactor from a config dict."""
    # load_config output carries names_first; raw user config never does
    cfg = config if "names_first" in config else load_config(config)

    names = None
    if cfg["names_first"] and cfg["names_last"]:
        try:
            names = NameDictionary.load(cfg["names_first"], cfg["names_last"])
        except OSError as e:
            raise ConfigurationError(f"Cannot load name lists: {e}") from e

    return Redactor(build_config(cfg), names=names)
