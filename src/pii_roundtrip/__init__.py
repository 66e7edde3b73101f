"""pii-roundtrip — reversible PII redaction with reconciled detections."""

from .redactor import Redactor, RedactorConfig
from .reconcile import Reconciler, reconcile
from .positional import redact_positional, unredact_positional
from .semantic import add_manual_entry, create_redaction_map, redact_semantic, unredact_semantic
from .vault import decrypt_json, encrypt_json
from .export import build_export, load_mapping, parse_export, save_mapping
from .names import NameDictionary, NameLookup
from .config import create_redactor, load_config, load_from_yaml
from .evaluate import FIXTURES, Fixture, run_eval
from .types import DetectionSource, Entity, PersonEntry, RedactionResult, ValueEntry
from .validators import is_valid_abn, is_valid_medicare, is_valid_tfn, luhn_valid

__all__ = [
    "Redactor", "RedactorConfig",
    "Reconciler", "reconcile",
    "redact_positional", "unredact_positional",
    "create_redaction_map", "add_manual_entry", "redact_semantic", "unredact_semantic",
    "encrypt_json", "decrypt_json",
    "build_export", "parse_export", "save_mapping", "load_mapping",
    "NameDictionary", "NameLookup",
    "create_redactor", "load_config", "load_from_yaml",
    "Fixture", "FIXTURES", "run_eval",
    "DetectionSource", "Entity", "PersonEntry", "ValueEntry", "RedactionResult",
    "is_valid_abn", "is_valid_tfn", "is_valid_medicare", "luhn_valid",
]
__version__ = "0.1.0"
