"""Redactor — the main API.  Detect, reconcile, then redact.

Usage:
    from pii_roundtrip import Redactor, RedactorConfig

    redactor = Redactor(RedactorConfig(use_presidio=False))
    result = redactor.redact("Client ABN is 83 914 571 673")
    print(result.text)          # "Client ABN is [ABN_8C4A...]"

    print(redactor.unredact(result.text, result.mapping))
    # "Client ABN is 83 914 571 673"

Candidates from an external detector can be passed straight in:

    result = redactor.redact(text, candidates=[
        {"text": "Daniel O'Rourke", "label": "PER", "start": 0, "end": 15,
         "score": 0.93, "source": "model"},
    ])
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from .exceptions import ConfigurationError, SizeLimitError
from .names import NameLookup
from .patterns import scan_regex
from .positional import DEFAULT_WINDOW, redact_positional, unredact_positional
from .reconcile import DEFAULT_THRESHOLD, Reconciler
from .semantic import redact_semantic, unredact_semantic
from .types import Entity, RedactionResult

logger = logging.getLogger(__name__)

MODES = ("positional", "semantic")
DEFAULT_MAX_DOCUMENT_CHARS = 2_000_000


@dataclass
class RedactorConfig:
    """Configuration for the Redactor."""
    mode: str = "positional"          # "positional" | "semantic"
    reversible: bool = True           # False: no map is kept
    deterministic: bool = True        # positional: hash tokens vs random
    rescue_window: int = DEFAULT_WINDOW
    use_presidio: bool = True         # enable the model layer
    language: str = "en"
    score_threshold: float = 0.35     # floor applied by Presidio itself
    presidio_entities: list[str] | None = None  # None = defaults
    # Reconciler thresholds, per label, for model candidates
    thresholds: dict[str, float] = field(default_factory=dict)
    default_threshold: float = DEFAULT_THRESHOLD
    conservative: bool = False
    # Semantic mode
    case_insensitive: bool = True
    redact_person_first_last: bool = True
    embed_front_matter: bool = False
    max_document_chars: int = DEFAULT_MAX_DOCUMENT_CHARS
    custom_scanners: list[Callable[[str], list[Entity]]] = field(default_factory=list)
    # Labels to always skip (e.g. don't redact DOB)
    skip_types: set[str] = field(default_factory=set)
    # Allow-list: values that should NEVER be redacted
    allow_list: set[str] = field(default_factory=set)

    def validate(self) -> None:
        if self.mode not in MODES:
            raise ConfigurationError(f"Unknown redaction mode {self.mode!r}; expected one of {MODES}")
        if self.rescue_window < 0:
            raise ConfigurationError("rescue_window must be >= 0")
        if self.max_document_chars <= 0:
            raise ConfigurationError("max_document_chars must be > 0")
        if not self.reversible and self.embed_front_matter:
            raise ConfigurationError("Irreversible redaction cannot embed a reversal map")


class Redactor:
    """Layered PII redactor.

    Layer 1: Structured regex patterns, checksum-gated
    Layer 2: Presidio NER (names, orgs, locations)
    Layer 3: Custom scanners (user-provided callables)

    Candidates from every layer go through one Reconciler before
    redaction.
    """

    def __init__(
        self,
        config: RedactorConfig | None = None,
        *,
        names: NameLookup | None = None,
        model_detector: Callable[[str], list[Entity]] | None = None,
    ) -> None:
        self.config = config or RedactorConfig()
        self.config.validate()
        self.reconciler = Reconciler(
            self.config.thresholds,
            default_threshold=self.config.default_threshold,
            names=names,
            conservative=self.config.conservative,
        )
        self._model_detector = model_detector

    @property
    def model_detector(self) -> Callable[[str], list[Entity]] | None:
        if self._model_detector is None and self.config.use_presidio:
            from .presidio_layer import PresidioDetector
            self._model_detector = PresidioDetector(
                language=self.config.language,
                entities=self.config.presidio_entities,
                score_threshold=self.config.score_threshold,
            )
        return self._model_detector

    def check_size(self, text: str) -> None:
        if len(text) > self.config.max_document_chars:
            raise SizeLimitError("Document", len(text), self.config.max_document_chars)

    def detect(self, text: str) -> list[Entity]:
        """Raw candidates from every enabled layer, unreconciled."""
        candidates: list[Entity] = []

        # --- Layer 1: Regex (fast, deterministic) ---
        candidates.extend(scan_regex(text))

        # --- Layer 2: Model (if enabled) ---
        if self.model_detector is not None:
            candidates.extend(self.model_detector(text))

        # --- Layer 3: Custom scanners ---
        for scanner in self.config.custom_scanners:
            candidates.extend(scanner(text))

        return candidates

    def reconcile(self, candidates: Iterable[Any], text: str | None = None) -> list[Entity]:
        """Filter skip-types / allow-list, then reconcile."""
        entities = self.reconciler.reconcile(candidates, text)
        return [
            e for e in entities
            if e.label not in self.config.skip_types and e.text not in self.config.allow_list
        ]

    def redact(self, text: str, candidates: Iterable[Any] | None = None) -> RedactionResult:
        """Redact PII from text.

        Args:
            text: Document to redact.
            candidates: Detector output to use instead of running the
                built-in layers.

        Raises:
            SizeLimitError: The document exceeds ``max_document_chars``.
        """
        self.check_size(text)
        if candidates is None:
            candidates = self.detect(text)
        entities = self.reconcile(candidates, text)

        cfg = self.config
        if cfg.mode == "semantic":
            result = redact_semantic(
                text,
                entities,
                redact_person_first_last=cfg.redact_person_first_last,
                case_insensitive=cfg.case_insensitive,
                embed_front_matter=cfg.embed_front_matter,
            )
        else:
            # Hashed tokens of short IDs can be brute-forced; no map means no hashes
            result = redact_positional(
                text,
                entities,
                deterministic=cfg.deterministic and cfg.reversible,
                window=cfg.rescue_window,
            )

        if result.skipped:
            logger.warning("%d of %d entities could not be aligned and were left in place",
                           len(result.skipped), len(entities))
        if not cfg.reversible:
            result.mapping = {}
        return result

    def unredact(self, text: str, mapping: Mapping[str, Any] | None = None) -> str:
        """Reverse a redaction made in the configured mode."""
        self.check_size(text)
        if self.config.mode == "semantic":
            restored, _ = unredact_semantic(text, mapping)
            return restored
        return unredact_positional(text, mapping or {})
