"""Model layer — Presidio NER candidates for unstructured PII.

Catches names, organizations and locations that regex can't reliably
detect.  Uses spaCy under the hood.  Candidates come back with Presidio's
own label vocabulary and raw scores; the reconciler remaps and filters
them.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

from .types import DetectionSource, Entity

if TYPE_CHECKING:
    from presidio_analyzer import AnalyzerEngine


# Default entity types to ask Presidio for
DEFAULT_ENTITIES = [
    "PERSON",
    "ORGANIZATION",  # remapped to ORG
    "LOCATION",      # remapped to ADDRESS
    "EMAIL_ADDRESS",
    "PHONE_NUMBER",
    "CREDIT_CARD",
    "AU_ABN",
    "AU_TFN",
    "AU_MEDICARE",
]


def build_engine(language: str = "en") -> AnalyzerEngine:
    """Create a Presidio analyzer backed by the small spaCy model."""
    from presidio_analyzer import AnalyzerEngine
    from presidio_analyzer.nlp_engine import NlpEngineProvider

    provider = NlpEngineProvider(nlp_configuration={
        "nlp_engine_name": "spacy",
        "models": [{"lang_code": language, "model_name": f"{language}_core_web_sm"}],
    })
    nlp_engine = provider.create_engine()
    return AnalyzerEngine(nlp_engine=nlp_engine, supported_languages=[language])


class PresidioDetector:
    """Wraps one analyzer engine.  The engine is built on first use.

    Pass ``engine`` to reuse an existing analyzer (or a stand-in with the
    same ``analyze`` signature).
    """

    def __init__(
        self,
        *,
        language: str = "en",
        entities: list[str] | None = None,
        score_threshold: float = 0.35,
        engine: AnalyzerEngine | None = None,
    ) -> None:
        self.language = language
        self.entities = entities or DEFAULT_ENTITIES
        self.score_threshold = score_threshold
        self._engine = engine

    @property
    def engine(self) -> AnalyzerEngine:
        if self._engine is None:
            self._engine = build_engine(self.language)
        return self._engine

    def scan(self, text: str) -> list[Entity]:
        """Run Presidio analysis on text.

        Args:
            text: Input text to scan.

        Returns:
            Model candidates sorted by start offset.  Scores below
            ``score_threshold`` are discarded by Presidio itself.
        """
        results = self.engine.analyze(
            text=text,
            language=self.language,
            entities=self.entities,
            score_threshold=self.score_threshold,
        )
        matches = [
            Entity(
                text=text[r.start:r.end],
                label=r.entity_type,
                start=r.start,
                end=r.end,
                score=float(r.score),
                source=DetectionSource.MODEL,
            )
            for r in results
            if r.end > r.start
        ]
        return sorted(matches, key=lambda m: m.start)

    __call__ = scan
