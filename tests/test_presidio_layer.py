"""Tests for the Presidio adapter, using a stand-in analyzer."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from dataclasses import dataclass

from pii_roundtrip.presidio_layer import DEFAULT_ENTITIES, PresidioDetector
from pii_roundtrip.reconcile import reconcile
from pii_roundtrip.types import DetectionSource


@dataclass
class FakeResult:
    entity_type: str
    start: int
    end: int
    score: float


class FakeEngine:
    def __init__(self, results):
        self.results = results
        self.calls = []

    def analyze(self, *, text, language, entities, score_threshold):
        self.calls.append((language, entities, score_threshold))
        return self.results


TEXT = "Daniel O'Rourke works at Globex in Marrickville"


def test_scan_maps_results_to_model_entities():
    engine = FakeEngine([
        FakeResult("LOCATION", 35, 47, 0.85),
        FakeResult("PERSON", 0, 15, 0.9),
        FakeResult("ORGANIZATION", 25, 31, 0.5),
    ])
    found = PresidioDetector(engine=engine).scan(TEXT)
    assert [(e.label, e.text) for e in found] == [
        ("PERSON", "Daniel O'Rourke"),
        ("ORGANIZATION", "Globex"),
        ("LOCATION", "Marrickville"),
    ]
    assert all(e.source is DetectionSource.MODEL for e in found)
    assert found[0].score == 0.9


def test_engine_receives_settings():
    engine = FakeEngine([])
    PresidioDetector(engine=engine, score_threshold=0.5)(TEXT)
    assert engine.calls == [("en", DEFAULT_ENTITIES, 0.5)]


def test_empty_spans_dropped():
    engine = FakeEngine([FakeResult("PERSON", 4, 4, 0.99)])
    assert PresidioDetector(engine=engine).scan(TEXT) == []


def test_candidates_reconcile_to_closed_labels():
    engine = FakeEngine([
        FakeResult("PERSON", 0, 15, 0.9),
        FakeResult("ORGANIZATION", 25, 31, 0.5),    # below ORG threshold
        FakeResult("LOCATION", 35, 47, 0.85),
    ])
    out = reconcile(PresidioDetector(engine=engine).scan(TEXT), TEXT)
    assert [e.label for e in out] == ["PERSON", "ADDRESS"]
