"""Tests for mapping export / import."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import json
from datetime import datetime

import pytest

from pii_roundtrip.exceptions import (
    ArtifactNotFoundError, DecryptionError, MalformedArtifactError,
    PassphraseRequiredError, SizeLimitError, UnsupportedVersionError,
)
from pii_roundtrip.export import build_export, load_mapping, parse_export, save_mapping
from pii_roundtrip.types import PersonEntry, ValueEntry
from pii_roundtrip.vault import encrypt_json

SEMANTIC = {
    "PERSON_A1B2C3": PersonEntry(full="Daniel O'Rourke", first="Daniel",
                                 last="O'Rourke", canonical="daniel o rourke"),
    "ORG_0F0F0F": ValueEntry(label="ORG", full="Harbour View Pty Ltd",
                             canonical="harbour view pty ltd"),
}
POSITIONAL = {"PERSON_3FA94C1B": "Jane Citizen", "ABN_0C1D22E9": "83 914 571 673"}


# ── Envelope ─────────────────────────────────────────────────────────

def test_build_export_envelope():
    data = build_export(SEMANTIC)
    assert data["version"] == "1"
    assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None
    assert data["mapping"]["PERSON_A1B2C3"]["first"] == "Daniel"
    assert data["mapping"]["ORG_0F0F0F"]["label"] == "ORG"
    json.dumps(data)


def test_parse_plaintext_export():
    raw = json.dumps(build_export(SEMANTIC))
    assert parse_export(raw) == SEMANTIC


def test_positional_values_stay_strings():
    raw = json.dumps(build_export(POSITIONAL))
    assert parse_export(raw) == POSITIONAL


def test_label_inferred_from_key():
    raw = json.dumps({"version": "1", "mapping": {
        "EMAIL_ABCDEF": {"full": "jo@example.com", "canonical": "jo example com"},
    }})
    entry = parse_export(raw)["EMAIL_ABCDEF"]
    assert entry.label == "EMAIL"


# ── Save / load ──────────────────────────────────────────────────────

def test_save_and_load_plaintext(tmp_path):
    path = save_mapping(tmp_path / "map.json", SEMANTIC)
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == "1"
    assert load_mapping(path) == SEMANTIC


def test_save_and_load_encrypted(tmp_path):
    path = save_mapping(tmp_path / "nested" / "map.json", POSITIONAL, passphrase="s3cret")
    on_disk = path.read_text(encoding="utf-8")
    assert "Jane Citizen" not in on_disk
    assert json.loads(on_disk)["alg"] == "AES-GCM"
    assert load_mapping(path, passphrase="s3cret") == POSITIONAL


def test_encrypted_without_passphrase(tmp_path):
    path = save_mapping(tmp_path / "map.json", POSITIONAL, passphrase="s3cret")
    with pytest.raises(PassphraseRequiredError):
        load_mapping(path)


def test_wrong_passphrase_is_decryption_error(tmp_path):
    path = save_mapping(tmp_path / "map.json", POSITIONAL, passphrase="s3cret")
    with pytest.raises(DecryptionError):
        load_mapping(path, passphrase="guess")


def test_missing_file(tmp_path):
    with pytest.raises(ArtifactNotFoundError) as exc:
        load_mapping(tmp_path / "nope.json")
    assert isinstance(exc.value, FileNotFoundError)


def test_oversized_file_rejected_before_parse(tmp_path):
    path = tmp_path / "big.json"
    path.write_text("x" * 2048, encoding="utf-8")
    with pytest.raises(SizeLimitError) as exc:
        load_mapping(path, max_bytes=1024)
    assert exc.value.size == 2048
    assert exc.value.limit == 1024


# ── Malformed input ──────────────────────────────────────────────────

@pytest.mark.parametrize("raw", [
    "not json",
    "[]",
    '{"mapping": {}}',
    '{"version": "1"}',
    '{"version": "1", "mapping": []}',
    '{"version": "1", "mapping": {"PERSON_A1B2C3": {"first": "Daniel"}}}',
    '{"version": "1", "mapping": {"PERSON_A1B2C3": 42}}',
])
def test_malformed_exports(raw):
    with pytest.raises(MalformedArtifactError):
        parse_export(raw)


def test_unknown_export_version():
    with pytest.raises(UnsupportedVersionError):
        parse_export('{"version": "9", "mapping": {}}')


def test_unknown_version_inside_encryption():
    artifact = encrypt_json({"version": "9", "mapping": {}}, "pw", iterations=1000)
    with pytest.raises(UnsupportedVersionError):
        parse_export(json.dumps(artifact), passphrase="pw")


def test_size_limit_on_raw_text():
    with pytest.raises(SizeLimitError):
        parse_export(json.dumps(build_export(POSITIONAL)), max_bytes=10)
