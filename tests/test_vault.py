"""Tests for the mapping vault (PBKDF2 + AES-GCM)."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import base64

import pytest

from pii_roundtrip.exceptions import (
    ArtifactError, DecryptionError, MalformedArtifactError, UnsupportedVersionError,
)
from pii_roundtrip.vault import (
    ARTIFACT_FIELDS, ITERATIONS, decrypt_json, encrypt_json, is_encrypted_artifact,
)

FAST = 1000
PASS = "correct horse battery staple"
PAYLOAD = {"version": "1", "mapping": {"PERSON_A1B2C3": {"label": "PERSON", "full": "Zoë Ng"}}}


def _artifact(**overrides):
    artifact = encrypt_json(PAYLOAD, PASS, iterations=FAST)
    artifact.update(overrides)
    return artifact


# ── Round trip ───────────────────────────────────────────────────────

def test_round_trip():
    assert decrypt_json(_artifact(), PASS) == PAYLOAD


def test_artifact_shape():
    artifact = _artifact()
    assert tuple(artifact) == ARTIFACT_FIELDS
    assert artifact["v"] == "1"
    assert artifact["alg"] == "AES-GCM"
    assert artifact["kdf"] == "PBKDF2-SHA256"
    assert artifact["iters"] == FAST
    assert len(base64.b64decode(artifact["iv"])) == 12
    assert len(base64.b64decode(artifact["salt"])) == 16
    assert is_encrypted_artifact(artifact)


def test_default_iterations():
    assert ITERATIONS == 200_000
    assert encrypt_json({}, PASS)["iters"] == ITERATIONS


def test_fresh_salt_and_nonce():
    a, b = _artifact(), _artifact()
    assert a["salt"] != b["salt"]
    assert a["iv"] != b["iv"]
    assert a["ct"] != b["ct"]


def test_empty_passphrase_refused():
    with pytest.raises(ValueError):
        encrypt_json(PAYLOAD, "")


# ── Failures ─────────────────────────────────────────────────────────

def test_wrong_passphrase():
    with pytest.raises(DecryptionError):
        decrypt_json(_artifact(), "Tr0ub4dor&3")


def test_tampered_ciphertext():
    artifact = _artifact()
    ct = bytearray(base64.b64decode(artifact["ct"]))
    ct[0] ^= 0x01
    artifact["ct"] = base64.b64encode(bytes(ct)).decode("ascii")
    with pytest.raises(DecryptionError):
        decrypt_json(artifact, PASS)


def test_tampered_salt_fails_authentication():
    artifact = _artifact(salt=base64.b64encode(b"\x00" * 16).decode("ascii"))
    with pytest.raises(DecryptionError):
        decrypt_json(artifact, PASS)


@pytest.mark.parametrize("field", ARTIFACT_FIELDS)
def test_missing_field(field):
    artifact = _artifact()
    del artifact[field]
    with pytest.raises(MalformedArtifactError):
        decrypt_json(artifact, PASS)


def test_unknown_version():
    with pytest.raises(UnsupportedVersionError):
        decrypt_json(_artifact(v="2"), PASS)


@pytest.mark.parametrize("overrides", [
    {"alg": "AES-CBC"},
    {"kdf": "scrypt"},
    {"iters": 0},
    {"iters": "1000"},
    {"iters": True},
    {"iv": "not base64!"},
    {"salt": 1234},
    {"iv": base64.b64encode(b"short").decode("ascii")},
])
def test_malformed_fields(overrides):
    with pytest.raises(MalformedArtifactError):
        decrypt_json(_artifact(**overrides), PASS)


def test_not_an_object():
    with pytest.raises(MalformedArtifactError):
        decrypt_json(["ct", "v"], PASS)


def test_failures_share_a_base_but_stay_distinct():
    assert issubclass(DecryptionError, ArtifactError)
    assert issubclass(MalformedArtifactError, ArtifactError)
    assert not issubclass(DecryptionError, MalformedArtifactError)
    assert not issubclass(MalformedArtifactError, DecryptionError)
