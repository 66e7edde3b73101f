"""Mapping vault — authenticated encryption for exported redaction maps.

The map is the key that reverses a redaction, so it gets the same
protection as the original PII:

    artifact = encrypt_json(mapping_dict, "correct horse battery staple")
    mapping_dict = decrypt_json(artifact, "correct horse battery staple")

Key derivation is PBKDF2-HMAC-SHA256 (200 000 iterations, fresh 16-byte
salt) to a 256-bit key; encryption is AES-256-GCM with a fresh 12-byte
nonce.  The artifact is a flat JSON object:

    {"v": "1", "alg": "AES-GCM", "kdf": "PBKDF2-SHA256", "iters": 200000,
     "iv": <b64>, "salt": <b64>, "ct": <b64>}

Derivation is deliberately slow; interactive callers should run it off
their main path.
"""

from __future__ import annotations
import base64
import binascii
import json
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import DecryptionError, MalformedArtifactError, UnsupportedVersionError

FORMAT_VERSION = "1"
ALGORITHM = "AES-GCM"
KDF = "PBKDF2-SHA256"
ITERATIONS = 200_000
MAX_ITERATIONS = 10_000_000
SALT_BYTES = 16
NONCE_BYTES = 12
KEY_BYTES = 32

ARTIFACT_FIELDS = ("v", "alg", "kdf", "iters", "iv", "salt", "ct")


def derive_key(passphrase: str, salt: bytes, iterations: int = ITERATIONS) -> bytes:
    """Derive a 256-bit AES key from a passphrase."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_BYTES,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(artifact: dict[str, Any], name: str) -> bytes:
    value = artifact[name]
    if not isinstance(value, str):
        raise MalformedArtifactError(f"Field {name!r} must be a base64 string")
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise MalformedArtifactError(f"Field {name!r} is not valid base64") from e


def encrypt_json(obj: Any, passphrase: str, *, iterations: int = ITERATIONS) -> dict[str, Any]:
    """
    Encrypt any JSON-serializable object.

    Args:
        obj: Object to encrypt (typically an export artifact)
        passphrase: User passphrase; must not be empty
        iterations: PBKDF2 iteration count recorded in the artifact

    Returns:
        Encrypted artifact dict
    """
    if not passphrase:
        raise ValueError("A passphrase is required to encrypt a mapping")
    salt = os.urandom(SALT_BYTES)
    nonce = os.urandom(NONCE_BYTES)
    key = derive_key(passphrase, salt, iterations)
    plaintext = json.dumps(obj, ensure_ascii=False).encode("utf-8")
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)
    return {
        "v": FORMAT_VERSION,
        "alg": ALGORITHM,
        "kdf": KDF,
        "iters": iterations,
        "iv": _b64(nonce),
        "salt": _b64(salt),
        "ct": _b64(ciphertext),
    }


def is_encrypted_artifact(data: Any) -> bool:
    """True if ``data`` looks like an artifact from ``encrypt_json``."""
    return isinstance(data, dict) and "ct" in data and "v" in data


def decrypt_json(artifact: Any, passphrase: str) -> Any:
    """
    Decrypt an artifact produced by ``encrypt_json``.

    Raises:
        MalformedArtifactError: Missing/renamed fields or undecodable values
        UnsupportedVersionError: Unknown ``v``
        DecryptionError: Wrong passphrase or tampered ciphertext
    """
    if not isinstance(artifact, dict):
        raise MalformedArtifactError("Encrypted artifact must be a JSON object")
    missing = [f for f in ARTIFACT_FIELDS if f not in artifact]
    if missing:
        raise MalformedArtifactError(f"Encrypted artifact is missing fields: {', '.join(missing)}")
    if str(artifact["v"]) != FORMAT_VERSION:
        raise UnsupportedVersionError(f"Unsupported encrypted artifact version: {artifact['v']!r}")
    if artifact["alg"] != ALGORITHM or artifact["kdf"] != KDF:
        raise MalformedArtifactError(
            f"Unsupported cipher suite: {artifact['alg']!r} / {artifact['kdf']!r}"
        )

    iterations = artifact["iters"]
    if isinstance(iterations, bool) or not isinstance(iterations, int) \
            or not 0 < iterations <= MAX_ITERATIONS:
        raise MalformedArtifactError(f"Invalid iteration count: {iterations!r}")

    nonce = _unb64(artifact, "iv")
    salt = _unb64(artifact, "salt")
    ciphertext = _unb64(artifact, "ct")
    if len(nonce) != NONCE_BYTES or len(salt) != SALT_BYTES:
        raise MalformedArtifactError("Invalid nonce or salt length")

    key = derive_key(passphrase, salt, iterations)
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise DecryptionError(
            "Decryption failed: wrong passphrase or the mapping has been tampered with"
        ) from e

    try:
        return json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedArtifactError("Decrypted mapping is not valid JSON") from e
