"""
Exception hierarchy for redaction, export and import.

Validation failures (bad checksum, low confidence) and alignment failures
(unrescuable spans) are never raised; they are dropped or logged.
"""


class RedactorError(Exception):
    """Base exception for pii-roundtrip."""
    pass


class ConfigurationError(RedactorError):
    """Raised when configuration is invalid."""
    pass


class SizeLimitError(RedactorError):
    """Raised when a document or import file exceeds the configured limit."""

    def __init__(self, what: str, size: int, limit: int):
        super().__init__(f"{what} is too large: {size} > limit of {limit}")
        self.size = size
        self.limit = limit


class ArtifactError(RedactorError):
    """Base for failures reading an exported mapping."""
    pass


class ArtifactNotFoundError(ArtifactError, FileNotFoundError):
    """Raised when a mapping file does not exist."""
    pass


class MalformedArtifactError(ArtifactError):
    """Raised when a mapping artifact is not valid JSON or misses fields."""
    pass


class UnsupportedVersionError(ArtifactError):
    """Raised when an artifact declares a format version we do not read."""
    pass


class DecryptionError(ArtifactError):
    """Raised when authenticated decryption fails.

    Wrong passphrase, tampered ciphertext and tag mismatch all land here.
    """
    pass


class PassphraseRequiredError(ArtifactError):
    """Raised when an encrypted mapping is opened without a passphrase."""
    pass
