# secrets_backend/core/errors.py


class SecretsBackendError(Exception):
    """Base class for every failure raised by this package."""


class ConfigurationError(SecretsBackendError):
    """Process-wide configuration (e.g. ENCRYPTION_KEY) is missing or malformed."""


class AuthenticationFailure(SecretsBackendError):
    """A token envelope failed tag verification: tampered data or wrong key."""


class MalformedEnvelope(SecretsBackendError):
    """A token envelope could not be parsed into nonce, tag and ciphertext."""


class InvalidPublicKey(SecretsBackendError):
    """A repository public key is not a base64 encoded Curve25519 key."""


class EncodingError(SecretsBackendError):
    """A secret value cannot be represented as UTF-8 bytes."""


class GitHubAPIError(SecretsBackendError):
    """GitHub answered an outbound call with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"GitHub API error: {status_code} - {message}")
        self.status_code = status_code
        self.message = message
