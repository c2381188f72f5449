# secrets_backend/crypto/token_vault.py
"""AES-256-GCM encryption of GitHub access tokens at rest.

Envelope format (all fields lowercase hex, colon separated):
    <nonce 12B>:<tag 16B>:<ciphertext>

Security Note:
    Never log plaintext tokens, envelopes or key material.
    Nonces are random 96-bit, drawn fresh for every encrypt() call.
"""
import os
import logging
import binascii
from functools import lru_cache
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from secrets_backend.core.config import Settings, settings as default_settings
from secrets_backend.core.errors import (
    AuthenticationFailure,
    ConfigurationError,
    EncodingError,
    MalformedEnvelope,
)

logger = logging.getLogger("secrets_backend.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16    # GCM tag
KEY_LENGTH = 32  # AES-256

_SEPARATOR = ":"


def load_encryption_key(config: Optional[Settings] = None) -> bytes:
    """Decode ENCRYPTION_KEY from configuration.

    Args:
        config: Settings to read from; the process-wide settings by default.

    Returns:
        Raw 32-byte key.

    Raises:
        ConfigurationError: If the key is unset, not hex, or not 32 bytes.
    """
    config = config or default_settings
    raw = (config.ENCRYPTION_KEY or "").strip()
    if not raw:
        raise ConfigurationError(
            "ENCRYPTION_KEY is not set. "
            "Set ENCRYPTION_KEY=<64 hex chars> (e.g. `openssl rand -hex 32`)"
        )
    try:
        key = bytes.fromhex(raw)
    except ValueError as err:
        raise ConfigurationError("ENCRYPTION_KEY must be hex encoded") from err
    if len(key) != KEY_LENGTH:
        raise ConfigurationError(
            f"ENCRYPTION_KEY must decode to exactly {KEY_LENGTH} bytes, got {len(key)}"
        )
    return key


class TokenVault:
    """Authenticated symmetric encryption for tokens stored in the database.

    Instances hold only the key and are safe to share between requests.
    """

    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise ConfigurationError(
                f"Token vault key must be exactly {KEY_LENGTH} bytes"
            )
        self._cipher = AESGCM(bytes(key))

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "TokenVault":
        return cls(load_encryption_key(config))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token and return its envelope.

        Args:
            plaintext: Token text.

        Returns:
            ``nonce:tag:ciphertext`` envelope. Two calls with the same input
            return different envelopes.

        Raises:
            EncodingError: If the token is not text.
        """
        if not isinstance(plaintext, str):
            raise EncodingError("Token must be text")
        nonce = os.urandom(NONCE_SIZE)
        # AESGCM appends the tag to the ciphertext
        sealed = self._cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return _SEPARATOR.join((nonce.hex(), tag.hex(), ciphertext.hex()))

    def decrypt(self, envelope: str) -> str:
        """Decrypt an envelope produced by :meth:`encrypt`.

        Args:
            envelope: ``nonce:tag:ciphertext`` string.

        Returns:
            Original token text.

        Raises:
            MalformedEnvelope: If the envelope cannot be parsed.
            AuthenticationFailure: If the tag does not verify.
        """
        nonce, tag, ciphertext = _parse_envelope(envelope)
        try:
            plaintext = self._cipher.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as err:
            logger.warning("Token envelope failed authentication")
            raise AuthenticationFailure(
                "Token envelope failed authentication (tampered or wrong key)"
            ) from err
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as err:
            raise MalformedEnvelope("Decrypted token is not valid UTF-8") from err


def _parse_envelope(envelope: str) -> tuple[bytes, bytes, bytes]:
    if not isinstance(envelope, str):
        raise MalformedEnvelope("Token envelope must be a string")
    parts = envelope.split(_SEPARATOR)
    if len(parts) != 3:
        raise MalformedEnvelope(
            f"Token envelope must have 3 fields, got {len(parts)}"
        )
    nonce_hex, tag_hex, ciphertext_hex = parts
    # an empty ciphertext field is the encryption of ""
    if not nonce_hex or not tag_hex:
        raise MalformedEnvelope("Token envelope is missing its nonce or tag")
    try:
        nonce = binascii.unhexlify(nonce_hex)
        tag = binascii.unhexlify(tag_hex)
        ciphertext = binascii.unhexlify(ciphertext_hex)
    except (binascii.Error, ValueError) as err:
        raise MalformedEnvelope("Token envelope fields must be hex") from err
    if len(nonce) != NONCE_SIZE:
        raise MalformedEnvelope(
            f"Token envelope nonce must be {NONCE_SIZE} bytes, got {len(nonce)}"
        )
    if len(tag) != TAG_SIZE:
        raise MalformedEnvelope(
            f"Token envelope tag must be {TAG_SIZE} bytes, got {len(tag)}"
        )
    return nonce, tag, ciphertext


@lru_cache(maxsize=1)
def get_token_vault() -> TokenVault:
    """Process-wide vault built from ENCRYPTION_KEY.

    Raises:
        ConfigurationError: If ENCRYPTION_KEY is missing or malformed.
    """
    vault = TokenVault.from_settings()
    logger.debug("Token vault initialised")
    return vault
