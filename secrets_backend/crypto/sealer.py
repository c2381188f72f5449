# secrets_backend/crypto/sealer.py
"""libsodium sealed boxes for GitHub Actions secrets.

GitHub only accepts values encrypted with ``crypto_box_seal`` under the
repository's public key: an ephemeral X25519 keypair, XSalsa20-Poly1305 and
the ephemeral public key prepended to the output. There is no decrypt here;
only GitHub holds the private key.
"""
import base64
import binascii

from nacl import encoding, exceptions, public

from secrets_backend.core.errors import EncodingError, InvalidPublicKey

#: overhead added by crypto_box_seal: ephemeral public key + Poly1305 MAC
SEAL_OVERHEAD = public.PublicKey.SIZE + 16


def load_public_key(recipient_public_key_b64: str) -> public.PublicKey:
    if not isinstance(recipient_public_key_b64, str):
        raise InvalidPublicKey("Public key must be a base64 string")
    try:
        raw = base64.b64decode(recipient_public_key_b64.encode("ascii"), validate=True)
    except (binascii.Error, ValueError, UnicodeEncodeError) as err:
        raise InvalidPublicKey("Public key is not valid base64") from err
    if len(raw) != public.PublicKey.SIZE:
        raise InvalidPublicKey(
            f"Public key must be {public.PublicKey.SIZE} bytes, got {len(raw)}"
        )
    try:
        return public.PublicKey(raw)
    except (exceptions.CryptoError, TypeError, ValueError) as err:
        raise InvalidPublicKey(str(err)) from err


def seal(plaintext_value: str, recipient_public_key_b64: str) -> str:
    """Encrypt a secret value for a repository public key.

    Returns the base64 sealed box expected by GitHub's ``encrypted_value``.
    Every call uses a fresh ephemeral key, so the output differs each time.
    """
    if not isinstance(plaintext_value, str):
        raise EncodingError("Secret value must be text")
    try:
        message = plaintext_value.encode("utf-8")
    except UnicodeEncodeError as err:
        raise EncodingError("Secret value cannot be encoded as UTF-8") from err

    sealed_box = public.SealedBox(load_public_key(recipient_public_key_b64))
    encrypted = sealed_box.encrypt(message, encoder=encoding.RawEncoder)
    return base64.b64encode(encrypted).decode("utf-8")
