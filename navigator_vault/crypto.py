"""
Vault Crypto Core — Key derivation, record encryption/decryption, and serialization.

Implements the two cryptographic units of the vault:
- Key derivation: PBKDF2-SHA256(master_password, salt) → 32-byte key / verifier
- Record cipher: AES-GCM(key) → base64([nonce 12B][encrypted_payload + tag 16B])

Verifier modes:
- ``legacy``: the verifier is the raw derived key (stored as the profile hash).
- ``split``: the PBKDF2 output is expanded with HKDF into independent
  ``auth`` and ``encryption`` subkeys; the verifier is the ``auth`` subkey.

Security Note:
    Never log master passwords, keys, plaintext or ciphertext values.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import hmac
import base64
import binascii
import logging
from typing import Any, Optional, Union

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from . import conf
from .conf import KDFParams
from .exceptions import DecryptionError, KeyDerivationError

logger = logging.getLogger("navigator.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # AEAD tag, appended to the ciphertext
KEY_LENGTH = 32  # AES-256
SALT_SIZE = 16

_AUTH_CONTEXT = b"navigator-vault-auth"
_ENCRYPTION_CONTEXT = b"navigator-vault-encryption"

_BYTES_WRAPPER_KEY = "__vault_bytes_b64__"

SaltType = Union[bytes, str]
KeyType = Union[bytes, bytearray]


_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


def get_cipher_cls(backend: Optional[str] = None) -> type:
    """Return the AEAD cipher class for a backend name.

    Defaults to the process-wide backend resolved in ``conf``, the same
    value ``VaultConfig`` uses by default.

    Raises:
        ValueError: If the backend name is not supported.
    """
    if backend is None:
        backend = conf.CIPHER_BACKEND
    try:
        return _CIPHERS[backend.lower()]
    except KeyError:
        raise ValueError(f"Unsupported cipher backend: {backend}") from None


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------

def b64encode(data: bytes) -> str:
    """Encode bytes as a standard base64 ASCII string."""
    return base64.b64encode(bytes(data)).decode("ascii")


def b64decode(data: str) -> bytes:
    """Strictly decode a base64 string.

    Rejects characters outside the alphabet and non-canonical encodings
    (unused trailing bits set), so every distinct string maps to distinct
    bytes.

    Raises:
        ValueError: If the string is not canonical base64.
    """
    if isinstance(data, bytes):
        data = data.decode("ascii")
    raw = base64.b64decode(data, validate=True)
    if base64.b64encode(raw).decode("ascii") != data:
        raise ValueError("Non-canonical base64 encoding")
    return raw


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def generate_salt() -> bytes:
    """Generate a random 16-byte salt."""
    return os.urandom(SALT_SIZE)


def _coerce_salt(salt: SaltType) -> bytes:
    if isinstance(salt, str):
        try:
            salt = b64decode(salt)
        except (ValueError, UnicodeError) as err:
            raise KeyDerivationError("Salt is not valid base64") from err
    if not isinstance(salt, (bytes, bytearray)):
        raise KeyDerivationError(
            f"Salt must be bytes or base64 str, got {type(salt).__name__}"
        )
    if len(salt) != SALT_SIZE:
        raise KeyDerivationError(
            f"Salt must be {SALT_SIZE} bytes, got {len(salt)}"
        )
    return bytes(salt)


def _pbkdf2(secret: str, salt: SaltType, params: Optional[KDFParams]) -> bytes:
    """Run the slow PBKDF2-SHA256 derivation shared by keys and verifiers."""
    if not isinstance(secret, str) or not secret:
        raise KeyDerivationError("Master password cannot be empty")
    salt_bytes = _coerce_salt(salt)
    params = params or KDFParams()
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=params.length,
        salt=salt_bytes,
        iterations=params.iterations,
    )
    return kdf.derive(secret.encode("utf-8"))


def _expand(master: bytes, context: bytes) -> bytes:
    """Expand a derived master value into a purpose-bound 32-byte subkey."""
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # master is already salted by PBKDF2
        info=context,
    )
    return hkdf.derive(master)


def derive_key_pair(
    secret: str,
    salt: SaltType,
    params: Optional[KDFParams] = None,
    mode: str = "legacy",
) -> tuple[bytes, bytes]:
    """Derive the (encryption key, verifier) pair with a single PBKDF2 run.

    Args:
        secret: Master password.
        salt: 16-byte salt, raw or base64 encoded.
        params: Key derivation cost parameters.
        mode: Verifier mode, ``legacy`` or ``split``.

    Returns:
        Tuple of (32-byte key, 32-byte verifier).

    Raises:
        KeyDerivationError: On empty secret, malformed salt or unknown mode.
    """
    master = _pbkdf2(secret, salt, params)
    if mode == "legacy":
        return master, master
    if mode == "split":
        return (
            _expand(master, _ENCRYPTION_CONTEXT),
            _expand(master, _AUTH_CONTEXT),
        )
    raise KeyDerivationError(f"Unsupported verifier mode: {mode}")


def derive_key(
    secret: str,
    salt: SaltType,
    params: Optional[KDFParams] = None,
    mode: str = "legacy",
) -> bytes:
    """Derive the 32-byte record encryption key from a master password."""
    return derive_key_pair(secret, salt, params, mode)[0]


def hash_verifier(
    secret: str,
    salt: SaltType,
    params: Optional[KDFParams] = None,
    mode: str = "legacy",
) -> bytes:
    """Derive the 32-byte verifier stored in the user profile."""
    return derive_key_pair(secret, salt, params, mode)[1]


def verifiers_match(candidate: bytes, stored: Union[bytes, str]) -> bool:
    """Constant-time comparison of a candidate verifier with the stored one."""
    if isinstance(stored, str):
        try:
            stored = b64decode(stored)
        except (ValueError, UnicodeError):
            return False
    return hmac.compare_digest(bytes(candidate), bytes(stored))


# ---------------------------------------------------------------------------
# Record cipher
# ---------------------------------------------------------------------------

def _cipher(key: KeyType, backend: Optional[str]):
    if len(key) != KEY_LENGTH:
        raise ValueError(
            f"Encryption key must be {KEY_LENGTH} bytes, got {len(key)}"
        )
    return get_cipher_cls(backend)(bytes(key))


def encrypt(plaintext: bytes, key: KeyType, backend: Optional[str] = None) -> str:
    """Encrypt a record body under a derived key.

    Format: base64([nonce 12B][encrypted_payload + tag 16B])

    Args:
        plaintext: Opaque record body.
        key: 32-byte derived key.
        backend: AEAD backend name; defaults to the process-wide cipher.

    Returns:
        Encrypted record string.

    Raises:
        ValueError: If the key is not 32 bytes or the backend is unknown.
    """
    cipher = _cipher(key, backend)
    nonce = os.urandom(NONCE_SIZE)
    ct = cipher.encrypt(nonce, bytes(plaintext), None)
    return b64encode(nonce + ct)


def decrypt(record: str, key: KeyType, backend: Optional[str] = None) -> bytes:
    """Decrypt an encrypted record string.

    Args:
        record: Encrypted record in format base64([nonce 12B][payload+tag]).
        key: 32-byte derived key.
        backend: AEAD backend name; defaults to the process-wide cipher.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        DecryptionError: On malformed encoding, truncated input, a key
            that is not 32 bytes, or authentication failure (wrong key or
            tampered data).
        ValueError: If the backend name is not supported.
    """
    try:
        combined = b64decode(record)
    except (ValueError, UnicodeError, TypeError, binascii.Error) as err:
        raise DecryptionError("Encrypted record is not valid base64") from err
    _min = NONCE_SIZE + TAG_SIZE
    if len(combined) < _min:
        raise DecryptionError(
            f"Encrypted record too short: {len(combined)} bytes "
            f"(minimum {_min})"
        )
    if len(key) != KEY_LENGTH:
        raise DecryptionError(
            f"Decryption key must be {KEY_LENGTH} bytes, got {len(key)}"
        )
    cipher = _cipher(key, backend)
    nonce = combined[:NONCE_SIZE]
    ct = combined[NONCE_SIZE:]
    try:
        return cipher.decrypt(nonce, ct, None)
    except InvalidTag as err:
        raise DecryptionError(
            "Authentication failed - wrong key or data corrupted/tampered"
        ) from err


# ---------------------------------------------------------------------------
# Value serialization
# ---------------------------------------------------------------------------

def serialize_value(value: Any) -> bytes:
    """Serialize a Python value to bytes for encryption.

    Supports: str, int, float, dict, list, bytes, bool, None.
    bytes values are wrapped as {"__vault_bytes_b64__": "<base64>"} for
    safe JSON round-trip.

    Args:
        value: Python value to serialize.

    Returns:
        orjson-encoded bytes.
    """
    if isinstance(value, bytes):
        wrapped = {_BYTES_WRAPPER_KEY: b64encode(value)}
        return orjson.dumps(wrapped)
    return orjson.dumps(value)


def deserialize_value(data: bytes) -> Any:
    """Deserialize bytes back to a Python value.

    Args:
        data: orjson-encoded bytes from serialize_value.

    Returns:
        Original Python value.
    """
    parsed = orjson.loads(data)
    if isinstance(parsed, dict) and _BYTES_WRAPPER_KEY in parsed and len(parsed) == 1:
        return base64.b64decode(parsed[_BYTES_WRAPPER_KEY])
    return parsed
