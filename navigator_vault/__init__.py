"""Navigator Vault — Encrypted password vault core.

Security Note (Threat Model):
    Records are encrypted client-side under a key derived from the user's
    master password; the store only ever sees salts, verifiers and
    ciphertext. The derived key is held in process memory while the vault
    is unlocked; a memory dump of the process could expose it. Mitigation
    requires HSM/secure enclave integration which is out of scope.
"""
from .version import __version__
from .conf import KDFParams, VaultConfig
from .crypto import (
    generate_salt,
    derive_key,
    hash_verifier,
    encrypt,
    decrypt,
    serialize_value,
    deserialize_value,
)
from .exceptions import (
    VaultError,
    KeyDerivationError,
    InvalidMasterPassword,
    InvalidOldMasterPassword,
    DecryptionError,
    RotationFailed,
    PersistenceError,
    ProfileNotFound,
    VaultStateError,
    VaultLockedError,
    ProfileExists,
)
from .models import EncryptedRecord, Profile, RotationReport, PasswordData, WifiData
from .store import VaultStore, InMemoryVaultStore
from .key_rotation import rotate_records
from .manager import VaultKeyManager, VaultState
from .generator import generate_password, password_strength, has_common_pattern

__all__ = [
    "__version__",
    "KDFParams",
    "VaultConfig",
    "generate_salt",
    "derive_key",
    "hash_verifier",
    "encrypt",
    "decrypt",
    "serialize_value",
    "deserialize_value",
    "VaultError",
    "KeyDerivationError",
    "InvalidMasterPassword",
    "InvalidOldMasterPassword",
    "DecryptionError",
    "RotationFailed",
    "PersistenceError",
    "ProfileNotFound",
    "VaultStateError",
    "VaultLockedError",
    "ProfileExists",
    "EncryptedRecord",
    "Profile",
    "RotationReport",
    "PasswordData",
    "WifiData",
    "VaultStore",
    "InMemoryVaultStore",
    "rotate_records",
    "VaultKeyManager",
    "VaultState",
    "generate_password",
    "password_strength",
    "has_common_pattern",
]
