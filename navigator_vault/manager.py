"""
VaultKeyManager — Session-scoped holder of the vault encryption key.

Provides the public API for an unlocked vault session:
- ``sign_up(password)`` — create salt and verifier, persist the profile, unlock
- ``unlock(password)`` — verify against the stored profile and derive the key
- ``rotate(old, new)`` — re-encrypt every record under a new master password
- ``sign_out()`` — wipe the key and lock
- ``encrypt(data)`` / ``decrypt(record)`` — record cipher bound to the session key

States::

    LOCKED -> UNLOCKING -> UNLOCKED -> LOCKED
                             |   ^
                             v   |
                           ROTATING

Transitions are serialized with an asyncio lock. A cancelled or failed
call always leaves the manager in the state it had before the call.

Security Note:
    Never log master passwords, keys, verifiers, plaintext or ciphertext
    values. Only log user ids, record counts and states. The key lives in a
    bytearray that is zeroed when the session ends or the key is replaced;
    copies made by the cryptography backend cannot be wiped.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from .conf import KDFParams, VaultConfig
from .crypto import (
    decrypt,
    derive_key_pair,
    deserialize_value,
    encrypt,
    generate_salt,
    serialize_value,
    verifiers_match,
)
from .exceptions import (
    InvalidMasterPassword,
    InvalidOldMasterPassword,
    ProfileExists,
    ProfileNotFound,
    RotationFailed,
    VaultLockedError,
    VaultStateError,
)
from .key_rotation import rotate_records
from .models import EncryptedRecord, Profile, RotationReport
from .store import VaultStore

logger = logging.getLogger("navigator.vault")


class VaultState(str, Enum):
    LOCKED = "locked"
    UNLOCKING = "unlocking"
    UNLOCKED = "unlocked"
    ROTATING = "rotating"


class VaultKeyManager:
    """Encryption key holder bound to one user's vault session.

    Key derivation runs in a worker thread so record operations of other
    sessions are not blocked by the PBKDF2 work factor.
    """

    def __init__(
        self,
        store: VaultStore,
        user_id: str,
        config: Optional[VaultConfig] = None,
        kdf_params: Optional[KDFParams] = None,
    ):
        self._store = store
        self._user_id = user_id
        self._config = config or VaultConfig()
        self._params = kdf_params or self._config.kdf_params()
        self._mode = self._config.verifier_mode
        self._backend = self._config.cipher_backend
        self._key: Optional[bytearray] = None
        self._state = VaultState.LOCKED
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<VaultKeyManager user={self._user_id} state={self._state.value}>"

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def state(self) -> VaultState:
        return self._state

    @property
    def is_unlocked(self) -> bool:
        return self._key is not None and self._state in (
            VaultState.UNLOCKED, VaultState.ROTATING,
        )

    @property
    def session_key(self) -> bytes:
        """Copy of the current session key.

        Raises:
            VaultLockedError: If the vault is locked.
        """
        return self._snapshot()

    # ------------------------------------------------------------------
    # Key helpers
    # ------------------------------------------------------------------

    def _snapshot(self) -> bytes:
        key = self._key
        if key is None or not self.is_unlocked:
            raise VaultLockedError("Vault is locked")
        return bytes(key)

    def _wipe(self) -> None:
        if self._key is not None:
            for i in range(len(self._key)):
                self._key[i] = 0
        self._key = None

    def _install(self, key: bytes) -> None:
        """Replace the held key wholesale, zeroing the previous one."""
        self._wipe()
        self._key = bytearray(key)

    async def _derive(self, secret: str, salt: bytes) -> tuple[bytes, bytes]:
        return await asyncio.to_thread(
            derive_key_pair, secret, salt, self._params, self._mode,
        )

    def _require_state(self, *states: VaultState) -> None:
        if self._state not in states:
            if VaultState.UNLOCKED in states:
                raise VaultLockedError(
                    f"Vault must be unlocked (current state: {self._state.value})"
                )
            raise VaultStateError(
                f"Operation not allowed in state {self._state.value}"
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def sign_up(self, password: str) -> Profile:
        """Create the user's vault profile and unlock the session.

        Args:
            password: New master password.

        Returns:
            The persisted profile.

        Raises:
            ProfileExists: If the user already has a vault profile.
            KeyDerivationError: If password is empty.
            PersistenceError: If the profile cannot be stored.
        """
        async with self._lock:
            self._require_state(VaultState.LOCKED)
            self._state = VaultState.UNLOCKING
            try:
                try:
                    await self._store.get_profile(self._user_id)
                except ProfileNotFound:
                    pass
                else:
                    logger.warning(
                        "Sign-up rejected for user=%s: vault already exists",
                        self._user_id,
                    )
                    raise ProfileExists(
                        f"Vault profile already exists for user {self._user_id}"
                    )
                salt = generate_salt()
                key, verifier = await self._derive(password, salt)
                profile = Profile.from_bytes(salt, verifier)
                await self._store.create_profile(self._user_id, profile)
                self._install(key)
                self._state = VaultState.UNLOCKED
            finally:
                if self._state is VaultState.UNLOCKING:
                    self._state = VaultState.LOCKED
        logger.info("Vault created for user=%s", self._user_id)
        return profile

    async def unlock(self, password: str) -> None:
        """Verify the master password and hold the derived key.

        Raises:
            InvalidMasterPassword: If the password does not match.
            ProfileNotFound: If the user has no vault profile.
            KeyDerivationError: If password is empty or salt is malformed.
        """
        async with self._lock:
            self._require_state(VaultState.LOCKED)
            self._state = VaultState.UNLOCKING
            try:
                profile = await self._store.get_profile(self._user_id)
                key, candidate = await self._derive(password, profile.salt_bytes)
                if not verifiers_match(candidate, profile.verifier_bytes):
                    logger.warning(
                        "Vault unlock rejected for user=%s", self._user_id,
                    )
                    raise InvalidMasterPassword()
                self._install(key)
                self._state = VaultState.UNLOCKED
            finally:
                if self._state is VaultState.UNLOCKING:
                    self._state = VaultState.LOCKED
        logger.info("Vault unlocked for user=%s", self._user_id)

    async def rotate(self, old_password: str, new_password: str) -> RotationReport:
        """Change the master password and re-encrypt every record.

        The old password is checked against the stored verifier, not the
        in-memory key. The session key is replaced only after every record
        and the new profile are written.

        Args:
            old_password: Current master password.
            new_password: Replacement master password.

        Returns:
            RotationReport of the rewritten records.

        Raises:
            VaultLockedError: If the vault is not unlocked.
            InvalidOldMasterPassword: If old_password is wrong (nothing written).
            RotationFailed: On decryption or persistence failure.
            KeyDerivationError: If either password is empty.
        """
        async with self._lock:
            self._require_state(VaultState.UNLOCKED)
            self._state = VaultState.ROTATING
            logger.info("Starting master password rotation for user=%s", self._user_id)
            try:
                profile = await self._store.get_profile(self._user_id)
                old_key, candidate = await self._derive(
                    old_password, profile.salt_bytes,
                )
                if not verifiers_match(candidate, profile.verifier_bytes):
                    raise InvalidOldMasterPassword()
                new_salt = generate_salt()
                while new_salt == profile.salt_bytes:
                    new_salt = generate_salt()
                new_key, new_verifier = await self._derive(new_password, new_salt)

                report = await rotate_records(
                    self._store,
                    self._user_id,
                    old_key,
                    new_key,
                    new_profile=Profile.from_bytes(new_salt, new_verifier),
                    batch_size=self._config.rotation_batch_size,
                    backend=self._backend,
                )
                self._install(new_key)
            except RotationFailed as err:
                logger.warning(
                    "Rotation aborted for user=%s: %s", self._user_id, err,
                )
                raise
            finally:
                self._state = VaultState.UNLOCKED
        logger.info(
            "Master password rotated for user=%s: %d record(s) re-encrypted",
            self._user_id, len(report.rotated),
        )
        return report

    async def sign_out(self) -> None:
        """Wipe the session key and lock the vault."""
        async with self._lock:
            was_unlocked = self._state is VaultState.UNLOCKED
            self._wipe()
            self._state = VaultState.LOCKED
        if was_unlocked:
            logger.info("Vault locked for user=%s", self._user_id)

    # ------------------------------------------------------------------
    # Record cipher
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: bytes) -> str:
        """Encrypt a record body under the session key."""
        return encrypt(plaintext, self._snapshot(), self._backend)

    def decrypt(self, encrypted_body: str) -> bytes:
        """Decrypt a record body with the session key.

        Raises:
            VaultLockedError: If the vault is locked.
            DecryptionError: If the record cannot be authenticated.
        """
        return decrypt(encrypted_body, self._snapshot(), self._backend)

    def encrypt_value(self, value: Any) -> str:
        """Serialize a JSON-compatible value and encrypt it."""
        return self.encrypt(serialize_value(value))

    def decrypt_value(self, encrypted_body: str) -> Any:
        return deserialize_value(self.decrypt(encrypted_body))

    def decrypt_records(self, records: list[EncryptedRecord]) -> dict[str, bytes]:
        """Decrypt a set of records under a single key snapshot.

        Returns:
            Mapping of record id to plaintext.

        Raises:
            DecryptionError: On the first record that cannot be read.
        """
        key = self._snapshot()
        return {
            record.id: decrypt(record.encrypted_body, key, self._backend)
            for record in records
        }
