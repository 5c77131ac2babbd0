"""
Vault Store — Persistence interface used by the key manager.

The vault core never talks to a database directly. Applications provide a
``VaultStore`` implementation (PostgreSQL, an HTTP backend, ...) and the
core moves opaque encrypted bodies and profiles through it.

Adapters signal failures with ``PersistenceError``; the core propagates
them unmodified and never retries.
"""
import logging
from abc import ABC, abstractmethod

from .exceptions import PersistenceError, ProfileExists, ProfileNotFound
from .models import EncryptedRecord, Profile

logger = logging.getLogger("navigator.vault")


class VaultStore(ABC):
    """Durable storage of vault profiles and encrypted records."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> Profile:
        """Return the stored profile, raising ProfileNotFound if missing."""

    @abstractmethod
    async def put_profile(self, user_id: str, profile: Profile) -> None:
        """Create or replace salt and verifier hash together."""

    async def create_profile(self, user_id: str, profile: Profile) -> None:
        """Store the first profile of a user, never replacing one.

        Adapters backed by a database should override this with a single
        insert that fails on duplicates.

        Raises:
            ProfileExists: If the user already has a profile.
        """
        try:
            await self.get_profile(user_id)
        except ProfileNotFound:
            await self.put_profile(user_id, profile)
        else:
            raise ProfileExists(f"Vault profile already exists for user {user_id}")

    @abstractmethod
    async def list_encrypted_records(self, user_id: str) -> list[EncryptedRecord]:
        """Return every encrypted record owned by the user."""

    @abstractmethod
    async def put_encrypted_record(self, record_id: str, encrypted_body: str) -> None:
        """Replace the encrypted body of an existing record."""


class InMemoryVaultStore(VaultStore):
    """Process-local store, for tests and single-process tooling.

    ``fail_record_writes`` holds record ids whose writes raise, and
    ``fail_profile_writes`` makes profile writes raise; both simulate
    backend outages.
    """

    def __init__(self):
        self._profiles: dict[str, Profile] = {}
        self._records: dict[str, EncryptedRecord] = {}
        self._owners: dict[str, str] = {}  # record id -> user id
        self.fail_record_writes: set[str] = set()
        self.fail_profile_writes: bool = False

    async def get_profile(self, user_id: str) -> Profile:
        try:
            return self._profiles[user_id]
        except KeyError:
            raise ProfileNotFound(
                f"No vault profile for user {user_id}"
            ) from None

    async def put_profile(self, user_id: str, profile: Profile) -> None:
        if self.fail_profile_writes:
            raise PersistenceError(f"Profile write failed for user {user_id}")
        self._profiles[user_id] = profile

    async def create_profile(self, user_id: str, profile: Profile) -> None:
        if user_id in self._profiles:
            raise ProfileExists(f"Vault profile already exists for user {user_id}")
        await self.put_profile(user_id, profile)

    async def list_encrypted_records(self, user_id: str) -> list[EncryptedRecord]:
        return [
            record for rid, record in self._records.items()
            if self._owners[rid] == user_id
        ]

    async def put_encrypted_record(self, record_id: str, encrypted_body: str) -> None:
        if record_id in self.fail_record_writes:
            raise PersistenceError(f"Record write failed for {record_id}")
        if record_id not in self._records:
            raise PersistenceError(f"Unknown record {record_id}")
        self._records[record_id] = EncryptedRecord(
            id=record_id, encrypted_body=encrypted_body,
        )

    def add_record(self, user_id: str, record_id: str, encrypted_body: str) -> None:
        """Insert a new record owned by user_id."""
        self._records[record_id] = EncryptedRecord(
            id=record_id, encrypted_body=encrypted_body,
        )
        self._owners[record_id] = user_id

    def get_record(self, record_id: str) -> EncryptedRecord:
        return self._records[record_id]

    def has_profile(self, user_id: str) -> bool:
        return user_id in self._profiles
