"""Custom exceptions for the vault domain.

Security Note:
    Error messages and attributes never carry master passwords, derived
    keys, verifier hashes or plaintext. Only ids, stages and counts.
"""
from typing import Optional


class VaultError(Exception):
    """Base exception for vault operations."""

    def __init__(self, message: str, *, recoverable: Optional[bool] = None):
        super().__init__(message)
        self.recoverable = recoverable


class KeyDerivationError(VaultError):
    """Empty master password or malformed salt."""


class InvalidMasterPassword(VaultError):
    """Supplied master password does not match the stored verifier."""

    def __init__(self, message: str = "Invalid master password", **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class DecryptionError(VaultError):
    """Record cannot be read: wrong key, truncated, tampered or malformed."""


class VaultStateError(VaultError):
    """Operation is not allowed in the current session state."""


class VaultLockedError(VaultStateError):
    """Operation needs an unlocked vault."""


class ProfileExists(VaultStateError):
    """A vault profile is already stored for the identity."""


class PersistenceError(VaultError):
    """Raised by store adapters when reading or writing fails."""


class ProfileNotFound(PersistenceError):
    """No vault profile stored for the identity."""


class RotationFailed(VaultError):
    """Master password rotation aborted.

    The session key and the stored profile are left unchanged. ``stage`` is
    one of ``verification``, ``decryption`` or ``persistence``.
    ``succeeded`` lists record ids written under the new key before the
    failure and ``restored`` the ones rolled back to their original body
    afterwards.
    """

    STAGES = ("verification", "decryption", "persistence")

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        record_id: Optional[str] = None,
        succeeded: Optional[list] = None,
        failed: Optional[list] = None,
        restored: Optional[list] = None,
        **kwargs,
    ):
        if stage not in self.STAGES:
            raise ValueError(f"Unknown rotation stage: {stage}")
        kwargs.setdefault("recoverable", stage != "persistence")
        super().__init__(message, **kwargs)
        self.stage = stage
        self.record_id = record_id
        self.succeeded = list(succeeded or [])
        self.failed = list(failed or [])
        self.restored = list(restored or [])

    @property
    def unrestored(self) -> list:
        """Record ids left encrypted under the discarded new key."""
        return [rid for rid in self.succeeded if rid not in self.restored]

    @property
    def partial_writes(self) -> bool:
        return bool(self.unrestored)

    def __str__(self) -> str:
        msg = super().__str__()
        details = [f"stage={self.stage}"]
        if self.record_id is not None:
            details.append(f"record={self.record_id}")
        if self.succeeded:
            details.append(
                f"rewritten={len(self.succeeded)} restored={len(self.restored)}"
            )
        return f"{msg} ({', '.join(details)})"


class InvalidOldMasterPassword(RotationFailed, InvalidMasterPassword):
    """Current master password rejected at the start of a rotation."""

    def __init__(self, message: str = "Invalid old master password"):
        super().__init__(message, stage="verification")
