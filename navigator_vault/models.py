"""
Vault Models — Immutable records exchanged with store adapters and callers.

``Profile`` and ``EncryptedRecord`` mirror the persisted shapes:
    profile: { salt: base64(16 bytes), verifier_hash: base64(32 bytes) }
    record:  { id, encrypted_body: base64(nonce || ciphertext || tag) }

``PasswordData`` and ``WifiData`` are the plaintext bodies of vault items,
serialized with orjson before encryption.
"""
from typing import Optional

import orjson
from pydantic import BaseModel, Field, field_validator

from .crypto import KEY_LENGTH, SALT_SIZE, b64decode, b64encode


class Profile(BaseModel):
    """Per-user key derivation material."""

    salt: str
    verifier_hash: str

    model_config = {"frozen": True}

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: str) -> str:
        if len(b64decode(v)) != SALT_SIZE:
            raise ValueError(f"salt must decode to {SALT_SIZE} bytes")
        return v

    @field_validator("verifier_hash")
    @classmethod
    def validate_verifier(cls, v: str) -> str:
        if len(b64decode(v)) != KEY_LENGTH:
            raise ValueError(f"verifier_hash must decode to {KEY_LENGTH} bytes")
        return v

    @classmethod
    def from_bytes(cls, salt: bytes, verifier_hash: bytes) -> "Profile":
        return cls(salt=b64encode(salt), verifier_hash=b64encode(verifier_hash))

    @property
    def salt_bytes(self) -> bytes:
        return b64decode(self.salt)

    @property
    def verifier_bytes(self) -> bytes:
        return b64decode(self.verifier_hash)

    def __repr__(self) -> str:
        return f"<Profile salt={self.salt!r} verifier_hash=***>"


class EncryptedRecord(BaseModel):
    """One vault item's encrypted body."""

    id: str = Field(min_length=1)
    encrypted_body: str

    model_config = {"frozen": True}


class RotationReport(BaseModel):
    """Outcome of re-encrypting a record set under a new key."""

    total: int = 0
    rotated: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and len(self.rotated) == self.total


class _RecordBody(BaseModel):
    model_config = {"frozen": True}

    def to_bytes(self) -> bytes:
        """Serialize the body into the opaque plaintext of a record."""
        return orjson.dumps(self.model_dump(exclude_none=True))

    @classmethod
    def from_bytes(cls, data: bytes):
        return cls.model_validate(orjson.loads(data))


class PasswordData(_RecordBody):
    """Plaintext body of a password vault item."""

    username: str
    password: str
    website: str = ""
    notes: Optional[str] = None


class WifiData(_RecordBody):
    """Plaintext body of a Wi-Fi vault item."""

    ssid: str
    password: str
    notes: Optional[str] = None
