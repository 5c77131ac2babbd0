"""
Vault Configuration — Key derivation cost and cipher settings.

Reads settings from environment variables:
    VAULT_KDF_ITERATIONS = <int, PBKDF2-SHA256 work factor>
    VAULT_CIPHER_BACKEND = aesgcm | chacha20
    VAULT_VERIFIER_MODE = legacy | split
    VAULT_ROTATION_BATCH_SIZE = <int>

Security Note:
    Never log key material. Only log cost parameters and modes.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("navigator.vault")

DEFAULT_KDF_ITERATIONS = 100_000
MIN_KDF_ITERATIONS = 10_000

CIPHER_BACKENDS = ("aesgcm", "chacha20")
VERIFIER_MODES = ("legacy", "split")


def get_cipher_backend() -> str:
    """Read the AEAD backend name from VAULT_CIPHER_BACKEND.

    Raises:
        ValueError: If the name is not a supported backend.
    """
    backend = os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm").lower()
    if backend not in CIPHER_BACKENDS:
        raise ValueError(f"Unsupported cipher backend: {backend}")
    return backend


# resolved once at import; module-level ciphers and VaultConfig share it
CIPHER_BACKEND = get_cipher_backend()


class KDFParams(BaseModel):
    """Cost parameters for the master password derivation."""

    iterations: int = Field(default=DEFAULT_KDF_ITERATIONS, ge=1)
    length: int = Field(default=32)
    algorithm: str = Field(default="sha256")

    model_config = {"frozen": True}

    @field_validator("length")
    @classmethod
    def validate_length(cls, v: int) -> int:
        """Derived keys must fit a 256-bit AEAD key."""
        if v != 32:
            raise ValueError(f"Derived key length must be 32 bytes, got {v}")
        return v

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v.lower() != "sha256":
            raise ValueError(f"Unsupported KDF hash algorithm: {v}")
        return v.lower()


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    kdf_iterations: int = Field(
        default=DEFAULT_KDF_ITERATIONS, ge=MIN_KDF_ITERATIONS
    )
    cipher_backend: str = Field(default_factory=lambda: CIPHER_BACKEND)
    verifier_mode: str = Field(default="legacy")
    rotation_batch_size: int = Field(default=100, ge=1, le=10000)

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in CIPHER_BACKENDS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @field_validator("verifier_mode")
    @classmethod
    def validate_verifier_mode(cls, v: str) -> str:
        """Validate the verifier derivation mode."""
        v = v.lower()
        if v not in VERIFIER_MODES:
            raise ValueError(f"Unsupported verifier mode: {v}")
        return v

    def kdf_params(self) -> KDFParams:
        """Return the key derivation cost parameters."""
        return KDFParams(iterations=self.kdf_iterations)

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        values = {}
        iterations = os.environ.get("VAULT_KDF_ITERATIONS")
        if iterations is not None:
            values["kdf_iterations"] = int(iterations)
        batch_size = os.environ.get("VAULT_ROTATION_BATCH_SIZE")
        if batch_size is not None:
            values["rotation_batch_size"] = int(batch_size)
        values["cipher_backend"] = os.environ.get(
            "VAULT_CIPHER_BACKEND", CIPHER_BACKEND
        )
        values["verifier_mode"] = os.environ.get(
            "VAULT_VERIFIER_MODE", "legacy"
        )
        config = cls(**values)
        logger.debug(
            "Vault config loaded: iterations=%d cipher=%s verifier=%s",
            config.kdf_iterations, config.cipher_backend, config.verifier_mode,
        )
        return config
