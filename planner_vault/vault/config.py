"""
Vault Configuration — Key derivation constants and validated settings.

Reads overrides from environment variables:
    PLANNER_VAULT_PATH = <path of the envelope file>
    PLANNER_VAULT_KDF_ITERATIONS = <integer, PBKDF2 iteration count>

Security Note:
    The salt is a fixed, public constant: the same password must always
    derive the same key. Resistance to offline guessing rests on password
    strength plus the iteration count.
"""
import os
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("planner.vault")

KDF_SALT = b"privacy-planner-salt"
KDF_ITERATIONS = 100_000
MIN_KDF_ITERATIONS = 1_000
KEY_LENGTH = 32  # AES-256
NONCE_SIZE = 12  # 96-bit GCM nonce
TAG_SIZE = 16  # GCM tag appended to the ciphertext
ENVELOPE_VERSION = 1


def default_vault_path() -> Path:
    """Return the envelope location, honoring PLANNER_VAULT_PATH."""
    raw = os.environ.get("PLANNER_VAULT_PATH")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".privacy_planner" / "vault.json"


def get_kdf_iterations() -> int:
    """Read the PBKDF2 iteration count from PLANNER_VAULT_KDF_ITERATIONS.

    Returns:
        Iteration count, or KDF_ITERATIONS when the variable is unset.

    Raises:
        ValueError: If the value is not a valid integer.
    """
    raw = os.environ.get("PLANNER_VAULT_KDF_ITERATIONS")
    if raw is None:
        return KDF_ITERATIONS
    return int(raw)


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    storage_path: Path = Field(default_factory=default_vault_path)
    kdf_iterations: int = Field(default=KDF_ITERATIONS, ge=MIN_KDF_ITERATIONS)
    salt: bytes = Field(default=KDF_SALT)

    model_config = {"frozen": True}

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: bytes) -> bytes:
        """Reject an empty salt."""
        if not v:
            raise ValueError("KDF salt cannot be empty")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        config = cls(
            storage_path=default_vault_path(),
            kdf_iterations=get_kdf_iterations(),
        )
        logger.debug(
            "Vault config: path=%s iterations=%d",
            config.storage_path, config.kdf_iterations,
        )
        return config

    def store(self):
        """Build the file-backed envelope store for ``storage_path``."""
        from .storage import FileEnvelopeStore

        return FileEnvelopeStore(self.storage_path)
