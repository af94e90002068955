"""Planner Vault — Password-locked encrypted storage of the planner state.

Security Note (Threat Model):
    The salt is fixed and public, so the secrecy of the stored envelope
    rests on the password plus the PBKDF2 cost factor. The session key and
    the decrypted document live in process memory while the vault is
    unlocked; a memory dump of the process could expose them. This is an
    accepted limitation for a single-user, local-only application.
"""

from .config import VaultConfig, KDF_SALT, KDF_ITERATIONS
from .crypto import Envelope, KeyDeriver, SessionKey, VaultCodec, derive_key
from .exceptions import (
    AuthenticationFailure,
    EncryptionFailure,
    KeyDerivationError,
    MissingEnvelope,
    SerializationFailure,
    StorageError,
    VaultError,
    VaultLocked,
)
from .storage import EnvelopeStore, FileEnvelopeStore, MemoryEnvelopeStore

__all__ = [
    "VaultConfig",
    "KDF_SALT",
    "KDF_ITERATIONS",
    "Envelope",
    "KeyDeriver",
    "SessionKey",
    "VaultCodec",
    "derive_key",
    "AuthenticationFailure",
    "EncryptionFailure",
    "KeyDerivationError",
    "MissingEnvelope",
    "SerializationFailure",
    "StorageError",
    "VaultError",
    "VaultLocked",
    "EnvelopeStore",
    "FileEnvelopeStore",
    "MemoryEnvelopeStore",
]
