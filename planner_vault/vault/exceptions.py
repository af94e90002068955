"""Exception hierarchy for the planner vault.

Wrong password and corrupted data are deliberately indistinguishable:
both surface as :class:`AuthenticationFailure` with the same message.
"""

__all__ = [
    "UNLOCK_FAILED_MESSAGE",
    "VaultError",
    "MissingEnvelope",
    "AuthenticationFailure",
    "SerializationFailure",
    "EncryptionFailure",
    "KeyDerivationError",
    "VaultLocked",
    "StorageError",
]

UNLOCK_FAILED_MESSAGE = "Wrong password or corrupted data."


class VaultError(Exception):
    """Base exception for all vault failures."""


class MissingEnvelope(VaultError):
    """No envelope has been stored yet (first run)."""


class AuthenticationFailure(VaultError):
    """The envelope could not be decrypted and authenticated."""

    def __init__(self, message: str = UNLOCK_FAILED_MESSAGE):
        super().__init__(message)


class SerializationFailure(AuthenticationFailure):
    """Decryption succeeded but the plaintext is not a valid document."""


class EncryptionFailure(VaultError):
    """Saving failed; the in-memory document is untouched."""


class KeyDerivationError(VaultError):
    """The password could not be turned into a key."""


class VaultLocked(VaultError):
    """Operation requires an unlocked vault or a live session key."""


class StorageError(VaultError):
    """The envelope store could not be read or written."""
