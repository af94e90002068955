"""
Vault Crypto Core — Password key derivation, envelope encryption/decryption.

- Key derivation: PBKDF2-HMAC-SHA256(password, KDF_SALT, 100k) → 32-byte key
- Encryption: AES-256-GCM, fresh random 96-bit IV per call → Envelope(iv, ciphertext)

Security Note:
    Never log passwords, key material, plaintext or ciphertext values.
    Nonces are random 96-bit; collision probability negligible for a
    single-user vault.
"""
import os
import base64
import binascii
import logging
from typing import Any

import orjson
from pydantic import BaseModel
from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .config import (
    ENVELOPE_VERSION,
    KDF_ITERATIONS,
    KDF_SALT,
    KEY_LENGTH,
    NONCE_SIZE,
    TAG_SIZE,
    VaultConfig,
)
from .exceptions import (
    AuthenticationFailure,
    EncryptionFailure,
    KeyDerivationError,
    VaultLocked,
)

logger = logging.getLogger("planner.vault")


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    password: str,
    salt: bytes = KDF_SALT,
    iterations: int = KDF_ITERATIONS,
) -> bytes:
    """Derive a 32-byte encryption key from a password using PBKDF2-SHA256.

    Args:
        password: Non-empty user password.
        salt: Fixed, public salt.
        iterations: PBKDF2 cost factor.

    Returns:
        32-byte derived key.

    Raises:
        ValueError: If password is empty.
        KeyDerivationError: If the KDF itself fails.
    """
    if not password:
        raise ValueError("Password cannot be empty")
    try:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(password.encode("utf-8"))
    except (TypeError, ValueError, UnsupportedAlgorithm) as err:
        raise KeyDerivationError(f"Key derivation failed: {err}") from err


class SessionKey:
    """Derived key material held for the lifetime of an unlocked vault.

    The codec borrows the material per call and never keeps it. Once
    ``discard()`` has been called the key is unusable.
    """

    __slots__ = ("_material",)

    def __init__(self, material: bytes):
        if len(material) != KEY_LENGTH:
            raise ValueError(
                f"Session key must be exactly {KEY_LENGTH} bytes, "
                f"got {len(material)}"
            )
        self._material: bytearray | None = bytearray(material)

    def __repr__(self) -> str:
        return f"<SessionKey discarded={self.discarded}>"

    @property
    def discarded(self) -> bool:
        return self._material is None

    @property
    def material(self) -> bytes:
        if self._material is None:
            raise VaultLocked("Session key has been discarded")
        return bytes(self._material)

    def discard(self) -> None:
        """Zero and drop the key material."""
        if self._material is not None:
            for i in range(len(self._material)):
                self._material[i] = 0
            self._material = None


class KeyDeriver:
    """Turns a password into a :class:`SessionKey` with a fixed salt."""

    def __init__(self, salt: bytes = KDF_SALT, iterations: int = KDF_ITERATIONS):
        self._salt = salt
        self._iterations = iterations

    @classmethod
    def from_config(cls, config: VaultConfig) -> "KeyDeriver":
        return cls(salt=config.salt, iterations=config.kdf_iterations)

    @property
    def iterations(self) -> int:
        return self._iterations

    def derive(self, password: str) -> SessionKey:
        """Derive the session key for ``password``.

        Deterministic: the same password always yields the same key.
        """
        key = SessionKey(derive_key(password, self._salt, self._iterations))
        logger.debug("Derived session key (iterations=%d)", self._iterations)
        return key


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

class Envelope(BaseModel):
    """One persisted unit: the IV and the authenticated ciphertext.

    Both halves are always stored and loaded together.
    """

    iv: bytes
    ciphertext: bytes

    model_config = {"frozen": True}

    def to_record(self) -> dict[str, Any]:
        """Return the JSON-safe record with base64-encoded fields."""
        return {
            "version": ENVELOPE_VERSION,
            "iv": base64.b64encode(self.iv).decode("ascii"),
            "ciphertext": base64.b64encode(self.ciphertext).decode("ascii"),
        }

    @classmethod
    def from_record(cls, record: Any) -> "Envelope":
        """Parse a stored record.

        A record without the version marker, with an unknown version, or
        with a missing or malformed half is corrupted data.

        Raises:
            AuthenticationFailure: If the record is not a valid envelope.
        """
        if not isinstance(record, dict):
            raise AuthenticationFailure()
        version = record.get("version")
        # bool is an int subclass; only an exact int marker counts
        if type(version) is not int or version != ENVELOPE_VERSION:
            logger.warning(
                "Envelope has unsupported version marker: %r", version,
            )
            raise AuthenticationFailure()
        iv_b64 = record.get("iv")
        ct_b64 = record.get("ciphertext")
        if not isinstance(iv_b64, str) or not isinstance(ct_b64, str):
            raise AuthenticationFailure()
        try:
            iv = base64.b64decode(iv_b64, validate=True)
            ciphertext = base64.b64decode(ct_b64, validate=True)
        except (binascii.Error, ValueError) as err:
            raise AuthenticationFailure() from err
        return cls(iv=iv, ciphertext=ciphertext)

    def dumps(self) -> bytes:
        """Serialize the envelope record with orjson."""
        return orjson.dumps(self.to_record())

    @classmethod
    def loads(cls, data: bytes) -> "Envelope":
        """Parse a serialized envelope record.

        Raises:
            AuthenticationFailure: If ``data`` is not a valid record.
        """
        try:
            record = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise AuthenticationFailure() from err
        return cls.from_record(record)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

class VaultCodec:
    """AES-256-GCM encryption of opaque payloads under a borrowed key."""

    @staticmethod
    def encrypt(plaintext: bytes, key: SessionKey) -> Envelope:
        """Encrypt ``plaintext`` under ``key`` with a fresh random IV.

        Returns:
            Envelope holding the IV and ciphertext (with GCM tag).

        Raises:
            VaultLocked: If the key has been discarded.
            EncryptionFailure: If the cipher rejects the payload.
        """
        material = key.material
        iv = os.urandom(NONCE_SIZE)
        try:
            ciphertext = AESGCM(material).encrypt(iv, plaintext, None)
        except (OverflowError, TypeError, ValueError) as err:
            logger.error("Encryption failed: %s", type(err).__name__)
            raise EncryptionFailure(f"Encryption failed: {err}") from err
        return Envelope(iv=iv, ciphertext=ciphertext)

    @staticmethod
    def decrypt(ciphertext: bytes, iv: bytes, key: SessionKey) -> bytes:
        """Decrypt and authenticate ``ciphertext`` produced with ``iv``.

        Returns:
            The exact original plaintext bytes.

        Raises:
            VaultLocked: If the key has been discarded.
            AuthenticationFailure: Wrong key, wrong IV, or tampered data.
        """
        material = key.material
        if len(iv) != NONCE_SIZE or len(ciphertext) < TAG_SIZE:
            logger.warning(
                "Rejecting envelope with iv=%dB ciphertext=%dB",
                len(iv), len(ciphertext),
            )
            raise AuthenticationFailure()
        try:
            return AESGCM(material).decrypt(iv, ciphertext, None)
        except (InvalidTag, ValueError) as err:
            logger.warning("Envelope authentication failed")
            raise AuthenticationFailure() from err

    @classmethod
    def open(cls, envelope: Envelope, key: SessionKey) -> bytes:
        """Decrypt a stored :class:`Envelope`."""
        return cls.decrypt(envelope.ciphertext, envelope.iv, key)
