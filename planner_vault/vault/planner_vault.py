"""
PlannerVault — Password-locked persistence of the planner document.

Provides the public API used by the planner front-end:
- ``unlock(password)`` — derive the session key and load the document
- ``save(document)`` — encrypt and persist the current document
- ``reload()`` — decrypt the stored envelope again
- ``lock()`` — discard the session key and the in-memory document
- ``open(password, store)`` — factory that unlocks a new vault

Lifecycle::

    LOCKED --derive--> KEY_READY --decrypt ok--> UNLOCKED --save/reload--> UNLOCKED
    KEY_READY --no envelope--> UNLOCKED (new vault, default document)
    KEY_READY --decrypt/parse failure--> LOCKED (key discarded)

Security Note:
    Never log passwords, key material, plaintext or ciphertext values.
    A key that failed to open the stored envelope is discarded immediately
    and never used again.
"""
import enum
import asyncio
import logging
from typing import Optional

from pydantic_core import PydanticSerializationError

from ..document import PlannerDocument
from .config import VaultConfig
from .crypto import Envelope, KeyDeriver, SessionKey, VaultCodec
from .exceptions import (
    AuthenticationFailure,
    EncryptionFailure,
    MissingEnvelope,
    StorageError,
    VaultLocked,
)
from .storage import EnvelopeStore

logger = logging.getLogger("planner.vault")


class VaultState(enum.Enum):
    LOCKED = "locked"
    KEY_READY = "key_ready"
    UNLOCKED = "unlocked"


class UnlockOutcome(enum.Enum):
    """How a successful unlock came about."""
    CREATED = "created"  # no envelope yet: new password set
    UNLOCKED = "unlocked"  # existing envelope decrypted


class PlannerVault:
    """Encrypted planner state bound to one password.

    The session key lives as long as the vault stays unlocked. Saves are
    serialized so two of them never race on the stored envelope.
    """

    def __init__(
        self,
        store: EnvelopeStore,
        config: Optional[VaultConfig] = None,
    ):
        self._store = store
        self._config = config or VaultConfig.from_env()
        self._deriver = KeyDeriver.from_config(self._config)
        self._key: Optional[SessionKey] = None
        self._document: Optional[PlannerDocument] = None
        self._state = VaultState.LOCKED
        self._save_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<PlannerVault state={self._state.value} store={self._store!r}>"

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> VaultState:
        return self._state

    @property
    def is_unlocked(self) -> bool:
        return self._state is VaultState.UNLOCKED

    @property
    def store(self) -> EnvelopeStore:
        return self._store

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def document(self) -> PlannerDocument:
        """The in-memory document. Only available while unlocked."""
        if self._state is not VaultState.UNLOCKED or self._document is None:
            raise VaultLocked("Vault is locked")
        return self._document

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_key(self) -> SessionKey:
        if self._state is not VaultState.UNLOCKED or self._key is None:
            raise VaultLocked("Vault is locked")
        return self._key

    def _discard_key(self) -> None:
        if self._key is not None:
            self._key.discard()
        self._key = None
        self._document = None
        self._state = VaultState.LOCKED

    async def _open_stored(self, key: SessionKey) -> PlannerDocument:
        """Load, decrypt and parse the stored envelope.

        Raises MissingEnvelope when nothing is stored; any authentication
        or parse failure propagates as AuthenticationFailure.
        """
        envelope = await self._store.load()
        plaintext = await asyncio.to_thread(VaultCodec.open, envelope, key)
        return PlannerDocument.from_bytes(plaintext)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def unlock(self, password: str) -> UnlockOutcome:
        """Derive the session key for ``password`` and load the document.

        Args:
            password: Non-empty master password.

        Returns:
            UnlockOutcome.CREATED when no envelope existed yet (a default
            document is used), UnlockOutcome.UNLOCKED otherwise.

        Raises:
            ValueError: If password is empty.
            VaultLocked: If the vault is already unlocked.
            AuthenticationFailure: Wrong password or corrupted data; the
                vault is locked again and the key discarded.
            StorageError: If the store cannot be read.
        """
        if not password:
            raise ValueError("Password cannot be empty")
        if self._state is not VaultState.LOCKED:
            raise VaultLocked("Vault is already unlocked; lock it first")

        key = await asyncio.to_thread(self._deriver.derive, password)
        self._key = key
        self._state = VaultState.KEY_READY

        try:
            document = await self._open_stored(key)
        except MissingEnvelope:
            self._document = PlannerDocument()
            self._state = VaultState.UNLOCKED
            logger.info("No stored envelope: new vault password set")
            return UnlockOutcome.CREATED
        except AuthenticationFailure:
            self._discard_key()
            logger.warning("Unlock failed: wrong password or corrupted data")
            raise
        except BaseException:
            # StorageError or cancellation: the key was never validated
            self._discard_key()
            raise

        self._document = document
        self._state = VaultState.UNLOCKED
        logger.info("Vault unlocked")
        return UnlockOutcome.UNLOCKED

    async def save(self, document: Optional[PlannerDocument] = None) -> Envelope:
        """Encrypt and persist the document.

        Args:
            document: Replacement document; the current one is saved when
                omitted.

        Returns:
            The envelope that was written.

        Raises:
            VaultLocked: If the vault is locked.
            EncryptionFailure: If encryption or writing failed. The
                in-memory document is kept so the save can be retried.
        """
        key = self._require_key()
        if document is not None:
            self._document = document
        async with self._save_lock:
            try:
                plaintext = self.document.to_bytes()
            except (TypeError, ValueError, PydanticSerializationError) as err:
                logger.error("Document could not be serialized: %s", err)
                raise EncryptionFailure("Document could not be serialized") from err
            envelope = await asyncio.to_thread(VaultCodec.encrypt, plaintext, key)
            try:
                await self._store.save(envelope)
            except StorageError as err:
                logger.error("Saving the vault failed: %s", err)
                raise EncryptionFailure("Saving the vault failed") from err
        logger.debug("Vault saved (%d bytes)", len(envelope.ciphertext))
        return envelope

    async def reload(self) -> PlannerDocument:
        """Decrypt the stored envelope again and replace the document.

        Raises:
            VaultLocked: If the vault is locked.
            MissingEnvelope: If the stored envelope has disappeared.
            AuthenticationFailure: If the stored envelope no longer opens
                with the session key; the vault is locked.
        """
        key = self._require_key()
        try:
            document = await self._open_stored(key)
        except AuthenticationFailure:
            self._discard_key()
            logger.warning("Reload failed: stored envelope did not authenticate")
            raise
        self._document = document
        return document

    def lock(self) -> None:
        """Discard the session key and the in-memory document."""
        self._discard_key()
        logger.info("Vault locked")

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    async def open(
        cls,
        password: str,
        store: Optional[EnvelopeStore] = None,
        config: Optional[VaultConfig] = None,
    ) -> "PlannerVault":
        """Create a vault and unlock it with ``password``.

        Args:
            password: Master password.
            store: Envelope store; defaults to the file store from config.
            config: Vault configuration; defaults to ``VaultConfig.from_env()``,
                as in ``__init__``.

        Returns:
            Unlocked PlannerVault instance.
        """
        config = config or VaultConfig.from_env()
        vault = cls(store or config.store(), config=config)
        await vault.unlock(password)
        return vault
