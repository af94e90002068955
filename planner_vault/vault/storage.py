"""
Envelope Storage — Persistence of the single vault envelope.

The IV and ciphertext are written as one record, so the two halves can never
be desynchronized by a partial write. Blocking file I/O runs in a worker
thread.

Security Note:
    Stores only see envelopes. They never handle keys or plaintext.
"""
import os
import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Optional

from .crypto import Envelope
from .exceptions import MissingEnvelope, StorageError

logger = logging.getLogger("planner.vault")


class EnvelopeStore:
    """Base class for envelope persistence backends."""

    async def load(self) -> Envelope:
        """Return the stored envelope.

        Raises:
            MissingEnvelope: If nothing has been stored yet.
            AuthenticationFailure: If the stored record is corrupted.
            StorageError: If the backend cannot be read.
        """
        raise NotImplementedError

    async def save(self, envelope: Envelope) -> None:
        """Replace the stored envelope. Last writer wins."""
        raise NotImplementedError

    async def clear(self) -> None:
        """Remove the stored envelope, if any."""
        raise NotImplementedError

    async def exists(self) -> bool:
        raise NotImplementedError


class MemoryEnvelopeStore(EnvelopeStore):
    """Process-local store keeping the serialized record in memory."""

    def __init__(self, record: Optional[bytes] = None):
        self._record = record

    @property
    def record(self) -> Optional[bytes]:
        """Serialized record as it would appear on disk."""
        return self._record

    @record.setter
    def record(self, value: Optional[bytes]) -> None:
        self._record = value

    async def load(self) -> Envelope:
        if self._record is None:
            raise MissingEnvelope("No envelope stored")
        return Envelope.loads(self._record)

    async def save(self, envelope: Envelope) -> None:
        self._record = envelope.dumps()

    async def clear(self) -> None:
        self._record = None

    async def exists(self) -> bool:
        return self._record is not None


class FileEnvelopeStore(EnvelopeStore):
    """Stores the envelope record as a JSON file, replaced atomically."""

    def __init__(self, path: os.PathLike | str):
        self._path = Path(path)

    def __repr__(self) -> str:
        return f"<FileEnvelopeStore path={str(self._path)!r}>"

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Envelope:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            raise MissingEnvelope(f"No envelope at {self._path}") from None
        except OSError as err:
            raise StorageError(f"Cannot read {self._path}: {err}") from err
        if not raw:
            # 0-byte files are not valid vaults
            logger.warning("Ignoring empty envelope file %s", self._path)
            raise MissingEnvelope(f"Empty envelope at {self._path}")
        return Envelope.loads(raw)

    def _write(self, data: bytes) -> None:
        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp",
                dir=self._path.parent,
            )
            with os.fdopen(fd, "wb") as fp:
                fp.write(data)
                fp.flush()
                os.fsync(fp.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as err:
            raise StorageError(f"Cannot write {self._path}: {err}") from err
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temp file %s", tmp_name)

    def _remove(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
        except OSError as err:
            raise StorageError(f"Cannot remove {self._path}: {err}") from err

    async def load(self) -> Envelope:
        return await asyncio.to_thread(self._read)

    async def save(self, envelope: Envelope) -> None:
        await asyncio.to_thread(self._write, envelope.dumps())
        logger.debug("Envelope written to %s", self._path)

    async def clear(self) -> None:
        await asyncio.to_thread(self._remove)
        logger.info("Envelope removed from %s", self._path)

    async def exists(self) -> bool:
        return await asyncio.to_thread(self._path.exists)
