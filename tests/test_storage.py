"""
Tests for envelope storage backends.

Tests cover:
- Missing envelope signalling (first run)
- Atomic single-record persistence
- Corrupted records
- Backend I/O failures
"""
import pytest

from planner_vault.vault import (
    AuthenticationFailure,
    FileEnvelopeStore,
    MemoryEnvelopeStore,
    MissingEnvelope,
    StorageError,
    VaultCodec,
    VaultConfig,
)


@pytest.fixture
def envelope(key):
    return VaultCodec.encrypt(b'{"notes":"hi"}', key)


@pytest.fixture
def file_store(tmp_path):
    return FileEnvelopeStore(tmp_path / "data" / "vault.json")


# --- Test MemoryEnvelopeStore ---

class TestMemoryEnvelopeStore:
    """Tests for the in-memory store."""

    @pytest.mark.asyncio
    async def test_missing(self, memory_store):
        assert await memory_store.exists() is False
        with pytest.raises(MissingEnvelope):
            await memory_store.load()

    @pytest.mark.asyncio
    async def test_save_and_load(self, memory_store, envelope):
        await memory_store.save(envelope)
        assert await memory_store.exists() is True
        assert await memory_store.load() == envelope

    @pytest.mark.asyncio
    async def test_record_is_serialized(self, memory_store, envelope):
        await memory_store.save(envelope)
        assert isinstance(memory_store.record, bytes)
        assert b'"iv"' in memory_store.record
        assert b'"ciphertext"' in memory_store.record

    @pytest.mark.asyncio
    async def test_clear(self, memory_store, envelope):
        await memory_store.save(envelope)
        await memory_store.clear()
        with pytest.raises(MissingEnvelope):
            await memory_store.load()

    @pytest.mark.asyncio
    async def test_corrupted_record(self, memory_store):
        memory_store.record = b"garbage"
        with pytest.raises(AuthenticationFailure):
            await memory_store.load()


# --- Test FileEnvelopeStore ---

class TestFileEnvelopeStore:
    """Tests for the file-backed store."""

    @pytest.mark.asyncio
    async def test_missing_file(self, file_store):
        assert await file_store.exists() is False
        with pytest.raises(MissingEnvelope):
            await file_store.load()

    @pytest.mark.asyncio
    async def test_save_creates_parent_dirs(self, file_store, envelope):
        await file_store.save(envelope)
        assert file_store.path.is_file()
        assert await file_store.load() == envelope

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, file_store, envelope):
        """Test a fresh store instance reads what another one wrote."""
        await file_store.save(envelope)
        reopened = FileEnvelopeStore(file_store.path)
        assert await reopened.load() == envelope

    @pytest.mark.asyncio
    async def test_overwrite_last_writer_wins(self, file_store, key):
        first = VaultCodec.encrypt(b"first", key)
        second = VaultCodec.encrypt(b"second", key)
        await file_store.save(first)
        await file_store.save(second)
        assert await file_store.load() == second

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, file_store, envelope):
        await file_store.save(envelope)
        await file_store.save(envelope)
        assert [p.name for p in file_store.path.parent.iterdir()] == ["vault.json"]

    @pytest.mark.asyncio
    async def test_empty_file_is_missing(self, file_store):
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_bytes(b"")
        with pytest.raises(MissingEnvelope):
            await file_store.load()

    @pytest.mark.asyncio
    async def test_corrupted_file(self, file_store):
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_bytes(b'{"iv": "AAAA"}')
        with pytest.raises(AuthenticationFailure):
            await file_store.load()

    @pytest.mark.asyncio
    async def test_clear(self, file_store, envelope):
        await file_store.save(envelope)
        await file_store.clear()
        assert await file_store.exists() is False
        # clearing twice is harmless
        await file_store.clear()

    @pytest.mark.asyncio
    async def test_unreadable_path(self, tmp_path):
        store = FileEnvelopeStore(tmp_path)
        with pytest.raises(StorageError):
            await store.load()

    @pytest.mark.asyncio
    async def test_unwritable_path(self, tmp_path, envelope):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = FileEnvelopeStore(blocker / "vault.json")
        with pytest.raises(StorageError):
            await store.save(envelope)

    def test_config_builds_file_store(self, config):
        store = config.store()
        assert isinstance(store, FileEnvelopeStore)
        assert store.path == config.storage_path


# --- Test VaultConfig ---

class TestVaultConfig:
    """Tests for configuration loading."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PLANNER_VAULT_PATH", raising=False)
        monkeypatch.delenv("PLANNER_VAULT_KDF_ITERATIONS", raising=False)
        config = VaultConfig.from_env()
        assert config.kdf_iterations == 100_000
        assert config.salt == b"privacy-planner-salt"
        assert config.storage_path.name == "vault.json"

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PLANNER_VAULT_PATH", str(tmp_path / "v.json"))
        monkeypatch.setenv("PLANNER_VAULT_KDF_ITERATIONS", "200000")
        config = VaultConfig.from_env()
        assert config.storage_path == tmp_path / "v.json"
        assert config.kdf_iterations == 200_000

    def test_invalid_iterations_env(self, monkeypatch):
        monkeypatch.setenv("PLANNER_VAULT_KDF_ITERATIONS", "lots")
        with pytest.raises(ValueError):
            VaultConfig.from_env()

    def test_too_few_iterations(self, tmp_path):
        with pytest.raises(ValueError):
            VaultConfig(storage_path=tmp_path / "v.json", kdf_iterations=10)

    def test_empty_salt(self, tmp_path):
        with pytest.raises(ValueError):
            VaultConfig(storage_path=tmp_path / "v.json", salt=b"")
