import pytest

from planner_vault.vault import (
    KeyDeriver,
    MemoryEnvelopeStore,
    VaultConfig,
)

# Low cost factor so the suite stays fast; default parameters are
# covered explicitly in test_crypto.py.
FAST_ITERATIONS = 1_000


@pytest.fixture
def config(tmp_path):
    """Vault configuration pointing at a temporary file."""
    return VaultConfig(
        storage_path=tmp_path / "vault.json",
        kdf_iterations=FAST_ITERATIONS,
    )


@pytest.fixture
def deriver(config):
    return KeyDeriver.from_config(config)


@pytest.fixture
def key(deriver):
    return deriver.derive("correct horse battery staple")


@pytest.fixture
def memory_store():
    return MemoryEnvelopeStore()
