import pytest

from navigator_vault.conf import KDFParams, VaultConfig
from navigator_vault.crypto import derive_key, encrypt
from navigator_vault.manager import VaultKeyManager
from navigator_vault.store import InMemoryVaultStore

USER_ID = "user-1"


@pytest.fixture
def fast_params():
    """Low-cost KDF parameters to keep the suite fast."""
    return KDFParams(iterations=1000)


@pytest.fixture
def salt():
    return bytes(range(16))


@pytest.fixture
def key(fast_params, salt):
    return derive_key("correct horse battery staple", salt, fast_params)


@pytest.fixture
def store():
    return InMemoryVaultStore()


@pytest.fixture
def manager(store, fast_params):
    return VaultKeyManager(store, USER_ID, config=VaultConfig(), kdf_params=fast_params)


@pytest.fixture
def make_manager(store, fast_params):
    """Factory for additional sessions sharing the same store."""
    def _make(config=None, user_id=USER_ID):
        return VaultKeyManager(
            store, user_id, config=config or VaultConfig(), kdf_params=fast_params,
        )
    return _make


@pytest.fixture
def seed(store):
    """Insert plaintext records encrypted under a key."""
    def _seed(key, records, user_id=USER_ID):
        for record_id, plaintext in records.items():
            store.add_record(user_id, record_id, encrypt(plaintext, key))
    return _seed
