import pytest
from src.lib.crypto import AesGcmCipher
from src.lib.kdf import Pbkdf2Kdf
from src.lib.service import VaultService
from src.lib.store import FileVaultStore

FAST_ITERATIONS = 1000

@pytest.fixture
def kdf():
    return Pbkdf2Kdf(auth_iterations=FAST_ITERATIONS)

@pytest.fixture
def store(tmp_path):
    return FileVaultStore(tmp_path / 'vaults')

@pytest.fixture
def service(store, kdf):
    return VaultService(store, kdf=kdf, cipher=AesGcmCipher(), enc_iterations=FAST_ITERATIONS)
