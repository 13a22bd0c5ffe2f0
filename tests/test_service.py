import struct
from dataclasses import replace
import pytest
from config.settings import MAX_ENC_ITERATIONS
from src.lib import header as codec
from src.lib.auth import BcryptAuth
from src.lib.crypto import AesGcmCipher
from src.lib.errors import (
    AuthenticationFailed, InvalidInput, MalformedInput, NotFound, UnsupportedFormat, VaultCorrupted, WrongPassword
)
from src.lib.models import VaultEntry, VaultPayload
from src.lib.service import VaultService

def test_end_to_end_scenario(service):
    service.create('v1', 'Secr3t!')
    service.append_entry('v1', 'Secr3t!', 'Email', 'a@b.com', 'pw1')
    entries = service.unlock('v1', 'Secr3t!').entries
    assert len(entries) == 1
    e = entries[0]
    assert (e.title, e.username, e.secret, e.notes) == ('Email', 'a@b.com', 'pw1', None)
    with pytest.raises(WrongPassword):
        service.unlock('v1', 'wrong')
    service.change_password('v1', 'Secr3t!', 'NewP@ss')
    with pytest.raises(WrongPassword):
        service.unlock('v1', 'Secr3t!')
    assert service.unlock('v1', 'NewP@ss').entries == entries

def test_create_starts_empty(service):
    header = service.create('v1', 'pw')
    payload = service.unlock('v1', 'pw')
    assert payload.entries == () and payload.revision == 0
    assert header.kdf_iterations == 1000 and len(header.encryption_salt) == 16

def test_create_rejects_empty_password(service):
    with pytest.raises(InvalidInput):
        service.create('v1', '')

def test_create_overwrites_silently(service):
    service.create('v1', 'pw1')
    service.create('v1', 'pw2')
    assert service.unlock('v1', 'pw2').entries == ()

def test_unlock_missing_vault(service):
    with pytest.raises(NotFound):
        service.unlock('ghost', 'pw')

def test_wrong_password_never_reaches_cipher(service, monkeypatch):
    service.create('v1', 'pw')
    def fail(*a, **kw):
        raise AssertionError('cipher must not be called')
    monkeypatch.setattr(service.cipher, 'decrypt', fail)
    monkeypatch.setattr(service.kdf, 'derive_key', fail)
    with pytest.raises(WrongPassword):
        service.unlock('v1', 'nope')

def test_append_keeps_header_and_uses_fresh_nonce(service):
    service.create('v1', 'pw')
    h0, b0 = service.store.read('v1')
    service.append_entry('v1', 'pw', 't', 'u', 's')
    h1, b1 = service.store.read('v1')
    assert h0 == h1
    assert b0[:12] != b1[:12]

def test_append_assigns_unique_ids_with_frozen_clock(store, kdf):
    svc = VaultService(store, kdf=kdf, enc_iterations=1000, clock=lambda: 5.0)
    svc.create('v1', 'pw')
    ids = [svc.append_entry('v1', 'pw', f't{i}', 'u', 's').id for i in range(3)]
    assert ids == ['5000', '5001', '5002']
    assert [e.title for e in svc.unlock('v1', 'pw').entries] == ['t0', 't1', 't2']
    assert svc.unlock('v1', 'pw').revision == 3

def test_unlock_returns_independent_payloads(service):
    service.create('v1', 'pw')
    first = service.unlock('v1', 'pw')
    service.append_entry('v1', 'pw', 't', 'u', 's')
    assert first.entries == ()

def test_change_password_refreshes_salt_and_token(service):
    h0 = service.create('v1', 'old')
    h1 = service.change_password('v1', 'old', 'new')
    assert h1.encryption_salt != h0.encryption_salt
    assert h1.stored_auth_token != h0.stored_auth_token
    assert h1.kdf_iterations == h0.kdf_iterations
    assert service.store.read('v1')[0] == h1

def test_change_password_can_raise_cost(service):
    service.create('v1', 'old')
    service.append_entry('v1', 'old', 't', 'u', 's')
    h = service.change_password('v1', 'old', 'new', iterations=2000, key_length=16)
    assert (h.kdf_iterations, h.key_length_bytes) == (2000, 16)
    assert len(service.unlock('v1', 'new').entries) == 1

def test_change_password_wrong_old_password_leaves_vault(service):
    service.create('v1', 'old')
    before = service.store.path_for('v1').read_bytes()
    with pytest.raises(WrongPassword):
        service.change_password('v1', 'bad', 'new')
    assert service.store.path_for('v1').read_bytes() == before

def _frame(header, blob):
    hb = codec.encode(header)
    return struct.pack('>I', len(hb)) + hb + blob

def test_flipped_blob_byte_is_tamper(service):
    service.create('v1', 'pw')
    service.append_entry('v1', 'pw', 't', 'u', 's')
    header, blob = service.store.read('v1')
    tampered = bytearray(blob); tampered[len(blob) // 2] ^= 0x80
    service.store.path_for('v1').write_bytes(_frame(header, bytes(tampered)))
    with pytest.raises(VaultCorrupted):
        service.unlock('v1', 'pw')

def test_downgraded_header_is_tamper(service):
    service.create('v1', 'pw')
    header, blob = service.store.read('v1')
    forged = replace(header, kdf_iterations=1)
    service.store.path_for('v1').write_bytes(_frame(forged, blob))
    with pytest.raises(AuthenticationFailed):
        service.unlock('v1', 'pw')

def test_swapped_salt_is_tamper(service):
    service.create('v1', 'pw')
    header, blob = service.store.read('v1')
    forged = replace(header, encryption_salt=b'\x00' * 16)
    service.store.path_for('v1').write_bytes(_frame(forged, blob))
    with pytest.raises(AuthenticationFailed):
        service.unlock('v1', 'pw')

def test_raw_header_byte_flip_never_unlocks(service):
    service.create('v1', 'pw')
    raw = service.store.path_for('v1').read_bytes()
    header_len = struct.unpack('>I', raw[:4])[0]
    for i in range(4, 4 + header_len, 7):
        tampered = bytearray(raw); tampered[i] ^= 0x01
        service.store.path_for('v1').write_bytes(bytes(tampered))
        with pytest.raises((MalformedInput, WrongPassword, AuthenticationFailed)):
            service.unlock('v1', 'pw')

def test_truncated_vault_is_malformed(service):
    service.create('v1', 'pw')
    path = service.store.path_for('v1')
    raw = path.read_bytes()
    header_len = struct.unpack('>I', raw[:4])[0]
    path.write_bytes(raw[:4 + header_len - 3])
    with pytest.raises(MalformedInput):
        service.unlock('v1', 'pw')

def test_unsupported_cipher_is_rejected(service):
    service.create('v1', 'pw')
    header, blob = service.store.read('v1')
    forged = replace(header, cipher_algorithm='ChaCha20-Poly1305')
    service.store.path_for('v1').write_bytes(_frame(forged, blob))
    with pytest.raises(UnsupportedFormat):
        service.unlock('v1', 'pw')

def test_bcrypt_auth_scheme(store, kdf):
    svc = VaultService(store, kdf=kdf, auth=BcryptAuth(rounds=4), enc_iterations=1000)
    header = svc.create('v1', 'pw')
    assert header.stored_auth_token.startswith('$2')
    svc.append_entry('v1', 'pw', 't', 'u', 's')
    with pytest.raises(WrongPassword):
        svc.unlock('v1', 'bad')
    # a default (pbkdf2) service still opens it
    other = VaultService(store, kdf=kdf, enc_iterations=1000)
    assert len(other.unlock('v1', 'pw').entries) == 1

def test_bcrypt_rejects_password_over_72_bytes(store, kdf):
    svc = VaultService(store, kdf=kdf, auth=BcryptAuth(rounds=4), enc_iterations=1000)
    with pytest.raises(InvalidInput):
        svc.create('v1', 'x' * 80)
    assert not svc.exists('v1')
    svc.create('v1', 'pw')
    with pytest.raises(InvalidInput):
        svc.change_password('v1', 'pw', '\u00e9' * 40)
    assert len(svc.unlock('v1', 'pw').entries) == 0

def test_excessive_iteration_count_is_rejected_before_derivation(service, monkeypatch):
    service.create('v1', 'pw')
    header, blob = service.store.read('v1')
    forged = replace(header, kdf_iterations=MAX_ENC_ITERATIONS + 1)
    service.store.path_for('v1').write_bytes(_frame(forged, blob))
    def fail(*a, **kw):
        raise AssertionError('key must not be derived')
    monkeypatch.setattr(service.kdf, 'derive_key', fail)
    with pytest.raises(UnsupportedFormat):
        service.unlock('v1', 'pw')

def test_change_password_rejects_excessive_iterations(service):
    service.create('v1', 'pw')
    with pytest.raises(InvalidInput):
        service.change_password('v1', 'pw', 'new', iterations=MAX_ENC_ITERATIONS + 1)

def test_deterministic_rng_is_used_for_salt(store, kdf):
    svc = VaultService(store, kdf=kdf, rng=lambda n: b'\x02' * n, enc_iterations=1000)
    assert svc.create('v1', 'pw').encryption_salt == b'\x02' * 16

def test_keys_are_wiped_after_use(store, kdf, monkeypatch):
    svc = VaultService(store, kdf=kdf, enc_iterations=1000)
    keys = []
    real = kdf.derive_key
    def spy(*a, **kw):
        k = real(*a, **kw); keys.append(k); return k
    monkeypatch.setattr(kdf, 'derive_key', spy)
    svc.create('v1', 'pw')
    svc.append_entry('v1', 'pw', 't', 'u', 's')
    with pytest.raises(InvalidInput):
        svc.change_password('v1', 'pw', '')
    svc.change_password('v1', 'pw', 'new')
    assert len(keys) == 4
    assert all(k == bytearray(len(k)) for k in keys)

def test_delete(service):
    service.create('v1', 'pw')
    assert service.delete('v1') is True
    assert not service.exists('v1')
    assert service.delete('v1') is False

def test_info_reads_header_without_password(service):
    created = service.create('v1', 'pw')
    assert service.info('v1') == created

def test_create_with_initial_payload(service):
    p = VaultPayload((VaultEntry('1', 't', 'u', 's'),))
    service.create('v1', 'pw', payload=p)
    assert service.unlock('v1', 'pw') == p
