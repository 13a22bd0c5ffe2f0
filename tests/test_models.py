import pytest
from src.lib.errors import MalformedInput
from src.lib.models import VaultEntry, VaultPayload, deserialize, new_entry_id, serialize

def test_with_entry_returns_new_payload():
    p = VaultPayload()
    e = VaultEntry('1', 'Email', 'a@b.com', 'pw1')
    q = p.with_entry(e)
    assert p.entries == () and p.revision == 0
    assert q.entries == (e,) and q.revision == 1

def test_serialize_roundtrip_keeps_order_and_revision():
    p = VaultPayload((VaultEntry('2', 'B', 'u', 's', 'n'), VaultEntry('1', 'A', 'u', 's')), revision=7)
    assert deserialize(serialize(p)) == p

def test_serialize_returns_wipeable_buffer():
    assert isinstance(serialize(VaultPayload()), bytearray)

def test_deserialize_accepts_payload_without_revision():
    p = deserialize(b'{"entries":[{"id":"1","title":"t","username":"u","secret":"s"}]}')
    assert p.revision == 0 and p.entries[0].notes is None

@pytest.mark.parametrize('data', [b'not json', b'[]', b'{"entries":[{"id":"1"}]}', b'{"entries":5}'])
def test_deserialize_rejects_invalid(data):
    with pytest.raises(MalformedInput):
        deserialize(data)

def test_entry_id_is_millisecond_timestamp():
    assert new_entry_id(VaultPayload(), clock=lambda: 1700000000.123) == '1700000000123'

def test_entry_id_skips_taken_ids():
    p = VaultPayload((VaultEntry('1000', 't', 'u', 's'), VaultEntry('1001', 't', 'u', 's')))
    assert new_entry_id(p, clock=lambda: 1.0) == '1002'
