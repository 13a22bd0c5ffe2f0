"""Vault header model and its canonical JSON codec.

The header travels in clear text next to the encrypted blob. Its canonical
encoding is compact JSON with sorted keys and the salt in base64; the
SHA-256 digest of that encoding is the AAD of the blob, so editing any
header field (including cost parameters) breaks decryption.
"""
from __future__ import annotations
import base64, binascii, hashlib, json
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict
from config.settings import (
	HEADER_VERSION, KDF_ALGORITHM, CIPHER_ALGORITHM, KEY_LENGTH, NONCE_LENGTH, TAG_LENGTH, AAD_FORMAT
)
from .errors import MalformedHeader

@dataclass(frozen=True)
class VaultHeader:
	encryption_salt: bytes
	kdf_iterations: int
	stored_auth_token: str
	key_length_bytes: int = KEY_LENGTH
	version: int = HEADER_VERSION
	kdf_algorithm: str = KDF_ALGORITHM
	cipher_algorithm: str = CIPHER_ALGORITHM
	nonce_size_bytes: int = NONCE_LENGTH
	tag_size_bytes: int = TAG_LENGTH
	aad_format_tag: str = AAD_FORMAT

	def to_dict(self) -> Dict[str, Any]:
		d = asdict(self)
		d['encryption_salt'] = base64.b64encode(self.encryption_salt).decode('ascii')
		return d

_INT_FIELDS = ('kdf_iterations', 'key_length_bytes', 'version', 'nonce_size_bytes', 'tag_size_bytes')
_STR_FIELDS = ('stored_auth_token', 'kdf_algorithm', 'cipher_algorithm', 'aad_format_tag')

def encode(header: VaultHeader) -> bytes:
	return json.dumps(header.to_dict(), sort_keys=True, separators=(',', ':'), ensure_ascii=True).encode('ascii')

def decode(data: bytes) -> VaultHeader:
	"""Parse header bytes; only the canonical encoding is accepted."""
	try:
		raw = json.loads(bytes(data).decode('ascii'))
	except (UnicodeDecodeError, ValueError) as e:
		raise MalformedHeader(f'Header is not valid JSON: {e}') from e
	if not isinstance(raw, dict):
		raise MalformedHeader('Header must be a JSON object')
	expected = {f.name for f in fields(VaultHeader)}
	if set(raw) != expected:
		missing = sorted(expected - set(raw)); extra = sorted(set(raw) - expected)
		raise MalformedHeader(f'Header fields mismatch (missing={missing}, unexpected={extra})')
	for name in _INT_FIELDS:
		if type(raw[name]) is not int or raw[name] <= 0:
			raise MalformedHeader(f'Header field {name} must be a positive integer')
	for name in _STR_FIELDS:
		if not isinstance(raw[name], str) or not raw[name]:
			raise MalformedHeader(f'Header field {name} must be a non-empty string')
	try:
		salt = base64.b64decode(raw['encryption_salt'], validate=True)
	except (TypeError, ValueError, binascii.Error) as e:
		raise MalformedHeader('Header encryption_salt is not valid base64') from e
	if not salt:
		raise MalformedHeader('Header encryption_salt is empty')
	header = VaultHeader(**{**raw, 'encryption_salt': salt})
	if encode(header) != bytes(data):
		raise MalformedHeader('Header is not in canonical form')
	return header

def compute_aad(header: VaultHeader) -> bytes:
	return hashlib.sha256(encode(header)).digest()
