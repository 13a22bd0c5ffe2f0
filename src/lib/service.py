"""Vault operations: create, unlock, append entry, change password, delete.

Every call walks the full Locked -> Unlocking -> Unlocked -> Relocking ->
Locked cycle on its own; nothing is kept in memory between calls. Derived
keys and plaintext buffers are wiped before each call returns, on error
paths as well.
"""
from __future__ import annotations
import logging, secrets, time
from typing import Callable, Optional, Tuple
from config.settings import (
	AAD_FORMAT, CIPHER_ALGORITHM, ENC_ITERATIONS, ENC_SALT_LENGTH, HEADER_VERSION, KDF_ALGORITHM,
	KEY_LENGTH, MAX_ENC_ITERATIONS, SUPPORTED_KEY_LENGTHS
)
from .auth import BcryptAuth, verify_token
from .crypto import AesGcmCipher, zeroize
from .errors import AuthenticationFailed, InvalidInput, UnsupportedFormat, VaultCorrupted, WrongPassword
from .header import VaultHeader, compute_aad
from .kdf import Pbkdf2Kdf
from .models import VaultEntry, VaultPayload, deserialize, new_entry_id, serialize
from .store import FileVaultStore

log = logging.getLogger(__name__)

class VaultService:
	def __init__(self, store: FileVaultStore, kdf: Optional[Pbkdf2Kdf] = None, cipher: Optional[AesGcmCipher] = None,
				 auth=None, rng: Optional[Callable[[int], bytes]] = None, enc_iterations: int = ENC_ITERATIONS,
				 key_length: int = KEY_LENGTH, clock: Callable[[], float] = time.time):
		self.store = store
		self.rng = rng or secrets.token_bytes
		self.kdf = kdf or Pbkdf2Kdf(rng=self.rng)
		self.cipher = cipher or AesGcmCipher(rng=self.rng)
		# Producer of new auth tokens; verification dispatches on the stored token
		self.auth = auth or self.kdf
		self.bcrypt_auth = auth if isinstance(auth, BcryptAuth) else None
		self.enc_iterations = enc_iterations
		self.key_length = key_length
		self.clock = clock

	# -- helpers -----------------------------------------------------------

	def _new_header(self, password, iterations: int, key_length: int) -> VaultHeader:
		if not 0 < iterations <= MAX_ENC_ITERATIONS:
			raise InvalidInput(f'Iterations must be between 1 and {MAX_ENC_ITERATIONS}')
		if key_length not in SUPPORTED_KEY_LENGTHS:
			raise InvalidInput(f'Key length must be one of {SUPPORTED_KEY_LENGTHS}')
		return VaultHeader(
			encryption_salt=self.rng(ENC_SALT_LENGTH),
			kdf_iterations=iterations,
			stored_auth_token=self.auth.hash_password(password),
			key_length_bytes=key_length,
			nonce_size_bytes=self.cipher.nonce_size,
			tag_size_bytes=self.cipher.tag_size,
		)

	def _check_header(self, header: VaultHeader) -> None:
		if header.version != HEADER_VERSION:
			raise UnsupportedFormat(f'Unsupported header version: {header.version}')
		if header.kdf_algorithm != KDF_ALGORITHM:
			raise UnsupportedFormat(f'Unsupported KDF: {header.kdf_algorithm}')
		if header.cipher_algorithm != CIPHER_ALGORITHM:
			raise UnsupportedFormat(f'Unsupported cipher: {header.cipher_algorithm}')
		if header.aad_format_tag != AAD_FORMAT:
			raise UnsupportedFormat(f'Unsupported AAD format: {header.aad_format_tag}')
		if header.kdf_iterations > MAX_ENC_ITERATIONS:
			raise UnsupportedFormat(f'KDF iteration count {header.kdf_iterations} exceeds {MAX_ENC_ITERATIONS}')
		if header.key_length_bytes not in SUPPORTED_KEY_LENGTHS:
			raise UnsupportedFormat(f'Unsupported key length: {header.key_length_bytes}')
		if (header.nonce_size_bytes, header.tag_size_bytes) != (self.cipher.nonce_size, self.cipher.tag_size):
			raise UnsupportedFormat('Unsupported nonce/tag sizes')

	def _derive(self, password, header: VaultHeader) -> bytearray:
		return self.kdf.derive_key(password, header.encryption_salt, header.kdf_iterations, header.key_length_bytes)

	def _seal(self, name: str, header: VaultHeader, key, payload: VaultPayload) -> None:
		plain = serialize(payload)
		try:
			blob = self.cipher.encrypt(key, plain, compute_aad(header))
		finally:
			zeroize(plain)
		self.store.write(name, header, blob)

	def _open(self, name: str, password) -> Tuple[VaultHeader, VaultPayload, bytearray]:
		"""Verify, derive and decrypt. The returned key must be wiped by the caller."""
		header, blob = self.store.read(name)
		self._check_header(header)
		if not verify_token(header.stored_auth_token, password, self.kdf, self.bcrypt_auth):
			log.warning(f'Wrong password for vault {name}')
			raise WrongPassword('Wrong password')
		key = self._derive(password, header)
		try:
			plain = self.cipher.decrypt(key, blob, compute_aad(header))
		except AuthenticationFailed as e:
			zeroize(key)
			log.warning(f'Vault {name} failed authentication after password check')
			raise VaultCorrupted('Vault data is corrupted or has been tampered with') from e
		except Exception:
			zeroize(key)
			raise
		try:
			payload = deserialize(plain)
		except Exception:
			zeroize(key)
			raise
		finally:
			zeroize(plain)
		return header, payload, key

	# -- operations --------------------------------------------------------

	def exists(self, name: str) -> bool:
		return self.store.exists(name)

	def info(self, name: str) -> VaultHeader:
		header, _blob = self.store.read(name)
		return header

	def create(self, name: str, password, payload: Optional[VaultPayload] = None) -> VaultHeader:
		"""Create (or silently overwrite) a vault; callers check `exists` first."""
		if not password:
			raise InvalidInput('Password must not be empty')
		self.store.path_for(name)
		header = self._new_header(password, self.enc_iterations, self.key_length)
		key = self._derive(password, header)
		try:
			self._seal(name, header, key, payload or VaultPayload())
		finally:
			zeroize(key)
		log.info(f'Vault {name} created')
		return header

	def unlock(self, name: str, password) -> VaultPayload:
		_header, payload, key = self._open(name, password)
		zeroize(key)
		return payload

	def append_entry(self, name: str, password, title: str, username: str, secret: str,
					 notes: Optional[str] = None) -> VaultEntry:
		"""Add one entry, re-encrypting under the same header and key with a fresh nonce."""
		header, payload, key = self._open(name, password)
		try:
			entry = VaultEntry(new_entry_id(payload, self.clock), title, username, secret, notes or None)
			self._seal(name, header, key, payload.with_entry(entry))
		finally:
			zeroize(key)
		log.info(f'Entry {entry.id} added to vault {name}')
		return entry

	def change_password(self, name: str, old_password, new_password, iterations: Optional[int] = None,
						key_length: Optional[int] = None) -> VaultHeader:
		"""Re-key the vault: new salt, new key, new auth token, new header."""
		if not new_password:
			raise InvalidInput('New password must not be empty')
		header, payload, old_key = self._open(name, old_password)
		zeroize(old_key)
		new_header = self._new_header(new_password, iterations or header.kdf_iterations,
									  key_length or header.key_length_bytes)
		new_key = self._derive(new_password, new_header)
		try:
			self._seal(name, new_header, new_key, payload.bumped())
		finally:
			zeroize(new_key)
		log.info(f'Password changed for vault {name}')
		return new_header

	def delete(self, name: str) -> bool:
		"""Remove the vault file. Confirmation is the caller's policy."""
		removed = self.store.delete(name)
		if removed:
			log.info(f'Vault {name} deleted')
		return removed
