"""Authenticated encryption (AES-GCM) and buffer wiping helpers.

Blob layout produced by `AesGcmCipher.encrypt`:
	nonce || ciphertext || tag

The AAD is bound into the tag but never stored in the blob; the caller must
hand the same AAD back to `decrypt`.
"""
from __future__ import annotations
import secrets
from typing import Callable, Optional
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.backends import default_backend
from config.settings import NONCE_LENGTH, TAG_LENGTH, SUPPORTED_KEY_LENGTHS
from .errors import AuthenticationFailed, CryptoError, InvalidKey, MalformedInput

def zeroize(buf) -> None:
	"""Overwrite a mutable buffer with zero bytes in place.

	Immutable objects (bytes, str) cannot be wiped and are ignored.
	"""
	if isinstance(buf, bytearray):
		buf[:] = bytes(len(buf))
	elif isinstance(buf, memoryview) and not buf.readonly:
		buf[:] = bytes(buf.nbytes)

def _check_key(key) -> None:
	if key is None or len(key) not in SUPPORTED_KEY_LENGTHS:
		raise InvalidKey("AES key must be 16, 24, or 32 bytes")

class AesGcmCipher:
	def __init__(self, nonce_size: int = NONCE_LENGTH, tag_size: int = TAG_LENGTH,
				 rng: Optional[Callable[[int], bytes]] = None):
		self.nonce_size = nonce_size
		self.tag_size = tag_size
		self._rng = rng or secrets.token_bytes
		self._backend = default_backend()

	def encrypt(self, key, plaintext, aad: Optional[bytes] = None) -> bytes:
		_check_key(key)
		if plaintext is None:
			plaintext = b''
		nonce = bytearray(self._rng(self.nonce_size))
		try:
			cipher = Cipher(algorithms.AES(key), modes.GCM(nonce), backend=self._backend)
			enc = cipher.encryptor()
			if aad is not None:
				enc.authenticate_additional_data(aad)
			ct = enc.update(plaintext) + enc.finalize()
			return bytes(nonce) + ct + enc.tag[:self.tag_size]
		except Exception as e:
			raise CryptoError(f"Encryption failed: {e}") from e
		finally:
			zeroize(nonce)

	def decrypt(self, key, blob, aad: Optional[bytes] = None) -> bytearray:
		"""Verify and decrypt `blob`; the returned buffer belongs to the caller, who wipes it."""
		_check_key(key)
		if blob is None or len(blob) < self.nonce_size + self.tag_size:
			raise MalformedInput("Ciphertext too short")
		nonce = bytearray(blob[:self.nonce_size])
		tag = bytes(blob[-self.tag_size:])
		ct = bytearray(blob[self.nonce_size:-self.tag_size])
		plain = bytearray()
		try:
			cipher = Cipher(algorithms.AES(key), modes.GCM(nonce, tag, min_tag_length=self.tag_size),
							backend=self._backend)
			dec = cipher.decryptor()
			if aad is not None:
				dec.authenticate_additional_data(aad)
			plain += dec.update(ct)
			plain += dec.finalize()
			return plain
		except InvalidTag as e:
			zeroize(plain)
			raise AuthenticationFailed("Decryption failed: wrong key, wrong AAD or corrupted data") from e
		except Exception as e:
			zeroize(plain)
			raise CryptoError(f"Decryption failed: {e}") from e
		finally:
			zeroize(nonce)
			zeroize(ct)
