"""Password based key derivation (PBKDF2-HMAC-SHA256).

Two independent uses of the same primitive:

- `hash_password` / `verify`: a storable auth token, base64(salt || hash),
  computed with fixed parameters reserved for authentication. It lets a wrong
  password be rejected before any decryption is attempted.
- `derive_key`: the symmetric key actually used for encryption, with the
  salt / iterations / length recorded in the vault header.

The token never decrypts anything and the encryption key is never stored.
"""
from __future__ import annotations
import base64, binascii, hmac, logging, secrets
from typing import Callable, Optional
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.backends import default_backend
from config.settings import AUTH_ITERATIONS, AUTH_KEY_LENGTH, AUTH_SALT_LENGTH
from .crypto import zeroize
from .errors import InvalidInput

log = logging.getLogger(__name__)

def password_bytes(password) -> bytearray:
	"""Copy a password (str or bytes-like) into a wipeable buffer."""
	if isinstance(password, str):
		return bytearray(password.encode('utf-8'))
	return bytearray(password)

class Pbkdf2Kdf:
	def __init__(self, auth_iterations: int = AUTH_ITERATIONS, auth_key_length: int = AUTH_KEY_LENGTH,
				 rng: Optional[Callable[[int], bytes]] = None):
		self.auth_iterations = auth_iterations
		self.auth_key_length = auth_key_length
		self._rng = rng or secrets.token_bytes
		self._backend = default_backend()

	def _pbkdf2(self, pw: bytearray, salt, iterations: int, length: int) -> bytearray:
		kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=length, salt=bytes(salt), iterations=iterations, backend=self._backend)
		return bytearray(kdf.derive(pw))

	def hash_password(self, password) -> str:
		if not password:
			raise InvalidInput("Password must not be empty")
		salt = self._rng(AUTH_SALT_LENGTH)
		pw = password_bytes(password)
		digest = bytearray()
		try:
			digest = self._pbkdf2(pw, salt, self.auth_iterations, self.auth_key_length)
			return base64.b64encode(salt + bytes(digest)).decode('ascii')
		finally:
			zeroize(pw); zeroize(digest)

	def verify(self, token, password) -> bool:
		"""Check `password` against a stored token; never raises."""
		if not isinstance(token, str) or password is None:
			return False
		pw = bytearray(); fresh = bytearray()
		try:
			decoded = base64.b64decode(token.encode('ascii'), validate=True)
			if len(decoded) <= AUTH_SALT_LENGTH:
				return False
			salt, stored = decoded[:AUTH_SALT_LENGTH], decoded[AUTH_SALT_LENGTH:]
			pw = password_bytes(password)
			fresh = self._pbkdf2(pw, salt, self.auth_iterations, len(stored))
			return hmac.compare_digest(bytes(fresh), stored)
		except (ValueError, TypeError, binascii.Error) as e:
			log.debug(f"Auth token rejected: {type(e).__name__}")
			return False
		except Exception as e:  # pragma: no cover (backend failure)
			log.debug(f"Auth token check failed: {type(e).__name__}")
			return False
		finally:
			zeroize(pw); zeroize(fresh)

	def derive_key(self, password, salt, iterations: int, key_length: int) -> bytearray:
		"""Derive the encryption key; the caller owns and wipes the result."""
		if not password or not salt:
			raise InvalidInput("Password and salt are required")
		if iterations <= 0 or key_length <= 0:
			raise InvalidInput("Iterations and key length must be positive")
		pw = password_bytes(password)
		try:
			return self._pbkdf2(pw, salt, iterations, key_length)
		finally:
			zeroize(pw)
