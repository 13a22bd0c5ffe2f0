"""Auth-token schemes (hash & verify master passwords).

Two token formats can sit in a vault header:

- pbkdf2: base64(salt || PBKDF2 hash), produced by `Pbkdf2Kdf.hash_password`.
- bcrypt: the self-describing `$2b$...` string produced by bcrypt.

`verify_token` picks the scheme from the token itself, so a vault unlocks
regardless of which scheme created it.
"""
from __future__ import annotations
import bcrypt
from config.settings import BCRYPT_MAX_PASSWORD_BYTES
from .errors import InvalidInput
from .kdf import Pbkdf2Kdf, password_bytes
from .crypto import zeroize

BCRYPT_PREFIXES = ('$2a$', '$2b$', '$2y$')

class BcryptAuth:
	def __init__(self, rounds: int = 12):
		self.rounds = rounds

	def hash_password(self, password) -> str:
		if not password:
			raise InvalidInput('Empty password')
		pw = password_bytes(password)
		try:
			if len(pw) > BCRYPT_MAX_PASSWORD_BYTES:
				raise InvalidInput(f'Password longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes is not supported by bcrypt')
			return bcrypt.hashpw(bytes(pw), bcrypt.gensalt(rounds=self.rounds)).decode('ascii')
		except ValueError as e:
			raise InvalidInput(f'bcrypt rejected the password: {e}') from e
		finally:
			zeroize(pw)

	def verify(self, token, password) -> bool:
		if not isinstance(token, str) or password is None:
			return False
		pw = password_bytes(password)
		try:
			return bcrypt.checkpw(bytes(pw), token.encode('ascii'))
		except Exception:
			return False
		finally:
			zeroize(pw)

def is_bcrypt_token(token) -> bool:
	return isinstance(token, str) and token.startswith(BCRYPT_PREFIXES)

def make_auth(scheme: str, kdf: Pbkdf2Kdf):
	"""Return the token producer for a configured scheme name."""
	if scheme == 'pbkdf2':
		return kdf
	if scheme == 'bcrypt':
		return BcryptAuth()
	raise InvalidInput(f'Unknown auth scheme: {scheme}')

def verify_token(token, password, kdf: Pbkdf2Kdf, bcrypt_auth: BcryptAuth | None = None) -> bool:
	if is_bcrypt_token(token):
		return (bcrypt_auth or BcryptAuth()).verify(token, password)
	return kdf.verify(token, password)
