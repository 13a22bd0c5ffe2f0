"""Error taxonomy shared by every layer of the vault core."""
from __future__ import annotations

class VaultError(Exception):
	"""Base class for every failure the core reports."""

class InvalidInput(VaultError):
	"""Bad parameters: empty password, missing salt, bad vault name."""

class InvalidKey(InvalidInput):
	pass

class MalformedInput(VaultError):
	"""Structurally invalid file, blob or header."""

class MalformedHeader(MalformedInput):
	pass

class UnsupportedFormat(MalformedHeader):
	"""Header is well formed but names a scheme this build cannot process."""

class CryptoError(VaultError):
	pass

class AuthenticationFailed(CryptoError):
	"""AEAD tag mismatch: wrong key, wrong AAD, or corrupted data."""

class VaultCorrupted(AuthenticationFailed):
	"""Tag mismatch after the password was already verified."""

class WrongPassword(VaultError):
	pass

class StorageError(VaultError):
	pass

class NotFound(StorageError):
	pass

class IOFailure(StorageError):
	pass
