"""Project configuration settings.

All constants for the vault format and its crypto live here. A handful can
be overridden from the environment; the CLI re-reads those at call time.
"""

from pathlib import Path
import os

# Key derivation (PBKDF2-HMAC-SHA256)
KDF_ALGORITHM = "PBKDF2WithHmacSHA256"
ENC_ITERATIONS = 65536  # CLI override: VAULT_ENC_ITERATIONS
MAX_ENC_ITERATIONS = 10_000_000
ENC_SALT_LENGTH = 16
KEY_LENGTH = 32  # AES-256
SUPPORTED_KEY_LENGTHS = (16, 24, 32)

# Auth token, independent from the encryption key parameters
AUTH_ITERATIONS = 65536
AUTH_SALT_LENGTH = 16
AUTH_KEY_LENGTH = 32
AUTH_SCHEME = os.environ.get("VAULT_AUTH_SCHEME", "pbkdf2")  # or "bcrypt"
BCRYPT_MAX_PASSWORD_BYTES = 72

# AEAD
CIPHER_ALGORITHM = "AES/GCM/NoPadding"
NONCE_LENGTH = 12  # 96 bit, recommended for GCM
TAG_LENGTH = 16    # 128 bit

# Header
HEADER_VERSION = 1
AAD_FORMAT = "sha256(header-json)"

# Vault files
VAULT_DIR = Path(os.environ.get("VAULT_DIR", "vaults"))
TEMP_SUFFIX = ".tmp"

# Logging
LOG_LEVEL = os.environ.get("VAULT_LOG_LEVEL", "WARNING")

__all__ = [
	'KDF_ALGORITHM','ENC_ITERATIONS','MAX_ENC_ITERATIONS','ENC_SALT_LENGTH','KEY_LENGTH','SUPPORTED_KEY_LENGTHS',
	'AUTH_ITERATIONS','AUTH_SALT_LENGTH','AUTH_KEY_LENGTH','AUTH_SCHEME','BCRYPT_MAX_PASSWORD_BYTES',
	'CIPHER_ALGORITHM','NONCE_LENGTH','TAG_LENGTH','HEADER_VERSION','AAD_FORMAT',
	'VAULT_DIR','TEMP_SUFFIX','LOG_LEVEL'
]
