"""File storage for vaults: one file per vault inside a directory.

File format:
	[4-byte big-endian header length][canonical header bytes][blob]

Writes go to a temp file in the same directory which is then renamed over
the target, so the target is always either the old or the new version.
"""
from __future__ import annotations
import logging, os, shutil, struct, tempfile
from pathlib import Path
from typing import Tuple
from config.settings import TEMP_SUFFIX
from .crypto import zeroize
from .errors import InvalidInput, IOFailure, MalformedInput, NotFound
from . import header as header_codec
from .header import VaultHeader

log = logging.getLogger(__name__)

LENGTH_PREFIX = struct.Struct('>I')

class FileVaultStore:
	def __init__(self, directory: Path):
		self.dir = Path(directory)
		if self.dir.exists() and not self.dir.is_dir():
			raise InvalidInput(f'Not a directory: {self.dir}')

	def path_for(self, name: str) -> Path:
		if not name or not name.strip() or name in ('.', '..') or '/' in name or '\\' in name or os.sep in name:
			raise InvalidInput(f'Invalid vault name: {name!r}')
		return self.dir / name

	def exists(self, name: str) -> bool:
		return self.path_for(name).is_file()

	def write(self, name: str, header: VaultHeader, blob: bytes) -> None:
		target = self.path_for(name)
		header_bytes = header_codec.encode(header)
		out = bytearray(LENGTH_PREFIX.pack(len(header_bytes)))
		out += header_bytes; out += blob
		tmp = None
		try:
			self.dir.mkdir(parents=True, exist_ok=True)
			fd, tmp = tempfile.mkstemp(prefix=f'.{name}.', suffix=TEMP_SUFFIX, dir=self.dir)
			with os.fdopen(fd, 'wb') as f:
				f.write(out)
				f.flush()
				os.fsync(f.fileno())
			try:
				os.replace(tmp, target)
			except OSError as e:
				# No atomic rename here; fall back to a plain move
				log.warning(f'Atomic rename failed ({e}); falling back to non-atomic replace')
				shutil.move(tmp, str(target))
			tmp = None
			self._fsync_dir()
			log.info(f'Vault written -> {target}')
		except OSError as e:
			raise IOFailure(f'Failed to write vault {name}: {e}') from e
		finally:
			if tmp is not None and os.path.exists(tmp):
				try:
					os.unlink(tmp)
				except OSError as e:
					log.error(f'Could not remove temp file {tmp}: {e}')
			zeroize(out)

	def _fsync_dir(self) -> None:
		"""Persist the rename itself; directories cannot be opened for fsync on Windows."""
		if os.name != 'posix':
			return
		fd = os.open(self.dir, os.O_RDONLY)
		try:
			os.fsync(fd)
		finally:
			os.close(fd)

	def read(self, name: str) -> Tuple[VaultHeader, bytes]:
		target = self.path_for(name)
		try:
			raw = target.read_bytes()
		except FileNotFoundError as e:
			raise NotFound(f'Vault not found: {name}') from e
		except OSError as e:
			raise IOFailure(f'Failed to read vault {name}: {e}') from e
		if len(raw) < LENGTH_PREFIX.size:
			raise MalformedInput('File too short to hold the header length')
		(header_len,) = LENGTH_PREFIX.unpack_from(raw)
		if header_len <= 0 or header_len > len(raw) - LENGTH_PREFIX.size:
			raise MalformedInput(f'Invalid header length: {header_len}')
		start = LENGTH_PREFIX.size
		header = header_codec.decode(raw[start:start + header_len])
		return header, raw[start + header_len:]

	def delete(self, name: str) -> bool:
		target = self.path_for(name)
		try:
			target.unlink()
		except FileNotFoundError:
			return False
		except OSError as e:
			raise IOFailure(f'Failed to delete vault {name}: {e}') from e
		log.info(f'Vault deleted -> {target}')
		return True
