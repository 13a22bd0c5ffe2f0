"""Vault records and the plaintext payload that gets encrypted as a whole.

`VaultPayload` is immutable: unlocking hands out one value, mutations build
a new value with a bumped revision, and only that new value is written back.
"""
from __future__ import annotations
import json, time
from dataclasses import dataclass, asdict, field
from typing import Callable, Optional, Tuple
from .errors import MalformedInput

@dataclass(frozen=True)
class VaultEntry:
	id: str
	title: str
	username: str
	secret: str
	notes: Optional[str] = None

@dataclass(frozen=True)
class VaultPayload:
	entries: Tuple[VaultEntry, ...] = field(default_factory=tuple)
	revision: int = 0

	def with_entry(self, entry: VaultEntry) -> 'VaultPayload':
		return VaultPayload(self.entries + (entry,), self.revision + 1)

	def bumped(self) -> 'VaultPayload':
		return VaultPayload(self.entries, self.revision + 1)

	def ids(self) -> set:
		return {e.id for e in self.entries}

def new_entry_id(payload: VaultPayload, clock: Callable[[], float] = time.time) -> str:
	"""Millisecond timestamp id, incremented past any id already in the payload."""
	candidate = int(clock() * 1000)
	taken = payload.ids()
	while str(candidate) in taken:
		candidate += 1
	return str(candidate)

def serialize(payload: VaultPayload) -> bytearray:
	obj = {'revision': payload.revision, 'entries': [asdict(e) for e in payload.entries]}
	return bytearray(json.dumps(obj, separators=(',', ':')).encode('utf-8'))

def deserialize(data) -> VaultPayload:
	try:
		obj = json.loads(data)
		entries = tuple(
			VaultEntry(id=str(e['id']), title=e['title'], username=e['username'], secret=e['secret'], notes=e.get('notes'))
			for e in obj.get('entries', [])
		)
		return VaultPayload(entries, int(obj.get('revision', 0)))
	except (ValueError, TypeError, KeyError, AttributeError) as e:
		raise MalformedInput(f'Invalid vault payload: {type(e).__name__}') from e
