"""CLI commands implemented with click.

The CLI is the composition root: it builds one random source, the store,
KDF, cipher and service, and renders results. All vault logic lives in
`src.lib`.
"""
from __future__ import annotations
import json, logging, os, secrets, click
from pathlib import Path
from config import settings
from src.lib.auth import make_auth
from src.lib.crypto import AesGcmCipher
from src.lib.errors import InvalidInput, VaultError
from src.lib.kdf import Pbkdf2Kdf
from src.lib.service import VaultService
from src.lib.store import FileVaultStore

def build_service() -> VaultService:
	# Resolve env at call time so tests can point at a temp directory
	vault_dir = Path(os.environ.get('VAULT_DIR') or settings.VAULT_DIR)
	raw_iterations = os.environ.get('VAULT_ENC_ITERATIONS') or settings.ENC_ITERATIONS
	try:
		iterations = int(raw_iterations)
	except ValueError as e:
		raise InvalidInput(f'VAULT_ENC_ITERATIONS must be an integer, got {raw_iterations!r}') from e
	if not 0 < iterations <= settings.MAX_ENC_ITERATIONS:
		raise InvalidInput(f'VAULT_ENC_ITERATIONS must be between 1 and {settings.MAX_ENC_ITERATIONS}')
	scheme = os.environ.get('VAULT_AUTH_SCHEME') or settings.AUTH_SCHEME
	rng = secrets.token_bytes
	kdf = Pbkdf2Kdf(rng=rng)
	return VaultService(FileVaultStore(vault_dir), kdf=kdf, cipher=AesGcmCipher(rng=rng),
						auth=make_auth(scheme, kdf), rng=rng, enc_iterations=iterations)

@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging.')
def cli(verbose):
	"""securevault: password-protected credential vaults"""
	logging.basicConfig(level=logging.DEBUG if verbose else settings.LOG_LEVEL,
						format='%(levelname)s %(name)s: %(message)s')

@cli.command()
@click.argument('name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--force', is_flag=True, help='Overwrite if the vault already exists.')
def create(name, password, force):
	"""Create a new, empty vault."""
	try:
		svc = build_service()
		if svc.exists(name) and not force:
			click.echo(f'Error: vault {name} already exists (use --force to overwrite)')
			return
		svc.create(name, password)
		click.echo(f'Vault created: {name}')
	except VaultError as e:
		click.echo(f'Error: {e}')

@cli.command('list')
@click.argument('name')
@click.option('--password', prompt=True, hide_input=True)
def list_entries(name, password):
	"""Unlock a vault and list its entries."""
	try:
		payload = build_service().unlock(name, password)
	except VaultError as e:
		click.echo(f'Error: {e}')
		return
	click.echo(f'=== Entries ({len(payload.entries)}) ===')
	for i, e in enumerate(payload.entries, 1):
		click.echo(f"{i}) {e.title}  [{e.username}] -> {e.secret}  notes: {e.notes or '-'}")

@cli.command()
@click.argument('name')
@click.option('--password', prompt=True, hide_input=True)
@click.option('--title', prompt=True)
@click.option('--username', prompt=True)
@click.option('--secret', prompt='Entry password', hide_input=True)
@click.option('--notes', prompt='Notes (optional)', default='', show_default=False)
def add(name, password, title, username, secret, notes):
	"""Append an entry to a vault."""
	try:
		entry = build_service().append_entry(name, password, title, username, secret, notes)
		click.echo(f'Entry added: {entry.id}')
	except VaultError as e:
		click.echo(f'Error: {e}')

@cli.command()
@click.argument('name')
@click.option('--old-password', prompt=True, hide_input=True)
@click.option('--new-password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--iterations', type=click.IntRange(min=1), default=None, help='New KDF iteration count.')
def passwd(name, old_password, new_password, iterations):
	"""Change the master password of a vault."""
	try:
		build_service().change_password(name, old_password, new_password, iterations=iterations)
		click.echo('Master password updated.')
	except VaultError as e:
		click.echo(f'Error: {e}')

@cli.command()
@click.argument('name')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation.')
def delete(name, yes):
	"""Delete a vault file."""
	try:
		svc = build_service()
		if not svc.exists(name):
			click.echo('Not found')
			return
		if not yes and not click.confirm(f'Delete vault {name}?', default=False):
			click.echo('Cancelled')
			return
		click.echo(f'Deleted: {svc.delete(name)}')
	except VaultError as e:
		click.echo(f'Error: {e}')

@cli.command()
@click.argument('name')
def info(name):
	"""Show the clear-text header of a vault."""
	try:
		header = build_service().info(name)
	except VaultError as e:
		click.echo(f'Error: {e}')
		return
	meta = header.to_dict()
	meta.pop('stored_auth_token')
	click.echo(json.dumps(meta, indent=2, sort_keys=True))
