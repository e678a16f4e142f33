"""CLI commands implemented with click.

The CLI plays the caller role: it picks the key profile, runs the cipher,
records the result in the entry store and applies the configured limits.
"""
from __future__ import annotations
import logging, click
from pathlib import Path
from config.settings import LOG_LEVEL, LOG_FORMAT, DATA_DIR_ENV
from src.lib.crypto import (
	AesCbcCipher, CryptoError, looks_like_encrypted, is_valid_plaintext_key, is_valid_plaintext_iv, is_valid_base64_key
)
from src.lib.history import EntryStore, HistoryEntry, EntryError, StorageError, HISTORY, BOOKMARKS
from src.lib.keystore import ConfigManager, ConfigError
from src.lib.protect import ProtectError
from src.lib.transfer import export_data, import_data, TransferError

class Context:
	def __init__(self, data_dir: Path | None):
		self.store = EntryStore(data_dir)
		self.config = ConfigManager(data_dir)
		self.cipher = AesCbcCipher()

pass_ctx = click.make_pass_decorator(Context)


def _short(text: str, width: int = 40) -> str:
	text = text.replace('\n', ' ')
	return text if len(text) <= width else text[:width - 3] + '...'

def _echo_entries(entries):
	if not entries:
		click.echo('No entries.')
		return
	for e in entries:
		star = '*' if e.is_favorite else ' '
		note = f"  # {_short(e.note, 30)}" if e.note else ''
		click.echo(f"{star} {e.id}  {e.timestamp:%Y-%m-%d %H:%M}  {e.operation:<7}  {_short(e.input)} -> {_short(e.output)}{note}")


@click.group()
@click.option('--data-dir', type=click.Path(file_okay=False, path_type=Path), envvar=DATA_DIR_ENV, default=None,
	help='Directory holding history, bookmarks and key configuration.')
@click.option('--log-level', default=LOG_LEVEL, show_default=True,
	type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
@click.pass_context
def cli(ctx, data_dir, log_level):
	"""AES text encryption tool with history and bookmarks."""
	logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)
	ctx.obj = Context(data_dir)


def _trim_bookmarks(c: Context, max_items: int):
	# trimmed bookmarks also lose the star on their history copy
	before = {b.id for b in c.store.load_bookmarks()}
	c.store.enforce_bookmark_limit(max_items)
	dropped = before - {b.id for b in c.store.load_bookmarks()}
	if dropped:
		c.store.delete_bookmark_entries(dropped)

def _run(c: Context, operation: str, text: str, profile_name, single: bool, favorite: bool, note: str, record: bool):
	config = c.config.load_keys()
	profile = config.find_profile(profile_name) if profile_name else config.active_profile()
	if profile is None:
		raise ConfigError(f'No such profile: {profile_name}')
	if single:
		key_b64 = profile.key_base64 or config.key_base64
		iv_b64 = profile.iv_base64 or config.iv_base64
		fn = c.cipher.encrypt_single if operation == 'encrypt' else c.cipher.decrypt_single
		result = fn(text, key_b64, iv_b64)
	else:
		fn = c.cipher.encrypt_double if operation == 'encrypt' else c.cipher.decrypt_double
		result = fn(text, profile.key, profile.iv)
	if record and text:
		settings = c.config.load_settings()
		c.store.add_entry(HistoryEntry.create(operation, text, result, note=note, is_favorite=favorite))
		c.store.enforce_history_limit(settings.max_history_items)
		_trim_bookmarks(c, settings.max_bookmark_items)
	return result

def _crypto_command(operation: str):
	@click.argument('text')
	@click.option('--profile', 'profile_name', default=None, help='Key profile name or id (default: active profile).')
	@click.option('--single', is_flag=True, help='Single pass with the Base64 key/IV.')
	@click.option('--favorite', is_flag=True, help='Also bookmark the result.')
	@click.option('--note', default='', help='Note stored with the history entry.')
	@click.option('--no-history', is_flag=True, help='Do not record the operation.')
	@pass_ctx
	def command(c, text, profile_name, single, favorite, note, no_history):
		if operation == 'encrypt' and c.config.load_settings().auto_detect and looks_like_encrypted(text):
			click.echo('Note: input already looks encrypted.', err=True)
		try:
			click.echo(_run(c, operation, text, profile_name, single, favorite, note, not no_history))
		except (CryptoError, ConfigError, EntryError) as e:
			click.echo(f'Error: {e}')
			raise SystemExit(1)
	command.__doc__ = f"{operation.capitalize()} TEXT with the active key profile."
	return command

cli.command('encrypt')(_crypto_command('encrypt'))
cli.command('decrypt')(_crypto_command('decrypt'))


@cli.command()
@click.argument('text')
def detect(text):
	"""Guess whether TEXT looks like ciphertext (hint only)."""
	click.echo('looks encrypted' if looks_like_encrypted(text) else 'looks like plain text')

@cli.command()
@click.option('--key', default=None)
@click.option('--iv', default=None)
@click.option('--key-b64', default=None)
@click.option('--iv-b64', default=None)
def validate(key, iv, key_b64, iv_b64):
	"""Check key/IV lengths without encrypting anything."""
	checks = []
	if key is not None: checks.append(('key', is_valid_plaintext_key(key)))
	if iv is not None: checks.append(('iv', is_valid_plaintext_iv(iv)))
	if key_b64 is not None: checks.append(('key-b64', any(is_valid_base64_key(key_b64, n) for n in (16, 24, 32))))
	if iv_b64 is not None: checks.append(('iv-b64', is_valid_base64_key(iv_b64, 16)))
	if not checks:
		click.echo('Nothing to validate.')
		return
	for name, ok in checks:
		click.echo(f"{name}: {'valid' if ok else 'invalid'}")
	if not all(ok for _, ok in checks):
		raise SystemExit(1)

@cli.command()
@click.option('--count', type=int, default=None, help='Defaults to RecentItemsCount from settings.')
@pass_ctx
def recent(c, count):
	"""Show the most recent history entries."""
	if count is None:
		count = c.config.load_settings().recent_items_count
	_echo_entries(c.store.get_recent_items(count))


# --- history ---

@cli.group()
def history():
	"""Browse and edit the operation history."""

@history.command('list')
@pass_ctx
def history_list(c):
	_echo_entries(c.store.load_history())

@history.command('search')
@click.argument('text', default='')
@pass_ctx
def history_search(c, text):
	_echo_entries(c.store.search(HISTORY, text))

@history.command('note')
@click.argument('entry_id')
@click.argument('text')
@pass_ctx
def history_note(c, entry_id, text):
	"""Set the note of an entry (bookmark copy follows)."""
	entry = c.store.get_entry(entry_id)
	if entry is None:
		click.echo('Not found')
		return
	c.store.update_entry(entry.copy(note=text))
	click.echo('Note updated.')

@history.command('favorite')
@click.argument('entry_id')
@click.option('--off', is_flag=True, help='Remove the bookmark instead.')
@pass_ctx
def history_favorite(c, entry_id, off):
	entry = c.store.get_entry(entry_id)
	if entry is None:
		click.echo('Not found')
		return
	c.store.update_entry(entry.copy(is_favorite=not off))
	click.echo('Bookmark removed.' if off else 'Bookmarked.')

@history.command('delete')
@click.argument('ids', nargs=-1, required=True)
@pass_ctx
def history_delete(c, ids):
	"""Delete entries from history only (bookmarks are kept)."""
	c.store.delete_history_entries(ids)
	click.echo(f'Deleted {len(ids)} id(s) from history.')

@history.command('clear')
@click.confirmation_option(prompt='Clear all non-bookmarked history?')
@pass_ctx
def history_clear(c):
	c.store.clear_history()
	click.echo('History cleared (bookmarked entries kept).')

@history.command('limit')
@click.option('--max', 'max_items', type=int, default=None, help='Defaults to MaxHistoryItems from settings.')
@pass_ctx
def history_limit(c, max_items):
	if max_items is None:
		max_items = c.config.load_settings().max_history_items
	c.store.enforce_history_limit(max_items)
	click.echo(f'History now holds {len(c.store.load_history())} entries.')


# --- bookmarks ---

@cli.group()
def bookmarks():
	"""Browse and edit bookmarks."""

@bookmarks.command('list')
@pass_ctx
def bookmarks_list(c):
	_echo_entries(c.store.load_bookmarks())

@bookmarks.command('search')
@click.argument('text', default='')
@pass_ctx
def bookmarks_search(c, text):
	_echo_entries(c.store.search(BOOKMARKS, text))

@bookmarks.command('delete')
@click.argument('ids', nargs=-1, required=True)
@pass_ctx
def bookmarks_delete(c, ids):
	c.store.delete_bookmark_entries(ids)
	click.echo(f'Removed {len(ids)} bookmark(s).')

@bookmarks.command('clear')
@click.confirmation_option(prompt='Remove all bookmarks?')
@pass_ctx
def bookmarks_clear(c):
	c.store.clear_bookmarks()
	click.echo('Bookmarks cleared.')

@bookmarks.command('limit')
@click.option('--max', 'max_items', type=int, default=None, help='Defaults to MaxBookmarkItems from settings.')
@pass_ctx
def bookmarks_limit(c, max_items):
	if max_items is None:
		max_items = c.config.load_settings().max_bookmark_items
	_trim_bookmarks(c, max_items)
	click.echo(f'Bookmarks now hold {len(c.store.load_bookmarks())} entries.')


# --- key profiles ---

@cli.group()
def profile():
	"""Manage key profiles."""

@profile.command('list')
@pass_ctx
def profile_list(c):
	config = c.config.load_keys()
	active = config.active_profile()
	for p in config.profiles:
		click.echo(f"{'*' if p.id == active.id else ' '} {p.name}  ({p.id})")

@profile.command('add')
@click.argument('name')
@click.option('--key', prompt=True, hide_input=True)
@click.option('--iv', prompt=True, hide_input=True)
@click.option('--key-b64', default='')
@click.option('--iv-b64', default='')
@click.option('--use', is_flag=True, help='Make it the active profile.')
@pass_ctx
def profile_add(c, name, key, iv, key_b64, iv_b64, use):
	config = c.config.load_keys()
	try:
		p = config.add_profile(name, key, iv, key_b64, iv_b64)
		if use:
			config.select_profile(p.id)
		c.config.save_configuration(config)
		click.echo(f"Profile '{p.name}' created.")
	except (ConfigError, CryptoError, ProtectError, OSError) as e:
		click.echo(f'Error: {e}')

@profile.command('use')
@click.argument('name')
@pass_ctx
def profile_use(c, name):
	config = c.config.load_keys()
	try:
		p = config.select_profile(name)
		c.config.save_configuration(config)
		click.echo(f"Active profile: {p.name}")
	except (ConfigError, ProtectError, OSError) as e:
		click.echo(f'Error: {e}')

@profile.command('remove')
@click.argument('name')
@pass_ctx
def profile_remove(c, name):
	config = c.config.load_keys()
	try:
		p = config.remove_profile(name)
		c.config.save_configuration(config)
		click.echo(f"Profile '{p.name}' deleted.")
	except (ConfigError, ProtectError, OSError) as e:
		click.echo(f'Error: {e}')


# --- default keys ---

@cli.group()
def keys():
	"""Inspect, reset or replace the default keys."""

@keys.command('show')
@click.option('--reveal', is_flag=True, help='Print the key material instead of masking it.')
@pass_ctx
def keys_show(c, reveal):
	p = c.config.load_keys().active_profile()
	mask = lambda s: s if reveal else '•' * 16
	click.echo(f"Profile: {p.name}\nKey: {mask(p.key)}\nIV: {mask(p.iv)}")

@keys.command('reset')
@click.confirmation_option(prompt='Reset all key profiles to the default keys?')
@pass_ctx
def keys_reset(c):
	c.config.reset_to_default_keys()
	click.echo('Keys reset to default.')

@keys.command('set-default')
@click.option('--key', prompt=True, hide_input=True)
@click.option('--iv', prompt=True, hide_input=True)
@pass_ctx
def keys_set_default(c, key, iv):
	"""Store KEY/IV as the values restored by `keys reset`."""
	try:
		c.config.save_default_keys(key, iv)
		click.echo('Default keys saved.')
	except (CryptoError, ProtectError, OSError) as e:
		click.echo(f'Error: {e}')


# --- settings ---

@cli.group('settings')
def settings_group():
	"""Show or change history limits."""

@settings_group.command('show')
@pass_ctx
def settings_show(c):
	s = c.config.load_settings()
	click.echo(f"RecentItemsCount: {s.recent_items_count}\nMaxHistoryItems: {s.max_history_items}\n"
		f"MaxBookmarkItems: {s.max_bookmark_items}\nAutoDetect: {s.auto_detect}")

@settings_group.command('set')
@click.option('--recent', type=click.IntRange(min=0), default=None)
@click.option('--max-history', type=click.IntRange(min=0), default=None)
@click.option('--max-bookmarks', type=click.IntRange(min=0), default=None)
@click.option('--auto-detect/--no-auto-detect', default=None)
@pass_ctx
def settings_set(c, recent, max_history, max_bookmarks, auto_detect):
	s = c.config.load_settings()
	if recent is not None: s.recent_items_count = recent
	if max_history is not None: s.max_history_items = max_history
	if max_bookmarks is not None: s.max_bookmark_items = max_bookmarks
	if auto_detect is not None: s.auto_detect = auto_detect
	c.config.save_settings(s)
	click.echo('Settings saved.')


# --- import / export ---

@cli.command('export')
@click.argument('path', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--history/--no-history', 'include_history', default=True)
@click.option('--bookmarks/--no-bookmarks', 'include_bookmarks', default=True)
@pass_ctx
def export_cmd(c, path, include_history, include_bookmarks):
	"""Write history and bookmarks to a JSON backup."""
	try:
		export_data(c.store, path, include_history, include_bookmarks)
		click.echo(f'Exported to {path}')
	except TransferError as e:
		click.echo(f'Error: {e}')

@cli.command('import')
@click.argument('path', type=click.Path(dir_okay=False, path_type=Path))
@pass_ctx
def import_cmd(c, path):
	"""Merge a JSON backup, skipping ids already present."""
	try:
		n = import_data(c.store, path)
		click.echo(f'Imported {n} entries.')
	except (TransferError, StorageError) as e:
		click.echo(f'Error: {e}')
