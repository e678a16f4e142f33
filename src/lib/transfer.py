"""Export / import of history and bookmarks as a single JSON backup file."""
from __future__ import annotations
import json, logging
from datetime import datetime
from pathlib import Path
from config.settings import EXPORT_VERSION
from .history import EntryStore, entries_from_list

log = logging.getLogger(__name__)

class TransferError(Exception):
	pass


def export_data(store: EntryStore, path: Path | str, include_history: bool = True, include_bookmarks: bool = True) -> Path:
	path = Path(path)
	payload = {
		'Version': EXPORT_VERSION,
		'ExportDate': datetime.now().isoformat(),
		'History': [e.to_dict() for e in store.load_history()] if include_history else [],
		'Bookmarks': [e.to_dict() for e in store.load_bookmarks()] if include_bookmarks else [],
	}
	try:
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding='utf-8')
	except OSError as e:
		raise TransferError(f'Failed to export: {e}') from e
	log.info("Exported %d history / %d bookmark entries -> %s", len(payload['History']), len(payload['Bookmarks']), path)
	return path


def import_data(store: EntryStore, path: Path | str) -> int:
	"""Import a backup, skipping ids already present. Returns the number added.

	Dedup happens here; EntryStore.import_* append as given.
	"""
	path = Path(path)
	try:
		raw = json.loads(path.read_text(encoding='utf-8'))
		if not isinstance(raw, dict):
			raise TransferError('Backup file must contain a JSON object')
		bookmarks = entries_from_list(raw.get('Bookmarks') or [])
		history = entries_from_list(raw.get('History') or [])
	except (OSError, ValueError, TypeError, AttributeError) as e:
		raise TransferError(f'Failed to import {path.name}: {e}') from e

	count = 0
	known = {b.id for b in store.load_bookmarks()}
	new_bookmarks = []
	for item in bookmarks:
		if item.id not in known:
			item.is_favorite = True
			new_bookmarks.append(item)
			known.add(item.id)
	if new_bookmarks:
		store.import_bookmarks(new_bookmarks)
		count += len(new_bookmarks)

	known = {h.id for h in store.load_history()}
	new_history = []
	for item in history:
		if item.id not in known:
			new_history.append(item)
			known.add(item.id)
	if new_history:
		store.import_history(new_history)
		count += len(new_history)

	log.info("Imported %d entries from %s", count, path)
	return count
