"""History and bookmark persistence.

Two ordered collections live side by side:

- history: every successful operation, most recent first.
- bookmarks: copies of favorited entries.

A history entry is favorited iff a bookmarks copy with the same id exists.
The copies are separate objects; only `update_entry` carries a note edit
across. Deletion is store-local: removing from history keeps the bookmark,
removing a bookmark only clears the favorite flag in history.
"""
from __future__ import annotations
import json, os, re, uuid, logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Any
from config.settings import DATA_DIR_ENV, DEFAULT_DATA_DIR, HISTORY_FILE, BOOKMARKS_FILE, OPERATIONS

log = logging.getLogger(__name__)

HISTORY = 'history'
BOOKMARKS = 'bookmarks'

class EntryError(Exception): ...
class StorageError(Exception): ...

_FRACTION = re.compile(r'\.(\d+)')

def parse_timestamp(value: Any) -> datetime:
	"""Parse an ISO-8601 timestamp into a local naive datetime.

	Fractions of any length (.NET writes 7 digits, trims zeros) and offsets
	are accepted.
	"""
	if isinstance(value, datetime):
		ts = value
	else:
		text = _FRACTION.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), str(value).strip())
		if text.endswith('Z'):
			text = text[:-1] + '+00:00'
		ts = datetime.fromisoformat(text)
	if ts.tzinfo is not None:
		ts = ts.astimezone().replace(tzinfo=None)
	return ts


def _as_bool(value: Any) -> bool:
	if isinstance(value, str):
		return value.strip().lower() == 'true'
	return value is True

def resolve_data_dir(path: Path | str | None = None) -> Path:
	if path is not None:
		return Path(path)
	env_path = os.environ.get(DATA_DIR_ENV)
	return Path(env_path) if env_path else DEFAULT_DATA_DIR


@dataclass
class HistoryEntry:
	operation: str = ''
	input: str = ''
	output: str = ''
	note: str = ''
	is_favorite: bool = False
	id: str = field(default_factory=lambda: str(uuid.uuid4()))
	timestamp: datetime = field(default_factory=datetime.now)

	@classmethod
	def create(cls, operation: str, input: str, output: str, note: str = '', is_favorite: bool = False) -> 'HistoryEntry':
		if operation not in OPERATIONS:
			raise EntryError(f'Invalid operation: {operation!r}')
		return cls(operation=operation, input=input, output=output, note=note or '', is_favorite=is_favorite)

	def copy(self, **changes) -> 'HistoryEntry':
		data = dict(id=self.id, timestamp=self.timestamp, operation=self.operation, input=self.input,
			output=self.output, note=self.note, is_favorite=self.is_favorite)
		data.update(changes)
		return HistoryEntry(**data)

	def matches(self, needle: str) -> bool:
		needle = needle.lower()
		return needle in self.input.lower() or needle in self.output.lower() or needle in self.note.lower()

	def to_dict(self) -> Dict[str, Any]:
		return {
			'Id': self.id,
			'Timestamp': self.timestamp.isoformat(),
			'Operation': self.operation,
			'Input': self.input,
			'Output': self.output,
			'Note': self.note,
			'IsFavorite': self.is_favorite,
		}

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'HistoryEntry':
		# Missing fields fall back to defaults, like older files without notes
		entry = cls(
			operation=raw.get('Operation') or '',
			input=raw.get('Input') or '',
			output=raw.get('Output') or '',
			note=raw.get('Note') or '',
			is_favorite=_as_bool(raw.get('IsFavorite', False)),
		)
		if raw.get('Id'):
			entry.id = str(raw['Id'])
		if raw.get('Timestamp'):
			entry.timestamp = parse_timestamp(raw['Timestamp'])
		return entry


def entries_to_document(entries: Iterable[HistoryEntry]) -> Dict[str, Any]:
	return {'Entries': [e.to_dict() for e in entries]}

def entries_from_list(items: Iterable[Dict[str, Any]]) -> List[HistoryEntry]:
	return [HistoryEntry.from_dict(item) for item in items]

def sort_newest_first(entries: Iterable[HistoryEntry]) -> List[HistoryEntry]:
	return sorted(entries, key=lambda e: e.timestamp, reverse=True)


class EntryStore:
	"""History + bookmarks, each cached in memory and persisted to its own JSON file.

	Collections load lazily on first access. Not thread-safe: callers on more
	than one thread must serialise access themselves.
	"""

	def __init__(self, data_dir: Path | str | None = None, strict_writes: bool = False):
		# Resolve path dynamically to honor environment overrides in tests
		self.data_dir = resolve_data_dir(data_dir)
		self.strict_writes = strict_writes
		self._history: Optional[List[HistoryEntry]] = None
		self._bookmarks: Optional[List[HistoryEntry]] = None

	@property
	def history_path(self) -> Path:
		return self.data_dir / HISTORY_FILE

	@property
	def bookmarks_path(self) -> Path:
		return self.data_dir / BOOKMARKS_FILE

	def reset_data_location(self, path: Path | str) -> None:
		self.data_dir = Path(path)
		self._history = None
		self._bookmarks = None

	# --- loading / saving ---

	def load_history(self) -> List[HistoryEntry]:
		if self._history is None:
			self._history = self._read(self.history_path)
		return self._history

	def load_bookmarks(self) -> List[HistoryEntry]:
		if self._bookmarks is None:
			self._bookmarks = self._read(self.bookmarks_path)
			for e in self._bookmarks:
				e.is_favorite = True
		return self._bookmarks

	def save_history(self) -> None:
		if self._history is not None:
			self._write(self.history_path, self._history)

	def save_bookmarks(self) -> None:
		if self._bookmarks is not None:
			self._write(self.bookmarks_path, self._bookmarks)

	def _read(self, path: Path) -> List[HistoryEntry]:
		if not path.exists():
			return []
		try:
			doc = json.loads(path.read_text(encoding='utf-8'))
			return entries_from_list(doc.get('Entries') or [])
		except (OSError, ValueError, TypeError, AttributeError) as e:
			log.warning("Could not read %s, starting empty: %s", path, e)
			return []

	def _write(self, path: Path, entries: List[HistoryEntry]) -> None:
		tmp = path.with_suffix(path.suffix + '.tmp')
		try:
			path.parent.mkdir(parents=True, exist_ok=True)
			tmp.write_text(json.dumps(entries_to_document(entries), indent=2, ensure_ascii=False), encoding='utf-8')
			os.replace(tmp, path)
		except OSError as e:
			if self.strict_writes:
				raise StorageError(f'Failed to save {path.name}: {e}') from e
			# best effort: the in-memory lists stay authoritative
			log.error("Failed to save %s: %s", path, e)

	# --- history ---

	def add_entry(self, entry: HistoryEntry) -> None:
		history = self.load_history()
		history.insert(0, entry)
		self.save_history()
		if entry.is_favorite:
			self.load_bookmarks().insert(0, entry.copy(is_favorite=True))
			self.save_bookmarks()

	def update_entry(self, entry: HistoryEntry) -> None:
		history = self.load_history()
		bookmarks = self.load_bookmarks()

		item = self._find(history, entry.id)
		if item is not None:
			item.note = entry.note
			item.is_favorite = entry.is_favorite
			self.save_history()
			if entry.is_favorite:
				existing = self._find(bookmarks, entry.id)
				if existing is None:
					bookmarks.insert(0, item.copy(is_favorite=True))
				else:
					existing.note = entry.note
			else:
				bookmarks[:] = [b for b in bookmarks if b.id != entry.id]
			self.save_bookmarks()
			return

		# Bookmark with no history record, e.g. imported
		mark = self._find(bookmarks, entry.id)
		if mark is None:
			log.debug("update_entry: %s not found", entry.id)
			return
		if entry.is_favorite:
			mark.note = entry.note
		else:
			bookmarks.remove(mark)
		self.save_bookmarks()

	def get_entry(self, entry_id: str) -> Optional[HistoryEntry]:
		return self._find(self.load_history(), entry_id) or self._find(self.load_bookmarks(), entry_id)

	def delete_from_history(self, entry_id: str) -> None:
		self.delete_history_entries([entry_id])

	def delete_history_entries(self, ids: Iterable[str]) -> None:
		id_set = set(ids)
		history = self.load_history()
		history[:] = [e for e in history if e.id not in id_set]
		self.save_history()

	def delete_from_bookmarks(self, entry_id: str) -> None:
		self.delete_bookmark_entries([entry_id])

	def delete_bookmark_entries(self, ids: Iterable[str]) -> None:
		id_set = set(ids)
		history = self.load_history()
		bookmarks = self.load_bookmarks()
		bookmarks[:] = [e for e in bookmarks if e.id not in id_set]
		self.save_bookmarks()
		touched = False
		for e in history:
			if e.id in id_set and e.is_favorite:
				e.is_favorite = False
				touched = True
		if touched:
			self.save_history()

	def get_recent_items(self, count: int) -> List[HistoryEntry]:
		return list(self.load_history()[:max(count, 0)])

	def clear_history(self) -> None:
		"""Drop every history entry except favorites."""
		history = self.load_history()
		history[:] = [e for e in history if e.is_favorite]
		self.save_history()

	def enforce_history_limit(self, max_items: int) -> None:
		history = self.load_history()
		if len(history) <= max_items:
			return
		favorites = [e for e in history if e.is_favorite]
		others = [e for e in history if not e.is_favorite]
		trimmed = len(others) > max_items
		if trimmed:
			others = others[:max(max_items, 0)]
		self._history = sort_newest_first(favorites + others)
		if trimmed:
			self.save_history()

	def import_history(self, items: Iterable[HistoryEntry]) -> None:
		"""Append without id dedup, then re-sort newest first."""
		history = self.load_history()
		history.extend(items)
		self._history = sort_newest_first(history)
		self.save_history()

	# --- bookmarks ---

	def clear_bookmarks(self) -> None:
		for e in self.load_history():
			e.is_favorite = False
		self.save_history()
		self._bookmarks = []
		self.save_bookmarks()

	def enforce_bookmark_limit(self, max_items: int) -> None:
		bookmarks = self.load_bookmarks()
		if len(bookmarks) > max_items:
			self._bookmarks = bookmarks[:max(max_items, 0)]
			self.save_bookmarks()

	def import_bookmarks(self, items: Iterable[HistoryEntry]) -> None:
		bookmarks = self.load_bookmarks()
		bookmarks.extend(items)
		self._bookmarks = sort_newest_first(bookmarks)
		self.save_bookmarks()

	# --- search ---

	def search(self, collection: str, text: str) -> List[HistoryEntry]:
		if collection == HISTORY:
			entries = self.load_history()
		elif collection == BOOKMARKS:
			entries = self.load_bookmarks()
		else:
			raise EntryError(f'Unknown collection: {collection!r}')
		if not text or not text.strip():
			return entries
		return [e for e in entries if e.matches(text)]

	def search_history(self, text: str) -> List[HistoryEntry]:
		return self.search(HISTORY, text)

	def search_bookmarks(self, text: str) -> List[HistoryEntry]:
		return self.search(BOOKMARKS, text)

	@staticmethod
	def _find(entries: List[HistoryEntry], entry_id: str) -> Optional[HistoryEntry]:
		return next((e for e in entries if e.id == entry_id), None)
