"""Key profiles, encrypted key configuration and plain settings.

config.encrypted and defaults.encrypted hold JSON sealed by a
SecretBlobStore. settings.json is plain JSON; keys this tool does not know
about are kept so other front ends can store their own preferences there.
"""
from __future__ import annotations
import json, uuid, logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from config.settings import (
	DEFAULT_KEY, DEFAULT_IV, DEFAULT_KEY_BASE64, DEFAULT_IV_BASE64, DEFAULT_PROFILE_NAME,
	CONFIG_FILE, DEFAULTS_FILE, SETTINGS_FILE, PROTECT_KEY_FILE,
	RECENT_ITEMS_COUNT, MAX_HISTORY_ITEMS, MAX_BOOKMARK_ITEMS
)
from .crypto import InvalidKeyMaterial, is_valid_plaintext_key, is_valid_plaintext_iv
from .history import resolve_data_dir
from .protect import SecretBlobStore, LocalSecretBlobStore, ProtectError

log = logging.getLogger(__name__)

class ConfigError(Exception):
	pass


@dataclass
class KeyMaterial:
	key: str
	iv: str
	key_base64: str = ''
	iv_base64: str = ''


@dataclass
class KeyProfile:
	name: str = 'New Profile'
	key: str = ''
	iv: str = ''
	key_base64: str = ''
	iv_base64: str = ''
	id: str = field(default_factory=lambda: str(uuid.uuid4()))

	@property
	def material(self) -> KeyMaterial:
		return KeyMaterial(self.key, self.iv, self.key_base64, self.iv_base64)

	def to_dict(self) -> Dict[str, Any]:
		return {'Id': self.id, 'Name': self.name, 'Key': self.key, 'IV': self.iv,
			'KeyBase64': self.key_base64, 'IVBase64': self.iv_base64}

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'KeyProfile':
		p = cls(name=raw.get('Name') or 'New Profile', key=raw.get('Key') or '', iv=raw.get('IV') or '',
			key_base64=raw.get('KeyBase64') or '', iv_base64=raw.get('IVBase64') or '')
		if raw.get('Id'):
			p.id = str(raw['Id'])
		return p


@dataclass
class AppConfig:
	key: str = ''
	iv: str = ''
	key_base64: str = ''
	iv_base64: str = ''
	profiles: List[KeyProfile] = field(default_factory=list)
	selected_profile_id: Optional[str] = None

	def find_profile(self, name_or_id: str) -> Optional[KeyProfile]:
		wanted = name_or_id.lower()
		for p in self.profiles:
			if p.id == name_or_id or p.name.lower() == wanted:
				return p
		return None

	def active_profile(self) -> KeyProfile:
		"""Selected profile, else the first one, else one built from the legacy keys."""
		for p in self.profiles:
			if p.id == self.selected_profile_id:
				return p
		if self.profiles:
			return self.profiles[0]
		return KeyProfile(name=DEFAULT_PROFILE_NAME, key=self.key, iv=self.iv,
			key_base64=self.key_base64, iv_base64=self.iv_base64)

	def add_profile(self, name: str, key: str, iv: str, key_base64: str = '', iv_base64: str = '') -> KeyProfile:
		name = (name or '').strip()
		if not name:
			raise ConfigError('Profile name cannot be empty')
		if self.find_profile(name) is not None:
			raise ConfigError(f'Profile {name!r} already exists')
		if not is_valid_plaintext_key(key):
			raise InvalidKeyMaterial('Key must be 16, 24 or 32 bytes')
		if not is_valid_plaintext_iv(iv):
			raise InvalidKeyMaterial('IV must be 16 bytes')
		p = KeyProfile(name=name, key=key, iv=iv, key_base64=key_base64 or self.key_base64,
			iv_base64=iv_base64 or self.iv_base64)
		self.profiles.append(p)
		return p

	def remove_profile(self, name_or_id: str) -> KeyProfile:
		p = self.find_profile(name_or_id)
		if p is None:
			raise ConfigError(f'No such profile: {name_or_id}')
		if len(self.profiles) <= 1:
			raise ConfigError('Cannot delete the last profile')
		self.profiles.remove(p)
		if self.selected_profile_id == p.id:
			self.selected_profile_id = self.profiles[0].id
		return p

	def select_profile(self, name_or_id: str) -> KeyProfile:
		p = self.find_profile(name_or_id)
		if p is None:
			raise ConfigError(f'No such profile: {name_or_id}')
		self.selected_profile_id = p.id
		return p

	def to_dict(self) -> Dict[str, Any]:
		return {'Key': self.key, 'IV': self.iv, 'KeyBase64': self.key_base64, 'IVBase64': self.iv_base64,
			'Profiles': [p.to_dict() for p in self.profiles], 'SelectedProfileId': self.selected_profile_id}

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'AppConfig':
		return cls(
			key=raw.get('Key') or '', iv=raw.get('IV') or '',
			key_base64=raw.get('KeyBase64') or '', iv_base64=raw.get('IVBase64') or '',
			profiles=[KeyProfile.from_dict(p) for p in raw.get('Profiles') or []],
			selected_profile_id=raw.get('SelectedProfileId'),
		)


@dataclass
class AppSettings:
	recent_items_count: int = RECENT_ITEMS_COUNT
	max_history_items: int = MAX_HISTORY_ITEMS
	max_bookmark_items: int = MAX_BOOKMARK_ITEMS
	auto_detect: bool = True
	extra: Dict[str, Any] = field(default_factory=dict)

	_FIELDS = {
		'RecentItemsCount': 'recent_items_count',
		'MaxHistoryItems': 'max_history_items',
		'MaxBookmarkItems': 'max_bookmark_items',
		'AutoDetect': 'auto_detect',
	}

	def to_dict(self) -> Dict[str, Any]:
		data = dict(self.extra)
		for json_name, attr in self._FIELDS.items():
			data[json_name] = getattr(self, attr)
		return data

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'AppSettings':
		s = cls()
		for json_name, value in raw.items():
			attr = cls._FIELDS.get(json_name)
			if attr is None:
				s.extra[json_name] = value
			elif attr == 'auto_detect':
				s.auto_detect = bool(value)
			else:
				setattr(s, attr, int(value))
		return s


class ConfigManager:
	def __init__(self, data_dir: Path | str | None = None, blob_store: SecretBlobStore | None = None):
		self.data_dir = resolve_data_dir(data_dir)
		self.blob_store = blob_store or LocalSecretBlobStore(self.data_dir / PROTECT_KEY_FILE)

	@property
	def config_path(self) -> Path:
		return self.data_dir / CONFIG_FILE

	@property
	def defaults_path(self) -> Path:
		return self.data_dir / DEFAULTS_FILE

	@property
	def settings_path(self) -> Path:
		return self.data_dir / SETTINGS_FILE

	# --- sealed JSON blobs ---

	def _write_sealed(self, path: Path, obj: Dict[str, Any]) -> None:
		self.data_dir.mkdir(parents=True, exist_ok=True)
		blob = self.blob_store.protect(json.dumps(obj).encode('utf-8'))
		tmp = path.with_suffix(path.suffix + '.tmp')
		tmp.write_bytes(blob)
		tmp.replace(path)

	def _read_sealed(self, path: Path) -> Optional[Dict[str, Any]]:
		if not path.exists():
			return None
		try:
			data = json.loads(self.blob_store.unprotect(path.read_bytes()).decode('utf-8'))
		except (OSError, ValueError, ProtectError) as e:
			log.warning("Could not read %s: %s", path.name, e)
			return None
		return data if isinstance(data, dict) else None

	# --- default keys ---

	def load_default_keys(self) -> KeyMaterial:
		raw = self._read_sealed(self.defaults_path) or {}
		key = raw.get('Key') or ''
		iv = raw.get('IV') or ''
		if not (is_valid_plaintext_key(key) and is_valid_plaintext_iv(iv)):
			key, iv = DEFAULT_KEY, DEFAULT_IV
		return KeyMaterial(key, iv, DEFAULT_KEY_BASE64, DEFAULT_IV_BASE64)

	def save_default_keys(self, key: str, iv: str) -> None:
		if not is_valid_plaintext_key(key):
			raise InvalidKeyMaterial('Key must be 16, 24 or 32 bytes')
		if not is_valid_plaintext_iv(iv):
			raise InvalidKeyMaterial('IV must be 16 bytes')
		self._write_sealed(self.defaults_path, {'Key': key, 'IV': iv})

	def _default_config(self) -> AppConfig:
		d = self.load_default_keys()
		return AppConfig(key=d.key, iv=d.iv, key_base64=d.key_base64, iv_base64=d.iv_base64)

	# --- configuration ---

	def load_keys(self) -> AppConfig:
		raw = self._read_sealed(self.config_path)
		config = AppConfig.from_dict(raw) if raw is not None else self._default_config()
		d = self.load_default_keys()
		if not config.key: config.key = d.key
		if not config.iv: config.iv = d.iv
		if not config.key_base64: config.key_base64 = d.key_base64
		if not config.iv_base64: config.iv_base64 = d.iv_base64
		if not config.profiles:
			p = KeyProfile(name=DEFAULT_PROFILE_NAME, key=config.key, iv=config.iv,
				key_base64=config.key_base64, iv_base64=config.iv_base64)
			config.profiles.append(p)
			config.selected_profile_id = p.id
		return config

	def save_configuration(self, config: AppConfig) -> None:
		self._write_sealed(self.config_path, config.to_dict())

	def reset_to_default_keys(self) -> None:
		self.config_path.unlink(missing_ok=True)

	# --- settings.json ---

	def load_settings(self) -> AppSettings:
		if not self.settings_path.exists():
			return AppSettings()
		try:
			raw = json.loads(self.settings_path.read_text(encoding='utf-8'))
			return AppSettings.from_dict(raw) if isinstance(raw, dict) else AppSettings()
		except (OSError, ValueError, TypeError) as e:
			log.warning("Could not read settings, using defaults: %s", e)
			return AppSettings()

	def save_settings(self, settings: AppSettings) -> None:
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.settings_path.write_text(json.dumps(settings.to_dict(), indent=2), encoding='utf-8')
