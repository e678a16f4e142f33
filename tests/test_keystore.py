import json
import pytest
from pathlib import Path
from src.lib.crypto import InvalidKeyMaterial, is_valid_plaintext_key, is_valid_plaintext_iv
from src.lib.keystore import ConfigManager, AppConfig, AppSettings, KeyProfile, ConfigError
from src.lib.protect import LocalSecretBlobStore, ProtectError
from config.settings import DEFAULT_KEY, DEFAULT_IV, DEFAULT_KEY_BASE64

def make_manager(tmp_path: Path):
    return ConfigManager(tmp_path)

def test_load_without_config_gives_defaults(tmp_path):
    cfg = make_manager(tmp_path).load_keys()
    assert cfg.key == DEFAULT_KEY and cfg.iv == DEFAULT_IV
    assert cfg.key_base64 == DEFAULT_KEY_BASE64
    assert is_valid_plaintext_key(cfg.key) and is_valid_plaintext_iv(cfg.iv)
    assert len(cfg.profiles) == 1
    assert cfg.active_profile().name == 'Default'

def test_config_is_not_stored_in_clear(tmp_path):
    m = make_manager(tmp_path)
    cfg = m.load_keys()
    cfg.add_profile('Work', 'W' * 32, 'w' * 16)
    m.save_configuration(cfg)
    raw = (tmp_path / 'config.encrypted').read_bytes()
    assert b'Work' not in raw and b'WWWW' not in raw

def test_profiles_roundtrip(tmp_path):
    m = make_manager(tmp_path)
    cfg = m.load_keys()
    work = cfg.add_profile('Work', 'W' * 32, 'w' * 16)
    cfg.select_profile('work')
    m.save_configuration(cfg)
    again = make_manager(tmp_path).load_keys()
    assert [p.name for p in again.profiles] == ['Default', 'Work']
    assert again.active_profile().id == work.id
    assert again.active_profile().key == 'W' * 32

def test_active_profile_falls_back_to_first():
    cfg = AppConfig(profiles=[KeyProfile(name='a'), KeyProfile(name='b')], selected_profile_id='missing')
    assert cfg.active_profile().name == 'a'

def test_active_profile_without_profiles_uses_legacy_keys():
    cfg = AppConfig(key=DEFAULT_KEY, iv=DEFAULT_IV)
    assert cfg.active_profile().key == DEFAULT_KEY

def test_add_profile_validation():
    cfg = AppConfig(profiles=[KeyProfile(name='Default')])
    with pytest.raises(ConfigError):
        cfg.add_profile('default', DEFAULT_KEY, DEFAULT_IV)
    with pytest.raises(ConfigError):
        cfg.add_profile('  ', DEFAULT_KEY, DEFAULT_IV)
    with pytest.raises(InvalidKeyMaterial):
        cfg.add_profile('Bad', 'short', DEFAULT_IV)
    with pytest.raises(InvalidKeyMaterial):
        cfg.add_profile('Bad', DEFAULT_KEY, 'short')

def test_remove_profile_rules():
    cfg = AppConfig()
    a = cfg.add_profile('A', DEFAULT_KEY, DEFAULT_IV)
    b = cfg.add_profile('B', DEFAULT_KEY, DEFAULT_IV)
    cfg.select_profile('B')
    cfg.remove_profile('B')
    assert cfg.selected_profile_id == a.id
    with pytest.raises(ConfigError):
        cfg.remove_profile('A')
    with pytest.raises(ConfigError):
        cfg.remove_profile(b.id)

def test_reset_to_default_keys(tmp_path):
    m = make_manager(tmp_path)
    cfg = m.load_keys()
    cfg.add_profile('Work', 'W' * 32, 'w' * 16)
    m.save_configuration(cfg)
    m.reset_to_default_keys()
    assert not (tmp_path / 'config.encrypted').exists()
    assert [p.name for p in m.load_keys().profiles] == ['Default']
    m.reset_to_default_keys()

def test_user_defaults_restored_on_reset(tmp_path):
    m = make_manager(tmp_path)
    m.save_default_keys('D' * 16, 'd' * 16)
    m.reset_to_default_keys()
    cfg = m.load_keys()
    assert cfg.active_profile().key == 'D' * 16
    assert m.load_default_keys().iv == 'd' * 16

def test_save_default_keys_validates(tmp_path):
    with pytest.raises(InvalidKeyMaterial):
        make_manager(tmp_path).save_default_keys('short', DEFAULT_IV)

def test_unreadable_config_falls_back(tmp_path):
    (tmp_path / 'config.encrypted').write_bytes(b'definitely not a sealed blob')
    cfg = make_manager(tmp_path).load_keys()
    assert cfg.key == DEFAULT_KEY

def test_lost_protection_key_falls_back(tmp_path):
    m = make_manager(tmp_path)
    cfg = m.load_keys(); cfg.add_profile('Work', 'W' * 32, 'w' * 16); m.save_configuration(cfg)
    (tmp_path / '.protect.key').unlink()
    assert [p.name for p in make_manager(tmp_path).load_keys().profiles] == ['Default']

def test_settings_defaults_and_roundtrip(tmp_path):
    m = make_manager(tmp_path)
    s = m.load_settings()
    assert (s.recent_items_count, s.max_history_items, s.max_bookmark_items) == (10, 500, 100)
    s.max_history_items = 50
    m.save_settings(s)
    assert make_manager(tmp_path).load_settings().max_history_items == 50

def test_settings_preserve_unknown_keys(tmp_path):
    (tmp_path / 'settings.json').write_text(json.dumps({'Theme': 'Dark', 'MaxBookmarkItems': 7}), encoding='utf-8')
    m = make_manager(tmp_path)
    s = m.load_settings()
    assert s.max_bookmark_items == 7
    m.save_settings(s)
    raw = json.loads((tmp_path / 'settings.json').read_text(encoding='utf-8'))
    assert raw['Theme'] == 'Dark' and raw['MaxBookmarkItems'] == 7

def test_corrupt_settings_use_defaults(tmp_path):
    (tmp_path / 'settings.json').write_text('{oops', encoding='utf-8')
    assert make_manager(tmp_path).load_settings() == AppSettings()

def test_blob_store_roundtrip(tmp_path):
    store = LocalSecretBlobStore(tmp_path / 'k')
    blob = store.protect(b'payload')
    assert blob != b'payload'
    assert LocalSecretBlobStore(tmp_path / 'k').unprotect(blob) == b'payload'

def test_blob_store_tamper_detected(tmp_path):
    store = LocalSecretBlobStore(tmp_path / 'k')
    blob = bytearray(store.protect(b'payload'))
    blob[20] ^= 0xFF
    with pytest.raises(ProtectError):
        store.unprotect(bytes(blob))
    with pytest.raises(ProtectError):
        store.unprotect(b'short')
