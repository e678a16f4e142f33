from click.testing import CliRunner
from src.cli.commands import cli
from src.lib.history import EntryStore

def invoke(*args, input=None):
    return CliRunner().invoke(cli, list(args), input=input)

def test_encrypt_then_decrypt(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    enc = invoke('encrypt', 'Hello, World!')
    assert enc.exit_code == 0
    token = enc.output.strip()
    dec = invoke('decrypt', token)
    assert dec.exit_code == 0
    assert dec.output.strip() == 'Hello, World!'
    history = EntryStore(tmp_path).load_history()
    assert [e.operation for e in history] == ['decrypt', 'encrypt']

def test_single_mode(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    token = invoke('encrypt', '--single', '--no-history', 'client-1').output.strip()
    assert invoke('decrypt', '--single', '--no-history', token).output.strip() == 'client-1'
    assert EntryStore(tmp_path).load_history() == []

def test_decrypt_plain_text_fails(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    r = invoke('decrypt', 'not encrypted at all')
    assert r.exit_code == 1
    assert 'Error' in r.output

def test_favorite_flow(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    invoke('encrypt', '--favorite', '--note', 'keep me', '0912345678')
    s = EntryStore(tmp_path)
    entry_id = s.load_history()[0].id
    assert [b.id for b in s.load_bookmarks()] == [entry_id]
    lst = invoke('bookmarks', 'list')
    assert entry_id in lst.output
    assert invoke('history', 'delete', entry_id).exit_code == 0
    assert entry_id in invoke('bookmarks', 'list').output
    assert invoke('bookmarks', 'delete', entry_id).exit_code == 0
    assert 'No entries.' in invoke('bookmarks', 'list').output

def test_history_note_and_search(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    invoke('encrypt', 'alpha')
    entry_id = EntryStore(tmp_path).load_history()[0].id
    assert 'Note updated' in invoke('history', 'note', entry_id, 'Customer A').output
    assert entry_id in invoke('history', 'search', 'customer').output
    assert 'No entries.' in invoke('history', 'search', 'nomatch').output
    assert 'Not found' in invoke('history', 'note', 'missing', 'x').output

def test_history_clear_keeps_bookmarked(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    invoke('encrypt', 'plain-one')
    invoke('encrypt', '--favorite', 'fav-one')
    assert invoke('history', 'clear', '--yes').exit_code == 0
    assert [e.input for e in EntryStore(tmp_path).load_history()] == ['fav-one']

def test_limits_applied_after_recording(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    invoke('settings', 'set', '--max-history', '2')
    for word in ('one', 'two', 'three'):
        invoke('encrypt', word)
    assert len(EntryStore(tmp_path).load_history()) == 2

def test_profiles(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    r = invoke('profile', 'add', 'Work', '--key', 'K' * 16, '--iv', 'V' * 16, '--use')
    assert "Profile 'Work' created" in r.output
    assert '* Work' in invoke('profile', 'list').output
    token = invoke('encrypt', '--no-history', 'secret').output.strip()
    assert invoke('decrypt', '--no-history', '--profile', 'Work', token).output.strip() == 'secret'
    assert invoke('decrypt', '--no-history', '--profile', 'Default', token).exit_code == 1
    assert 'Error' in invoke('profile', 'add', 'Bad', '--key', 'short', '--iv', 'V' * 16).output
    assert "deleted" in invoke('profile', 'remove', 'Work').output
    assert 'Error' in invoke('profile', 'remove', 'Default').output

def test_keys_reset(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    invoke('profile', 'add', 'Work', '--key', 'K' * 16, '--iv', 'V' * 16, '--use')
    assert invoke('keys', 'reset', '--yes').exit_code == 0
    out = invoke('profile', 'list').output
    assert 'Work' not in out and 'Default' in out
    assert '•' in invoke('keys', 'show').output

def test_detect_and_validate():
    assert 'looks encrypted' in invoke('detect', 'aGVsbG8gd29ybGQgMTIzNA==').output
    assert 'plain text' in invoke('detect', 'hello').output
    ok = invoke('validate', '--key', '1' * 32, '--iv', '1' * 16)
    assert ok.exit_code == 0 and 'invalid' not in ok.output
    bad = invoke('validate', '--key', '1' * 15)
    assert bad.exit_code == 1 and 'key: invalid' in bad.output

def test_export_import(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path / 'a'))
    invoke('encrypt', 'exported')
    assert invoke('export', str(tmp_path / 'backup.json')).exit_code == 0
    r = invoke('--data-dir', str(tmp_path / 'b'), 'import', str(tmp_path / 'backup.json'))
    assert 'Imported 1 entries.' in r.output
    assert 'Error' in invoke('import', str(tmp_path / 'nope.json')).output

def test_profile_save_with_corrupt_protection_key(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    (tmp_path / '.protect.key').write_bytes(b'short')
    r = invoke('profile', 'add', 'Work', '--key', 'K' * 16, '--iv', 'V' * 16)
    assert r.exception is None
    assert 'Error: Corrupt protection key file' in r.output
    assert 'Error:' in invoke('profile', 'use', 'Default').output
    assert 'Error:' in invoke('keys', 'set-default', '--key', 'K' * 16, '--iv', 'V' * 16).output

def test_bookmark_limit_unstars_history(monkeypatch, tmp_path):
    monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
    invoke('settings', 'set', '--max-bookmarks', '1')
    invoke('encrypt', '--favorite', 'older')
    invoke('encrypt', '--favorite', 'newer')
    s = EntryStore(tmp_path)
    assert [b.input for b in s.load_bookmarks()] == ['newer']
    assert {e.input: e.is_favorite for e in s.load_history()} == {'newer': True, 'older': False}
    assert invoke('history', 'clear', '--yes').exit_code == 0
    assert [e.input for e in EntryStore(tmp_path).load_history()] == ['newer']
