from click.testing import CliRunner
from src.cli.commands import cli

def test_cli_help():
	r = CliRunner().invoke(cli, ['--help'])
	assert r.exit_code == 0
	for name in ('encrypt', 'decrypt', 'history', 'bookmarks', 'profile'):
		assert name in r.output


def test_recent_uses_settings_count(monkeypatch, tmp_path):
	monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
	runner = CliRunner()
	runner.invoke(cli, ['settings', 'set', '--recent', '2'])
	for word in ('first', 'second', 'third'):
		runner.invoke(cli, ['encrypt', word])
	out = runner.invoke(cli, ['recent']).output
	assert 'third' in out and 'second' in out
	assert 'first' not in out
	assert 'first' in runner.invoke(cli, ['recent', '--count', '5']).output


def test_bookmark_limit_and_clear(monkeypatch, tmp_path):
	monkeypatch.setenv('AESTOOL_DATA_DIR', str(tmp_path))
	runner = CliRunner()
	for word in ('a1', 'a2', 'a3'):
		runner.invoke(cli, ['encrypt', '--favorite', word])
	lim = runner.invoke(cli, ['bookmarks', 'limit', '--max', '1'])
	assert 'Bookmarks now hold 1 entries.' in lim.output
	clr = runner.invoke(cli, ['bookmarks', 'clear', '--yes'])
	assert clr.exit_code == 0
	assert 'No entries.' in runner.invoke(cli, ['bookmarks', 'list']).output
	# history survives, no longer starred
	lst = runner.invoke(cli, ['history', 'list']).output
	assert 'a1' in lst and '* ' not in lst
