"""Simple backup utility script.

Copies the history/bookmark stores and the sealed key configuration out of
the data directory into a timestamped folder.

Usage (from repo root):
  python -m scripts.backup --dest backups/
"""
from __future__ import annotations
import shutil
from datetime import datetime
from pathlib import Path
import click
from config import settings
from src.lib.history import resolve_data_dir

BACKUP_FILES = (settings.HISTORY_FILE, settings.BOOKMARKS_FILE, settings.SETTINGS_FILE,
	settings.CONFIG_FILE, settings.DEFAULTS_FILE, settings.PROTECT_KEY_FILE)

def backup(data_dir: Path, dest: Path) -> Path | None:
	present = [data_dir / name for name in BACKUP_FILES if (data_dir / name).exists()]
	if not present:
		return None
	stamp = datetime.now().strftime('%Y%m%d_%H%M%S')
	target = dest / f"aes-crypto-tool_{stamp}"
	target.mkdir(parents=True, exist_ok=True)
	for src in present:
		shutil.copy2(src, target / src.name)
	return target

@click.command()
@click.option('--dest', type=click.Path(file_okay=False, path_type=Path), default=Path('backups'), help='Destination directory for backups.')
@click.option('--data-dir', type=click.Path(file_okay=False, path_type=Path), default=None, help='Data directory to back up.')
def main(dest: Path, data_dir: Path | None):
	data_dir = resolve_data_dir(data_dir)
	target = backup(data_dir, dest)
	if target is None:
		click.echo(f"No data in {data_dir}; nothing to backup.")
		raise SystemExit(1)
	click.echo(f"Backup written: {target}")

if __name__ == '__main__':  # pragma: no cover
	main()
