"""Project configuration settings.

Constants shared by the crypto core, the entry store and the CLI.
"""

from pathlib import Path
import os

# AES-CBC parameters
VALID_KEY_LENGTHS = (16, 24, 32)  # AES-128/192/256
IV_LENGTH = 16   # AES block size
BLOCK_SIZE_BITS = 128

# Secret blob protection (AES-256-GCM)
PROTECT_KEY_LENGTH = 32
PROTECT_IV_LENGTH = 16
AUTH_TAG_LENGTH = 16

# Default key material; plaintext pair must stay 32/16 bytes
DEFAULT_KEY = "12345678901234567890123456789012"
DEFAULT_IV = "1234567890123456"
DEFAULT_KEY_BASE64 = "MTIzNDU2Nzg5MDEyMzQ1Njc4OTAxMjM0NTY3ODkwMTI="
DEFAULT_IV_BASE64 = "MTIzNDU2Nzg5MDEyMzQ1Ng=="
DEFAULT_PROFILE_NAME = "Default"

# "Looks encrypted" heuristic
DETECT_MIN_LENGTH = 16
DETECT_MIN_BASE64_LENGTH = 20

# Data directory (override with AESTOOL_DATA_DIR)
DATA_DIR_ENV = "AESTOOL_DATA_DIR"
DEFAULT_DATA_DIR = Path(os.environ.get(DATA_DIR_ENV, Path.home() / ".aes-crypto-tool"))

HISTORY_FILE = "history.json"
BOOKMARKS_FILE = "bookmarks.json"
CONFIG_FILE = "config.encrypted"
DEFAULTS_FILE = "defaults.encrypted"
SETTINGS_FILE = "settings.json"
PROTECT_KEY_FILE = ".protect.key"

# Entry operations
OPERATIONS = ("encrypt", "decrypt")

# Limits
RECENT_ITEMS_COUNT = 10
MAX_HISTORY_ITEMS = 500
MAX_BOOKMARK_ITEMS = 100

# Import / export
EXPORT_VERSION = "1.0"

# Logging
LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

__all__ = [
	'VALID_KEY_LENGTHS','IV_LENGTH','BLOCK_SIZE_BITS',
	'PROTECT_KEY_LENGTH','PROTECT_IV_LENGTH','AUTH_TAG_LENGTH',
	'DEFAULT_KEY','DEFAULT_IV','DEFAULT_KEY_BASE64','DEFAULT_IV_BASE64','DEFAULT_PROFILE_NAME',
	'DETECT_MIN_LENGTH','DETECT_MIN_BASE64_LENGTH',
	'DATA_DIR_ENV','DEFAULT_DATA_DIR','HISTORY_FILE','BOOKMARKS_FILE','CONFIG_FILE',
	'DEFAULTS_FILE','SETTINGS_FILE','PROTECT_KEY_FILE','OPERATIONS',
	'RECENT_ITEMS_COUNT','MAX_HISTORY_ITEMS','MAX_BOOKMARK_ITEMS','EXPORT_VERSION',
	'LOG_LEVEL','LOG_FORMAT'
]
