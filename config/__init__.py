"""Configuration settings and constants for aes-crypto-tool.

The constants live in `config.settings`; they are re-exported here so
application code can write `from config import DEFAULT_KEY`. Keep the
definitions in one place (settings.py) and only the re-export here.
"""

from .settings import *  # noqa: F401,F403
from .settings import __all__  # noqa: F401
