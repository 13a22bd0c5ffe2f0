"""Configuration package for securevault.

Re-exports the constants from `config.settings` so application code can
write `from config import KEY_LENGTH`. Keep the values themselves in
settings.py only.
"""

from config.settings import *  # noqa: F401,F403
from config.settings import __all__  # noqa: F401
