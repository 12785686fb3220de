"""Configuration helpers for locating the cache database."""

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

# Environment overrides
HOME_ENV_VAR = "ZIDCACHE_HOME"
DB_ENV_VAR = "ZIDCACHE_DB"

DEFAULT_DB_NAME = "zrtp-cache.db"

# SQLite name for a throwaway in-memory cache
MEMORY_DB = ":memory:"


def get_cache_home() -> Path:
    """Directory holding the cache database.

    ZIDCACHE_HOME wins if set, otherwise ~/.zidcache.
    """
    env_home = os.environ.get(HOME_ENV_VAR)
    if env_home:
        return Path(env_home).expanduser()
    return Path.home() / ".zidcache"


def get_default_db_path() -> Path:
    """Resolve the default database path, falling back to temp dir if home is not writable."""
    env_db = os.environ.get(DB_ENV_VAR)
    if env_db:
        return Path(env_db).expanduser()

    default_path = get_cache_home() / DEFAULT_DB_NAME
    try:
        default_path.parent.mkdir(parents=True, exist_ok=True)
        return default_path
    except OSError as e:
        # Home dir not writable (sandboxed/container/CI environment)
        fallback_dir = Path(tempfile.gettempdir()) / ".zidcache"
        logger.warning(f"Cannot write to {default_path.parent} ({e}), falling back to {fallback_dir}")
        fallback_dir.mkdir(parents=True, exist_ok=True)
        return fallback_dir / DEFAULT_DB_NAME
