"""zidcache storage backends.

This module provides the persistent ZID cache.
Local storage using SQLite.
"""

from pathlib import Path
from typing import Optional, Union

from .encoding import decode_zid, encode_zid
from .enumeration import RemoteZidCursor
from .sqlite import SQLiteZidCache


def open_cache(db_path: Optional[Union[str, Path]] = None, **kwargs) -> SQLiteZidCache:
    """Create and open a SQLiteZidCache in one step."""
    cache = SQLiteZidCache(db_path, **kwargs)
    cache.open()
    return cache


__all__ = [
    "SQLiteZidCache",
    "RemoteZidCursor",
    "open_cache",
    "encode_zid",
    "decode_zid",
]
