"""
zidcache - durable key-continuity cache for ZRTP-style key agreement.

Stores retained secrets, MITM keys and display names per peer, and the
stable local ZID, across process restarts.
"""

from .protocols import (
    CacheInconsistentError,
    CacheStorageError,
    EncodingError,
    ZidCacheBackend,
    ZidCacheError,
)
from .storage import SQLiteZidCache, open_cache
from .types import (
    DEFAULT_ACCOUNT,
    NO_NAME,
    RS_LENGTH,
    ZID_LENGTH,
    LocalZidType,
    RemoteZidFlags,
    RemoteZidRecord,
    RetainedSecret,
    Zid,
    ZidNameFlags,
    ZidNameRecord,
)

try:
    from importlib.metadata import version

    __version__ = version("zidcache")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "SQLiteZidCache",
    "open_cache",
    "ZidCacheBackend",
    # Errors
    "ZidCacheError",
    "CacheStorageError",
    "CacheInconsistentError",
    "EncodingError",
    # Types
    "Zid",
    "RetainedSecret",
    "RemoteZidRecord",
    "ZidNameRecord",
    "RemoteZidFlags",
    "ZidNameFlags",
    "LocalZidType",
    "ZID_LENGTH",
    "RS_LENGTH",
    "DEFAULT_ACCOUNT",
    "NO_NAME",
]
