"""Own-identity operations extracted from SQLiteZidCache.

Resolves the local ZID for an account, creating it on the first lookup.
All functions receive dependencies explicitly (connection factory, RNG) to
keep them independent of the cache class and testable on their own.
"""

import logging
from typing import Callable, Optional, Tuple

from zidcache.protocols import CacheInconsistentError
from zidcache.types import DEFAULT_ACCOUNT, MAX_TEXT_LENGTH, ZID_LENGTH, LocalZidType, Zid

from .encoding import decode_zid, encode_zid
from .schema import OWN_ZID_TABLE

logger = logging.getLogger(__name__)


def normalize_account(account: Optional[str]) -> Tuple[LocalZidType, str]:
    """Map an account label to its (type, label) pair in zrtpIdOwn."""
    if account is None or account == DEFAULT_ACCOUNT:
        return LocalZidType.STANDARD, DEFAULT_ACCOUNT
    if len(account) > MAX_TEXT_LENGTH:
        raise ValueError(f"Account label longer than {MAX_TEXT_LENGTH} characters")
    return LocalZidType.WITH_ACCOUNT, account


def read_local_zid(
    connect_fn: Callable,
    account: Optional[str],
    random_fn: Callable[[int], bytes],
) -> Zid:
    """Return the local ZID for `account`, generating and storing one on a miss.

    Raises:
        CacheInconsistentError: If more than one ZID is stored for the account
    """
    zid_type, account = normalize_account(account)

    with connect_fn() as conn:
        rows = conn.execute(
            "SELECT localZid FROM zrtpIdOwn WHERE type = ? AND accountInfo = ?",
            (int(zid_type), account),
        ).fetchall()

        if len(rows) > 1:
            logger.error(f"Found {len(rows)} local ZIDs for account {account!r}")
            raise CacheInconsistentError(OWN_ZID_TABLE, len(rows), f"account {account!r}")

        if rows:
            return decode_zid(rows[0][0])

        local_zid = Zid(random_fn(ZID_LENGTH))
        conn.execute(
            "INSERT INTO zrtpIdOwn (localZid, type, accountInfo) VALUES (?, ?, ?)",
            (encode_zid(local_zid), int(zid_type), account),
        )
        logger.info(f"Created new local ZID for account {account!r}")
        return local_zid
