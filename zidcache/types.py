"""
Shared value types for zidcache.

These are the vocabulary between the cache backend and the protocol engine
that embeds it. Records are plain dataclasses produced fresh on every read;
the caller owns the copy.
"""

import time
from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Optional

# Length of a ZRTP identifier (ZID) in bytes
ZID_LENGTH = 12

# Length of a retained secret / MITM key in bytes
RS_LENGTH = 32

# Upper bound for account labels and display names
MAX_TEXT_LENGTH = 1000

# Account label used when the caller supplies none
DEFAULT_ACCOUNT = "_STANDARD_"

# Display name written when the caller supplies none
NO_NAME = "_NO_NAME_"


def epoch_now() -> int:
    """Current time as integral epoch seconds."""
    return int(time.time())


class Zid(bytes):
    """A 12-byte ZRTP identifier."""

    def __new__(cls, value: bytes) -> "Zid":
        if len(value) != ZID_LENGTH:
            raise ValueError(f"ZID must be {ZID_LENGTH} bytes, got {len(value)}")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"Zid({self.hex()})"


class RetainedSecret(bytes):
    """A 32-byte retained secret or MITM key."""

    def __new__(cls, value: bytes) -> "RetainedSecret":
        if len(value) != RS_LENGTH:
            raise ValueError(f"Retained secret must be {RS_LENGTH} bytes, got {len(value)}")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        # Never print secret material
        return "RetainedSecret(<32 bytes>)"


class LocalZidType(IntEnum):
    """Value of the `type` column in the own-identity table."""

    STANDARD = 1  # Not tied to a specific account
    WITH_ACCOUNT = 2


class RemoteZidFlags(IntFlag):
    """Bits of the remote ZID record flag word."""

    NONE = 0
    VALID = 0x1
    SAS_VERIFIED = 0x2
    RS1_VALID = 0x4
    RS2_VALID = 0x8
    MITM_KEY_AVAILABLE = 0x10


class ZidNameFlags(IntFlag):
    """Bits of the ZID name record flag word."""

    NONE = 0
    VALID = 0x1


@dataclass
class RemoteZidRecord:
    """Retained-secret state shared with one peer.

    `identifier` is only filled in by enumeration; keyed reads already know
    the remote ZID.
    """

    flags: int = 0
    rs1: Optional[RetainedSecret] = None
    rs1_last_used: int = 0
    rs1_ttl: int = 0
    rs2: Optional[RetainedSecret] = None
    rs2_last_used: int = 0
    rs2_ttl: int = 0
    mitm_key: Optional[RetainedSecret] = None
    mitm_last_used: int = 0
    secure_since: int = 0
    presh_counter: int = 0
    identifier: Optional[Zid] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.flags & RemoteZidFlags.VALID)

    @property
    def is_sas_verified(self) -> bool:
        return bool(self.flags & RemoteZidFlags.SAS_VERIFIED)

    @property
    def is_rs1_valid(self) -> bool:
        return bool(self.flags & RemoteZidFlags.RS1_VALID)

    @property
    def is_rs2_valid(self) -> bool:
        return bool(self.flags & RemoteZidFlags.RS2_VALID)

    @property
    def has_mitm_key(self) -> bool:
        return bool(self.flags & RemoteZidFlags.MITM_KEY_AVAILABLE)


@dataclass
class ZidNameRecord:
    """Display metadata bound to a (remote ZID, local ZID, account) triple.

    `last_update` is assigned by the store on every write; any value set by
    the caller is ignored.
    """

    flags: int = 0
    name: Optional[str] = None
    last_update: int = 0

    @property
    def is_valid(self) -> bool:
        return bool(self.flags & ZidNameFlags.VALID)
