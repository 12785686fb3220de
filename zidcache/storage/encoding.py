"""Binary <-> text transcoding for values bound into cache queries.

Identifiers are stored as base64 text so the keys stay human-inspectable;
secrets stay native BLOBs and only get their length checked here.
"""

import base64
import binascii
from typing import Optional

from zidcache.protocols import EncodingError
from zidcache.types import ZID_LENGTH, RetainedSecret, Zid


def encode_zid(value: bytes) -> str:
    """Encode an identifier as standard base64 text.

    12 bytes map to exactly 16 characters, so no '=' padding is produced.

    Raises:
        ValueError: If the value is not exactly ZID_LENGTH bytes
    """
    return base64.b64encode(bytes(Zid(value))).decode("ascii")


# Range of an SQLite INTEGER column
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def to_int64(value: int, field: str) -> int:
    """Check that an integer fits an SQLite INTEGER before binding it.

    Raises:
        ValueError: If the value is outside the signed 64-bit range
    """
    value = int(value)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"{field} out of 64-bit range: {value}")
    return value


def decode_zid(text: str, length: int = ZID_LENGTH) -> Zid:
    """Decode base64 text read from the cache back into a Zid.

    Raises:
        EncodingError: If the text is not valid base64 or has the wrong length
    """
    if text is None:
        raise EncodingError("Cannot decode a NULL identifier")
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(f"Invalid identifier text {text!r}: {e}") from e
    if len(raw) != length:
        raise EncodingError(f"Identifier {text!r} decodes to {len(raw)} bytes, expected {length}")
    return Zid(raw)


def to_blob(secret: Optional[bytes]) -> Optional[bytes]:
    """Prepare a secret for binding into a BLOB column (None stays NULL)."""
    if secret is None:
        return None
    return bytes(RetainedSecret(secret))


def secret_from_blob(blob: Optional[bytes]) -> Optional[RetainedSecret]:
    """Turn a BLOB column value back into a RetainedSecret."""
    if blob is None:
        return None
    try:
        return RetainedSecret(bytes(blob))
    except ValueError as e:
        raise EncodingError(str(e)) from e
