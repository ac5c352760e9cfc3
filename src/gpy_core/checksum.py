"""8-bit Fletcher-style rolling checksum shared by every record."""
from __future__ import annotations

import struct

from .errors import ChecksumMismatch
from .protocol import CHECKSUM_FMT, CHECKSUM_LEN


def checksum(data: bytes) -> tuple[int, int]:
    """Return (a, b): a is the byte sum mod 256, b the running sum of a mod 256."""
    a = 0
    b = 0
    for byte in data:
        a = (a + byte) & 0xFF
        b = (b + a) & 0xFF
    return a, b


def append_checksum(body: bytes) -> bytes:
    return body + struct.pack(CHECKSUM_FMT, *checksum(body))


def verify(record: bytes) -> None:
    """Check the two trailing bytes of `record` against the rest of it."""
    if len(record) < CHECKSUM_LEN:
        raise ChecksumMismatch(f"Record of {len(record)} bytes has no checksum")
    expected = tuple(record[-CHECKSUM_LEN:])
    actual = checksum(record[:-CHECKSUM_LEN])
    if actual != expected:
        raise ChecksumMismatch(
            f"Invalid checksum - expected {expected[0]},{expected[1]} but was {actual[0]},{actual[1]}"
        )
