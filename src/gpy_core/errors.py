"""Error taxonomy for the .gpy format."""
from __future__ import annotations


class GpyFormatError(ValueError):
    """Base class for bytes that cannot be decoded."""

    def __init__(self, message: str, offset: int | None = None):
        super().__init__(message)
        self.offset = offset


class MalformedRecord(GpyFormatError):
    """Structural violation: wrong type tag or an untrustworthy length."""


class TruncatedRecord(MalformedRecord):
    """Fewer bytes available than the record needs."""


class ChecksumMismatch(GpyFormatError):
    """Trailing checksum does not match the record contents."""


class DeltaOverflow(OverflowError):
    """A delta does not fit in a signed 16-bit field.

    Not a failure: the writer falls back to a full reference record.
    """
