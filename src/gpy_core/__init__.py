"""Compact GNSS core - record codecs, checksums and delta compression."""
from .checksum import checksum, verify
from .delta import compress, decompress
from .errors import ChecksumMismatch, DeltaOverflow, GpyFormatError, MalformedRecord, TruncatedRecord
from .models import CompressedRecord, FileHeader, Sample, UnknownRecord
from .protocol import DeviceType, RecordType

__all__ = [
    "checksum",
    "verify",
    "compress",
    "decompress",
    "ChecksumMismatch",
    "DeltaOverflow",
    "GpyFormatError",
    "MalformedRecord",
    "TruncatedRecord",
    "CompressedRecord",
    "FileHeader",
    "Sample",
    "UnknownRecord",
    "DeviceType",
    "RecordType",
]
