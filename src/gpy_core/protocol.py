"""Compact GNSS (.gpy) protocol constants.

Single source of truth for record tags, sizes and byte layouts.
Keep this file stable. Reader and Writer must remain synchronized.
All multi-byte fields are little-endian.
"""
from enum import IntEnum


class RecordType(IntEnum):
    FILE_HEADER = 0xF0
    MINIMAL = 0xE0     # uncompressed reference record
    COMPRESSED = 0xD0  # delta against the active reference


class DeviceType(IntEnum):
    UNKNOWN = 0
    LOCOSYS = 1
    UBLOX = 2
    GARMIN = 3
    SUUNTO = 4
    COROS = 5
    OTHER = 255


# Common prefix: [Type(1) | Flags(1)], optionally followed by Length(2)
REC_PREFIX_FMT = "<BB"
REC_PREFIX_LEN = 2
VAR_HEADER_FMT = "<BBH"
VAR_HEADER_LEN = 4

# Trailer: [ckA(1) | ckB(1)]
CHECKSUM_FMT = "<BB"
CHECKSUM_LEN = 2

# File header: [Type | Flags | Length(2) | DeviceType(2) | 4 x 16-byte strings] + checksum
STRING_FIELD_LEN = 16
FILE_HEADER_FMT = "<BBHH16s16s16s16s"
FILE_HEADER_LEN = 6 + 4 * STRING_FIELD_LEN + CHECKSUM_LEN  # 72

# Minimal record: [Type | Flags | hdop | time(i64) | speed | speedErr | lat | lon | course | sats | fix]
MINIMAL_FMT = "<BBHqIIiiIBB"
MINIMAL_REC_LEN = 36

# Compressed record: [Type | Flags | hdop | 6 x i16 delta | sats | fix]
COMPRESSED_FMT = "<BBH6hBB"
COMPRESSED_REC_LEN = 20

# Unknown records: type, flags, length, >= 2 bytes payload, checksum
MINIMUM_RECORD_LENGTH = 8
MAXIMUM_RECORD_LENGTH = 0xFFFF

# Delta encoding
DELTA_MIN = -32768
DELTA_MAX = 32767
COURSE_SCALE = 1000  # compressed course is degrees x 10^3 instead of x 10^5

# Reader bounds
DEFAULT_MAX_PROBLEMS = 50
