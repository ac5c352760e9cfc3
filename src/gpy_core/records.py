"""Record codecs: header dispatch, fixed layouts and generic (unknown) records.

Every record is [Type(1) | Flags(1) | ...payload... | ckA | ckB]. Fixed records
have implicit sizes; file headers and unknown records carry a u16 length
counted from the type byte through the checksum.
"""
from __future__ import annotations

import struct
from typing import BinaryIO

from .checksum import append_checksum, verify
from .errors import MalformedRecord, TruncatedRecord
from .models import CompressedRecord, FileHeader, Record, Sample, UnknownRecord
from .protocol import (
    CHECKSUM_LEN,
    COMPRESSED_FMT,
    COMPRESSED_REC_LEN,
    FILE_HEADER_FMT,
    FILE_HEADER_LEN,
    MAXIMUM_RECORD_LENGTH,
    MINIMAL_FMT,
    MINIMAL_REC_LEN,
    MINIMUM_RECORD_LENGTH,
    STRING_FIELD_LEN,
    VAR_HEADER_FMT,
    VAR_HEADER_LEN,
    DeviceType,
    RecordType,
)


def classify(tag: int) -> RecordType | None:
    """Map a type byte to a known record type, None for unknown records."""
    try:
        return RecordType(tag)
    except ValueError:
        return None


def peek_type(f: BinaryIO) -> int | None:
    """Return the next type byte without consuming it, None at EOF."""
    pos = f.tell()
    b = f.read(1)
    f.seek(pos)
    return b[0] if b else None


def _pack(fmt: str, *values) -> bytes:
    try:
        return struct.pack(fmt, *values)
    except struct.error as e:
        raise ValueError(f"Field value out of range for layout {fmt}: {e}") from e


def _check_fixed(data: bytes, expected: RecordType, size: int) -> None:
    if not data:
        raise TruncatedRecord(f"Empty {expected.name} record")
    if data[0] != expected:
        raise MalformedRecord(
            f"Wrong first byte - expected 0x{int(expected):02X} but was 0x{data[0]:02X}"
        )
    if len(data) < size:
        raise TruncatedRecord(f"{expected.name} record needs {size} bytes, got {len(data)}")
    if len(data) > size:
        raise MalformedRecord(f"{expected.name} record is {size} bytes, got {len(data)}")


# --- Minimal (reference) record ---

def encode_minimal(sample: Sample) -> bytes:
    body = _pack(
        MINIMAL_FMT,
        RecordType.MINIMAL,
        sample.flags,
        sample.hdop,
        sample.timestamp,
        sample.speed,
        sample.speed_err,
        sample.latitude,
        sample.longitude,
        sample.course,
        sample.sats,
        sample.fix,
    )
    return append_checksum(body)


def decode_minimal(data: bytes) -> Sample:
    _check_fixed(data, RecordType.MINIMAL, MINIMAL_REC_LEN)
    (_, flags, hdop, ts, speed, speed_err, lat, lon, course, sats, fix) = struct.unpack(
        MINIMAL_FMT, data[:-CHECKSUM_LEN]
    )
    verify(data)
    return Sample(
        flags=flags,
        hdop=hdop,
        timestamp=ts,
        speed=speed,
        speed_err=speed_err,
        latitude=lat,
        longitude=lon,
        course=course,
        sats=sats,
        fix=fix,
    )


# --- Compressed (delta) record ---

def encode_compressed(rec: CompressedRecord) -> bytes:
    body = _pack(
        COMPRESSED_FMT,
        RecordType.COMPRESSED,
        rec.flags,
        rec.hdop,
        rec.timestamp,
        rec.speed,
        rec.speed_err,
        rec.latitude,
        rec.longitude,
        rec.course,
        rec.sats,
        rec.fix,
    )
    return append_checksum(body)


def decode_compressed(data: bytes) -> CompressedRecord:
    _check_fixed(data, RecordType.COMPRESSED, COMPRESSED_REC_LEN)
    (_, flags, hdop, dt, dspeed, derr, dlat, dlon, dcourse, sats, fix) = struct.unpack(
        COMPRESSED_FMT, data[:-CHECKSUM_LEN]
    )
    verify(data)
    return CompressedRecord(
        flags=flags,
        hdop=hdop,
        timestamp=dt,
        speed=dspeed,
        speed_err=derr,
        latitude=dlat,
        longitude=dlon,
        course=dcourse,
        sats=sats,
        fix=fix,
    )


# --- File header ---

def _encode_string(s: str | None) -> bytes:
    """UTF-8 bytes in a fixed slot: truncated when long, NUL-padded when short."""
    raw = (s or "").encode("utf-8")[:STRING_FIELD_LEN]
    return raw.ljust(STRING_FIELD_LEN, b"\x00")


def _decode_string(slot: bytes) -> str:
    # A truncated multi-byte character decodes to U+FFFD rather than failing.
    return slot.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def _device_type(value: int) -> int:
    try:
        return DeviceType(value)
    except ValueError:
        return value


def encode_header(header: FileHeader) -> bytes:
    body = _pack(
        FILE_HEADER_FMT,
        RecordType.FILE_HEADER,
        header.flags,
        FILE_HEADER_LEN,
        int(header.device_type),
        _encode_string(header.device_description),
        _encode_string(header.device_name),
        _encode_string(header.serial_number),
        _encode_string(header.firmware_version),
    )
    return append_checksum(body)


def decode_header(data: bytes) -> FileHeader:
    """Decode a file header.

    Headers longer than the current layout are accepted; the extra bytes are
    covered by the checksum but otherwise ignored.
    """
    if len(data) < VAR_HEADER_LEN:
        raise TruncatedRecord(f"File header needs at least {VAR_HEADER_LEN} bytes, got {len(data)}")
    tag, _, length = struct.unpack(VAR_HEADER_FMT, data[:VAR_HEADER_LEN])
    if tag != RecordType.FILE_HEADER:
        raise MalformedRecord(
            f"First byte 0x{tag:02X} is not FILE_HEADER 0x{int(RecordType.FILE_HEADER):02X}"
        )
    if length < FILE_HEADER_LEN:
        raise MalformedRecord(f"File header length {length} is below {FILE_HEADER_LEN}")
    if len(data) < length:
        raise TruncatedRecord(f"File header declares {length} bytes, got {len(data)}")
    if len(data) > length:
        raise MalformedRecord(f"File header declares {length} bytes, got {len(data)}")

    (_, flags, _, device, desc, name, serial, firmware) = struct.unpack(
        FILE_HEADER_FMT, data[: FILE_HEADER_LEN - CHECKSUM_LEN]
    )
    verify(data)
    return FileHeader(
        device_type=_device_type(device),
        device_description=_decode_string(desc),
        device_name=_decode_string(name),
        serial_number=_decode_string(serial),
        firmware_version=_decode_string(firmware),
        flags=flags,
    )


# --- Generic (unknown) records ---

def encode_unknown(rec: UnknownRecord) -> bytes:
    if classify(rec.type) is not None:
        raise ValueError(f"Type 0x{rec.type:02X} is reserved for a built-in record")
    length = rec.length
    if length < MINIMUM_RECORD_LENGTH or length > MAXIMUM_RECORD_LENGTH:
        raise ValueError(
            f"Record length {length} outside [{MINIMUM_RECORD_LENGTH}, {MAXIMUM_RECORD_LENGTH}]"
        )
    body = _pack(VAR_HEADER_FMT, rec.type, rec.flags, length) + bytes(rec.payload)
    return append_checksum(body)


def _check_declared_length(tag: int, length: int, available: int) -> None:
    if length < MINIMUM_RECORD_LENGTH or length > available:
        # The length cannot be trusted, so there is nowhere to resume from.
        raise MalformedRecord(
            f"Invalid length {length} for unknown record of type 0x{tag:02X} "
            f"({available} bytes available)"
        )


def decode_unknown(data: bytes) -> UnknownRecord:
    if len(data) < VAR_HEADER_LEN:
        raise TruncatedRecord(f"Unknown record needs at least {VAR_HEADER_LEN} bytes, got {len(data)}")
    tag, flags, length = struct.unpack(VAR_HEADER_FMT, data[:VAR_HEADER_LEN])
    _check_declared_length(tag, length, len(data))
    if length != len(data):
        raise MalformedRecord(f"Unknown record declares {length} bytes, got {len(data)}")
    verify(data)
    return UnknownRecord(type=tag, flags=flags, payload=bytes(data[VAR_HEADER_LEN:-CHECKSUM_LEN]))


def read_unknown(f: BinaryIO, available: int) -> tuple[UnknownRecord, int]:
    """Read one unknown record from `f`.

    `available` is the number of bytes left in the stream from the record's
    first byte. Returns the record and the number of bytes consumed.
    """
    prefix = f.read(VAR_HEADER_LEN)
    if len(prefix) < VAR_HEADER_LEN:
        raise TruncatedRecord(f"Unknown record header needs {VAR_HEADER_LEN} bytes, got {len(prefix)}")
    tag, _, length = struct.unpack(VAR_HEADER_FMT, prefix)
    _check_declared_length(tag, length, available)
    rest = f.read(length - VAR_HEADER_LEN)
    if len(rest) < length - VAR_HEADER_LEN:
        raise TruncatedRecord(f"Unknown record declares {length} bytes, stream ended early")
    return decode_unknown(prefix + rest), length


# --- Dispatch ---

def decode_record(data: bytes) -> Record:
    """Decode one complete record, choosing the codec by its type byte."""
    if not data:
        raise TruncatedRecord("Empty record")
    kind = classify(data[0])
    if kind is RecordType.FILE_HEADER:
        return decode_header(data)
    if kind is RecordType.MINIMAL:
        return decode_minimal(data)
    if kind is RecordType.COMPRESSED:
        return decode_compressed(data)
    return decode_unknown(data)


def encode_record(rec: Record) -> bytes:
    if isinstance(rec, FileHeader):
        return encode_header(rec)
    if isinstance(rec, Sample):
        return encode_minimal(rec)
    if isinstance(rec, CompressedRecord):
        return encode_compressed(rec)
    if isinstance(rec, UnknownRecord):
        return encode_unknown(rec)
    raise TypeError(f"Not a record: {type(rec).__name__}")
