"""Data models for decoded samples and records."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .protocol import COURSE_SCALE, DeviceType


@dataclass(frozen=True, slots=True)
class Sample:
    """A single GNSS fix, the payload of a minimal (reference) record.

    Attributes:
        flags: Reserved, 0 when logging.
        hdop: HDOP x 100.
        timestamp: Unix seconds, UTC.
        speed: Speed in mm/s.
        speed_err: Speed error estimate in mm/s.
        latitude: Degrees x 10^7, [-90, 90].
        longitude: Degrees x 10^7, [-180, 180].
        course: Course over ground, degrees x 10^5, [0, 360). Samples that
            travelled through a compressed record carry only x 10^3 precision.
        sats: Number of satellites used.
        fix: 0 = no fix, 2 = 2D, 3 = 3D (u-blox definitions).
    """

    flags: int = 0
    hdop: int = 0
    timestamp: int = 0
    speed: int = 0
    speed_err: int = 0
    latitude: int = 0
    longitude: int = 0
    course: int = 0
    sats: int = 0
    fix: int = 0

    @property
    def latitude_deg(self) -> float:
        return self.latitude / 1e7

    @property
    def longitude_deg(self) -> float:
        return self.longitude / 1e7

    @property
    def speed_mps(self) -> float:
        return self.speed / 1000.0

    @property
    def course_deg(self) -> float:
        return self.course / (100 * COURSE_SCALE)


@dataclass(frozen=True, slots=True)
class FileHeader:
    """Device description written once at the start of every file.

    Strings are stored in fixed 16-byte UTF-8 slots, so longer values come
    back truncated after a round trip.
    """

    device_type: int = DeviceType.UNKNOWN
    device_description: str = ""
    device_name: str = ""
    serial_number: str = ""
    firmware_version: str = ""
    flags: int = 0


@dataclass(frozen=True, slots=True)
class CompressedRecord:
    """Signed 16-bit deltas against the active reference record.

    hdop, sats and fix are absolute values. `course` is the delta of
    course // 1000 (truncated toward zero).
    """

    flags: int = 0
    hdop: int = 0
    timestamp: int = 0
    speed: int = 0
    speed_err: int = 0
    latitude: int = 0
    longitude: int = 0
    course: int = 0
    sats: int = 0
    fix: int = 0


@dataclass(frozen=True, slots=True)
class UnknownRecord:
    """A record of a type this library does not interpret."""

    type: int
    flags: int
    payload: bytes

    @property
    def length(self) -> int:
        # type + flags + length + payload + checksum
        return 4 + len(self.payload) + 2


Record = Union[FileHeader, Sample, CompressedRecord, UnknownRecord]
