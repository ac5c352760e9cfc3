"""Delta compression between a reference sample and the current sample.

Stateless: the reader and writer own the active reference and pass it in.
"""
from __future__ import annotations

from .errors import DeltaOverflow
from .models import CompressedRecord, Sample
from .protocol import COURSE_SCALE, DELTA_MAX, DELTA_MIN


def _scale_course(course: int) -> int:
    """course / 1000, truncated toward zero."""
    q = abs(course) // COURSE_SCALE
    return q if course >= 0 else -q


def _delta(name: str, current: int, reference: int) -> int:
    d = current - reference
    if d < DELTA_MIN or d > DELTA_MAX:
        raise DeltaOverflow(f"{name} delta {d} does not fit in 16 bits")
    return d


def compress(current: Sample, reference: Sample) -> CompressedRecord:
    """Encode `current` relative to `reference`.

    Raises DeltaOverflow if any delta is outside [-32768, 32767]. Course loses
    two decimal digits of precision.
    """
    return CompressedRecord(
        flags=current.flags,
        hdop=current.hdop,
        timestamp=_delta("timestamp", current.timestamp, reference.timestamp),
        speed=_delta("speed", current.speed, reference.speed),
        speed_err=_delta("speed_err", current.speed_err, reference.speed_err),
        latitude=_delta("latitude", current.latitude, reference.latitude),
        longitude=_delta("longitude", current.longitude, reference.longitude),
        course=_delta("course", _scale_course(current.course), _scale_course(reference.course)),
        sats=current.sats,
        fix=current.fix,
    )


def decompress(delta: CompressedRecord, reference: Sample) -> Sample:
    return Sample(
        flags=delta.flags,
        hdop=delta.hdop,
        timestamp=reference.timestamp + delta.timestamp,
        speed=reference.speed + delta.speed,
        speed_err=reference.speed_err + delta.speed_err,
        latitude=reference.latitude + delta.latitude,
        longitude=reference.longitude + delta.longitude,
        course=(_scale_course(reference.course) + delta.course) * COURSE_SCALE,
        sats=delta.sats,
        fix=delta.fix,
    )
