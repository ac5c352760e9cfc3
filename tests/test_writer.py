import io
import random
import warnings
from dataclasses import replace

import pytest

from gpy_core.models import FileHeader, Sample
from gpy_core.protocol import COMPRESSED_REC_LEN, FILE_HEADER_LEN, MINIMAL_REC_LEN, RecordType
from gpy_stream.reader import read_gpy_bytes, read_gpy_file
from gpy_stream.writer import GpyWriter, write_gpy, write_gpy_file, write_samples

HEADER = FileHeader(device_description="test", firmware_version="0.1")

BASE = Sample(
    hdop=90,
    timestamp=1_680_000_000,
    speed=6000,
    speed_err=300,
    latitude=-337_000_000,
    longitude=1_510_000_000,
    course=18_000_000,
    sats=10,
    fix=3,
)


def at(t: int, **kw) -> Sample:
    return replace(BASE, timestamp=BASE.timestamp + t, **kw)


def test_header_written_on_open():
    out = io.BytesIO()
    writer = GpyWriter(out, HEADER)
    assert len(out.getvalue()) == FILE_HEADER_LEN
    assert out.getvalue()[0] == RecordType.FILE_HEADER
    assert writer.bytes_written == FILE_HEADER_LEN


def test_first_sample_is_reference_then_compressed():
    writer = GpyWriter(io.BytesIO(), HEADER)
    assert writer.write_sample(at(0)) == MINIMAL_REC_LEN
    assert writer.reference == at(0)
    assert writer.write_sample(at(1)) == COMPRESSED_REC_LEN
    assert writer.reference == at(0)
    assert writer.get_stats() == {
        "bytes": FILE_HEADER_LEN + MINIMAL_REC_LEN + COMPRESSED_REC_LEN,
        "compressed": 1,
        "uncompressed": 1,
        "unknown": 0,
    }


@pytest.mark.parametrize(
    "jump",
    [
        {"timestamp": BASE.timestamp + 40_000},
        {"latitude": BASE.latitude + 32_768},
        {"speed": BASE.speed + 50_000},
        {"speed_err": BASE.speed_err + 40_000},
    ],
)
def test_overflow_falls_back_to_new_reference(jump):
    writer = GpyWriter(io.BytesIO(), HEADER)
    writer.write_sample(at(0))
    jumped = replace(at(1), **jump)
    assert writer.write_sample(jumped) == MINIMAL_REC_LEN
    assert writer.reference == jumped
    assert writer.write_sample(replace(jumped, timestamp=jumped.timestamp + 1)) == COMPRESSED_REC_LEN


def test_unencodable_sample_leaves_reference_alone():
    writer = GpyWriter(io.BytesIO(), HEADER)
    with pytest.raises(ValueError):
        writer.write_sample(at(0, sats=300))
    assert writer.reference is None

    writer.write_sample(at(0))
    with pytest.raises(ValueError):
        writer.write_sample(at(1, sats=300))
    assert writer.reference == at(0)


def test_reference_interval_forces_refresh():
    out = io.BytesIO()
    writer = GpyWriter(out, HEADER)
    write_samples(writer, [at(t) for t in range(12)], reference_interval=5)
    # references at t = 0, 5, 10
    assert writer.uncompressed_count == 3
    assert writer.compressed_count == 9


def test_no_interval_only_overflow_refreshes():
    stats = write_gpy(io.BytesIO(), HEADER, [at(t) for t in range(100)])
    assert stats["uncompressed"] == 1
    assert stats["compressed"] == 99


def test_written_records_decode_exactly():
    rng = random.Random(7)
    out = io.BytesIO()
    writer = GpyWriter(out, HEADER)
    expected = []
    s = BASE
    for _ in range(500):
        s = replace(
            s,
            timestamp=s.timestamp + rng.choice([1, 1, 1, 5000]),
            speed=max(0, s.speed + rng.randint(-3000, 3000)),
            latitude=s.latitude + rng.randint(-9000, 9000),
            longitude=s.longitude + rng.randint(-9000, 9000),
            course=rng.randint(0, 35_999_999),
            hdop=rng.randint(50, 300),
        )
        if writer.write_sample(s) == MINIMAL_REC_LEN:
            expected.append(s)
        else:
            expected.append(replace(s, course=s.course // 1000 * 1000))

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        result = read_gpy_bytes(out.getvalue())
    assert result.samples == expected
    assert writer.uncompressed_count > 1


def test_unknown_records_are_skipped_by_readers():
    out = io.BytesIO()
    writer = GpyWriter(out, HEADER)
    writer.write_sample(at(0))
    writer.write_unknown(0x42, b"custom data")
    writer.write_sample(at(1))
    result = read_gpy_bytes(out.getvalue())
    assert result.samples == [at(0), at(1)]
    assert result.stats["unknown_records"] == 1
    assert writer.unknown_count == 1


def test_write_gpy_file_roundtrip(tmp_path):
    p = tmp_path / "track.gpy"
    stats = write_gpy_file(p, HEADER, [at(t) for t in range(40)], reference_interval=32)
    assert stats["uncompressed"] == 2
    assert p.stat().st_size == stats["bytes"]
    result = read_gpy_file(p)
    assert result.header == HEADER
    assert result.samples == [at(t) for t in range(40)]


def test_write_gpy_file_failure_keeps_existing_file(tmp_path):
    p = tmp_path / "track.gpy"
    write_gpy_file(p, HEADER, [at(0), at(1)])
    before = p.read_bytes()
    with pytest.raises(ValueError):
        write_gpy_file(p, HEADER, [at(0), at(1, sats=300)])
    assert p.read_bytes() == before
    assert [q.name for q in tmp_path.iterdir()] == ["track.gpy"]
