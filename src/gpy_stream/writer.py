"""Stream writer for .gpy files.

The writer keeps the last minimal record it emitted as its reference and
writes compressed records whenever every delta fits. Refreshing the reference
on a schedule is the caller's decision (see write_samples).
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterable

from gpy_core.delta import compress
from gpy_core.errors import DeltaOverflow
from gpy_core.models import FileHeader, Sample, UnknownRecord
from gpy_core.records import encode_compressed, encode_header, encode_minimal, encode_unknown

logger = logging.getLogger(__name__)


class GpyWriter:
    """Writes a file header on construction, then one record per call."""

    def __init__(self, output: BinaryIO, header: FileHeader):
        self.output = output
        self.reference: Sample | None = None
        self.compressed_count = 0
        self.uncompressed_count = 0
        self.unknown_count = 0
        self.bytes_written = 0
        self._emit(encode_header(header))

    def _emit(self, blob: bytes) -> int:
        self.output.write(blob)
        self.bytes_written += len(blob)
        return len(blob)

    def write_sample(self, sample: Sample) -> int:
        """Write `sample` compressed if possible, else as a new reference.

        Returns the number of bytes written.
        """
        if self.reference is not None:
            try:
                delta = compress(sample, self.reference)
            except DeltaOverflow as e:
                logger.debug("Delta overflow at t=%s, writing reference: %s", sample.timestamp, e)
            else:
                n = self._emit(encode_compressed(delta))
                self.compressed_count += 1
                return n
        return self.write_reference(sample)

    def write_reference(self, sample: Sample) -> int:
        """Write `sample` as a minimal record and make it the reference."""
        n = self._emit(encode_minimal(sample))
        self.reference = sample
        self.uncompressed_count += 1
        return n

    def write_unknown(self, record_type: int, payload: bytes, flags: int = 0) -> int:
        """Write a custom record that readers skip by its declared length."""
        n = self._emit(encode_unknown(UnknownRecord(type=record_type, flags=flags, payload=payload)))
        self.unknown_count += 1
        return n

    def flush(self) -> None:
        self.output.flush()

    def get_stats(self) -> dict:
        return {
            "bytes": self.bytes_written,
            "compressed": self.compressed_count,
            "uncompressed": self.uncompressed_count,
            "unknown": self.unknown_count,
        }


def write_samples(writer: GpyWriter, samples: Iterable[Sample], reference_interval: int | None = None) -> int:
    """Write samples, forcing a fresh reference every `reference_interval` seconds.

    A corrupted reference loses every compressed record up to the next
    reference, and compressed course values drift from the reference's
    precision, so a periodic refresh bounds both. None disables the refresh.
    """
    total = 0
    for sample in samples:
        ref = writer.reference
        if (
            reference_interval is not None
            and ref is not None
            and sample.timestamp - ref.timestamp >= reference_interval
        ):
            total += writer.write_reference(sample)
        else:
            total += writer.write_sample(sample)
    return total


def write_gpy(output: BinaryIO, header: FileHeader, samples: Iterable[Sample], reference_interval: int | None = None) -> dict:
    writer = GpyWriter(output, header)
    write_samples(writer, samples, reference_interval)
    writer.flush()
    return writer.get_stats()


def write_gpy_file(
    path: str | Path,
    header: FileHeader,
    samples: Iterable[Sample],
    reference_interval: int | None = None,
) -> dict:
    """Encode samples into a .gpy file, choosing compression automatically.

    The file only appears at `path` once every sample has been written.
    """
    path = Path(path)
    tmp = path.with_name(path.name + ".part")
    try:
        with open(tmp, "wb") as f:
            stats = write_gpy(f, header, samples, reference_interval)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    logger.info(
        "Wrote %s: %s reference, %s compressed records, %s bytes",
        path,
        stats["uncompressed"],
        stats["compressed"],
        stats["bytes"],
    )
    return stats
