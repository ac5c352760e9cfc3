"""Stream reader for .gpy files.

The file header is read first and must be intact. After that, records are
consumed one at a time:

- A minimal record with a bad checksum is dropped and clears the active
  reference, so compressed records are dropped until the next intact minimal
  record.
- A compressed record with a bad checksum, or with no active reference, is
  dropped. The active reference is unchanged.
- Unknown records are skipped using their declared length. A bad length or
  checksum there is fatal, since nothing else can re-establish framing.
"""
from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO
from warnings import warn

from gpy_core.delta import decompress
from gpy_core.errors import ChecksumMismatch, GpyFormatError, MalformedRecord, TruncatedRecord
from gpy_core.models import FileHeader, Sample
from gpy_core.protocol import (
    COMPRESSED_REC_LEN,
    DEFAULT_MAX_PROBLEMS,
    FILE_HEADER_LEN,
    MINIMAL_REC_LEN,
    VAR_HEADER_FMT,
    VAR_HEADER_LEN,
    RecordType,
)
from gpy_core.records import (
    classify,
    decode_compressed,
    decode_header,
    decode_minimal,
    peek_type,
    read_unknown,
)

logger = logging.getLogger(__name__)


class ReaderState(Enum):
    EXPECT_HEADER = "expect_header"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


class DroppedRecordsWarning(UserWarning):
    """Some data records could not be decoded and were skipped."""


# Record index status values
VERIFIED = "VERIFIED"
CHECKSUM = "CHECKSUM"
NO_REFERENCE = "NO_REFERENCE"
UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class RecordEntry:
    """Where a data record sits in the file and what happened to it."""

    index: int
    offset: int
    record_type: int
    length: int
    status: str


@dataclass(slots=True)
class ReadResult:
    header: FileHeader
    samples: list[Sample]
    stats: dict[str, int]
    problems: list[str]
    index: list[RecordEntry] = field(default_factory=list)

    @property
    def num_problems(self) -> int:
        return self.stats["checksum_errors"] + self.stats["no_reference"]


class GpyReader:
    """Single-use reader over one seekable binary stream.

    Not thread-safe: the active reference and counters mutate on every record.
    """

    def __init__(self, f: BinaryIO, max_problems: int = DEFAULT_MAX_PROBLEMS, keep_index: bool = False):
        self.f = f
        self.max_problems = max_problems
        self.keep_index = keep_index

        self.state = ReaderState.EXPECT_HEADER
        self.header: FileHeader | None = None
        self.reference: Sample | None = None
        self.problems: list[str] = []
        self.index: list[RecordEntry] = []
        self.scan_stats = {
            "records": 0,
            "samples": 0,
            "checksum_errors": 0,
            "no_reference": 0,
            "unknown_records": 0,
            "problems_suppressed": 0,
        }

        pos = f.tell()
        f.seek(0, io.SEEK_END)
        self._end = f.tell()
        f.seek(pos)

    def get_scan_stats(self) -> dict:
        return dict(self.scan_stats)

    def _remaining(self) -> int:
        return self._end - self.f.tell()

    def read(self, stacklevel: int = 2) -> ReadResult:
        """Decode the whole stream.

        Raises MalformedRecord, TruncatedRecord or ChecksumMismatch on fatal
        corruption; no samples are returned in that case.
        """
        if self.state is not ReaderState.EXPECT_HEADER:
            raise RuntimeError(f"Reader already used (state={self.state.value})")

        samples: list[Sample] = []
        try:
            self.header = self._read_header()
            self.state = ReaderState.STREAMING

            while self._remaining() > 0:
                sample = self._read_data_record()
                if sample is not None:
                    samples.append(sample)
        except GpyFormatError:
            self.state = ReaderState.FAILED
            raise

        self.state = ReaderState.DONE
        result = ReadResult(
            header=self.header,
            samples=samples,
            stats=self.get_scan_stats(),
            problems=list(self.problems),
            index=list(self.index),
        )
        if result.num_problems:
            warn(
                f"{result.num_problems} of {self.scan_stats['records']} data records dropped "
                f"({self.scan_stats['checksum_errors']} checksum errors, "
                f"{self.scan_stats['no_reference']} without reference)",
                DroppedRecordsWarning,
                stacklevel=stacklevel,
            )
        return result

    @staticmethod
    def _fatal(exc: GpyFormatError, offset: int) -> GpyFormatError:
        return type(exc)(f"FATAL: {exc} at offset {offset}", offset=offset)

    def _read_block(self, size: int, offset: int) -> bytes:
        data = self.f.read(size)
        if len(data) < size:
            raise TruncatedRecord(
                f"FATAL: record needs {size} bytes, only {len(data)} left at offset {offset}",
                offset=offset,
            )
        return data

    def _read_header(self) -> FileHeader:
        offset = self.f.tell()
        prefix = self._read_block(VAR_HEADER_LEN, offset)
        tag, _, length = struct.unpack(VAR_HEADER_FMT, prefix)
        if tag != RecordType.FILE_HEADER:
            raise MalformedRecord(
                f"FATAL: first byte 0x{tag:02X} is not FILE_HEADER at offset {offset}", offset=offset
            )
        if length < FILE_HEADER_LEN:
            raise MalformedRecord(
                f"FATAL: file header length {length} below {FILE_HEADER_LEN} at offset {offset}",
                offset=offset,
            )
        data = prefix + self._read_block(length - VAR_HEADER_LEN, offset)
        try:
            header = decode_header(data)
        except GpyFormatError as e:
            raise self._fatal(e, offset) from e
        logger.debug("File header: %s", header)
        return header

    def _problem(self, message: str) -> None:
        logger.debug(message)
        if len(self.problems) < self.max_problems:
            self.problems.append(message)
        else:
            self.scan_stats["problems_suppressed"] += 1

    def _record(self, n: int, offset: int, kind: int, length: int, status: str) -> None:
        if self.keep_index:
            self.index.append(RecordEntry(n, offset, kind, length, status))

    def _read_data_record(self) -> Sample | None:
        offset = self.f.tell()
        tag = peek_type(self.f)
        self.scan_stats["records"] += 1
        n = self.scan_stats["records"]

        kind = classify(tag)
        if kind is RecordType.MINIMAL:
            return self._read_minimal(n, offset)
        if kind is RecordType.COMPRESSED:
            return self._read_compressed(n, offset)
        # A repeated file header is skipped like any unknown record.
        self._read_unknown(n, offset)
        return None

    def _read_minimal(self, n: int, offset: int) -> Sample | None:
        # Always consume the full block so framing survives a bad checksum.
        data = self._read_block(MINIMAL_REC_LEN, offset)
        try:
            sample = decode_minimal(data)
        except ChecksumMismatch as e:
            self.reference = None
            self.scan_stats["checksum_errors"] += 1
            self._problem(f"Record {n} (uncompressed) at offset {offset}: {e}")
            self._record(n, offset, RecordType.MINIMAL, MINIMAL_REC_LEN, CHECKSUM)
            return None

        self.reference = sample
        self.scan_stats["samples"] += 1
        self._record(n, offset, RecordType.MINIMAL, MINIMAL_REC_LEN, VERIFIED)
        return sample

    def _read_compressed(self, n: int, offset: int) -> Sample | None:
        data = self._read_block(COMPRESSED_REC_LEN, offset)
        if self.reference is None:
            self.scan_stats["no_reference"] += 1
            self._problem(f"Record {n} (compressed) at offset {offset}: No uncompressed reference")
            self._record(n, offset, RecordType.COMPRESSED, COMPRESSED_REC_LEN, NO_REFERENCE)
            return None

        try:
            delta = decode_compressed(data)
        except ChecksumMismatch as e:
            # Only a bad reference poisons what follows; keep the current one.
            self.scan_stats["checksum_errors"] += 1
            self._problem(f"Record {n} (compressed) at offset {offset}: {e}")
            self._record(n, offset, RecordType.COMPRESSED, COMPRESSED_REC_LEN, CHECKSUM)
            return None

        self.scan_stats["samples"] += 1
        self._record(n, offset, RecordType.COMPRESSED, COMPRESSED_REC_LEN, VERIFIED)
        return decompress(delta, self.reference)

    def _read_unknown(self, n: int, offset: int) -> None:
        try:
            rec, length = read_unknown(self.f, self._remaining())
        except GpyFormatError as e:
            raise self._fatal(e, offset) from e
        self.scan_stats["unknown_records"] += 1
        logger.debug("Record %s: skipped unknown type 0x%02X (%s bytes) at offset %s", n, rec.type, length, offset)
        self._record(n, offset, rec.type, length, UNKNOWN)


def read_gpy(f: BinaryIO, **kwargs) -> ReadResult:
    return GpyReader(f, **kwargs).read(stacklevel=3)


def read_gpy_bytes(data: bytes, **kwargs) -> ReadResult:
    return GpyReader(io.BytesIO(data), **kwargs).read(stacklevel=3)


def read_gpy_file(path: str | Path, **kwargs) -> ReadResult:
    """Decode a .gpy file into samples plus diagnostics."""
    with open(Path(path), "rb") as f:
        return GpyReader(f, **kwargs).read(stacklevel=3)
