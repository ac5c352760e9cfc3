"""Stateful .gpy stream reader and writer."""
from .reader import DroppedRecordsWarning, GpyReader, ReadResult, ReaderState, read_gpy, read_gpy_bytes, read_gpy_file
from .writer import GpyWriter, write_gpy, write_gpy_file, write_samples

__all__ = [
    "DroppedRecordsWarning",
    "GpyReader",
    "ReadResult",
    "ReaderState",
    "read_gpy",
    "read_gpy_bytes",
    "read_gpy_file",
    "GpyWriter",
    "write_gpy",
    "write_gpy_file",
    "write_samples",
]
