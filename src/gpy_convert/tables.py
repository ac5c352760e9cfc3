"""CSV and Parquet tables for samples and record indexes."""
from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from gpy_core.models import Sample
from gpy_core.records import classify
from gpy_stream.reader import RecordEntry

# Column names used by existing .csv exports, in Sample field order.
CSV_COLUMNS = [
    "flags",
    "hdop",
    "dateTime",
    "speed",
    "speedErr",
    "latitude",
    "longitude",
    "course",
    "sats",
    "fix",
]

SAMPLE_SCHEMA = pa.schema(
    [
        ("flags", pa.uint8()),
        ("hdop", pa.uint16()),
        ("dateTime", pa.int64()),
        ("speed", pa.uint32()),
        ("speedErr", pa.uint32()),
        ("latitude", pa.int32()),
        ("longitude", pa.int32()),
        ("course", pa.uint32()),
        ("sats", pa.uint8()),
        ("fix", pa.uint8()),
    ]
)

INDEX_SCHEMA = pa.schema(
    [
        ("index", pa.int32()),
        ("offset", pa.int64()),
        ("record_type", pa.uint8()),
        ("type_name", pa.string()),
        ("length", pa.int32()),
        ("status", pa.string()),
    ]
)


def samples_to_frame(samples: Sequence[Sample]) -> pd.DataFrame:
    rows = [
        (s.flags, s.hdop, s.timestamp, s.speed, s.speed_err, s.latitude, s.longitude, s.course, s.sats, s.fix)
        for s in samples
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS, dtype="int64")


def frame_to_samples(df: pd.DataFrame) -> list[Sample]:
    missing = [c for c in CSV_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns {missing}. Found: {list(df.columns)}")
    for col in CSV_COLUMNS:
        if pd.api.types.is_integer_dtype(df[col]):
            continue
        numeric = pd.to_numeric(df[col], errors="coerce")
        if numeric.isna().any() or (numeric != numeric.round()).any():
            raise ValueError(f"Column {col} holds non-integer values")
    values = df[CSV_COLUMNS].astype("int64")
    return [Sample(*(int(v) for v in row)) for row in values.itertuples(index=False, name=None)]


def read_samples_csv(csv_path: str | Path) -> list[Sample]:
    df = pd.read_csv(Path(csv_path), skipinitialspace=True)
    return frame_to_samples(df)


def write_samples_csv(samples: Sequence[Sample], csv_path: str | Path) -> None:
    samples_to_frame(samples).to_csv(Path(csv_path), index=False)


def read_samples_parquet(path: str | Path) -> list[Sample]:
    return frame_to_samples(pq.read_table(Path(path)).to_pandas())


def write_samples_parquet(samples: Sequence[Sample], path: str | Path) -> None:
    df = samples_to_frame(samples)
    if df.empty:
        table = SAMPLE_SCHEMA.empty_table()
    else:
        table = pa.Table.from_pandas(df, schema=SAMPLE_SCHEMA, preserve_index=False)
    pq.write_table(table, Path(path))


def _type_name(record_type: int) -> str:
    kind = classify(record_type)
    return kind.name if kind is not None else "UNKNOWN"


def write_index_parquet(entries: Iterable[RecordEntry], path: str | Path) -> None:
    """Write one row per data record: where it is and whether it decoded."""
    rows = [
        asdict(e) | {"record_type": int(e.record_type), "type_name": _type_name(e.record_type)} for e in entries
    ]
    if not rows:
        table = INDEX_SCHEMA.empty_table()
    else:
        df = pd.DataFrame(rows)[INDEX_SCHEMA.names]
        table = pa.Table.from_pandas(df, schema=INDEX_SCHEMA, preserve_index=False)
    pq.write_table(table, Path(path))
