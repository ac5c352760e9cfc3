import pandas as pd
import pyarrow.parquet as pq
import pytest

from gpy_core.models import Sample
from gpy_core.protocol import RecordType
from gpy_convert.tables import (
    CSV_COLUMNS,
    frame_to_samples,
    read_samples_csv,
    read_samples_parquet,
    samples_to_frame,
    write_index_parquet,
    write_samples_csv,
    write_samples_parquet,
)
from gpy_stream.reader import RecordEntry

SAMPLES = [
    Sample(0, 95, 1_670_000_000, 5000, 200, 520_000_000, 40_000_000, 9_000_000, 9, 3),
    Sample(0, 90, 1_670_000_001, 5100, 210, -520_000_050, -40_000_030, 35_999_999, 10, 2),
]


def test_frame_columns_follow_csv_layout():
    df = samples_to_frame(SAMPLES)
    assert list(df.columns) == CSV_COLUMNS
    assert df["dateTime"].tolist() == [1_670_000_000, 1_670_000_001]


def test_csv_roundtrip(tmp_path):
    p = tmp_path / "track.csv"
    write_samples_csv(SAMPLES, p)
    assert p.read_text().splitlines()[0] == ",".join(CSV_COLUMNS)
    assert read_samples_csv(p) == SAMPLES


def test_csv_missing_column(tmp_path):
    p = tmp_path / "bad.csv"
    p.write_text("flags,hdop,dateTime\n0,1,2\n")
    with pytest.raises(ValueError):
        read_samples_csv(p)


def test_frame_to_samples_ignores_extra_columns():
    df = samples_to_frame(SAMPLES).assign(note="x")
    assert frame_to_samples(df) == SAMPLES


def test_parquet_roundtrip_uses_declared_widths(tmp_path):
    p = tmp_path / "samples.parquet"
    write_samples_parquet(SAMPLES, p)
    schema = pq.read_schema(p)
    assert str(schema.field("latitude").type) == "int32"
    assert str(schema.field("course").type) == "uint32"
    assert read_samples_parquet(p) == SAMPLES


def test_empty_parquet(tmp_path):
    p = tmp_path / "empty.parquet"
    write_samples_parquet([], p)
    assert pq.read_table(p).num_rows == 0
    assert read_samples_parquet(p) == []


def test_index_parquet(tmp_path):
    p = tmp_path / "index.parquet"
    entries = [
        RecordEntry(1, 72, RecordType.MINIMAL, 36, "VERIFIED"),
        RecordEntry(2, 108, 0x42, 16, "UNKNOWN"),
    ]
    write_index_parquet(entries, p)
    df = pq.read_table(p).to_pandas()
    assert df["type_name"].tolist() == ["MINIMAL", "UNKNOWN"]
    assert df["offset"].tolist() == [72, 108]
    assert isinstance(df, pd.DataFrame)


def test_csv_fractional_values_are_rejected(tmp_path):
    p = tmp_path / "fractional.csv"
    p.write_text(
        ",".join(CSV_COLUMNS) + "\n"
        "0,95,1670000000,5000,200,520000000.9,40000000,9000000,9,3\n"
    )
    with pytest.raises(ValueError, match="latitude"):
        read_samples_csv(p)


def test_csv_non_numeric_values_are_rejected(tmp_path):
    p = tmp_path / "text.csv"
    p.write_text(",".join(CSV_COLUMNS) + "\n" "0,95,1670000000,fast,200,520000000,40000000,9000000,9,3\n")
    with pytest.raises(ValueError, match="speed"):
        read_samples_csv(p)


def test_whole_floats_are_accepted():
    df = samples_to_frame(SAMPLES).astype({"latitude": "float64"})
    assert frame_to_samples(df) == SAMPLES
