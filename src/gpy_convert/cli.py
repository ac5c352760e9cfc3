"""Compact GNSS - .gpy <-> CSV / Parquet converter."""
from __future__ import annotations

import logging
import warnings
from contextlib import contextmanager
from pathlib import Path

import click

from gpy_core.errors import GpyFormatError
from gpy_core.models import FileHeader
from gpy_core.protocol import DeviceType
from gpy_stream.reader import DroppedRecordsWarning, ReadResult, read_gpy_file
from gpy_stream.writer import write_gpy_file
from gpy_convert.tables import (
    read_samples_csv,
    read_samples_parquet,
    write_index_parquet,
    write_samples_csv,
    write_samples_parquet,
)

# Matches the "reference every 32 seconds" convention of existing loggers.
# Library callers get no periodic refresh unless they ask for one.
DEFAULT_REFERENCE_INTERVAL = 32

FIRMWARE_TAG = "gpy-convert"


@contextmanager
def _fail_closed():
    # One line, no stack trace, non-zero exit.
    try:
        yield
    except (GpyFormatError, OSError, ValueError) as e:
        msg = str(e)
        click.echo(msg if msg.startswith("FATAL") else f"FATAL: {msg}", err=True)
        raise SystemExit(1)


def _read(path: Path, keep_index: bool = False) -> ReadResult:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DroppedRecordsWarning)
        result = read_gpy_file(path, keep_index=keep_index)
    s = result.stats
    click.echo(
        f"records={s['records']}, samples={s['samples']}, checksum_errors={s['checksum_errors']}, "
        f"no_reference={s['no_reference']}, unknown={s['unknown_records']}",
        err=True,
    )
    for problem in result.problems:
        click.echo(f"  {problem}", err=True)
    if s["problems_suppressed"]:
        click.echo(f"  ... {s['problems_suppressed']} more", err=True)
    return result


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log every skipped record")
def main(verbose: bool) -> None:
    """Convert between .gpy, CSV and Parquet."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command("to-csv")
@click.argument("gpy", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None)
def to_csv_cmd(gpy: Path, out: Path | None) -> None:
    """Decode a .gpy file into CSV."""
    out = out or gpy.with_suffix(".csv")
    with _fail_closed():
        result = _read(gpy)
        write_samples_csv(result.samples, out)
    click.echo(f"Wrote .csv file {out.resolve()}")


@main.command("to-parquet")
@click.argument("gpy", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out", type=click.Path(dir_okay=False, path_type=Path))
def to_parquet_cmd(gpy: Path, out: Path) -> None:
    """Decode a .gpy file into a Parquet samples table."""
    with _fail_closed():
        result = _read(gpy)
        write_samples_parquet(result.samples, out)
    click.echo(f"Wrote {len(result.samples)} samples to {out.resolve()}")


@main.command("index")
@click.argument("gpy", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out", type=click.Path(dir_okay=False, path_type=Path))
def index_cmd(gpy: Path, out: Path) -> None:
    """Write a Parquet table locating every data record and its status."""
    with _fail_closed():
        result = _read(gpy, keep_index=True)
        write_index_parquet(result.index, out)
    click.echo(f"Wrote {len(result.index)} index rows to {out.resolve()}")


@main.command("to-gpy")
@click.argument("src", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--force", is_flag=True, help="Overwrite an existing .gpy file")
@click.option(
    "--reference-interval",
    type=click.IntRange(min=0),
    default=DEFAULT_REFERENCE_INTERVAL,
    show_default=True,
    help="Seconds between forced reference records; 0 disables",
)
@click.option(
    "--device-type",
    type=click.Choice([d.name.lower() for d in DeviceType]),
    default="unknown",
    show_default=True,
)
def to_gpy_cmd(src: Path, out: Path | None, force: bool, reference_interval: int, device_type: str) -> None:
    """Encode a CSV or Parquet samples table into a .gpy file."""
    out = out or src.with_suffix(".gpy")
    if out.exists() and not force:
        click.echo(f"File {out.name} exists, not overwriting .gpy files.", err=True)
        raise SystemExit(1)

    header = FileHeader(
        device_type=DeviceType[device_type.upper()],
        device_description="File",
        device_name=src.name,
        serial_number="unknown",
        firmware_version=FIRMWARE_TAG,
    )
    with _fail_closed():
        if src.suffix.lower() == ".parquet":
            samples = read_samples_parquet(src)
        else:
            samples = read_samples_csv(src)
        stats = write_gpy_file(out, header, samples, reference_interval or None)

    click.echo(f"Wrote .gpy file {out.resolve()}")
    click.echo(f"  Reference records: {stats['uncompressed']}")
    click.echo(f"  Compressed records: {stats['compressed']}")
    click.echo(f"  Bytes: {stats['bytes']}")


if __name__ == "__main__":
    main()
