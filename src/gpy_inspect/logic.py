import warnings
from dataclasses import asdict
from pathlib import Path

from gpy_core.errors import ChecksumMismatch, GpyFormatError, TruncatedRecord
from gpy_core.protocol import DeviceType
from gpy_stream.reader import DroppedRecordsWarning, read_gpy_file
from .const import ERRORS


def _fail(code: str, **detail) -> dict:
    errors = [{"code": code, "message": ERRORS[code], **detail}]
    return {"status": "FAIL", "error_count": len(errors), "errors": errors}


def _fatal_code(e: GpyFormatError) -> str:
    # Nothing but the header can start at offset 0.
    if e.offset == 0:
        return "E_HEADER"
    if isinstance(e, TruncatedRecord):
        return "E_TRUNCATED"
    if isinstance(e, ChecksumMismatch):
        return "E_UNKNOWN_CHECKSUM"
    return "E_MALFORMED"


def inspect_file(path: Path) -> dict:
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DroppedRecordsWarning)
            result = read_gpy_file(path)
    except OSError as e:
        return _fail("E_IO", path=str(path), detail=str(e))
    except GpyFormatError as e:
        return _fail(_fatal_code(e), offset=e.offset, detail=str(e))

    errors = []
    stats = result.stats
    if stats["checksum_errors"]:
        errors.append({"code": "E_CHECKSUM", "message": ERRORS["E_CHECKSUM"], "count": stats["checksum_errors"]})
    if stats["no_reference"]:
        errors.append({"code": "E_NO_REFERENCE", "message": ERRORS["E_NO_REFERENCE"], "count": stats["no_reference"]})

    header = asdict(result.header)
    dev = header["device_type"]
    header["device_type"] = dev.name if isinstance(dev, DeviceType) else int(dev)

    return {
        "status": "WARN" if errors else "PASS",
        "error_count": len(errors),
        "errors": errors,
        "problems": result.problems,
        "header": header,
        "stats": stats,
    }
