import json, math, random, uuid
from datetime import datetime, timezone
from pathlib import Path

from gpy_core.models import FileHeader, Sample
from gpy_core.protocol import DeviceType, RecordType
from gpy_stream.reader import VERIFIED, read_gpy_file
from gpy_stream.writer import write_gpy_file

# --- CONFIGURATION ---
SAMPLES = 300
REFERENCE_INTERVAL = 32  # seconds
MM_PER_DEGREE = 111_320_000  # along a meridian

def generate_track(n: int, start: int, seed: int | None = None) -> list[Sample]:
    """Random-walk track at 1 Hz, windsurf-ish speeds."""
    rng = random.Random(seed)
    lat = 52_000_000_0 + rng.randint(-1000, 1000)
    lon = 4_000_000_0 + rng.randint(-1000, 1000)
    speed = 5000
    course = rng.randint(0, 359) * 100_000

    track = []
    for i in range(n):
        speed = max(0, min(15000, speed + rng.randint(-300, 300)))
        course = (course + rng.randint(-500_000, 500_000)) % 36_000_000
        rad = math.radians(course / 100_000)
        lat += int(speed * math.cos(rad) * 1e7 / MM_PER_DEGREE)
        lon += int(speed * math.sin(rad) * 1e7 / (MM_PER_DEGREE * math.cos(math.radians(lat / 1e7))))
        track.append(Sample(
            hdop=rng.randint(60, 150),
            timestamp=start + i,
            speed=speed,
            speed_err=rng.randint(100, 400),
            latitude=lat,
            longitude=lon,
            course=course,
            sats=rng.randint(6, 14),
            fix=3,
        ))
    return track

def corrupt_reference(path: Path, which: int = 1) -> int:
    """Flip one byte inside the `which`-th reference record. Returns the offset."""
    result = read_gpy_file(path, keep_index=True)
    refs = [e for e in result.index if e.record_type == RecordType.MINIMAL and e.status == VERIFIED]
    if not refs:
        raise SystemExit(f"No reference records to corrupt in {path}")
    target = refs[min(which, len(refs) - 1)]
    idx = target.offset + 10  # inside the timestamp field
    b = bytearray(path.read_bytes())
    b[idx] ^= 0x01
    path.write_bytes(bytes(b))
    return idx

def generate_session(out_dir, corrupt=False, samples=SAMPLES, seed=None) -> Path:
    sess_id = str(uuid.uuid4())
    path = Path(out_dir) / f"session-{sess_id[:8]}"
    path.mkdir(parents=True, exist_ok=True)

    start = int(datetime.now(timezone.utc).timestamp())
    header = FileHeader(
        device_type=DeviceType.UBLOX,
        device_description="sim-logger",
        device_name=f"sim-{sess_id[:4]}",
        serial_number=sess_id[:16],
        firmware_version="sim 1.0",
    )
    track_path = path / "track.gpy"
    stats = write_gpy_file(track_path, header, generate_track(samples, start, seed), REFERENCE_INTERVAL)

    meta = {"session_id": sess_id, "started_at": start, "samples": samples, "writer": stats}
    if corrupt:
        meta["corrupted_offset"] = corrupt_reference(track_path)

    (path / "meta.json").write_text(json.dumps(meta, indent=2) + "\n", encoding="utf-8")
    print(f"GENERATED: {path} (Corrupt={corrupt})")
    return path

if __name__ == "__main__":
    import sys

    # Usage:
    #   python tools/sim_logger.py OUT_DIR [--runs N] [--samples N] [--corrupt]

    args = [a for a in sys.argv[1:] if a]

    def pop_flag(arg_list: list[str], flag: str) -> tuple[bool, list[str]]:
        """Remove a boolean flag from an argv-style list."""
        if flag in arg_list:
            return True, [a for a in arg_list if a != flag]
        return False, arg_list

    def pop_int(arg_list: list[str], name: str, default: int) -> tuple[int, list[str]]:
        if name not in arg_list:
            return default, arg_list
        i = arg_list.index(name)
        if i + 1 >= len(arg_list):
            raise SystemExit(f"{name} requires a value")
        return int(arg_list[i + 1]), arg_list[:i] + arg_list[i + 2:]

    corrupt, args = pop_flag(args, "--corrupt")
    runs, args = pop_int(args, "--runs", 1)
    samples, args = pop_int(args, "--samples", SAMPLES)

    out = args[0] if len(args) > 0 else "sim_sessions"
    for _ in range(runs):
        generate_session(out, corrupt=corrupt, samples=samples)
