import sys
from pathlib import Path

from gpy_core.protocol import FILE_HEADER_LEN

def main():
    if len(sys.argv) not in (2, 3):
        print("Usage: corrupt_one_byte.py <file.gpy> [offset]")
        raise SystemExit(2)

    p = Path(sys.argv[1])
    b = bytearray(p.read_bytes())

    # Default: the timestamp field of the first data record.
    # File header is 72 bytes; type, flags and hdop take 4 more.
    idx = int(sys.argv[2]) if len(sys.argv) == 3 else FILE_HEADER_LEN + 4
    if idx >= len(b):
        print(f"Offset {idx} is past the end of {p} ({len(b)} bytes).")
        raise SystemExit(2)

    b[idx] ^= 0x01
    p.write_bytes(bytes(b))
    print(f"Corrupted 1 byte at offset {idx} in {p}")

if __name__ == "__main__":
    main()
