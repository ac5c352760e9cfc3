"""Query an exported samples table - best speeds over fixed windows."""
from __future__ import annotations

import sys
from pathlib import Path

import duckdb


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python query.py <samples.parquet> [window_seconds]")
        print("Example: gpy-convert to-parquet track.gpy samples.parquet && python query.py samples.parquet 10")
        sys.exit(1)

    samples = Path(sys.argv[1])
    window = int(sys.argv[2]) if len(sys.argv) > 2 else 10

    con = duckdb.connect(":memory:")
    con.execute(f"CREATE VIEW samples AS SELECT * FROM '{samples}'")

    # Average speed over each aligned window, fixes only.
    sql = f"""
    SELECT
        "dateTime" // {window} * {window} AS window_start,
        COUNT(*) AS n,
        AVG(speed) / 1000.0 AS avg_mps,
        MAX(speed) / 1000.0 AS max_mps
    FROM samples
    WHERE fix >= 2
    GROUP BY window_start
    HAVING COUNT(*) >= {window} * 0.8
    ORDER BY avg_mps DESC
    LIMIT 5
    """

    print(f"--- Top {window}s windows: {samples.name} ---\n")

    df = con.execute(sql).fetchdf()
    if df.empty:
        print("No complete windows with a 2D/3D fix.")
    else:
        for _, row in df.iterrows():
            print(f"WINDOW: {int(row['window_start'])}")
            print(f"  Samples: {int(row['n'])}")
            print(f"  Avg: {row['avg_mps']:.2f} m/s  Max: {row['max_mps']:.2f} m/s")
            print()


if __name__ == "__main__":
    main()
