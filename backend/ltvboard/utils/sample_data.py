"""
Sample data generator for testing.

Generates a realistic-looking LTV snapshot document: several lines, records
appearing and disappearing across a series of weekly snapshot dates.
"""

import json
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

import numpy as np


SAMPLE_REASONS = [
    "Mal estado de la vía",
    "Obras",
    "Renovación de vía",
    "Trabajos en puente",
    "Desprendimientos",
    "Mal estado de traviesas",
    "",
]
SAMPLE_TRACKS = ["U", "1", "2", "I", "P"]
SAMPLE_SPEEDS = [10, 20, 30, 40, 50, 60, 80, 100, 120, 140]


def generate_ltv_document(
    lines: int = 5,
    records_per_line: int = 20,
    snapshots: int = 8,
    start: date = date(2024, 1, 1),
    seed: Optional[int] = 0,
) -> dict:
    """
    Build a `{line: [record, ...]}` document.

    Each record gets a first appearance and a last seen date drawn from the
    weekly snapshot series, so the latest snapshot holds the active subset.
    """
    rng = np.random.default_rng(seed)
    snapshot_dates = [(start + timedelta(weeks=i)).isoformat() for i in range(snapshots)]

    document = {}
    for line_idx in range(lines):
        line = f"L{100 + line_idx * 20:03d}"
        records = []
        for rec_idx in range(records_per_line):
            first = int(rng.integers(0, snapshots))
            last = int(rng.integers(first, snapshots))
            start_km = float(np.round(rng.uniform(0, 400), 1))
            length = float(np.round(rng.uniform(0.1, 8.0), 1))
            records.append({
                "code": f"{line}-{rec_idx:04d}",
                "stations": f"Estación {rec_idx} - Estación {rec_idx + 1}",
                "track": str(rng.choice(SAMPLE_TRACKS)),
                "startKm": f"{start_km:.1f}",
                "endKm": f"{start_km + length:.1f}",
                "speed": str(rng.choice(SAMPLE_SPEEDS)),
                "reason": str(rng.choice(SAMPLE_REASONS)),
                "startDateTime": snapshot_dates[first],
                "endDateTime": "",
                "schedule": "Todo el día",
                "csv": bool(rng.random() < 0.3),
                "comment": "",
                "firstAppearanceDate": snapshot_dates[first],
                "lastSeen": snapshot_dates[last],
            })
        document[line] = records
    return document


def generate_ltv_file(output_path: Path, **kwargs) -> Path:
    """Write a generated document to `output_path` and return the path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    document = generate_ltv_document(**kwargs)
    output_path.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
    return output_path


if __name__ == "__main__":
    import sys

    target = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("./public/data/ltv.json")
    print(f"Generated: {generate_ltv_file(target)}")
