"""
Track replay - feed a recorded walk through the engine.

Track formats:
- CSV: latitude,longitude[,timestamp] (header row optional)
- JSON lines: {"latitude": .., "longitude": .., "timestamp": ..}

Timestamps are epoch seconds. When a track has none, fixes are spaced
`step_s` seconds apart starting now.
"""

import csv
import json
import time
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterator, List, Optional

from canyon_zone import Coordinate


@dataclass(frozen=True)
class TrackPoint:
    """One recorded fix."""

    coordinate: Coordinate
    timestamp: Optional[float] = None


def read_track(path: Path) -> List[TrackPoint]:
    """
    Read a track file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a row cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Track not found: {path}")

    if path.suffix in (".jsonl", ".ndjson", ".json"):
        return list(_read_json_lines(path))
    return list(_read_csv(path))


def _read_csv(path: Path) -> Iterator[TrackPoint]:
    with open(path, newline="", encoding="utf-8") as f:
        for line_no, row in enumerate(csv.reader(f), start=1):
            if not row or row[0].strip().startswith("#"):
                continue
            if line_no == 1 and row[0].strip().lower() in ("lat", "latitude"):
                continue
            try:
                timestamp = float(row[2]) if len(row) > 2 and row[2].strip() else None
                yield TrackPoint(Coordinate(float(row[0]), float(row[1])), timestamp)
            except (IndexError, ValueError) as e:
                raise ValueError(f"{path}:{line_no}: invalid track row {row}: {e}")


def _read_json_lines(path: Path) -> Iterator[TrackPoint]:
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                item = json.loads(line)
                timestamp = item.get("timestamp")
                yield TrackPoint(
                    Coordinate(float(item["latitude"]), float(item["longitude"])),
                    float(timestamp) if timestamp is not None else None,
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"{path}:{line_no}: invalid track entry: {e}")


class ReplayClock:
    """
    Simulated time for a replay.

    Drives both the rate limiter (monotonic seconds) and day counting
    (local calendar date of the current fix).
    """

    def __init__(self, start: Optional[float] = None, step_s: float = 1.0):
        self.current = time.time() if start is None else start
        self.step_s = step_s
        self._started = False

    def advance(self, timestamp: Optional[float] = None) -> None:
        """Move to the next fix's time."""
        if timestamp is not None:
            self.current = timestamp
        elif self._started:
            self.current += self.step_s
        self._started = True

    def monotonic(self) -> float:
        return self.current

    def today(self) -> date:
        return date.fromtimestamp(self.current)
