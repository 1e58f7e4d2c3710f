"""
Race log serialisation, lap sampling for storage, and gzipped race archives.
"""

import gzip
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .race import LapRecord, RaceResult
from .strategy import RaceEvent


def event_to_dict(event: RaceEvent) -> Dict[str, Any]:
    """Convert RaceEvent to dict with enum handling."""
    return {
        "lap": event.lap,
        "driver_id": event.driver_id,
        "desc": event.description,
        "type": event.event_type.value,
    }


def lap_to_dict(lap: LapRecord) -> Dict[str, Any]:
    """Convert LapRecord to a JSON-friendly dict."""
    return {
        "lap": lap.lap,
        "lap_times": dict(lap.lap_times),
        "positions": dict(lap.positions),
        "tyres": {driver_id: compound.value for driver_id, compound in lap.tyres.items()},
        "events": [event_to_dict(e) for e in lap.events],
    }


def sample_laps(laps: Sequence[LapRecord], stride: int = 5) -> List[LapRecord]:
    """Keep every ``stride``-th lap (starting with the first) plus the last one."""
    stride = max(stride, 1)
    return [
        lap for i, lap in enumerate(laps)
        if i % stride == 0 or i == len(laps) - 1
    ]


def result_to_dict(result: RaceResult) -> Dict[str, Any]:
    """Convert a RaceResult to the stored race fields (without the lap log)."""
    return {
        "final_positions": dict(result.final_positions),
        "total_times": dict(result.total_times),
        "dnfs": list(result.dnfs),
    }


class RaceArchive:
    """Writes complete race logs to gzipped JSON files."""

    def __init__(self, log_dir: str = "./data/races"):
        self.log_dir = log_dir

    def write(
        self,
        race_id: str,
        result: RaceResult,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Save the full lap log of a race.

        Args:
            race_id: Race identifier, used in the file name
            result: Race output
            metadata: Extra fields (track, circuit, ...)

        Returns:
            Path to the saved file.
        """
        # Create log directory if needed
        Path(self.log_dir).mkdir(parents=True, exist_ok=True)

        saved_at = datetime.now()
        data = {
            "metadata": {
                "race_id": race_id,
                "saved_at": saved_at.isoformat(),
                **(metadata or {}),
            },
            **result_to_dict(result),
            "laps": [lap_to_dict(lap) for lap in result.laps],
        }

        filename = f"{race_id}_{saved_at.strftime('%Y-%m-%d_%H-%M-%S-%f')}.json.gz"
        filepath = os.path.join(self.log_dir, filename)

        with gzip.open(filepath, "wt", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        return filepath
