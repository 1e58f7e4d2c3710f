"""
Configuration for the paddock weekend simulator.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file
load_dotenv()


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass
class Config:
    """Configuration with environment variable support."""

    # Batch pacing
    league_stagger_sec: float = field(
        default_factory=lambda: _env_float("PADDOCK_LEAGUE_STAGGER_SEC", 300.0)
    )
    post_race_delay_sec: float = field(
        default_factory=lambda: _env_float("PADDOCK_POST_RACE_DELAY_SEC", 3600.0)
    )

    # Notifications (webhook, optional)
    notify_url: Optional[str] = field(
        default_factory=lambda: os.getenv("PADDOCK_NOTIFY_URL") or None
    )
    notify_timeout_sec: float = field(
        default_factory=lambda: _env_float("PADDOCK_NOTIFY_TIMEOUT_SEC", 5.0)
    )

    # Economy
    base_prize: int = 250_000
    point_value: int = 150_000

    # Bot development
    bot_upgrade_chance: float = 0.3

    # Live playback
    update_interval_sec: int = 120
    lap_sample_stride: int = 5  # Store every Nth lap plus the last

    # Race log archive
    archive_races: bool = False
    archive_dir: Path = field(
        default_factory=lambda: Path(os.getenv("PADDOCK_ARCHIVE_DIR", "./data/races"))
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.getenv("PADDOCK_LOG_LEVEL", "INFO")
    )

    def __post_init__(self):
        """Ensure directories exist."""
        if self.archive_races:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
