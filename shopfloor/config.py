"""Runtime configuration loaded from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .poller import DEFAULT_POLL_INTERVAL
from .stations import StationRegistry

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    """Settings for the tracking service and its web app."""

    database_path: str = "shopfloor.sqlite3"
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL
    stations_file: Optional[str] = None
    seed_demo_data: bool = False
    log_level: str = "INFO"
    start_poller: bool = True

    @classmethod
    def from_env(cls, *, dotenv_path: Optional[str] = None) -> "Settings":
        load_dotenv(dotenv_path=dotenv_path)
        defaults = cls()
        interval_text = os.getenv("SHOPFLOOR_POLL_INTERVAL")
        try:
            interval = float(interval_text) if interval_text else defaults.poll_interval_seconds
        except ValueError:
            interval = defaults.poll_interval_seconds
        return cls(
            database_path=os.getenv("SHOPFLOOR_DATABASE", defaults.database_path),
            poll_interval_seconds=max(interval, 0.1),
            stations_file=os.getenv("SHOPFLOOR_STATIONS_FILE") or None,
            seed_demo_data=os.getenv("SHOPFLOOR_SEED_DEMO", "").strip().lower() in TRUE_VALUES,
            log_level=os.getenv("SHOPFLOOR_LOG_LEVEL", defaults.log_level).upper(),
        )

    def station_registry(self) -> StationRegistry:
        if self.stations_file:
            return StationRegistry.from_file(self.stations_file)
        return StationRegistry.default()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["Settings", "configure_logging"]
