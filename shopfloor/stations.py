"""Station registry describing the fixed production pipeline."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .domain import COMPLETED_ORDER_STATUS, Station
from .errors import InvalidStation

StationRef = Union[str, Station]

# code, display name, order status label shown while the slowest part is there
DEFAULT_STATIONS = (
    {"code": "wallsaw", "name": "Wall Saw", "status": "Cutting"},
    {"code": "cnc", "name": "CNC", "status": "Drilling"},
    {"code": "banding", "name": "Edge Banding", "status": "Edge Banding"},
    {"code": "packaging", "name": "Packaging", "status": "Assembly"},
    {"code": "complete", "name": "Complete", "status": COMPLETED_ORDER_STATUS},
)


class StationRegistry:
    """Ordered, immutable pipeline of stations.

    Stations are numbered by their position in the configuration. The last
    one is terminal. Any station may be scanned at any time, so moving a part
    back to an earlier station (rework) is legal.
    """

    def __init__(self, stations: Iterable[Station]) -> None:
        ordered = sorted(stations, key=lambda station: station.ordinal)
        if not ordered:
            raise ValueError("A station registry needs at least one station")
        ordinals = [station.ordinal for station in ordered]
        if len(set(ordinals)) != len(ordinals):
            raise ValueError("Station ordinals must be unique")
        self._stations = tuple(ordered)
        self._lookup: Dict[str, Station] = {}
        for station in self._stations:
            for key in {station.code.lower(), station.name.lower()}:
                existing = self._lookup.get(key)
                if existing is not None and existing is not station:
                    raise ValueError(f"Station name {key!r} is used twice")
                self._lookup[key] = station

    @classmethod
    def from_config(cls, entries: Iterable[Mapping[str, str]]) -> "StationRegistry":
        stations = []
        for ordinal, entry in enumerate(entries):
            code = str(entry["code"]).strip()
            if not code:
                raise ValueError("Station code must not be empty")
            name = str(entry.get("name") or code)
            stations.append(
                Station(
                    code=code,
                    name=name,
                    ordinal=ordinal,
                    status_label=str(entry.get("status") or name),
                )
            )
        return cls(stations)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StationRegistry":
        with open(path, encoding="utf-8") as handle:
            entries = json.load(handle)
        if not isinstance(entries, list):
            raise ValueError(f"Station configuration in {path} must be a JSON list")
        return cls.from_config(entries)

    @classmethod
    def default(cls) -> "StationRegistry":
        return cls.from_config(DEFAULT_STATIONS)

    def __len__(self) -> int:
        return len(self._stations)

    def __iter__(self):
        return iter(self._stations)

    def __contains__(self, station: object) -> bool:
        if isinstance(station, Station):
            return station in self._stations
        if isinstance(station, str):
            return station.strip().lower() in self._lookup
        return False

    def stations(self) -> List[Station]:
        return list(self._stations)

    def get(self, station: StationRef) -> Station:
        if isinstance(station, Station):
            if station not in self._stations:
                raise InvalidStation(station.code)
            return self._lookup[station.code.lower()]
        if not isinstance(station, str):
            raise InvalidStation(station)
        try:
            return self._lookup[station.strip().lower()]
        except KeyError:
            raise InvalidStation(station) from None

    @property
    def first(self) -> Station:
        return self._stations[0]

    @property
    def terminal(self) -> Station:
        return self._stations[-1]

    def ordinal_of(self, station: StationRef) -> int:
        return self.get(station).ordinal

    def is_terminal(self, station: StationRef) -> bool:
        return self.get(station) is self.terminal

    def next_station(self, station: StationRef) -> Optional[Station]:
        current = self.get(station)
        index = self._stations.index(current)
        if index + 1 >= len(self._stations):
            return None
        return self._stations[index + 1]

    def status_label(self, station: StationRef) -> str:
        return self.get(station).status_label


__all__ = ["StationRegistry", "DEFAULT_STATIONS", "StationRef"]
