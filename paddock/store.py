"""
Persistent store interface used by the weekend orchestrator.

Records are plain dicts with snake_case keys. ``InMemoryStore`` keeps them
in memory and can round-trip the whole world through a JSON file.
"""

import copy
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

Record = Dict[str, Any]

COLLECTIONS = ("leagues", "seasons", "races", "race_laps", "teams", "drivers", "managers")


class RaceStore(ABC):
    """Reads and writes league, season, race, team, driver and manager records."""

    @abstractmethod
    def leagues(self) -> List[Record]:
        """All active leagues."""

    @abstractmethod
    def get_season(self, season_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    def update_season(self, season_id: str, fields: Record) -> None:
        ...

    @abstractmethod
    def get_race(self, race_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    def update_race(self, race_id: str, fields: Record) -> None:
        """Merge fields into a race record, creating it if needed."""

    @abstractmethod
    def save_race_laps(self, race_id: str, laps: List[Record]) -> None:
        ...

    @abstractmethod
    def finished_races_pending_post_race(self) -> List[Tuple[str, Record]]:
        """Races with ``is_finished`` set and ``post_race_processed`` unset."""

    @abstractmethod
    def get_team(self, team_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    def update_team(self, team_id: str, fields: Record) -> None:
        ...

    @abstractmethod
    def get_driver(self, driver_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    def get_team_drivers(self, team_id: str) -> List[Record]:
        """Drivers of a team, in car-slot order."""

    @abstractmethod
    def get_manager(self, manager_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    def increment(self, collection: str, record_id: str, counters: Dict[str, float]) -> None:
        """Add each counter value to the named field of a driver or team record."""

    def get_teams(self, team_ids: Iterable[str]) -> List[Record]:
        """Teams that exist, in the requested order."""
        teams = []
        for team_id in team_ids:
            team = self.get_team(team_id)
            if team is not None:
                teams.append(team)
        return teams

    def all_teams(self) -> List[Record]:
        teams = []
        for league in self.leagues():
            for division in league.get("divisions", []):
                teams.extend(self.get_teams(division.get("team_ids", [])))
        return teams


class InMemoryStore(RaceStore):
    """Dict-backed store. Reads return copies, like a remote store would."""

    def __init__(self, data: Optional[Dict[str, Dict[str, Record]]] = None):
        self._data: Dict[str, Dict[str, Record]] = {name: {} for name in COLLECTIONS}
        for name, records in (data or {}).items():
            self._data.setdefault(name, {}).update(copy.deepcopy(records))

    @classmethod
    def from_json(cls, path: str) -> "InMemoryStore":
        with open(path, "r", encoding="utf-8") as f:
            return cls(json.load(f))

    def save(self, path: str) -> str:
        """Write the whole world to a JSON file."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2)
        return path

    def put(self, collection: str, record_id: str, record: Record) -> None:
        """Insert or replace a record."""
        self._data[collection][record_id] = copy.deepcopy(record)

    def _get(self, collection: str, record_id: str) -> Optional[Record]:
        record = self._data[collection].get(record_id)
        if record is None:
            return None
        record = copy.deepcopy(record)
        record.setdefault("id", record_id)
        return record

    def _merge(self, collection: str, record_id: str, fields: Record) -> None:
        self._data[collection].setdefault(record_id, {}).update(copy.deepcopy(fields))

    def leagues(self) -> List[Record]:
        leagues = []
        for league_id, league in self._data["leagues"].items():
            league = copy.deepcopy(league)
            league.setdefault("id", league_id)
            leagues.append(league)
        return leagues

    def get_season(self, season_id: str) -> Optional[Record]:
        return self._get("seasons", season_id)

    def update_season(self, season_id: str, fields: Record) -> None:
        self._merge("seasons", season_id, fields)

    def get_race(self, race_id: str) -> Optional[Record]:
        return self._get("races", race_id)

    def update_race(self, race_id: str, fields: Record) -> None:
        self._merge("races", race_id, fields)

    def save_race_laps(self, race_id: str, laps: List[Record]) -> None:
        self._data["race_laps"][race_id] = {"laps": copy.deepcopy(laps)}

    def get_race_laps(self, race_id: str) -> List[Record]:
        stored = self._data["race_laps"].get(race_id, {})
        return copy.deepcopy(stored.get("laps", []))

    def finished_races_pending_post_race(self) -> List[Tuple[str, Record]]:
        return [
            (race_id, copy.deepcopy(race))
            for race_id, race in self._data["races"].items()
            if race.get("is_finished") and not race.get("post_race_processed")
        ]

    def get_team(self, team_id: str) -> Optional[Record]:
        return self._get("teams", team_id)

    def update_team(self, team_id: str, fields: Record) -> None:
        self._merge("teams", team_id, fields)

    def get_driver(self, driver_id: str) -> Optional[Record]:
        return self._get("drivers", driver_id)

    def get_team_drivers(self, team_id: str) -> List[Record]:
        drivers = []
        for driver_id, driver in self._data["drivers"].items():
            if driver.get("team_id") == team_id:
                driver = copy.deepcopy(driver)
                driver.setdefault("id", driver_id)
                drivers.append(driver)
        return drivers

    def get_manager(self, manager_id: str) -> Optional[Record]:
        return self._get("managers", manager_id)

    def increment(self, collection: str, record_id: str, counters: Dict[str, float]) -> None:
        record = self._data[collection].setdefault(record_id, {})
        for key, amount in counters.items():
            record[key] = record.get(key, 0) + amount
