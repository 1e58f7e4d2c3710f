"""
Entrant inputs: car and driver ratings, setups, and manager role modifiers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Compound(Enum):
    """Tyre compound."""
    SOFT = "soft"
    MEDIUM = "medium"
    HARD = "hard"


class Style(Enum):
    """Driving style."""
    NORMAL = "normal"
    OFFENSIVE = "offensive"
    DEFENSIVE = "defensive"
    MOST_RISKY = "mostRisky"


class ManagerRole(Enum):
    """Team-level manager background, applied to every entrant of the team."""
    NONE = ""
    EX_DRIVER = "exDriver"
    EX_ENGINEER = "exEngineer"
    BUSINESS_ADMIN = "businessAdmin"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "ManagerRole":
        """Parse a stored role tag; unknown or missing tags map to NONE."""
        for role in cls:
            if role.value == (tag or ""):
                return role
        return cls.NONE

    def extra_crash_probability(self) -> float:
        return 0.05 if self is ManagerRole.EX_DRIVER else 0.0

    def race_pace(self, lap_time: float) -> float:
        if self is ManagerRole.EX_DRIVER:
            return lap_time * 0.98
        if self is ManagerRole.BUSINESS_ADMIN:
            return lap_time * 1.02
        return lap_time

    def qualifying_pace(self, lap_time: float) -> float:
        # Only meaningful for clean laps; callers skip crashed laps
        if self is ManagerRole.EX_ENGINEER:
            return lap_time * 0.95
        return lap_time

    def tyre_wear(self, wear: float) -> float:
        if self is ManagerRole.EX_ENGINEER:
            return wear * 0.9
        return wear


@dataclass(frozen=True)
class CarStats:
    """Car ratings for one car slot, conceptually in [1, 20]."""
    aero: float = 1
    powertrain: float = 1
    chassis: float = 1

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CarStats":
        data = data or {}
        return cls(
            aero=data.get("aero") or 1,
            powertrain=data.get("powertrain") or 1,
            chassis=data.get("chassis") or 1,
        )


@dataclass(frozen=True)
class DriverStats:
    """Driver skill ratings in [0, 100]."""
    braking: float = 50
    cornering: float = 50
    focus: float = 50

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DriverStats":
        data = data or {}
        # Stored nulls mean unrated; an explicit 0 is a real rating
        return cls(**{
            name: 50 if data.get(name) is None else data[name]
            for name in ("braking", "cornering", "focus")
        })


# Stored submissions use the game client's camelCase keys
_SETUP_KEYS = {
    "frontWing": "front_wing",
    "rearWing": "rear_wing",
    "gearRatio": "gear_ratio",
    "tyreCompound": "tyre_compound",
    "qualifyingStyle": "qualifying_style",
    "raceStyle": "race_style",
    "initialFuel": "initial_fuel",
    "pitStops": "pit_stops",
    "pitStopStyles": "pit_stop_styles",
    "pitStopFuel": "pit_stop_fuel",
}


@dataclass(frozen=True)
class Setup:
    """A team's car configuration plus its strategic plan for one driver."""
    front_wing: float = 50
    rear_wing: float = 50
    suspension: float = 50
    gear_ratio: float = 50
    tyre_compound: Compound = Compound.MEDIUM
    qualifying_style: Style = Style.NORMAL
    race_style: Style = Style.NORMAL
    initial_fuel: float = 50.0
    pit_stops: Tuple[Compound, ...] = (Compound.HARD,)
    pit_stop_styles: Tuple[Style, ...] = (Style.NORMAL,)
    pit_stop_fuel: Tuple[float, ...] = (50.0,)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], base: Optional["Setup"] = None) -> "Setup":
        """
        Overlay a stored setup submission on a base setup.

        Args:
            data: Submission dict (camelCase or snake_case keys)
            base: Setup providing values for missing keys (DEFAULT_SETUP if None)

        Returns:
            The merged setup.
        """
        values = dict((base or DEFAULT_SETUP).to_dict())
        for key, value in (data or {}).items():
            values[_SETUP_KEYS.get(key, key)] = value

        return cls(
            front_wing=float(values["front_wing"]),
            rear_wing=float(values["rear_wing"]),
            suspension=float(values["suspension"]),
            gear_ratio=float(values["gear_ratio"]),
            tyre_compound=Compound(values["tyre_compound"]),
            qualifying_style=Style(values["qualifying_style"]),
            race_style=Style(values["race_style"]),
            initial_fuel=float(values["initial_fuel"]),
            pit_stops=tuple(Compound(c) for c in values["pit_stops"]),
            pit_stop_styles=tuple(Style(s) for s in values["pit_stop_styles"]),
            pit_stop_fuel=tuple(float(f) for f in values["pit_stop_fuel"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dict with enum values."""
        return {
            "front_wing": self.front_wing,
            "rear_wing": self.rear_wing,
            "suspension": self.suspension,
            "gear_ratio": self.gear_ratio,
            "tyre_compound": self.tyre_compound.value,
            "qualifying_style": self.qualifying_style.value,
            "race_style": self.race_style.value,
            "initial_fuel": self.initial_fuel,
            "pit_stops": [c.value for c in self.pit_stops],
            "pit_stop_styles": [s.value for s in self.pit_stop_styles],
            "pit_stop_fuel": list(self.pit_stop_fuel),
        }


DEFAULT_SETUP = Setup()


@dataclass
class Entrant:
    """Everything the race loop needs to know about one driver."""
    driver_id: str
    name: str
    team_id: str
    team_name: str = ""
    car_index: int = 0
    car: CarStats = field(default_factory=CarStats)
    stats: DriverStats = field(default_factory=DriverStats)
    setup: Setup = DEFAULT_SETUP
    role: ManagerRole = ManagerRole.NONE
