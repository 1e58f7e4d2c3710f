"""
Per-entrant race state: fuel, tyres, pit stops and retirements.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .circuits import CircuitProfile
from .entrants import Compound, Entrant, Style
from .performance import RandomSource, simulate_lap


class EventType(Enum):
    """Kinds of narrative race events."""
    CRASH = "CRASH"
    PIT = "PIT"
    OVERTAKE = "OVERTAKE"
    INFO = "INFO"


@dataclass
class RaceEvent:
    """A narrative event in the lap log."""
    lap: int
    driver_id: str
    description: str
    event_type: EventType


@dataclass
class EntrantRaceState:
    """Mutable race state for one driver, initialised from the setup."""
    compound: Compound
    style: Style
    fuel: float
    tyre_wear: float = 0.0
    total_time: float = 0.0
    stops: int = 0
    used_hard: bool = False
    dnf: bool = False
    laps_completed: int = 0

    @classmethod
    def from_entrant(cls, entrant: Entrant) -> "EntrantRaceState":
        setup = entrant.setup
        return cls(
            compound=setup.tyre_compound,
            style=setup.race_style,
            fuel=setup.initial_fuel or 50.0,
            used_hard=setup.tyre_compound is Compound.HARD,
        )


@dataclass
class LapStep:
    """Outcome of advancing one entrant by one lap."""
    lap_time: Optional[float]  # None if the entrant retired this lap
    events: List[RaceEvent] = field(default_factory=list)


class EntrantStateMachine:
    """Advances one entrant lap by lap: RUNNING until a crash makes it DNF."""

    # Fuel units burnt per lap before circuit and style multipliers
    BASE_FUEL_CONSUMPTION = 2.5

    # Pit triggers
    PIT_WEAR_THRESHOLD = 80.0
    PIT_FUEL_LAPS = 2.5

    # Penalties (seconds)
    WEAR_PENALTY_SCALE = 8.0
    FUEL_WEIGHT_PENALTY = 1.5
    OUT_OF_FUEL_PENALTY = 10.0
    OUT_OF_FUEL_RESIDUAL = 0.5
    PIT_STOP_BASE = 24.0
    PIT_STOP_SPREAD = 2.0

    BASE_WEAR_PER_LAP = 4.5
    DEFAULT_REFUEL = 50.0

    STYLE_FUEL = {
        Style.NORMAL: 1.0,
        Style.DEFENSIVE: 0.85,
        Style.OFFENSIVE: 1.15,
        Style.MOST_RISKY: 1.35,
    }
    STYLE_WEAR = {
        Style.NORMAL: 1.0,
        Style.DEFENSIVE: 0.75,
        Style.OFFENSIVE: 1.25,
        Style.MOST_RISKY: 1.6,
    }
    COMPOUND_WEAR = {
        Compound.SOFT: 1.6,
        Compound.MEDIUM: 1.1,
        Compound.HARD: 0.7,
    }

    def __init__(self, entrant: Entrant, circuit: CircuitProfile, total_laps: int):
        self.entrant = entrant
        self.circuit = circuit
        self.total_laps = total_laps
        self.state = EntrantRaceState.from_entrant(entrant)

    @property
    def base_consumption(self) -> float:
        return self.BASE_FUEL_CONSUMPTION * self.circuit.fuel_consumption_multiplier

    def advance(self, lap: int, rng: RandomSource) -> LapStep:
        """
        Run one lap for this entrant.

        Args:
            lap: 1-based lap number
            rng: Uniform random source

        Returns:
            LapStep with the lap time (None on retirement) and events.
        """
        if self.state.dnf:
            return LapStep(lap_time=None)

        entrant = self.entrant
        state = self.state
        events: List[RaceEvent] = []

        outcome = simulate_lap(
            self.circuit,
            entrant.car,
            entrant.stats,
            entrant.setup,
            state.style,
            entrant.role,
            rng,
        )
        if outcome.crashed:
            state.dnf = True
            events.append(RaceEvent(lap, entrant.driver_id, "CRASH: Retired from race", EventType.CRASH))
            return LapStep(lap_time=None, events=events)

        lap_time = entrant.role.race_pace(outcome.lap_time)
        lap_time += (state.tyre_wear / 100.0) ** 2 * self.WEAR_PENALTY_SCALE
        lap_time += (state.fuel / 100.0) * self.FUEL_WEIGHT_PENALTY

        state.fuel -= self.base_consumption * self.STYLE_FUEL[state.style]
        if state.fuel <= 0:
            lap_time += self.OUT_OF_FUEL_PENALTY
            state.fuel = self.OUT_OF_FUEL_RESIDUAL
            events.append(RaceEvent(lap, entrant.driver_id, "OUT OF FUEL: Limping to pits", EventType.INFO))

        if self._needs_pit() and lap < self.total_laps:
            lap_time += self.PIT_STOP_BASE + rng.random() * self.PIT_STOP_SPREAD
            compound = self._pit()
            events.append(RaceEvent(
                lap,
                entrant.driver_id,
                f"In for a stop! Swapping to {compound.value.upper()}s.",
                EventType.PIT,
            ))
        else:
            self._accumulate_wear(rng)

        state.total_time += lap_time
        state.laps_completed += 1
        return LapStep(lap_time=lap_time, events=events)

    def _needs_pit(self) -> bool:
        """Tyres past the wear limit or fuel below the reserve."""
        needs_tyres = self.state.tyre_wear > self.PIT_WEAR_THRESHOLD
        needs_fuel = self.state.fuel < self.base_consumption * self.PIT_FUEL_LAPS
        return needs_tyres or needs_fuel

    def _pit(self) -> Compound:
        """Service the car according to the stop plan. Returns the new compound."""
        state = self.state
        setup = self.entrant.setup
        stop = state.stops

        state.tyre_wear = 0.0
        state.fuel = setup.pit_stop_fuel[stop] if stop < len(setup.pit_stop_fuel) else self.DEFAULT_REFUEL
        state.style = setup.pit_stop_styles[stop] if stop < len(setup.pit_stop_styles) else Style.NORMAL

        compound = self._next_compound(stop)
        state.compound = compound
        state.stops = stop + 1
        if compound is Compound.HARD:
            state.used_hard = True
        return compound

    def _next_compound(self, stop: int) -> Compound:
        plan = self.entrant.setup.pit_stops
        if stop < len(plan):
            return plan[stop]
        # Plan exhausted: hard if never used, else repeat the last planned compound
        if not self.state.used_hard:
            return Compound.HARD
        return plan[-1] if plan else Compound.MEDIUM

    def _accumulate_wear(self, rng: RandomSource) -> None:
        state = self.state
        state.tyre_wear += (
            self.BASE_WEAR_PER_LAP
            * self.circuit.tyre_wear_multiplier
            * self.COMPOUND_WEAR[state.compound]
            * self.STYLE_WEAR[state.style]
            + rng.random()
        )
        state.tyre_wear = self.entrant.role.tyre_wear(state.tyre_wear)
