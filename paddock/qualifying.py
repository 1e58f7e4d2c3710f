"""
Qualifying session: one flying lap per entrant, ranked into a grid.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from .circuits import CircuitProfile
from .entrants import Entrant
from .performance import RandomSource, simulate_lap


@dataclass
class QualifyingResult:
    """One driver's qualifying outcome and grid slot."""
    driver_id: str
    driver_name: str
    team_id: str
    team_name: str
    car_index: int
    lap_time: float  # CRASH_LAP_TIME if crashed
    is_crashed: bool
    tyre_compound: str
    setup_submitted: bool = False
    position: int = 0
    gap: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QualifyingResult":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__ if k in data})


def rank_qualifying(results: Sequence[QualifyingResult]) -> List[QualifyingResult]:
    """
    Sort by lap time and assign grid positions and gaps to pole.

    Crashed laps carry the sentinel time, so they sort last.
    """
    grid = sorted(results, key=lambda r: r.lap_time)
    if grid:
        pole_time = grid[0].lap_time
        for i, result in enumerate(grid):
            result.position = i + 1
            result.gap = result.lap_time - pole_time
    return grid


def run_qualifying(
    circuit: CircuitProfile,
    entrants: Sequence[Entrant],
    rng: RandomSource,
) -> List[QualifyingResult]:
    """
    Simulate one qualifying lap per entrant and return the ranked grid.

    Uses each entrant's qualifying style; an ex-engineer manager trims
    5% off clean laps.
    """
    results = []
    for entrant in entrants:
        outcome = simulate_lap(
            circuit,
            entrant.car,
            entrant.stats,
            entrant.setup,
            entrant.setup.qualifying_style,
            entrant.role,
            rng,
        )
        lap_time = outcome.lap_time
        if not outcome.crashed:
            lap_time = entrant.role.qualifying_pace(lap_time)

        results.append(QualifyingResult(
            driver_id=entrant.driver_id,
            driver_name=entrant.name,
            team_id=entrant.team_id,
            team_name=entrant.team_name,
            car_index=entrant.car_index,
            lap_time=lap_time,
            is_crashed=outcome.crashed,
            tyre_compound=entrant.setup.tyre_compound.value,
        ))
    return rank_qualifying(results)


def pole_sitter(grid: Sequence[QualifyingResult]) -> Optional[QualifyingResult]:
    """Fastest non-crashed result, or None if everyone crashed."""
    for result in grid:
        if not result.is_crashed:
            return result
    return None
