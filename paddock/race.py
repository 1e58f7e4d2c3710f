"""
Lap-by-lap race loop: running order, overtakes and final classification.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .circuits import CircuitProfile
from .entrants import Compound, Entrant
from .performance import RandomSource
from .strategy import EntrantStateMachine, EventType, RaceEvent

HARD_COMPOUND_PENALTY = 35.0


@dataclass
class LapRecord:
    """Everything that happened on one lap."""
    lap: int
    lap_times: Dict[str, float]
    positions: Dict[str, int]
    tyres: Dict[str, Compound]
    events: List[RaceEvent] = field(default_factory=list)


@dataclass
class RaceResult:
    """Full race output."""
    laps: Tuple[LapRecord, ...]
    final_positions: Dict[str, int]
    total_times: Dict[str, float]
    dnfs: List[str]  # In crash order

    def classified(self) -> List[str]:
        """Driver ids in final order, DNFs last."""
        return sorted(self.final_positions, key=self.final_positions.get)


def running_order(
    driver_ids: Sequence[str],
    machines: Dict[str, EntrantStateMachine],
    dnfs: Sequence[str],
) -> List[str]:
    """Ascending total time; DNFs after every classified entrant, in crash order."""
    crash_index = {driver_id: i for i, driver_id in enumerate(dnfs)}

    def key(driver_id: str):
        if driver_id in crash_index:
            return (1, float(crash_index[driver_id]))
        return (0, machines[driver_id].state.total_time)

    return sorted(driver_ids, key=key)


def overtake_phrase(passed_name: str, position: int, field_size: int) -> str:
    """Pick a flavour line; the choice depends only on the field size."""
    phrases = [
        f"Dives down the inside of {passed_name}!",
        f"Moves past {passed_name} for P{position}!",
        f"Great move on {passed_name}!",
        f"Takes P{position} from {passed_name}!",
    ]
    return phrases[field_size % len(phrases)]


def detect_overtakes(
    lap: int,
    previous: Sequence[str],
    current: Sequence[str],
    names: Dict[str, str],
    dnfs: Set[str],
) -> List[RaceEvent]:
    """
    Compare two running orders and emit an event for each entrant that gained places.

    The passed entrant is the one now directly behind.
    """
    events = []
    old_index = {driver_id: i for i, driver_id in enumerate(previous)}
    for i, driver_id in enumerate(current):
        if driver_id in dnfs:
            continue
        old = old_index.get(driver_id)
        if old is None or i >= old:
            continue
        if i + 1 < len(current):
            passed_name = names.get(current[i + 1]) or "rival"
            description = overtake_phrase(passed_name, i + 1, len(current))
        else:
            description = "Overtake move!"
        events.append(RaceEvent(lap, driver_id, description, EventType.OVERTAKE))
    return events


def simulate_race(
    circuit: CircuitProfile,
    grid: Sequence[Entrant],
    rng: RandomSource,
    total_laps: Optional[int] = None,
) -> RaceResult:
    """
    Simulate a full race.

    Args:
        circuit: Circuit profile
        grid: Entrants in starting order
        rng: Uniform random source shared by every entrant
        total_laps: Race length (defaults to the circuit's lap count)

    Returns:
        RaceResult with every lap retained.
    """
    total_laps = circuit.laps if total_laps is None else total_laps
    machines = {e.driver_id: EntrantStateMachine(e, circuit, total_laps) for e in grid}
    names = {e.driver_id: e.name for e in grid}

    order = [e.driver_id for e in grid]
    dnfs: List[str] = []
    laps: List[LapRecord] = []

    for lap in range(1, total_laps + 1):
        lap_times: Dict[str, float] = {}
        events: List[RaceEvent] = []

        for driver_id in order:
            machine = machines[driver_id]
            if machine.state.dnf:
                continue
            step = machine.advance(lap, rng)
            events.extend(step.events)
            if step.lap_time is None:
                dnfs.append(driver_id)
            else:
                lap_times[driver_id] = step.lap_time

        new_order = running_order(order, machines, dnfs)
        events.extend(detect_overtakes(lap, order, new_order, names, set(dnfs)))
        order = new_order

        laps.append(LapRecord(
            lap=lap,
            lap_times=lap_times,
            positions={driver_id: i + 1 for i, driver_id in enumerate(order)},
            tyres={driver_id: machines[driver_id].state.compound for driver_id in order},
            events=events,
        ))

    # Mandatory hard compound
    for driver_id in order:
        state = machines[driver_id].state
        if state.dnf or state.used_hard:
            continue
        state.total_time += HARD_COMPOUND_PENALTY
        if laps:
            laps[-1].events.append(RaceEvent(
                total_laps,
                driver_id,
                "35s PENALTY: Failed to use Hard compound",
                EventType.INFO,
            ))

    order = running_order(order, machines, dnfs)
    return RaceResult(
        laps=tuple(laps),
        final_positions={driver_id: i + 1 for i, driver_id in enumerate(order)},
        total_times={driver_id: machines[driver_id].state.total_time for driver_id in order},
        dnfs=dnfs,
    )
