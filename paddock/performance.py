"""
Single-lap performance model.

Turns car ratings, driver ratings, setup and driving style into one lap
time plus a crash outcome. All randomness comes from the injected ``rng``.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from .circuits import CircuitProfile
from .entrants import CarStats, DriverStats, ManagerRole, Setup, Style

CRASH_LAP_TIME = 999.0

# Setup tolerance band (units) before any deviation penalty applies
SETUP_TOLERANCE = 3.0

# Base crash chance per style, and the lap-time reduction it buys
STYLE_CRASH_PROBABILITY = {
    Style.NORMAL: 0.03,
    Style.OFFENSIVE: 0.10,
    Style.MOST_RISKY: 0.20,
    Style.DEFENSIVE: 0.01,
}
STYLE_PACE_BONUS = {
    Style.NORMAL: 0.0,
    Style.OFFENSIVE: 0.02,
    Style.MOST_RISKY: 0.04,
    Style.DEFENSIVE: -0.01,
}


class RandomSource(Protocol):
    """Uniform [0, 1) random source. ``random.Random`` satisfies this."""

    def random(self) -> float:
        ...


@dataclass
class LapOutcome:
    """Result of one simulated lap."""
    lap_time: float
    crashed: bool


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def setup_penalty(circuit: CircuitProfile, car: CarStats, setup: Setup) -> float:
    """
    Time lost (seconds) to setup deviation from the circuit's ideal.

    A better-rated car masks part of the penalty on the axis it governs.
    """
    ideal = circuit.ideal_setup
    aero_mask = 1.0 - _clamp(car.aero, 1, 20) / 40.0
    powertrain_mask = 1.0 - _clamp(car.powertrain, 1, 20) / 40.0
    chassis_mask = 1.0 - _clamp(car.chassis, 1, 20) / 40.0

    def excess(actual: float, target: float) -> float:
        return max(0.0, abs(actual - target) - SETUP_TOLERANCE)

    penalty = excess(setup.front_wing, ideal.front_wing) * 0.03 * aero_mask
    penalty += excess(setup.rear_wing, ideal.rear_wing) * 0.03 * aero_mask
    penalty += excess(setup.suspension, ideal.suspension) * 0.02 * chassis_mask
    penalty += excess(setup.gear_ratio, ideal.gear_ratio) * 0.025 * powertrain_mask
    return penalty


def car_factor(circuit: CircuitProfile, car: CarStats) -> float:
    """Multiplicative lap-time factor from car ratings (0.75 to 1.0)."""
    weighted = (
        _clamp(car.aero, 1, 20) * circuit.aero_weight
        + _clamp(car.powertrain, 1, 20) * circuit.powertrain_weight
        + _clamp(car.chassis, 1, 20) * circuit.chassis_weight
    )
    return 1.0 - (weighted / 20.0) * 0.25


def driver_factor(stats: DriverStats) -> float:
    """Multiplicative lap-time factor from driver ratings."""
    braking = stats.braking / 100.0
    cornering = stats.cornering / 100.0
    focus = stats.focus / 100.0
    return 1.0 - (braking * 0.02 + cornering * 0.025 + (focus - 0.5) * 0.01)


def simulate_lap(
    circuit: CircuitProfile,
    car: Optional[CarStats],
    driver: DriverStats,
    setup: Setup,
    style: Style,
    role: ManagerRole,
    rng: RandomSource,
) -> LapOutcome:
    """
    Simulate one qualifying or race lap.

    Args:
        circuit: Circuit profile
        car: Car ratings for the driver's slot (None means 1/1/1)
        driver: Driver ratings
        setup: Setup in use
        style: Driving style for this lap
        role: Team manager role
        rng: Uniform random source; first draw decides the crash,
            second draw the lap-time jitter

    Returns:
        LapOutcome; crashed laps report CRASH_LAP_TIME.
    """
    car = car or CarStats()

    penalty = setup_penalty(circuit, car, setup)
    pace = driver_factor(driver) - STYLE_PACE_BONUS[style]
    crash_probability = STYLE_CRASH_PROBABILITY[style] + role.extra_crash_probability()

    crashed = rng.random() < crash_probability

    lap_time = circuit.base_lap_time * car_factor(circuit, car) * pace + penalty
    lap_time += (rng.random() - 0.5) * 0.8

    if crashed:
        return LapOutcome(lap_time=CRASH_LAP_TIME, crashed=True)
    return LapOutcome(lap_time=max(lap_time, 0.0), crashed=False)
