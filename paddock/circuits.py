"""
Circuit profiles used by the lap and race simulation.

Each profile carries the baseline lap time, race length, tyre/fuel
multipliers, the relative weight of each car axis, and the ideal setup
that the setup-deviation penalty is measured against.
"""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class IdealSetup:
    """Setup values (0-100) that carry no deviation penalty."""
    front_wing: int
    rear_wing: int
    suspension: int
    gear_ratio: int


@dataclass(frozen=True)
class CircuitProfile:
    """Static per-track parameters."""
    id: str
    base_lap_time: float  # seconds
    laps: int
    tyre_wear_multiplier: float
    fuel_consumption_multiplier: float

    # Relative axis weights (need not sum to 1.0)
    aero_weight: float
    powertrain_weight: float
    chassis_weight: float

    ideal_setup: IdealSetup


CIRCUITS: Dict[str, CircuitProfile] = {
    "mexico": CircuitProfile(
        id="mexico", base_lap_time=76.0, laps=71,
        tyre_wear_multiplier=1.1, fuel_consumption_multiplier=1.0,
        aero_weight=0.4, powertrain_weight=0.4, chassis_weight=0.2,
        ideal_setup=IdealSetup(front_wing=80, rear_wing=75, suspension=50, gear_ratio=85),
    ),
    "vegas": CircuitProfile(
        id="vegas", base_lap_time=92.0, laps=50,
        tyre_wear_multiplier=0.8, fuel_consumption_multiplier=1.1,
        aero_weight=0.2, powertrain_weight=0.6, chassis_weight=0.2,
        ideal_setup=IdealSetup(front_wing=25, rear_wing=20, suspension=70, gear_ratio=90),
    ),
    "interlagos": CircuitProfile(
        id="interlagos", base_lap_time=70.5, laps=71,
        tyre_wear_multiplier=1.2, fuel_consumption_multiplier=1.2,
        aero_weight=0.3, powertrain_weight=0.3, chassis_weight=0.4,
        ideal_setup=IdealSetup(front_wing=65, rear_wing=60, suspension=45, gear_ratio=55),
    ),
    "miami": CircuitProfile(
        id="miami", base_lap_time=90.0, laps=57,
        tyre_wear_multiplier=1.0, fuel_consumption_multiplier=1.0,
        aero_weight=0.4, powertrain_weight=0.3, chassis_weight=0.3,
        ideal_setup=IdealSetup(front_wing=55, rear_wing=50, suspension=60, gear_ratio=65),
    ),
    "san_pablo_street": CircuitProfile(
        id="san_pablo_street", base_lap_time=82.0, laps=40,
        tyre_wear_multiplier=1.3, fuel_consumption_multiplier=1.3,
        aero_weight=0.2, powertrain_weight=0.2, chassis_weight=0.6,
        ideal_setup=IdealSetup(front_wing=85, rear_wing=80, suspension=30, gear_ratio=35),
    ),
    "indianapolis": CircuitProfile(
        id="indianapolis", base_lap_time=72.0, laps=73,
        tyre_wear_multiplier=1.1, fuel_consumption_multiplier=1.1,
        aero_weight=0.3, powertrain_weight=0.4, chassis_weight=0.3,
        ideal_setup=IdealSetup(front_wing=40, rear_wing=35, suspension=75, gear_ratio=80),
    ),
    "montreal": CircuitProfile(
        id="montreal", base_lap_time=73.0, laps=70,
        tyre_wear_multiplier=0.9, fuel_consumption_multiplier=1.3,
        aero_weight=0.2, powertrain_weight=0.4, chassis_weight=0.4,
        ideal_setup=IdealSetup(front_wing=45, rear_wing=40, suspension=55, gear_ratio=70),
    ),
    "texas": CircuitProfile(
        id="texas", base_lap_time=94.0, laps=56,
        tyre_wear_multiplier=1.4, fuel_consumption_multiplier=1.1,
        aero_weight=0.5, powertrain_weight=0.2, chassis_weight=0.3,
        ideal_setup=IdealSetup(front_wing=75, rear_wing=70, suspension=50, gear_ratio=60),
    ),
    "buenos_aires": CircuitProfile(
        id="buenos_aires", base_lap_time=74.0, laps=72,
        tyre_wear_multiplier=1.1, fuel_consumption_multiplier=1.0,
        aero_weight=0.3, powertrain_weight=0.2, chassis_weight=0.5,
        ideal_setup=IdealSetup(front_wing=65, rear_wing=60, suspension=45, gear_ratio=50),
    ),
}

GENERIC_CIRCUIT = CircuitProfile(
    id="generic", base_lap_time=85.0, laps=50,
    tyre_wear_multiplier=1.0, fuel_consumption_multiplier=1.0,
    aero_weight=0.33, powertrain_weight=0.34, chassis_weight=0.33,
    ideal_setup=IdealSetup(front_wing=50, rear_wing=50, suspension=50, gear_ratio=50),
)


def get_circuit(circuit_id: str) -> CircuitProfile:
    """
    Get the circuit profile for a circuit id.

    Args:
        circuit_id: Circuit identifier (e.g., "mexico")

    Returns:
        The matching profile, or the generic profile for unknown ids.
    """
    return CIRCUITS.get(circuit_id, GENERIC_CIRCUIT)


def list_circuits() -> list:
    """Get all known circuit ids."""
    return list(CIRCUITS.keys())
