"""
Tests for circuit profiles.
"""

from paddock.circuits import CIRCUITS, GENERIC_CIRCUIT, get_circuit, list_circuits


class TestGetCircuit:
    """Tests for get_circuit()."""

    def test_known_circuit(self):
        mexico = get_circuit("mexico")
        assert mexico.base_lap_time == 76.0
        assert mexico.laps == 71
        assert mexico.ideal_setup.front_wing == 80

    def test_unknown_circuit_falls_back_to_generic(self):
        circuit = get_circuit("atlantis")
        assert circuit is GENERIC_CIRCUIT
        assert circuit.base_lap_time == 85.0
        assert circuit.laps == 50

    def test_empty_id_falls_back_to_generic(self):
        assert get_circuit("") is GENERIC_CIRCUIT


class TestCatalogue:
    """Tests for the circuit catalogue."""

    def test_lists_every_circuit(self):
        assert set(list_circuits()) == set(CIRCUITS)
        assert "generic" not in list_circuits()

    def test_profiles_are_sane(self):
        """Test every profile has positive timing and setups in range."""
        for circuit_id in list_circuits():
            circuit = get_circuit(circuit_id)
            assert circuit.id == circuit_id
            assert circuit.base_lap_time > 0
            assert circuit.laps > 0
            ideal = circuit.ideal_setup
            for value in (ideal.front_wing, ideal.rear_wing, ideal.suspension, ideal.gear_ratio):
                assert 0 <= value <= 100
