"""
Tests for the modified nodal analysis solver.
"""

import numpy as np
import pytest
from circuit_lab.core.analysis_settings import AnalysisSettings
from circuit_lab.core.components import Battery, Resistor
from circuit_lab.core.connection_graph import build_nodes
from circuit_lab.core.faults import CircuitSimulationError
from circuit_lab.core.nodal_solver import solve_network
from circuit_lab.core.topology import build_nets, terminal_net_map


def solve(components, connections, settings=None):
    settings = settings or AnalysisSettings()
    nodes = build_nodes(connections, settings)
    terminal_nets = terminal_net_map(nodes, build_nets(components, nodes, settings))
    return solve_network(components, terminal_nets, settings.ground_node_id, settings)


class TestSimpleNetworks:
    """Test the solver against hand-computed circuits."""

    def test_single_resistor(self, series_circuit):
        solution = solve(*series_circuit)
        assert solution.resistor_currents["R1"] == pytest.approx(0.009, rel=1e-6)
        assert solution.source_currents["B1"] == pytest.approx(0.009, rel=1e-6)
        assert solution.total_current == pytest.approx(0.009, rel=1e-6)
        # Ground sits on the positive side of the battery here
        assert solution.net_voltages["ground"] == 0.0
        assert solution.net_voltages["node_1"] == pytest.approx(-9.0, rel=1e-6)

    def test_voltage_divider(self, two_resistor_series):
        solution = solve(*two_resistor_series)
        voltages = solution.net_voltages
        assert solution.resistor_currents["R1"] == pytest.approx(0.008, rel=1e-6)
        assert solution.resistor_currents["R2"] == pytest.approx(0.008, rel=1e-6)
        drops = [voltages[a] - voltages[b] for a, b in [("ground", "node_1"), ("node_1", "node_2")]]
        assert drops == pytest.approx([4.0, 8.0], rel=1e-6)

    def test_parallel_resistors(self, parallel_circuit):
        solution = solve(*parallel_circuit)
        assert abs(solution.resistor_currents["R1"]) == pytest.approx(0.012, rel=1e-6)
        assert abs(solution.resistor_currents["R2"]) == pytest.approx(0.006, rel=1e-6)
        assert solution.total_current == pytest.approx(0.018, rel=1e-6)

    def test_series_parallel(self, connect):
        components = [Battery("B1", 12.0), Resistor("R1", 100.0), Resistor("R2", 200.0), Resistor("R3", 200.0)]
        connections = [
            connect("c1", "B1", "positive", "R1", "terminal1"),
            connect("c2", "R1", "terminal2", "R2", "terminal1"),
            connect("c3", "R1", "terminal2", "R3", "terminal1"),
            connect("c4", "R2", "terminal2", "B1", "negative"),
            connect("c5", "R3", "terminal2", "B1", "negative"),
        ]
        solution = solve(components, connections)
        assert solution.resistor_currents["R1"] == pytest.approx(0.06, rel=1e-6)
        assert solution.resistor_currents["R2"] == pytest.approx(0.03, rel=1e-6)
        assert solution.resistor_currents["R3"] == pytest.approx(0.03, rel=1e-6)
        assert solution.source_currents["B1"] == pytest.approx(0.06, rel=1e-6)


class TestIslandsAndEdgeCases:
    """Test reference selection and invalid systems."""

    def test_each_island_gets_a_reference(self, series_circuit, connect):
        components, connections = series_circuit
        components = components + [Battery("B2", 9.0), Resistor("R2", 900.0)]
        connections = connections + [
            connect("c3", "B2", "positive", "R2", "terminal1"),
            connect("c4", "R2", "terminal2", "B2", "negative"),
        ]
        solution = solve(components, connections)
        assert solution.source_currents["B1"] == pytest.approx(0.009, rel=1e-6)
        assert solution.source_currents["B2"] == pytest.approx(0.01, rel=1e-6)
        assert all(np.isfinite(v) for v in solution.net_voltages.values())

    def test_open_branch_carries_no_current(self, connect):
        components = [Battery("B1", 9.0), Resistor("R1", 1000.0), Resistor("R2", 1000.0)]
        connections = [
            connect("c1", "B1", "positive", "R1", "terminal1"),
            connect("c2", "R1", "terminal2", "B1", "negative"),
            connect("c3", "B1", "positive", "R2", "terminal1"),
        ]
        solution = solve(components, connections)
        assert solution.resistor_currents["R1"] == pytest.approx(0.009, rel=1e-6)
        assert "R2" not in solution.resistor_currents

    def test_empty_network(self):
        solution = solve_network([], {})
        assert solution.net_voltages == {}
        assert solution.total_current == 0.0

    def test_shorted_source_raises(self):
        terminal_nets = {"B1:positive": "n1", "B1:negative": "n1"}
        with pytest.raises(CircuitSimulationError, match="B1"):
            solve_network([Battery("B1")], terminal_nets)

    def test_conflicting_sources_are_singular(self, connect):
        components = [Battery("B1", 9.0), Battery("B2", 6.0), Resistor("R1")]
        connections = [
            connect("c1", "B1", "positive", "R1", "terminal1"),
            connect("c2", "R1", "terminal2", "B1", "negative"),
            connect("c3", "B2", "positive", "R1", "terminal1"),
            connect("c4", "B2", "negative", "R1", "terminal2"),
        ]
        with pytest.raises(np.linalg.LinAlgError):
            solve(components, connections)
