"""
Tests for net building and topology classification.
"""

import pytest
from circuit_lab.core.analysis_settings import AnalysisSettings
from circuit_lab.core.components import Battery, Capacitor, Diode, Resistor, Wire
from circuit_lab.core.connection_graph import build_nodes
from circuit_lab.core.topology import (
    Topology, build_nets, classify_topology, is_shorting_element, parallel_resistor_groups, terminal_net_map
)


def classify(components, connections):
    nodes = build_nodes(connections)
    terminal_nets = terminal_net_map(nodes, build_nets(components, nodes))
    return classify_topology(components, connections, terminal_nets)


@pytest.fixture
def series_parallel(connect):
    """R1 in series with the parallel pair R2 and R3."""
    components = [Battery("B1", 12.0), Resistor("R1", 100.0), Resistor("R2", 200.0), Resistor("R3", 200.0)]
    connections = [
        connect("c1", "B1", "positive", "R1", "terminal1"),
        connect("c2", "R1", "terminal2", "R2", "terminal1"),
        connect("c3", "R1", "terminal2", "R3", "terminal1"),
        connect("c4", "R2", "terminal2", "B1", "negative"),
        connect("c5", "R3", "terminal2", "B1", "negative"),
    ]
    return components, connections


class TestBuildNets:
    """Test merging nodes through shorting elements."""

    def test_wire_merges_nodes(self, connect):
        components = [Battery("B1"), Wire("W1", [(0, 0), (1, 0)]), Resistor("R1")]
        connections = [
            connect("c1", "B1", "positive", "W1", "start"),
            connect("c2", "W1", "end", "R1", "terminal1"),
            connect("c3", "R1", "terminal2", "B1", "negative"),
        ]
        nodes = build_nodes(connections)
        assert build_nets(components, nodes) == {"ground": "ground", "node_1": "ground", "node_2": "node_2"}

    def test_zero_ohm_resistor_merges_nodes(self, connect):
        components = [Battery("B1"), Resistor("R0", 0.0), Resistor("R1")]
        connections = [
            connect("c1", "B1", "positive", "R0", "terminal1"),
            connect("c2", "R0", "terminal2", "R1", "terminal1"),
            connect("c3", "R1", "terminal2", "B1", "negative"),
        ]
        nodes = build_nodes(connections)
        nets = build_nets(components, nodes)
        assert nets["node_1"] == nets["ground"]
        assert nets["node_2"] != nets["ground"]

    def test_plain_resistors_keep_nodes_apart(self, series_circuit):
        components, connections = series_circuit
        nodes = build_nodes(connections)
        nets = build_nets(components, nodes)
        assert nets == {node_id: node_id for node_id in nodes}

    def test_shorting_elements(self):
        settings = AnalysisSettings()
        assert is_shorting_element(Wire("W1", [(0, 0), (1, 0)]), settings)
        assert is_shorting_element(Resistor("R1", 1e-12), settings)
        assert not is_shorting_element(Resistor("R2", 10.0), settings)
        assert not is_shorting_element(Capacitor("C1"), settings)


class TestParallelGroups:
    """Test grouping resistors by their neighbours."""

    def test_parallel_pair(self, parallel_circuit):
        components, connections = parallel_circuit
        resistors = [c for c in components if isinstance(c, Resistor)]
        groups = parallel_resistor_groups(resistors, connections)
        assert [[r.comp_id for r in group] for group in groups] == [["R1", "R2"]]

    def test_series_pair(self, two_resistor_series):
        components, connections = two_resistor_series
        resistors = [c for c in components if isinstance(c, Resistor)]
        groups = parallel_resistor_groups(resistors, connections)
        assert [[r.comp_id for r in group] for group in groups] == [["R1"], ["R2"]]

    def test_partial_grouping(self, series_parallel):
        components, connections = series_parallel
        resistors = [c for c in components if isinstance(c, Resistor)]
        groups = parallel_resistor_groups(resistors, connections)
        assert [[r.comp_id for r in group] for group in groups] == [["R1"], ["R2", "R3"]]


class TestClassifyTopology:
    """Test topology classification."""

    def test_single_resistor_loop(self, series_circuit):
        assert classify(*series_circuit) == Topology.SERIES

    def test_series_resistors(self, two_resistor_series):
        assert classify(*two_resistor_series) == Topology.SERIES

    def test_led_loop(self, led_circuit):
        assert classify(*led_circuit) == Topology.SERIES

    def test_loop_with_wires(self, connect):
        components = [Battery("B1"), Wire("W1", [(0, 0), (1, 0)]), Resistor("R1")]
        connections = [
            connect("c1", "B1", "positive", "W1", "start"),
            connect("c2", "W1", "end", "R1", "terminal1"),
            connect("c3", "R1", "terminal2", "B1", "negative"),
        ]
        assert classify(components, connections) == Topology.SERIES

    def test_parallel_resistors(self, parallel_circuit):
        assert classify(*parallel_circuit) == Topology.PARALLEL

    def test_series_parallel_is_network(self, series_parallel):
        assert classify(*series_parallel) == Topology.NETWORK

    def test_series_parallel_with_led(self, series_parallel, connect):
        components, connections = series_parallel
        components = components + [Diode("LED1")]
        connections = [
            connect("c1", "B1", "positive", "LED1", "anode"),
            connect("c0", "LED1", "cathode", "R1", "terminal1"),
        ] + connections[1:]
        assert classify(components, connections) == Topology.PARALLEL

    def test_led_with_unrelated_resistors(self, connect):
        components = [Battery("B1"), Resistor("R1"), Resistor("R2"), Diode("LED1")]
        connections = [
            connect("c1", "B1", "positive", "R1", "terminal1"),
            connect("c2", "R1", "terminal2", "LED1", "anode"),
            connect("c3", "LED1", "cathode", "B1", "negative"),
            connect("c4", "R1", "terminal2", "R2", "terminal1"),
        ]
        assert classify(components, connections) == Topology.SERIES

    def test_capacitor_breaks_loop(self, connect):
        components = [Battery("B1"), Resistor("R1"), Capacitor("C1")]
        connections = [
            connect("c1", "B1", "positive", "R1", "terminal1"),
            connect("c2", "R1", "terminal2", "C1", "terminal1"),
            connect("c3", "C1", "terminal2", "B1", "negative"),
        ]
        assert classify(components, connections) == Topology.NETWORK

    def test_half_wired_led_is_ignored(self, connect):
        components = [Battery("B1", 9.0), Resistor("R1"), Resistor("R2"), Resistor("R3"),
                      Wire("W1", [(0, 0), (1, 0)]), Diode("D1")]
        connections = [
            connect("c1", "B1", "positive", "R1", "terminal1"),
            connect("c2", "R1", "terminal2", "R2", "terminal1"),
            connect("c3", "R1", "terminal2", "W1", "start"),
            connect("c4", "W1", "end", "R3", "terminal1"),
            connect("c5", "R2", "terminal2", "B1", "negative"),
            connect("c6", "R3", "terminal2", "B1", "negative"),
        ]
        assert classify(components[:-1], connections) == Topology.NETWORK
        dangling = connections + [connect("c7", "D1", "anode", "B1", "positive")]
        assert classify(components, dangling) == Topology.NETWORK
