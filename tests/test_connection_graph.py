"""
Tests for node grouping and the terminal multigraph.
"""

import pytest
from circuit_lab.core.analysis_settings import AnalysisSettings
from circuit_lab.core.connection_graph import (
    build_nodes, build_terminal_graph, find_node_for_terminal, group_terminals, terminal_key_index,
    terminal_node_map
)


class TestGrouping:
    """Test union-find grouping of terminals."""

    def test_no_connections(self):
        assert build_nodes([]) == {}
        assert group_terminals([]) == []

    def test_terminal_indices_in_first_seen_order(self, series_circuit):
        _, connections = series_circuit
        index = terminal_key_index(connections)
        assert list(index) == [("B1", "positive"), ("R1", "terminal1"), ("R1", "terminal2"), ("B1", "negative")]
        assert list(index.values()) == [0, 1, 2, 3]

    def test_chain_merges_into_one_group(self, connect):
        connections = [
            connect("c1", "A", "t1", "B", "t1"),
            connect("c2", "C", "t1", "D", "t1"),
            connect("c3", "B", "t1", "C", "t1"),
        ]
        groups = group_terminals(connections)
        assert groups == [[("A", "t1"), ("B", "t1"), ("C", "t1"), ("D", "t1")]]

    def test_series_circuit_nodes(self, series_circuit):
        _, connections = series_circuit
        nodes = build_nodes(connections)
        assert len(nodes) == 2
        memberships = sorted(sorted(node.terminal_keys) for node in nodes.values())
        assert memberships == [["B1:negative", "R1:terminal2"], ["B1:positive", "R1:terminal1"]]


class TestGroundSelection:
    """Test choice of the reference node."""

    def test_ground_has_most_components(self, parallel_circuit):
        _, connections = parallel_circuit
        nodes = build_nodes(connections)
        assert "ground" in nodes
        assert nodes["ground"].voltage == 0.0
        assert set(nodes["ground"].component_ids) == {"B1", "R1", "R2"}

    def test_tie_goes_to_first_seen(self, series_circuit):
        _, connections = series_circuit
        nodes = build_nodes(connections)
        assert nodes["ground"].contains("B1", "positive")
        assert find_node_for_terminal(nodes, "B1", "negative") == "node_1"

    def test_larger_group_wins(self, connect):
        connections = [
            connect("c1", "A", "t1", "B", "t1"),
            connect("c2", "C", "t1", "D", "t1"),
            connect("c3", "D", "t1", "E", "t1"),
        ]
        nodes = build_nodes(connections)
        assert set(nodes["ground"].component_ids) == {"C", "D", "E"}
        assert set(nodes) == {"node_0", "ground"}

    def test_custom_ground_name(self, series_circuit):
        _, connections = series_circuit
        nodes = build_nodes(connections, AnalysisSettings(ground_node_id="gnd"))
        assert "gnd" in nodes
        assert "ground" not in nodes

    def test_deterministic(self, two_resistor_series):
        _, connections = two_resistor_series
        assert build_nodes(connections) == build_nodes(connections)


class TestLookups:
    """Test terminal to node lookups."""

    def test_terminal_node_map(self, series_circuit):
        _, connections = series_circuit
        nodes = build_nodes(connections)
        mapping = terminal_node_map(nodes)
        assert mapping["B1:positive"] == mapping["R1:terminal1"]
        assert mapping["B1:negative"] != mapping["B1:positive"]

    def test_missing_terminal(self, series_circuit):
        _, connections = series_circuit
        nodes = build_nodes(connections)
        assert find_node_for_terminal(nodes, "R9", "terminal1") is None


class TestTerminalGraph:
    """Test the terminal multigraph."""

    def test_duplicate_connections_stay_distinct(self, connect):
        connections = [
            connect("c1", "B1", "positive", "R1", "terminal1"),
            connect("c2", "R1", "terminal1", "B1", "positive"),
        ]
        graph = build_terminal_graph(connections)
        assert graph.number_of_edges() == 2
        assert graph.degree(("B1", "positive")) == 2
        assert set(graph[("B1", "positive")][("R1", "terminal1")]) == {"c1", "c2"}

    @pytest.mark.parametrize("key", [("B1", "positive"), ("R1", "terminal2")])
    def test_degree_one_in_series_loop(self, series_circuit, key):
        _, connections = series_circuit
        assert build_terminal_graph(connections).degree(key) == 1
