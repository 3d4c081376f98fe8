"""
Topology classification for the DC simulator.

Electrical nodes joined by zero-impedance elements (wires, shorted
resistors) are merged into nets. The arrangement of the remaining elements
between those nets decides how currents are derived: a single loop is
solved as a series circuit, resistors sharing the same neighbours as a
parallel bank, and anything else with the general nodal solver.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import networkx as nx

from .analysis_settings import AnalysisSettings
from .components import Component, Connection, Diode, Resistor, terminal_key_str
from .connection_graph import Node, terminal_node_map


class Topology(str, Enum):
    SERIES = "series"
    PARALLEL = "parallel"
    NETWORK = "network"


def is_shorting_element(component: Component, settings: AnalysisSettings) -> bool:
    """Check if a component ties its terminals to one potential."""
    if not component.conducts:
        return False
    if isinstance(component, Resistor) and component.resistance < settings.tolerance:
        return True
    return component.is_short_circuit


def connected_component_ids(connections: Sequence[Connection]) -> List[str]:
    """Ids of components referenced by any connection, in first-seen order."""
    ids: Dict[str, None] = {}
    for connection in connections:
        ids.setdefault(connection.from_component, None)
        ids.setdefault(connection.to_component, None)
    return list(ids)


def build_nets(components: Sequence[Component], nodes: Dict[str, Node],
               settings: Optional[AnalysisSettings] = None) -> Dict[str, str]:
    """
    Merge nodes joined by shorting elements into nets.

    A net containing the ground node is named after it; any other net takes
    the id of its first node.

    Args:
        components: Circuit components
        nodes: Electrical nodes from ``build_nodes``
        settings: Analysis settings (defaults when omitted)

    Returns:
        Dict mapping each node id to the id of its net
    """
    settings = settings or AnalysisSettings()
    terminal_nodes = terminal_node_map(nodes)

    graph = nx.Graph()
    graph.add_nodes_from(nodes)
    for component in components:
        if not is_shorting_element(component, settings):
            continue
        node_ids = [terminal_nodes.get(terminal_key_str((component.comp_id, terminal_id)))
                    for terminal_id in component.terminal_ids]
        node_ids = [node_id for node_id in node_ids if node_id is not None]
        graph.add_edges_from(zip(node_ids, node_ids[1:]))

    net_of: Dict[str, str] = {}
    for members in nx.connected_components(graph):
        ordered = [node_id for node_id in nodes if node_id in members]
        net_id = settings.ground_node_id if settings.ground_node_id in members else ordered[0]
        for node_id in ordered:
            net_of[node_id] = net_id
    return net_of


def terminal_net_map(nodes: Dict[str, Node], node_nets: Dict[str, str]) -> Dict[str, str]:
    """Map ``component:terminal`` keys to the id of the net containing them."""
    return {key: node_nets[node_id] for key, node_id in terminal_node_map(nodes).items()}


def element_nets(component: Component, terminal_nets: Dict[str, str]) -> Optional[Tuple[str, str]]:
    """Nets at the two terminals of a two-terminal element, or None if either is unconnected."""
    nets = [terminal_nets.get(terminal_key_str((component.comp_id, terminal_id)))
            for terminal_id in component.terminal_ids]
    if len(nets) != 2 or None in nets:
        return None
    return nets[0], nets[1]


def other_components(component_id: str, connections: Sequence[Connection]) -> frozenset:
    """Ids of the components a component is wired to directly."""
    return frozenset(connection.other_end(component_id)[0]
                     for connection in connections if connection.touches(component_id))


def parallel_resistor_groups(resistors: Sequence[Resistor],
                             connections: Sequence[Connection]) -> List[List[Resistor]]:
    """
    Group resistors that are wired to the identical set of other components.

    Groups keep first-seen order; a resistor with a unique neighbour set forms
    a group of its own.
    """
    groups: Dict[frozenset, List[Resistor]] = {}
    for resistor in resistors:
        groups.setdefault(other_components(resistor.comp_id, connections), []).append(resistor)
    return list(groups.values())


def _is_single_loop(elements: Sequence[Component], blockers: Sequence[Component],
                    terminal_nets: Dict[str, str]) -> bool:
    """Check if the elements form one closed loop through their nets."""
    graph = nx.MultiGraph()
    for element in elements:
        nets = element_nets(element, terminal_nets)
        if nets is None:
            return False
        graph.add_edge(*nets, key=element.comp_id)

    if graph.number_of_nodes() == 0 or not nx.is_connected(graph):
        return False
    if any(degree != 2 for _, degree in graph.degree()):
        return False

    # A non-conducting part hanging off the loop splits a net three ways
    for blocker in blockers:
        for terminal_id in blocker.terminal_ids:
            if terminal_nets.get(terminal_key_str((blocker.comp_id, terminal_id))) in graph:
                return False
    return True


def _is_pure_parallel(resistors: Sequence[Resistor], connections: Sequence[Connection],
                      terminal_nets: Dict[str, str]) -> bool:
    if len(resistors) < 2:
        return False
    for resistor in resistors:
        nets = element_nets(resistor, terminal_nets)
        if nets is None or nets[0] == nets[1]:
            return False
    return len(parallel_resistor_groups(resistors, connections)) == 1


def classify_topology(components: Sequence[Component], connections: Sequence[Connection],
                      terminal_nets: Dict[str, str], settings: Optional[AnalysisSettings] = None) -> Topology:
    """
    Classify how currents in the circuit should be derived.

    Rules, first match wins:
    1. every source, resistor and diode sits in one closed loop -> SERIES
    2. two or more resistors, all fully connected and all wired to the same
       set of other components -> PARALLEL
    3. diodes present -> PARALLEL if any two resistors share their neighbours,
       otherwise SERIES
    4. anything else -> NETWORK

    Args:
        components: Circuit components
        connections: Wire connections between component terminals
        terminal_nets: Map from ``component:terminal`` keys to net ids
        settings: Analysis settings (defaults when omitted)

    Returns:
        Topology classification
    """
    settings = settings or AnalysisSettings()
    connected = set(connected_component_ids(connections))
    active = [c for c in components if c.comp_id in connected]

    # Parts with a dangling terminal carry no current and take no part in the loop
    elements = [c for c in active
                if (c.is_source or (c.conducts and not is_shorting_element(c, settings)))
                and element_nets(c, terminal_nets) is not None]
    blockers = [c for c in active if c.is_open_circuit]
    resistors = [c for c in elements if isinstance(c, Resistor)]
    diodes = [c for c in elements if isinstance(c, Diode)]

    if any(c.is_source for c in elements) and _is_single_loop(elements, blockers, terminal_nets):
        topology = Topology.SERIES
    elif _is_pure_parallel(resistors, connections, terminal_nets):
        topology = Topology.PARALLEL
    elif diodes:
        groups = parallel_resistor_groups(resistors, connections)
        topology = Topology.PARALLEL if any(len(group) > 1 for group in groups) else Topology.SERIES
    else:
        topology = Topology.NETWORK

    logging.debug(f"Circuit topology classified as {topology.value}")
    return topology
