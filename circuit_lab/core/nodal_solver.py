"""
Modified nodal analysis for resistor and battery networks.

Unknowns are the voltages of every non-reference net followed by one branch
current per battery. Each connected island of the element graph gets its own
reference net (the ground net where the island contains it), and a small
``gmin`` shunt on every net keeps nets that only touch open parts solvable.
"""

import logging
from typing import Dict, List, Optional, Sequence
import numpy as np
import networkx as nx
from pydantic import BaseModel, Field

from .analysis_settings import AnalysisSettings
from .components import Battery, Component, Resistor
from .faults import CircuitSimulationError
from .topology import element_nets, is_shorting_element


class NetworkSolution(BaseModel):
    """Net voltages and branch currents of a solved network."""
    net_voltages: Dict[str, float] = Field(default_factory=dict)
    # Positive current flows from terminal1 to terminal2
    resistor_currents: Dict[str, float] = Field(default_factory=dict)
    # Positive current leaves the positive terminal
    source_currents: Dict[str, float] = Field(default_factory=dict)

    @property
    def total_current(self) -> float:
        return sum(self.source_currents.values())


def _reference_nets(graph: nx.MultiGraph, nets: List[str], ground_net: Optional[str]) -> Dict[str, str]:
    """Pick one reference net per connected island."""
    references = {}
    for island in nx.connected_components(graph):
        if ground_net in island:
            reference = ground_net
        else:
            reference = next(net for net in nets if net in island)
        for net in island:
            references[net] = reference
    return references


def solve_network(components: Sequence[Component], terminal_nets: Dict[str, str],
                  reference_net: Optional[str] = None,
                  settings: Optional[AnalysisSettings] = None) -> NetworkSolution:
    """
    Solve a DC network of resistors and batteries.

    Args:
        components: Circuit components; only resistors and batteries with
            both terminals connected take part
        terminal_nets: Map from ``component:terminal`` keys to net ids
        reference_net: Net held at 0 V (normally the ground net)
        settings: Analysis settings (defaults when omitted)

    Returns:
        NetworkSolution with net voltages and branch currents

    Raises:
        CircuitSimulationError: If a battery's terminals share one net
        numpy.linalg.LinAlgError: If the system is singular
    """
    settings = settings or AnalysisSettings()

    resistors = []
    sources = []
    for component in components:
        nets = element_nets(component, terminal_nets)
        if nets is None:
            continue
        if isinstance(component, Resistor) and not is_shorting_element(component, settings):
            resistors.append((component, nets))
        elif isinstance(component, Battery):
            if nets[0] == nets[1]:
                raise CircuitSimulationError(
                    f"Battery {component.comp_id} has both terminals on net {nets[0]}")
            sources.append((component, nets))

    nets = list(dict.fromkeys(terminal_nets.values()))
    graph = nx.MultiGraph()
    graph.add_nodes_from(nets)
    for component, (a, b) in resistors + sources:
        graph.add_edge(a, b, key=component.comp_id)

    references = _reference_nets(graph, nets, reference_net)
    unknown_nets = [net for net in nets if references[net] != net]
    net_index = {net: i for i, net in enumerate(unknown_nets)}
    n_nets = len(unknown_nets)
    size = n_nets + len(sources)

    solution = NetworkSolution(net_voltages={net: 0.0 for net in nets})
    if size == 0:
        return solution

    A = np.zeros((size, size), dtype=float)
    z = np.zeros(size, dtype=float)

    for i in range(n_nets):
        A[i, i] += settings.gmin

    for resistor, (a, b) in resistors:
        g = 1.0 / resistor.resistance
        ia, ib = net_index.get(a), net_index.get(b)
        if ia is not None:
            A[ia, ia] += g
        if ib is not None:
            A[ib, ib] += g
        if ia is not None and ib is not None:
            A[ia, ib] -= g
            A[ib, ia] -= g

    for k, (source, (positive, negative)) in enumerate(sources):
        row = n_nets + k
        ip, ineg = net_index.get(positive), net_index.get(negative)
        if ip is not None:
            A[ip, row] += 1.0
            A[row, ip] += 1.0
        if ineg is not None:
            A[ineg, row] -= 1.0
            A[row, ineg] -= 1.0
        z[row] = source.voltage

    x = np.linalg.solve(A, z)
    logging.debug(f"Nodal system of size {size} solved")

    for net, i in net_index.items():
        solution.net_voltages[net] = float(x[i])
    for resistor, (a, b) in resistors:
        voltage = solution.net_voltages[a] - solution.net_voltages[b]
        solution.resistor_currents[resistor.comp_id] = voltage / resistor.resistance
    for k, (source, _) in enumerate(sources):
        # The branch unknown is the current entering the positive terminal
        solution.source_currents[source.comp_id] = -float(x[n_nets + k])
    return solution
