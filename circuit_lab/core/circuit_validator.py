"""
Circuit validator for detecting structural and electrical faults.

This module runs a battery of independent checks over a list of components
and the wire connections between their terminals. Each check reports its own
faults; no check suppresses another, and malformed input (dangling component
or terminal references) becomes a fault instead of an exception.
"""

import logging
from typing import Dict, List, Optional, Sequence
import networkx as nx

from .analysis_settings import AnalysisSettings
from .components import Battery, Component, Connection, Diode, Resistor, TerminalKey, Wire
from .connection_graph import build_terminal_graph
from .faults import Fault, FaultKind, ValidationResult
from .path_search import find_direct_paths, has_complete_path, path_resistance


class CircuitValidator:
    """
    Performs structural and electrical checks on a circuit.

    The validator holds no state between calls; every ``validate`` call builds
    its own lookup tables and terminal graph from the arguments.
    """

    def __init__(self, settings: Optional[AnalysisSettings] = None):
        """
        Initialize the validator.

        Args:
            settings: Analysis settings (defaults when omitted)
        """
        self.settings = settings or AnalysisSettings()

    def validate(self, components: Sequence[Component], connections: Sequence[Connection]) -> ValidationResult:
        """
        Run all checks on the circuit.

        Args:
            components: Components on the board
            connections: Wire connections between component terminals

        Returns:
            ValidationResult with errors, warnings and info
        """
        component_map = {component.comp_id: component for component in components}
        graph = build_terminal_graph(connections)

        result = ValidationResult()
        checks = [
            self._check_short_circuits(components, component_map, graph),
            self._check_open_circuits(components, component_map, graph),
            self._check_power_sources(components),
            self._check_disconnected_components(components, connections),
            self._check_invalid_connections(component_map, connections),
            self._check_component_overloads(components),
            self._check_reverse_polarity(components, component_map, connections),
            self._check_missing_current_limiting(components, component_map, connections),
            self._check_floating_nodes(component_map, graph),
            self._check_duplicate_connections(connections),
        ]
        for faults in checks:
            result.extend(faults)

        logging.debug(f"Validation finished: {result}")
        return result

    @staticmethod
    def _sources(components: Sequence[Component]) -> List[Battery]:
        return [component for component in components if component.is_source]

    @staticmethod
    def _diodes(components: Sequence[Component]) -> List[Diode]:
        return [component for component in components if isinstance(component, Diode)]

    def _check_short_circuits(self, components: Sequence[Component], component_map: Dict[str, Component],
                              graph: nx.MultiGraph) -> List[Fault]:
        """Check for paths of negligible resistance between the terminals of each source."""
        faults = []
        for source in self._sources(components):
            paths = find_direct_paths(
                source.comp_id, source.positive_terminal, source.negative_terminal,
                component_map, graph, self.settings.max_path_length,
            )
            for path in paths:
                resistance = path_resistance(path, component_map, self.settings)
                if resistance >= self.settings.short_circuit_threshold:
                    continue
                affected_components = list(dict.fromkeys(step.component_id for step in path))
                affected_connections = [step.connection_id for step in path if step.connection_id]
                faults.append(Fault.create(
                    FaultKind.SHORT_CIRCUIT,
                    f"Short circuit detected: Battery {source.comp_id} terminals are directly connected "
                    f"with very low resistance ({resistance:.2f} ohms)",
                    component_ids=affected_components,
                    connection_ids=affected_connections,
                ))
        return faults

    def _check_open_circuits(self, components: Sequence[Component], component_map: Dict[str, Component],
                             graph: nx.MultiGraph) -> List[Fault]:
        """Check that every source has a complete path from one terminal to the other."""
        faults = []
        for source in self._sources(components):
            if not has_complete_path(source.comp_id, source.positive_terminal, source.negative_terminal,
                                     component_map, graph, self.settings.max_path_length):
                faults.append(open_circuit_fault(source))
        return faults

    def _check_power_sources(self, components: Sequence[Component]) -> List[Fault]:
        if components and not self._sources(components):
            return [Fault.create(FaultKind.NO_POWER_SOURCE, "No power source found in circuit")]
        return []

    def _check_disconnected_components(self, components: Sequence[Component],
                                       connections: Sequence[Connection]) -> List[Fault]:
        return disconnected_component_faults(components, connections)

    def _check_invalid_connections(self, component_map: Dict[str, Component],
                                   connections: Sequence[Connection]) -> List[Fault]:
        """Check that every connection references existing components and terminals."""
        faults = []
        for connection in connections:
            from_component = component_map.get(connection.from_component)
            to_component = component_map.get(connection.to_component)

            if from_component is None or to_component is None:
                faults.append(Fault.create(
                    FaultKind.INVALID_CONNECTION,
                    f"Invalid connection {connection.conn_id}: Component not found",
                    component_ids=[cid for cid in (connection.from_component, connection.to_component) if cid],
                    connection_ids=[connection.conn_id],
                ))
                continue

            if (from_component.get_terminal(connection.from_terminal) is None
                    or to_component.get_terminal(connection.to_terminal) is None):
                faults.append(Fault.create(
                    FaultKind.INVALID_CONNECTION,
                    f"Invalid connection {connection.conn_id}: Terminal not found",
                    component_ids=[connection.from_component, connection.to_component],
                    connection_ids=[connection.conn_id],
                ))
        return faults

    def _check_component_overloads(self, components: Sequence[Component]) -> List[Fault]:
        """
        Warn about diodes that may carry more than their safe current.

        The current is approximated as total source voltage over the series sum
        of all resistances, independent of the actual topology.
        """
        total_voltage = sum(source.voltage for source in self._sources(components))
        total_resistance = sum(c.resistance for c in components if isinstance(c, Resistor))
        if total_resistance <= 0:
            return []

        current = total_voltage / total_resistance
        if current <= self.settings.overload_current:
            return []

        return [
            Fault.create(
                FaultKind.COMPONENT_OVERLOAD,
                f"LED {diode.comp_id} may be receiving excessive current ({current * 1000:.1f}mA)",
                component_ids=[diode.comp_id],
            )
            for diode in self._diodes(components)
        ]

    def _check_reverse_polarity(self, components: Sequence[Component], component_map: Dict[str, Component],
                                connections: Sequence[Connection]) -> List[Fault]:
        """Warn about diodes whose anode is wired straight to a source's negative terminal."""
        faults = []
        for diode in self._diodes(components):
            anode: TerminalKey = (diode.comp_id, diode.anode_terminal)
            for connection in connections:
                if not connection.uses_terminal(anode):
                    continue
                other_id, other_terminal = connection.other_end(diode.comp_id)
                other = component_map.get(other_id)
                if other is not None and other.is_source and other_terminal == other.negative_terminal:
                    faults.append(Fault.create(
                        FaultKind.REVERSE_POLARITY,
                        f"LED {diode.comp_id} may be connected with reverse polarity",
                        component_ids=[diode.comp_id, other_id],
                        connection_ids=[connection.conn_id],
                    ))
        return faults

    def _check_missing_current_limiting(self, components: Sequence[Component],
                                        component_map: Dict[str, Component],
                                        connections: Sequence[Connection]) -> List[Fault]:
        """Warn about diodes with no resistor one connection away."""
        faults = []
        for diode in self._diodes(components):
            neighbours = [connection.other_end(diode.comp_id)[0]
                          for connection in connections if connection.touches(diode.comp_id)]
            if not any(isinstance(component_map.get(neighbour), Resistor) for neighbour in neighbours):
                faults.append(Fault.create(
                    FaultKind.MISSING_CURRENT_LIMITING,
                    f"LED {diode.comp_id} does not have a current-limiting resistor",
                    component_ids=[diode.comp_id],
                ))
        return faults

    def _check_floating_nodes(self, component_map: Dict[str, Component], graph: nx.MultiGraph) -> List[Fault]:
        """Report non-wire terminals linked to exactly one other terminal."""
        faults = []
        for key in graph.nodes:
            if graph.degree(key) != 1:
                continue
            comp_id, terminal_id = key
            component = component_map.get(comp_id)
            if component is None or isinstance(component, Wire):
                continue
            faults.append(Fault.create(
                FaultKind.FLOATING_NODE,
                f"Component {comp_id} has a floating terminal ({terminal_id})",
                component_ids=[comp_id],
            ))
        return faults

    def _check_duplicate_connections(self, connections: Sequence[Connection]) -> List[Fault]:
        """Warn once per terminal pair joined by more than one connection."""
        groups: Dict[tuple, List[Connection]] = {}
        for connection in connections:
            groups.setdefault(connection.pair_key, []).append(connection)

        faults = []
        for (first, second), group in groups.items():
            if len(group) < 2:
                continue
            faults.append(Fault.create(
                FaultKind.DUPLICATE_CONNECTION,
                "Duplicate connections found between the same terminals",
                component_ids=list(dict.fromkeys((first[0], second[0]))),
                connection_ids=[connection.conn_id for connection in group],
            ))
        return faults


def open_circuit_fault(source: Battery) -> Fault:
    return Fault.create(
        FaultKind.OPEN_CIRCUIT,
        f"Open circuit: No complete path from positive to negative terminal of battery {source.comp_id}",
        component_ids=[source.comp_id],
    )


def disconnected_component_faults(components: Sequence[Component],
                                   connections: Sequence[Connection]) -> List[Fault]:
    """Warn about every non-wire component that appears in no connection."""
    connected = set()
    for connection in connections:
        connected.add(connection.from_component)
        connected.add(connection.to_component)

    return [
        Fault.create(
            FaultKind.DISCONNECTED_COMPONENT,
            f"Component {component.comp_id} is not connected to the circuit",
            component_ids=[component.comp_id],
        )
        for component in components
        if component.comp_id not in connected and not isinstance(component, Wire)
    ]


def validate_circuit(components: Sequence[Component], connections: Sequence[Connection],
                     settings: Optional[AnalysisSettings] = None) -> ValidationResult:
    """Validate a circuit with a fresh CircuitValidator."""
    return CircuitValidator(settings).validate(components, connections)
