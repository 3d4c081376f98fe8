"""
DC circuit simulator.

The simulator runs in strictly ordered steps: a connection integrity check,
node building, structural checks, node voltage assignment, current
derivation for the classified topology and finally per-component states.
Results are returned only; the components passed in are never modified.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple
import numpy as np
from pydantic import BaseModel, Field

from .analysis_settings import AnalysisSettings
from .circuit_validator import disconnected_component_faults, open_circuit_fault
from .components import Battery, Component, Connection, Diode, Resistor, TerminalDirection, Wire
from .connection_graph import Node, build_nodes, build_terminal_graph, find_node_for_terminal
from .faults import CircuitSimulationError, Fault, FaultKind, log_faults
from .nodal_solver import NetworkSolution, solve_network
from .path_search import has_complete_path
from .topology import (Topology, build_nets, classify_topology, connected_component_ids, element_nets,
                       is_shorting_element, parallel_resistor_groups, terminal_net_map)


class ComponentState(BaseModel):
    """Simulated operating point of one component."""
    component_id: str
    voltage: float = 0.0
    current: float = 0.0
    power: float = 0.0
    is_active: bool = False
    extras: Dict[str, float] = Field(default_factory=dict)

    @property
    def brightness(self) -> float:
        return self.extras.get("brightness", 0.0)


class SimulationResult(BaseModel):
    """
    Outcome of one simulation run.

    When ``is_valid`` is False the nodes and component states are empty and
    must not be displayed; warnings are reported either way.
    """
    nodes: Dict[str, Node] = Field(default_factory=dict)
    component_states: Dict[str, ComponentState] = Field(default_factory=dict)
    is_valid: bool = True
    errors: List[Fault] = Field(default_factory=list)
    warnings: List[Fault] = Field(default_factory=list)
    topology: Optional[Topology] = None
    total_current: float = 0.0

    def get_state(self, comp_id: str) -> Optional[ComponentState]:
        return self.component_states.get(comp_id)

    def log_results(self) -> None:
        """Log faults followed by a one-line summary of the operating point."""
        log_faults(self.errors, self.warnings)
        if self.is_valid and self.topology is not None:
            logging.info(f"Simulated {self.topology.value} circuit: "
                         f"{len(self.nodes)} nodes, total current {self.total_current * 1000:.3f} mA")


class CircuitSimulator:
    """
    Computes node voltages and component currents for a DC circuit.

    The simulator holds only its settings; every call to ``simulate`` is an
    independent computation over its arguments.
    """

    def __init__(self, settings: Optional[AnalysisSettings] = None):
        """
        Initialize the simulator.

        Args:
            settings: Analysis settings (defaults when omitted)
        """
        self.settings = settings or AnalysisSettings()

    def simulate(self, components: Sequence[Component], connections: Sequence[Connection]) -> SimulationResult:
        """
        Simulate the circuit.

        Args:
            components: Components on the board
            connections: Wire connections between component terminals

        Returns:
            SimulationResult; never raises for malformed circuits
        """
        result = SimulationResult()
        try:
            self._run(components, connections, result)
        except (CircuitSimulationError, np.linalg.LinAlgError) as e:
            logging.error(f"Simulation error: {e}")
            result.is_valid = False
            result.nodes = {}
            result.component_states = {}
            result.topology = None
            result.total_current = 0.0
            result.errors.append(Fault.create(FaultKind.SIMULATION_ERROR, f"Simulation error: {e}"))
        return result

    def _run(self, components: Sequence[Component], connections: Sequence[Connection],
             result: SimulationResult) -> None:
        component_map = {component.comp_id: component for component in components}

        # Step 1: connection integrity
        errors, warnings = self._check_connections(component_map, connections)
        result.warnings.extend(warnings)
        if errors:
            result.is_valid = False
            result.errors.extend(errors)
            return

        # Step 2: electrical nodes and the nets they merge into
        nodes = build_nodes(connections, self.settings)
        node_nets = build_nets(components, nodes, self.settings)
        terminal_nets = terminal_net_map(nodes, node_nets)

        # Step 3: structural checks
        errors, warnings = self._check_structure(components, connections, component_map, terminal_nets)
        result.warnings.extend(warnings)
        if errors:
            result.is_valid = False
            result.errors.extend(errors)
            return

        # Steps 4 and 5: node voltages and currents
        topology = classify_topology(components, connections, terminal_nets, self.settings)
        if topology == Topology.NETWORK:
            solution = solve_network(components, terminal_nets, self.settings.ground_node_id, self.settings)
            for node_id, node in nodes.items():
                node.voltage = solution.net_voltages.get(node_nets[node_id], 0.0)
            states, total_current = self._network_states(components, solution, terminal_nets)
        else:
            self._assign_node_voltages(components, nodes, node_nets)
            states, total_current = self._heuristic_states(components, connections, terminal_nets, topology)

        # Step 6: every remaining component gets an idle state
        for component in components:
            if component.comp_id not in states:
                states[component.comp_id] = self._idle_state(component)

        result.nodes = nodes
        result.component_states = states
        result.topology = topology
        result.total_current = total_current
        logging.debug(f"Simulation finished: topology={topology.value}, total current={total_current:.6f} A")

    def _check_connections(self, component_map: Dict[str, Component],
                           connections: Sequence[Connection]) -> Tuple[List[Fault], List[Fault]]:
        """Check that connections reference real terminals and pair them sensibly."""
        errors = []
        warnings = []
        for connection in connections:
            missing = [cid for cid in (connection.from_component, connection.to_component)
                       if cid not in component_map]
            if missing:
                errors.append(Fault.create(
                    FaultKind.INVALID_CONNECTION,
                    f"Connection {connection.conn_id}: Component {missing[0]} not found",
                    component_ids=missing,
                    connection_ids=[connection.conn_id],
                ))
                continue

            terminals = []
            for comp_id, terminal_id in connection.endpoints:
                terminal = component_map[comp_id].get_terminal(terminal_id)
                if terminal is None:
                    errors.append(Fault.create(
                        FaultKind.INVALID_CONNECTION,
                        f"Connection {connection.conn_id}: Terminal {terminal_id} not found "
                        f"on component {comp_id}",
                        component_ids=[comp_id],
                        connection_ids=[connection.conn_id],
                    ))
                    break
                terminals.append(terminal)
            if len(terminals) != 2:
                continue

            directions = {terminal.direction for terminal in terminals}
            if directions == {TerminalDirection.SINK}:
                message = "Connecting two input terminals may not work as expected"
            elif directions == {TerminalDirection.SOURCE}:
                message = "Connecting two output terminals may cause conflicts"
            else:
                continue
            warnings.append(Fault.create(
                FaultKind.TERMINAL_MISMATCH,
                f"Connection {connection.conn_id}: {message}",
                component_ids=[connection.from_component, connection.to_component],
                connection_ids=[connection.conn_id],
            ))
        return errors, warnings

    def _check_structure(self, components: Sequence[Component], connections: Sequence[Connection],
                         component_map: Dict[str, Component],
                         terminal_nets: Dict[str, str]) -> Tuple[List[Fault], List[Fault]]:
        """Check for a power source, bridged source terminals and open loops."""
        errors: List[Fault] = []
        warnings = disconnected_component_faults(components, connections)

        sources = [component for component in components if component.is_source]
        if not sources:
            errors.append(Fault.create(
                FaultKind.NO_POWER_SOURCE,
                "Circuit must contain at least one voltage source (battery)",
            ))
            return errors, warnings

        graph = build_terminal_graph(connections)
        for source in sources:
            short = self._find_bridged_terminals(source, component_map, connections, terminal_nets)
            if short is not None:
                errors.append(short)
            elif not has_complete_path(source.comp_id, source.positive_terminal, source.negative_terminal,
                                       component_map, graph, self.settings.max_path_length):
                errors.append(open_circuit_fault(source))
        return errors, warnings

    def _find_bridged_terminals(self, source: Battery, component_map: Dict[str, Component],
                                connections: Sequence[Connection],
                                terminal_nets: Dict[str, str]) -> Optional[Fault]:
        """Detect a source whose two terminals are tied together by wiring alone."""
        wire_links: Dict[str, List[Connection]] = {}
        for connection in connections:
            if not connection.touches(source.comp_id):
                continue
            other_id, _ = connection.other_end(source.comp_id)
            if isinstance(component_map.get(other_id), Wire):
                wire_links.setdefault(other_id, []).append(connection)

        for wire_id, links in wire_links.items():
            used = {connection.terminal_of(source.comp_id) for connection in links}
            if {source.positive_terminal, source.negative_terminal} <= used:
                return Fault.create(
                    FaultKind.SHORT_CIRCUIT,
                    f"Short circuit detected: Battery {source.comp_id} terminals are directly connected",
                    component_ids=[source.comp_id, wire_id],
                    connection_ids=[connection.conn_id for connection in links],
                )

        nets = element_nets(source, terminal_nets)
        if nets is not None and nets[0] == nets[1]:
            return Fault.create(
                FaultKind.SHORT_CIRCUIT,
                f"Short circuit detected: Battery {source.comp_id} terminals are joined by wires only",
                component_ids=[source.comp_id],
            )
        return None

    def _assign_node_voltages(self, components: Sequence[Component], nodes: Dict[str, Node],
                              node_nets: Dict[str, str]) -> None:
        """
        Set node voltages from the source terminals.

        Voltages are decided per net, so nodes tied together by wires always
        agree. The ground net stays at 0 V. A source with one terminal on the
        ground net lifts (or lowers) the net at its other terminal by its
        voltage; a source with neither terminal on ground puts its positive
        net at its voltage and its negative net at 0 V.
        """
        ground = self.settings.ground_node_id
        net_voltages: Dict[str, float] = {}
        for source in components:
            if not source.is_source:
                continue
            positive = find_node_for_terminal(nodes, source.comp_id, source.positive_terminal)
            negative = find_node_for_terminal(nodes, source.comp_id, source.negative_terminal)
            if positive is None or negative is None:
                continue
            positive, negative = node_nets[positive], node_nets[negative]
            if negative == ground:
                net_voltages[positive] = source.voltage
            elif positive == ground:
                net_voltages[negative] = -source.voltage
            else:
                net_voltages[positive] = source.voltage
                net_voltages[negative] = 0.0

        for node_id, node in nodes.items():
            node.voltage = 0.0 if node_nets[node_id] == ground else net_voltages.get(node_nets[node_id], 0.0)

    def _loop_current(self, voltage: float, resistance: float, diodes: Sequence[Diode]) -> float:
        """
        Current around a loop with the given diodes in series.

        Each diode conducts only if the voltage left after the drops of the
        diodes before it exceeds its forward voltage; one blocking diode stops
        the whole loop.
        """
        available = voltage
        for diode in diodes:
            if available <= diode.activation_threshold:
                logging.debug(f"LED {diode.comp_id} blocks: {available:.3f} V available, "
                              f"{diode.forward_voltage:.3f} V needed")
                return 0.0
            available -= diode.forward_voltage
            resistance += diode.on_resistance(self.settings)

        if resistance <= self.settings.tolerance:
            return 0.0
        return max(0.0, available / resistance)

    def _heuristic_states(self, components: Sequence[Component], connections: Sequence[Connection],
                          terminal_nets: Dict[str, str],
                          topology: Topology) -> Tuple[Dict[str, ComponentState], float]:
        """Derive states for series loops and parallel resistor banks."""
        connected = set(connected_component_ids(connections))
        # Parts with a dangling terminal carry no current
        active = [component for component in components
                  if component.comp_id in connected and element_nets(component, terminal_nets) is not None]

        sources = [c for c in active if c.is_source]
        resistors = [c for c in active if isinstance(c, Resistor) and not is_shorting_element(c, self.settings)]
        diodes = [c for c in active if isinstance(c, Diode)]

        if topology == Topology.SERIES:
            groups = [[resistor] for resistor in resistors]
        else:
            groups = parallel_resistor_groups(resistors, connections)
        group_resistances = [1.0 / sum(1.0 / resistor.resistance for resistor in group) for group in groups]

        total_voltage = sum(source.voltage for source in sources)
        current = self._loop_current(total_voltage, sum(group_resistances), diodes)

        states: Dict[str, ComponentState] = {}
        for group, group_resistance in zip(groups, group_resistances):
            voltage = current * group_resistance
            for resistor in group:
                states[resistor.comp_id] = self._state(resistor.comp_id, voltage, voltage / resistor.resistance)

        for diode in diodes:
            if current > 0.0:
                voltage = diode.forward_voltage + current * diode.on_resistance(self.settings)
                brightness = min(current / self.settings.diode_max_current, 1.0)
                states[diode.comp_id] = self._state(diode.comp_id, voltage, current, {"brightness": brightness})
            else:
                states[diode.comp_id] = self._idle_state(diode)

        for source in sources:
            states[source.comp_id] = self._state(source.comp_id, source.voltage, current)

        # Wires and shorted resistors carry the loop current with no drop
        if topology == Topology.SERIES:
            for component in active:
                if component.comp_id not in states and is_shorting_element(component, self.settings):
                    states[component.comp_id] = self._state(component.comp_id, 0.0, current)

        return states, current

    def _network_states(self, components: Sequence[Component], solution: NetworkSolution,
                        terminal_nets: Dict[str, str]) -> Tuple[Dict[str, ComponentState], float]:
        """Derive states from a nodal solution."""
        states: Dict[str, ComponentState] = {}
        for component in components:
            if component.comp_id in solution.resistor_currents:
                a, b = element_nets(component, terminal_nets)
                voltage = solution.net_voltages[a] - solution.net_voltages[b]
                current = solution.resistor_currents[component.comp_id]
                states[component.comp_id] = self._state(component.comp_id, abs(voltage), abs(current))
            elif component.comp_id in solution.source_currents:
                states[component.comp_id] = self._state(
                    component.comp_id, component.voltage, solution.source_currents[component.comp_id])
        return states, solution.total_current

    def _state(self, comp_id: str, voltage: float, current: float,
               extras: Optional[Dict[str, float]] = None) -> ComponentState:
        return ComponentState(
            component_id=comp_id,
            voltage=voltage,
            current=current,
            power=voltage * current,
            is_active=abs(current) > self.settings.tolerance,
            extras=extras or {},
        )

    def _idle_state(self, component: Component) -> ComponentState:
        extras = {"brightness": 0.0} if isinstance(component, Diode) else {}
        return ComponentState(component_id=component.comp_id, extras=extras)


def simulate_circuit(components: Sequence[Component], connections: Sequence[Connection],
                     settings: Optional[AnalysisSettings] = None) -> SimulationResult:
    """Simulate a circuit with a fresh CircuitSimulator."""
    return CircuitSimulator(settings).simulate(components, connections)
