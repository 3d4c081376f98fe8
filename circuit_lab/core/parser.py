import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence, Tuple

from .components import (
    COMPONENT_TYPES, KIND_ALIASES, Component, Connection, Terminal, TerminalDirection, component_from_data
)

# Terminal type names used in circuit documents
TERMINAL_TYPES = {
    "input": TerminalDirection.SINK,
    "output": TerminalDirection.SOURCE,
    "bidirectional": TerminalDirection.BIDIRECTIONAL,
}
TERMINAL_TYPE_NAMES = {direction: name for name, direction in TERMINAL_TYPES.items()}


class CircuitParser(ABC):
    """Abstract base class for circuit parsers that produce components and connections."""

    @abstractmethod
    def parse(self, circuit_data: Any) -> Tuple[List[Component], List[Connection]]:
        """
        Parse circuit data into component and connection models.

        Args:
            circuit_data: Circuit description in the format supported by this parser

        Returns:
            Tuple[List[Component], List[Connection]]: Components and connections
        """
        pass


class ParserJson(CircuitParser):
    """Parser for JSON circuit documents with 'components' and 'connections' lists."""

    def __init__(self):
        """Initialize the parser with empty component and connection lists."""
        self.components_list: List[Component] = []
        self.connections_list: List[Connection] = []

    def parse(self, circuit_json: Dict[str, Any]) -> Tuple[List[Component], List[Connection]]:
        """
        Parse a JSON circuit document.

        Components of unknown type are logged and skipped; connections are
        kept as written, so references to skipped components surface later as
        invalid connections.

        Args:
            circuit_json: Dictionary with 'components' and 'connections' lists

        Returns:
            Tuple[List[Component], List[Connection]]: Components and connections
        """
        self.components_list = self._create_components(circuit_json.get("components", []))
        self.connections_list = self._create_connections(circuit_json.get("connections", []))
        logging.debug(f"Parsed {len(self.components_list)} components and "
                      f"{len(self.connections_list)} connections")
        return self.components_list, self.connections_list

    def _create_components(self, components: list) -> List[Component]:
        component_list = []
        for comp in components:
            comp_id = comp["id"]
            ctype = comp.get("type")
            kind = KIND_ALIASES.get(ctype, ctype)
            if kind not in COMPONENT_TYPES:
                logging.warning(f"Unknown component type: {ctype} for id {comp_id}")
                continue

            data: Dict[str, Any] = {
                "comp_id": comp_id,
                "kind": kind,
                "properties": dict(comp.get("properties") or {}),
            }
            if comp.get("position") is not None:
                data["position"] = comp["position"]
            if comp.get("terminals"):
                data["terminals"] = [self._create_terminal(terminal) for terminal in comp["terminals"]]
            component_list.append(component_from_data(data))
        return component_list

    @staticmethod
    def _create_terminal(terminal: Dict[str, Any]) -> Terminal:
        return Terminal(
            terminal_id=terminal["id"],
            position=terminal.get("position") or {},
            direction=TERMINAL_TYPES.get(terminal.get("type"), TerminalDirection.BIDIRECTIONAL),
            connected=bool(terminal.get("connected", False)),
            connection_id=terminal.get("connectionId"),
        )

    @staticmethod
    def _create_connections(connections: list) -> List[Connection]:
        return [
            Connection(
                conn_id=conn["id"],
                from_component=conn["fromComponent"],
                from_terminal=conn["fromTerminal"],
                to_component=conn["toComponent"],
                to_terminal=conn["toTerminal"],
            )
            for conn in connections
        ]

    @staticmethod
    def dump(components: Sequence[Component], connections: Sequence[Connection]) -> Dict[str, Any]:
        """
        Serialize components and connections back into a JSON circuit document.

        Property bags are written verbatim.
        """
        return {
            "components": [
                {
                    "id": component.comp_id,
                    "type": component.kind,
                    "position": component.position.model_dump(),
                    "properties": component.model_dump()["properties"],
                    "terminals": [
                        {
                            "id": terminal.terminal_id,
                            "position": terminal.position.model_dump(),
                            "type": TERMINAL_TYPE_NAMES[terminal.direction],
                            "connected": terminal.connected,
                            "connectionId": terminal.connection_id,
                        }
                        for terminal in component.terminals
                    ],
                }
                for component in components
            ],
            "connections": [
                {
                    "id": connection.conn_id,
                    "fromComponent": connection.from_component,
                    "fromTerminal": connection.from_terminal,
                    "toComponent": connection.to_component,
                    "toTerminal": connection.to_terminal,
                }
                for connection in connections
            ],
        }
