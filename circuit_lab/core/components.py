import math
from abc import ABC, abstractmethod
from copy import deepcopy
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Sequence, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .analysis_settings import AnalysisSettings
from .faults import Fault, FaultKind, Severity, ValidationResult

TerminalKey = Tuple[str, str]


def terminal_key_str(key: TerminalKey) -> str:
    """Render a (component id, terminal id) key as ``component:terminal``."""
    return f"{key[0]}:{key[1]}"


class Position(BaseModel):
    """2D position on the board."""
    x: float = 0.0
    y: float = 0.0

    def offset(self, dx: float, dy: float) -> 'Position':
        return Position(x=self.x + dx, y=self.y + dy)

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


def as_position(value: Any) -> Position:
    """Coerce a Position, an ``{"x": .., "y": ..}`` mapping or an (x, y) pair."""
    if isinstance(value, Position):
        return value
    if isinstance(value, (tuple, list)):
        return Position(x=value[0], y=value[1])
    return Position.model_validate(value)


class TerminalDirection(str, Enum):
    SOURCE = "source"
    SINK = "sink"
    BIDIRECTIONAL = "bidirectional"


class Terminal(BaseModel):
    """Connection point on a component."""
    terminal_id: str = Field(..., min_length=1)
    position: Position = Field(default_factory=Position)
    direction: TerminalDirection = TerminalDirection.BIDIRECTIONAL
    connected: bool = False
    # Lookup only; the connection list stays the source of truth
    connection_id: Optional[str] = None


class Component(BaseModel, ABC):
    """Abstract base class for all circuit components."""
    comp_id: str = Field(..., min_length=1, description="Unique identifier for the component")
    kind: str
    position: Position = Field(default_factory=Position)
    properties: Dict[str, Any] = Field(default_factory=dict)
    terminals: List[Terminal] = Field(default_factory=list)

    default_properties: ClassVar[Dict[str, Any]] = {}
    # Capabilities queried by the validator and simulator instead of kind checks
    is_source: ClassVar[bool] = False
    conducts: ClassVar[bool] = False

    model_config = ConfigDict(frozen=False)

    def model_post_init(self, __context) -> None:
        """Fill in default properties and lay out default terminals."""
        for key, value in self.default_properties.items():
            if key not in self.properties:
                self.properties[key] = deepcopy(value)
        if not self.terminals:
            self.terminals = self._default_terminals()

    @abstractmethod
    def _default_terminals(self) -> List[Terminal]:
        """Terminals of a freshly placed component, positioned absolutely."""

    def _make_terminal(self, terminal_id: str, dx: float, dy: float,
                       direction: TerminalDirection = TerminalDirection.BIDIRECTIONAL) -> Terminal:
        return Terminal(terminal_id=terminal_id, position=self.position.offset(dx, dy), direction=direction)

    @property
    def terminal_ids(self) -> List[str]:
        return [terminal.terminal_id for terminal in self.terminals]

    def get_terminal(self, terminal_id: str) -> Optional[Terminal]:
        for terminal in self.terminals:
            if terminal.terminal_id == terminal_id:
                return terminal
        return None

    def get_property(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    def set_property(self, key: str, value: Any) -> None:
        self.properties[key] = value

    def _number_property(self, key: str) -> Optional[float]:
        """Numeric value of a property, or None when missing or not a number."""
        value = self.properties.get(key)
        if isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    def path_resistance(self, settings: AnalysisSettings) -> float:
        """Resistance this component adds to a searched short-circuit path."""
        return 0.0

    @property
    def is_short_circuit(self) -> bool:
        """Check if component behaves as a short circuit (zero impedance) at DC."""
        return False

    @property
    def is_open_circuit(self) -> bool:
        """Check if component blocks current at DC."""
        return not (self.conducts or self.is_source)

    def validate_properties(self) -> ValidationResult:
        """Check the property bag for physically meaningful values."""
        result = ValidationResult()
        if not self.position.is_finite:
            result.add(self._property_fault("Valid position is required"))
        for fault in self._property_faults():
            result.add(fault)
        return result

    def _property_faults(self) -> List[Fault]:
        return []

    def _property_fault(self, message: str, severity: Severity = Severity.ERROR) -> Fault:
        return Fault.create(
            FaultKind.INVALID_PROPERTY,
            f"Component {self.comp_id}: {message}",
            component_ids=[self.comp_id],
            severity=severity,
        )

    def _positive_property_faults(self, key: str, label: str) -> List[Fault]:
        value = self._number_property(key)
        if value is None or value <= 0 or not math.isfinite(value):
            return [self._property_fault(f"{label} must be a positive number")]
        return []


class Resistor(Component):
    """Resistor component."""
    kind: Literal["resistor"] = "resistor"
    default_properties: ClassVar[Dict[str, Any]] = {"resistance": 1000.0}
    conducts: ClassVar[bool] = True

    def __init__(self, comp_id: str, resistance: Optional[float] = None, **data):
        """Initialize resistor with positional arguments support."""
        if resistance is not None:
            data["properties"] = {**data.get("properties", {}), "resistance": resistance}
        super().__init__(comp_id=comp_id, **data)

    def _default_terminals(self) -> List[Terminal]:
        return [
            self._make_terminal("terminal1", -20, 0),
            self._make_terminal("terminal2", 20, 0),
        ]

    @property
    def resistance(self) -> float:
        value = self._number_property("resistance")
        return value if value is not None else self.default_properties["resistance"]

    def path_resistance(self, settings: AnalysisSettings) -> float:
        return self.resistance

    @property
    def is_short_circuit(self) -> bool:
        """Resistor is short circuit if R is zero or negative."""
        return self.resistance <= 0.0

    def _property_faults(self) -> List[Fault]:
        faults = self._positive_property_faults("resistance", "Resistance")
        resistance = self._number_property("resistance")
        if not faults and resistance < 1:
            faults.append(self._property_fault("Very low resistance may cause high current", Severity.WARNING))
        return faults


class Battery(Component):
    """Battery (DC voltage source) component."""
    kind: Literal["battery"] = "battery"
    default_properties: ClassVar[Dict[str, Any]] = {"voltage": 9.0}
    is_source: ClassVar[bool] = True
    positive_terminal: ClassVar[str] = "positive"
    negative_terminal: ClassVar[str] = "negative"

    def __init__(self, comp_id: str, voltage: Optional[float] = None, **data):
        """Initialize battery with positional arguments support."""
        if voltage is not None:
            data["properties"] = {**data.get("properties", {}), "voltage": voltage}
        super().__init__(comp_id=comp_id, **data)

    def _default_terminals(self) -> List[Terminal]:
        return [
            self._make_terminal(self.positive_terminal, 20, 0, TerminalDirection.SOURCE),
            self._make_terminal(self.negative_terminal, -20, 0, TerminalDirection.SINK),
        ]

    @property
    def voltage(self) -> float:
        value = self._number_property("voltage")
        return value if value is not None else self.default_properties["voltage"]

    def _property_faults(self) -> List[Fault]:
        faults = self._positive_property_faults("voltage", "Voltage")
        voltage = self._number_property("voltage")
        if not faults and voltage > 12:
            faults.append(self._property_fault("High voltage may be dangerous in educational context",
                                               Severity.WARNING))
        return faults


class Diode(Component):
    """Light-emitting diode component."""
    kind: Literal["led"] = "led"
    default_properties: ClassVar[Dict[str, Any]] = {"forwardVoltage": 2.0, "isLit": False, "brightness": 0}
    conducts: ClassVar[bool] = True
    anode_terminal: ClassVar[str] = "anode"
    cathode_terminal: ClassVar[str] = "cathode"

    def __init__(self, comp_id: str, forward_voltage: Optional[float] = None, **data):
        """Initialize diode with positional arguments support."""
        if forward_voltage is not None:
            data["properties"] = {**data.get("properties", {}), "forwardVoltage": forward_voltage}
        super().__init__(comp_id=comp_id, **data)

    def _default_terminals(self) -> List[Terminal]:
        return [
            self._make_terminal(self.anode_terminal, 15, 0, TerminalDirection.SINK),
            self._make_terminal(self.cathode_terminal, -15, 0, TerminalDirection.SOURCE),
        ]

    @property
    def forward_voltage(self) -> float:
        value = self._number_property("forwardVoltage")
        return value if value is not None else self.default_properties["forwardVoltage"]

    @property
    def activation_threshold(self) -> float:
        """Voltage the diode needs across it before it conducts."""
        return self.forward_voltage

    def on_resistance(self, settings: AnalysisSettings) -> float:
        return settings.diode_on_resistance

    @property
    def is_lit(self) -> bool:
        return bool(self.properties.get("isLit", False))

    @property
    def brightness(self) -> float:
        return self._number_property("brightness") or 0.0

    def with_state(self, is_active: bool, brightness: float) -> 'Diode':
        """Copy of this diode showing the given activation and brightness."""
        brightness = max(0.0, min(1.0, brightness))
        properties = {**deepcopy(self.properties), "isLit": is_active and brightness > 0, "brightness": brightness}
        return self.model_copy(update={"properties": properties}, deep=True)

    def _property_faults(self) -> List[Fault]:
        faults = self._positive_property_faults("forwardVoltage", "Forward voltage")
        forward_voltage = self._number_property("forwardVoltage")
        if not faults and forward_voltage > 5:
            faults.append(self._property_fault("High forward voltage is unusual for standard LEDs",
                                               Severity.WARNING))
        return faults


class Wire(Component):
    """Wire component routed along a list of points."""
    kind: Literal["wire"] = "wire"
    default_properties: ClassVar[Dict[str, Any]] = {"points": [], "resistance": 0.01}
    conducts: ClassVar[bool] = True

    def __init__(self, comp_id: str, points: Optional[Sequence[Any]] = None, **data):
        """Initialize wire with positional arguments support."""
        if points is not None:
            stored = [as_position(point).model_dump() for point in points]
            data["properties"] = {**data.get("properties", {}), "points": stored}
        super().__init__(comp_id=comp_id, **data)

    def get_points(self) -> List[Position]:
        points = self.properties.get("points") or []
        try:
            return [as_position(point) for point in points]
        except (TypeError, ValueError, IndexError):
            return []

    def _default_terminals(self) -> List[Terminal]:
        points = self.get_points()
        if len(points) < 2:
            return []
        return [
            self._make_terminal("start", points[0].x, points[0].y),
            self._make_terminal("end", points[-1].x, points[-1].y),
        ]

    def set_points(self, points: Sequence[Any]) -> None:
        self.properties["points"] = [as_position(point).model_dump() for point in points]
        self.terminals = self._default_terminals()

    def path_resistance(self, settings: AnalysisSettings) -> float:
        return settings.wire_resistance

    @property
    def is_short_circuit(self) -> bool:
        return True

    def _property_faults(self) -> List[Fault]:
        if len(self.get_points()) < 2:
            return [self._property_fault("Wire must have at least 2 points")]
        return []


class Capacitor(Component):
    """Capacitor component. Behaves as an open circuit at DC."""
    kind: Literal["capacitor"] = "capacitor"
    default_properties: ClassVar[Dict[str, Any]] = {"capacitance": 0.001}

    def __init__(self, comp_id: str, capacitance: Optional[float] = None, **data):
        """Initialize capacitor with positional arguments support."""
        if capacitance is not None:
            data["properties"] = {**data.get("properties", {}), "capacitance": capacitance}
        super().__init__(comp_id=comp_id, **data)

    def _default_terminals(self) -> List[Terminal]:
        return [
            self._make_terminal("terminal1", -20, 0),
            self._make_terminal("terminal2", 20, 0),
        ]

    def _property_faults(self) -> List[Fault]:
        return self._positive_property_faults("capacitance", "Capacitance")


class Switch(Component):
    """Switch component. Modelled for layout only; never conducts in the simulator."""
    kind: Literal["switch"] = "switch"
    default_properties: ClassVar[Dict[str, Any]] = {"closed": False}

    def __init__(self, comp_id: str, closed: Optional[bool] = None, **data):
        if closed is not None:
            data["properties"] = {**data.get("properties", {}), "closed": closed}
        super().__init__(comp_id=comp_id, **data)

    def _default_terminals(self) -> List[Terminal]:
        return [
            self._make_terminal("terminal1", -20, 0),
            self._make_terminal("terminal2", 20, 0),
        ]


AnyComponent = Annotated[
    Union[Resistor, Battery, Diode, Wire, Capacitor, Switch],
    Field(discriminator="kind"),
]
_component_adapter = TypeAdapter(AnyComponent)

COMPONENT_TYPES: Dict[str, type] = {
    "resistor": Resistor,
    "battery": Battery,
    "led": Diode,
    "wire": Wire,
    "capacitor": Capacitor,
    "switch": Switch,
}
KIND_ALIASES = {"diode": "led"}


def component_from_data(data: Dict[str, Any]) -> Component:
    """Create a component from its serialized (``model_dump``) form."""
    data = dict(data)
    kind = KIND_ALIASES.get(data.get("kind"), data.get("kind"))
    if kind not in COMPONENT_TYPES:
        raise ValueError(f"Unsupported component type: {data.get('kind')}")
    data["kind"] = kind
    return _component_adapter.validate_python(data)


def create_component(kind: str, comp_id: str, position: Any = None,
                     properties: Optional[Dict[str, Any]] = None) -> Component:
    """Create a new component of the given kind with default terminals."""
    data: Dict[str, Any] = {"comp_id": comp_id, "kind": kind, "properties": dict(properties or {})}
    if position is not None:
        data["position"] = as_position(position)
    return component_from_data(data)


def validate_components(components: Sequence[Component]) -> ValidationResult:
    """Validate the property bags of several components and check id uniqueness."""
    result = ValidationResult()
    for component in components:
        result.merge(component.validate_properties())

    seen = set()
    duplicates = []
    for component in components:
        if component.comp_id in seen and component.comp_id not in duplicates:
            duplicates.append(component.comp_id)
        seen.add(component.comp_id)
    if duplicates:
        result.add(Fault.create(
            FaultKind.DUPLICATE_COMPONENT_ID,
            f"Duplicate component IDs found: {', '.join(duplicates)}",
            component_ids=duplicates,
        ))
    return result


class Connection(BaseModel):
    """Undirected wire connection between two component terminals."""
    conn_id: str = Field(..., min_length=1)
    from_component: str
    from_terminal: str
    to_component: str
    to_terminal: str

    @property
    def from_key(self) -> TerminalKey:
        return (self.from_component, self.from_terminal)

    @property
    def to_key(self) -> TerminalKey:
        return (self.to_component, self.to_terminal)

    @property
    def endpoints(self) -> Tuple[TerminalKey, TerminalKey]:
        return (self.from_key, self.to_key)

    @property
    def pair_key(self) -> Tuple[TerminalKey, TerminalKey]:
        """Endpoints in canonical order, identical for both orientations."""
        first, second = sorted(self.endpoints)
        return (first, second)

    def touches(self, comp_id: str) -> bool:
        return self.from_component == comp_id or self.to_component == comp_id

    def uses_terminal(self, key: TerminalKey) -> bool:
        return key in self.endpoints

    def other_end(self, comp_id: str) -> Optional[TerminalKey]:
        """Endpoint on the far side from ``comp_id``."""
        if self.from_component == comp_id:
            return self.to_key
        if self.to_component == comp_id:
            return self.from_key
        return None

    def terminal_of(self, comp_id: str) -> Optional[str]:
        """Terminal id this connection uses on ``comp_id``."""
        if self.from_component == comp_id:
            return self.from_terminal
        if self.to_component == comp_id:
            return self.to_terminal
        return None


def check_new_connection(start: TerminalKey, end: TerminalKey, components: Sequence[Component],
                         connections: Sequence[Connection]) -> ValidationResult:
    """
    Check whether a wire may be drawn between two terminals.

    Args:
        start: (component id, terminal id) where the wire starts
        end: (component id, terminal id) where the wire ends
        components: Components currently on the board
        connections: Existing connections

    Returns:
        ValidationResult with an ``invalid_connection`` error per broken rule
    """
    result = ValidationResult()
    component_map = {component.comp_id: component for component in components}

    def reject(message: str) -> ValidationResult:
        result.add(Fault.create(FaultKind.INVALID_CONNECTION, message,
                                component_ids=sorted({start[0], end[0]})))
        return result

    start_component = component_map.get(start[0])
    end_component = component_map.get(end[0])
    if start_component is None or end_component is None:
        return reject("Cannot connect to a component that is not on the board")

    start_terminal = start_component.get_terminal(start[1])
    end_terminal = end_component.get_terminal(end[1])
    if start_terminal is None or end_terminal is None:
        return reject("Cannot connect to a terminal that does not exist")

    if start[0] == end[0]:
        return reject("Cannot connect a component to itself")

    if any(connection.uses_terminal(start) for connection in connections):
        return reject("Start terminal is already connected")
    if any(connection.uses_terminal(end) for connection in connections):
        return reject("End terminal is already connected")

    if start_terminal.direction == end_terminal.direction == TerminalDirection.SOURCE:
        return reject("Cannot connect two output terminals")
    if start_terminal.direction == end_terminal.direction == TerminalDirection.SINK:
        return reject("Cannot connect two input terminals")

    for connection in connections:
        if connection.touches(start[0]) and connection.other_end(start[0])[0] == end[0]:
            return reject("Components are already connected")

    return result


def apply_component_states(components: Sequence[Component], states: Dict[str, Any]) -> List[Component]:
    """
    Return copies of the components with simulated diode state applied.

    The inputs are left untouched; callers that want lit LEDs on screen swap
    in the returned copies.
    """
    updated = []
    for component in components:
        state = states.get(component.comp_id)
        if isinstance(component, Diode) and state is not None:
            updated.append(component.with_state(state.is_active, state.extras.get("brightness", 0.0)))
        else:
            updated.append(component.model_copy(deep=True))
    return updated
