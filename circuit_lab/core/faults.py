"""
Fault records produced by circuit validation and simulation.

Every fault carries an educational explanation and, where one exists, a
suggested remedy. The texts live in a single catalog keyed by fault kind so
that the validator and the simulator describe the same problem the same way.
"""

import logging
from enum import Enum
from typing import Dict, List, NamedTuple, Optional
from pydantic import BaseModel, Field, computed_field


class CircuitLabError(Exception):
    """Base exception for circuit analysis errors."""
    pass


class CircuitTopologyError(CircuitLabError):
    """Exception raised when a circuit with hard errors is used as if it were valid."""
    pass


class CircuitSimulationError(CircuitLabError):
    """Exception raised for internal invariant violations during simulation."""
    pass


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class FaultKind(str, Enum):
    SHORT_CIRCUIT = "short_circuit"
    OPEN_CIRCUIT = "open_circuit"
    NO_POWER_SOURCE = "no_power_source"
    DISCONNECTED_COMPONENT = "disconnected_component"
    INVALID_CONNECTION = "invalid_connection"
    COMPONENT_OVERLOAD = "component_overload"
    REVERSE_POLARITY = "reverse_polarity"
    MISSING_CURRENT_LIMITING = "missing_current_limiting"
    FLOATING_NODE = "floating_node"
    DUPLICATE_CONNECTION = "duplicate_connection"
    TERMINAL_MISMATCH = "terminal_mismatch"
    INVALID_PROPERTY = "invalid_property"
    DUPLICATE_COMPONENT_ID = "duplicate_component_id"
    SIMULATION_ERROR = "simulation_error"


class FaultTemplate(NamedTuple):
    severity: Severity
    explanation: str
    suggested_fix: Optional[str]


FAULT_CATALOG: Dict[FaultKind, FaultTemplate] = {
    FaultKind.SHORT_CIRCUIT: FaultTemplate(
        Severity.ERROR,
        "A short circuit occurs when electricity can flow directly from the positive to the negative "
        "terminal of a battery without going through any significant resistance. This causes extremely "
        "high current that can damage components and drain the battery quickly. In real circuits this "
        "could cause overheating, fire or even an explosion.",
        "Add a resistor or another current-limiting component between the battery terminals.",
    ),
    FaultKind.OPEN_CIRCUIT: FaultTemplate(
        Severity.ERROR,
        "An open circuit means there is no complete path for electricity to flow from the positive "
        "terminal of the battery, through the circuit components, and back to the negative terminal. "
        "Without a complete loop no current can flow, just like a circuit with a broken wire.",
        "Connect components to create a complete path from the battery's positive terminal to its "
        "negative terminal.",
    ),
    FaultKind.NO_POWER_SOURCE: FaultTemplate(
        Severity.ERROR,
        "Every electrical circuit needs a power source such as a battery to provide the energy that "
        "pushes electrons through the circuit. Without a power source there is no voltage difference "
        "to drive current, so the circuit cannot do anything.",
        "Add a battery or another power source to the circuit.",
    ),
    FaultKind.DISCONNECTED_COMPONENT: FaultTemplate(
        Severity.WARNING,
        "This component is not connected to any other component. Electricity cannot flow through a "
        "component that is not wired in, so it has no effect on the circuit. It is like a part lying "
        "on the table next to the breadboard.",
        "Connect this component to the rest of the circuit using wires.",
    ),
    FaultKind.INVALID_CONNECTION: FaultTemplate(
        Severity.ERROR,
        "This connection refers to a component or a terminal that does not exist in the circuit. Each "
        "component has specific connection points (terminals) where wires can be attached, and a "
        "connection left behind after deleting a component points at nothing.",
        "Remove this connection or reconnect the components using valid terminals.",
    ),
    FaultKind.COMPONENT_OVERLOAD: FaultTemplate(
        Severity.WARNING,
        "LEDs have a maximum current rating, typically around 20 mA for a standard LED. Exceeding this "
        "current makes the LED overheat, and in a real circuit it may burn out permanently.",
        "Add a current-limiting resistor in series with the LED to reduce the current.",
    ),
    FaultKind.REVERSE_POLARITY: FaultTemplate(
        Severity.WARNING,
        "LEDs are polarized components that only let current flow in one direction. The anode should "
        "point toward the positive side of the circuit and the cathode toward the negative side. When "
        "connected backwards the LED stays dark.",
        "Reconnect the LED with the anode toward positive and the cathode toward negative.",
    ),
    FaultKind.MISSING_CURRENT_LIMITING: FaultTemplate(
        Severity.WARNING,
        "LEDs should be used with a current-limiting resistor. Without one the LED may draw too much "
        "current and burn out. The resistor keeps the current at a safe level while still letting the "
        "LED light up.",
        "Add a resistor in series with the LED (typically 220 to 1000 ohms).",
    ),
    FaultKind.FLOATING_NODE: FaultTemplate(
        Severity.INFO,
        "A floating node is a connection point that is linked to only one other point. This often just "
        "means the terminal sits at the end of a single wire, but it can also point at a connection "
        "that was never finished.",
        "This may be normal, but verify that all necessary connections are made.",
    ),
    FaultKind.DUPLICATE_CONNECTION: FaultTemplate(
        Severity.WARNING,
        "Several wires join exactly the same two terminals. The extra wires carry no additional "
        "meaning and make the circuit harder to read; one connection between two terminals is enough.",
        "Remove the duplicate connections, keeping a single wire between these terminals.",
    ),
    FaultKind.TERMINAL_MISMATCH: FaultTemplate(
        Severity.WARNING,
        "This connection joins two terminals of the same polarity, for example two positive outputs or "
        "two negative inputs. Polarized parts only work when current can enter on one side and leave on "
        "the other, so the circuit may not behave as expected.",
        "Connect an output terminal to an input terminal, or use a non-polarized part in between.",
    ),
    FaultKind.INVALID_PROPERTY: FaultTemplate(
        Severity.ERROR,
        "A component property is outside the range that makes physical sense, such as a negative "
        "resistance or a battery without voltage. The simulation cannot give meaningful results for "
        "values like these.",
        "Edit the component and enter a positive value for the highlighted property.",
    ),
    FaultKind.DUPLICATE_COMPONENT_ID: FaultTemplate(
        Severity.ERROR,
        "Two components share the same identifier, so connections and results cannot tell them apart. "
        "Every component in a circuit needs its own unique identifier.",
        "Rename one of the components so that every identifier is unique.",
    ),
    FaultKind.SIMULATION_ERROR: FaultTemplate(
        Severity.ERROR,
        "The simulator reached a state it could not resolve for this circuit, so the computed "
        "voltages and currents cannot be trusted and have been withheld.",
        "Simplify the circuit or check the highlighted components and connections.",
    ),
}


class Fault(BaseModel):
    """A single problem found in a circuit."""
    severity: Severity
    kind: FaultKind
    message: str
    explanation: str = Field(..., min_length=51)
    suggested_fix: Optional[str] = None
    component_ids: List[str] = Field(default_factory=list)
    connection_ids: List[str] = Field(default_factory=list)

    @classmethod
    def create(cls, kind: FaultKind, message: str, component_ids: Optional[List[str]] = None,
               connection_ids: Optional[List[str]] = None, severity: Optional[Severity] = None) -> 'Fault':
        """Build a fault of the given kind using the catalog texts."""
        template = FAULT_CATALOG[kind]
        return cls(
            severity=severity or template.severity,
            kind=kind,
            message=message,
            explanation=template.explanation,
            suggested_fix=template.suggested_fix,
            component_ids=list(component_ids or []),
            connection_ids=list(connection_ids or []),
        )


class ValidationResult(BaseModel):
    """
    Stores validation outcomes split by severity.

    ``is_valid`` is true exactly when there are no errors; warnings and info
    never affect validity.
    """
    errors: List[Fault] = Field(default_factory=list)
    warnings: List[Fault] = Field(default_factory=list)
    info: List[Fault] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def faults(self) -> List[Fault]:
        """All faults, errors first."""
        return [*self.errors, *self.warnings, *self.info]

    def add(self, fault: Fault) -> None:
        """Add a fault to the list matching its severity."""
        if fault.severity == Severity.ERROR:
            self.errors.append(fault)
        elif fault.severity == Severity.WARNING:
            self.warnings.append(fault)
        else:
            self.info.append(fault)

    def extend(self, faults: List[Fault]) -> None:
        for fault in faults:
            self.add(fault)

    def merge(self, other: 'ValidationResult') -> None:
        """Merge another validation result into this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.info.extend(other.info)

    def kinds(self) -> List[FaultKind]:
        return [fault.kind for fault in self.faults]

    def summary(self) -> Dict[str, int]:
        """Get the number of faults per severity."""
        return {
            'errors': len(self.errors),
            'warnings': len(self.warnings),
            'info': len(self.info),
        }

    def raise_for_errors(self) -> None:
        """Raise CircuitTopologyError if any error was found."""
        if self.errors:
            error_msg = "Circuit topology errors found:\n" + "\n".join(f.message for f in self.errors)
            raise CircuitTopologyError(error_msg)

    def log_results(self) -> None:
        """Log the validation results."""
        log_faults(self.errors, self.warnings, self.info)

    def __str__(self) -> str:
        summary = self.summary()
        status = "VALID" if self.is_valid else "INVALID"
        return (f"ValidationResult({status}, errors={summary['errors']}, "
                f"warnings={summary['warnings']}, info={summary['info']})")


def log_faults(errors: List[Fault], warnings: List[Fault], info: Optional[List[Fault]] = None) -> None:
    """Log faults one line each at the level matching their severity."""
    info = info or []
    if errors:
        logging.error("Circuit errors:")
        for fault in errors:
            logging.error(f"  - [{fault.kind.value}] {fault.message}")

    if warnings:
        logging.warning("Circuit warnings:")
        for fault in warnings:
            logging.warning(f"  - [{fault.kind.value}] {fault.message}")

    for fault in info:
        logging.info(f"  - [{fault.kind.value}] {fault.message}")

    if not errors and not warnings and not info:
        logging.info("Circuit checks passed successfully")
