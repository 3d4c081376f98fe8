from .core import (
    AnalysisSettings, CircuitParser, ParserJson, CircuitValidator, CircuitSimulator,
    ComponentState, SimulationResult, ValidationResult, Fault, FaultKind, Severity, Topology,
    validate_circuit, simulate_circuit
)
from .core.components import Battery, Capacitor, Connection, Diode, Resistor, Switch, Wire, create_component
from .run_analysis import AnalysisReport, run_analysis

__version__ = "0.1.0"

# Export the main classes and functions that users will need
__all__ = [
    'AnalysisSettings',
    'CircuitParser',
    'ParserJson',
    'CircuitValidator',
    'CircuitSimulator',
    'ComponentState',
    'SimulationResult',
    'ValidationResult',
    'Fault',
    'FaultKind',
    'Severity',
    'Topology',
    'Resistor',
    'Battery',
    'Diode',
    'Wire',
    'Capacitor',
    'Switch',
    'Connection',
    'create_component',
    'validate_circuit',
    'simulate_circuit',
    'AnalysisReport',
    'run_analysis'
]
