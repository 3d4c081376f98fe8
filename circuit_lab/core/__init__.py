# circuit_lab/core/__init__.py

# Import from analysis_settings.py
from .analysis_settings import AnalysisSettings

# Import from faults.py
from .faults import (
    CircuitLabError, CircuitSimulationError, CircuitTopologyError,
    Fault, FaultKind, Severity, ValidationResult
)

# Import from parser.py
from .parser import CircuitParser, ParserJson

# Import from circuit_validator.py
from .circuit_validator import CircuitValidator, validate_circuit

# Import from simulator.py
from .simulator import CircuitSimulator, ComponentState, SimulationResult, simulate_circuit

# Import from topology.py
from .topology import Topology

# Define what should be available when someone imports from circuit_lab.core
__all__ = [
    # Main classes
    'AnalysisSettings',
    'CircuitParser',
    'ParserJson',
    'CircuitValidator',
    'CircuitSimulator',
    # Results
    'ComponentState',
    'SimulationResult',
    'ValidationResult',
    'Fault',
    'FaultKind',
    'Severity',
    'Topology',
    # Exceptions
    'CircuitLabError',
    'CircuitTopologyError',
    'CircuitSimulationError',
    # Functions
    'validate_circuit',
    'simulate_circuit',
]
