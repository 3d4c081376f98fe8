# Main functions to validate and simulate a circuit document
import json
import logging
import sys
from typing import Any, Dict, Optional, Sequence, Tuple, Union
from pydantic import BaseModel

from circuit_lab.core.analysis_settings import AnalysisSettings
from circuit_lab.core.circuit_validator import CircuitValidator
from circuit_lab.core.components import Component, Connection, validate_components
from circuit_lab.core.faults import ValidationResult
from circuit_lab.core.parser import ParserJson
from circuit_lab.core.simulator import CircuitSimulator, SimulationResult

CircuitInput = Union[Dict[str, Any], Tuple[Sequence[Component], Sequence[Connection]]]


class AnalysisReport(BaseModel):
    """Validation outcome and, when the circuit has no hard errors, the simulation result."""
    validation: ValidationResult
    simulation: Optional[SimulationResult] = None

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid and self.simulation is not None and self.simulation.is_valid

    def log_results(self) -> None:
        self.validation.log_results()
        if self.simulation is None:
            logging.warning("Simulation withheld because the circuit has errors")
        else:
            self.simulation.log_results()


def run_analysis_from_file(file_path: str, settings: Optional[AnalysisSettings] = None) -> AnalysisReport:
    """
    Run circuit analysis from a JSON file.

    Args:
        file_path: Path to the JSON circuit file
        settings: Analysis settings (defaults when omitted)

    Returns:
        AnalysisReport for the circuit
    """
    with open(file_path, 'r') as file:
        circuit_json = json.load(file)
    return run_analysis(circuit_json, settings)


def run_analysis(circuit: CircuitInput, settings: Optional[AnalysisSettings] = None) -> AnalysisReport:
    """
    Validate a circuit and simulate it if validation finds no errors.

    Args:
        circuit: JSON circuit document, or a (components, connections) pair
        settings: Analysis settings (defaults when omitted)

    Returns:
        AnalysisReport; ``simulation`` is None when validation found errors
    """
    settings = settings or AnalysisSettings()
    if isinstance(circuit, dict):
        components, connections = ParserJson().parse(circuit)
    else:
        components, connections = circuit
    components = list(components)
    connections = list(connections)

    validation = CircuitValidator(settings).validate(components, connections)
    validation.merge(validate_components(components))
    if not validation.is_valid:
        logging.info(f"Skipping simulation: {validation}")
        return AnalysisReport(validation=validation)

    simulation = CircuitSimulator(settings).simulate(components, connections)
    return AnalysisReport(validation=validation, simulation=simulation)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    if len(sys.argv) != 2:
        print("Usage: python -m circuit_lab.run_analysis <circuit.json>")
        sys.exit(2)

    report = run_analysis_from_file(sys.argv[1])
    report.log_results()
    if report.simulation is not None:
        for state in report.simulation.component_states.values():
            print(f"{state.component_id}: {state.voltage:.4f} V, {state.current * 1000:.4f} mA, "
                  f"{state.power * 1000:.4f} mW")
    sys.exit(0 if report.is_valid else 1)
