import json
import pytest
from circuit_lab.core.analysis_settings import AnalysisSettings
from circuit_lab.core.components import Battery, Resistor
from circuit_lab.core.faults import FaultKind
from circuit_lab.core.parser import ParserJson
from circuit_lab.run_analysis import run_analysis, run_analysis_from_file


class TestRunAnalysis:
    """Test the validate-then-simulate pipeline."""

    def test_components_and_connections(self, series_circuit):
        report = run_analysis(series_circuit)
        assert report.is_valid
        assert report.simulation.get_state("R1").current == pytest.approx(0.009)

    def test_circuit_document(self, led_circuit):
        document = ParserJson.dump(*led_circuit)
        report = run_analysis(document)
        assert report.is_valid
        assert report.simulation.get_state("LED1").brightness == pytest.approx(0.6)
        # The overload estimate ignores the LED's on resistance
        assert FaultKind.COMPONENT_OVERLOAD in report.validation.kinds()

    def test_errors_withhold_simulation(self, wire_short_circuit):
        report = run_analysis(wire_short_circuit)
        assert not report.is_valid
        assert report.simulation is None
        assert FaultKind.SHORT_CIRCUIT in report.validation.kinds()

    def test_invalid_property_blocks_simulation(self):
        report = run_analysis(([Resistor("R1", -5.0)], []))
        assert report.simulation is None
        assert FaultKind.INVALID_PROPERTY in report.validation.kinds()

    def test_settings_are_used(self, connect):
        components = [Battery("B1", 9.0), Resistor("R1", 5.0)]
        connections = [
            connect("c1", "B1", "positive", "R1", "terminal1"),
            connect("c2", "R1", "terminal2", "B1", "negative"),
        ]
        assert run_analysis((components, connections)).is_valid
        strict = run_analysis((components, connections), AnalysisSettings(short_circuit_threshold=10.0))
        assert strict.simulation is None

    def test_log_results(self, open_circuit, caplog):
        run_analysis(open_circuit).log_results()
        assert "Simulation withheld" in caplog.text


class TestRunAnalysisFromFile:
    """Test loading circuit documents from disk."""

    def test_from_file(self, tmp_path, parallel_circuit):
        path = tmp_path / "parallel.json"
        path.write_text(json.dumps(ParserJson.dump(*parallel_circuit)))
        report = run_analysis_from_file(str(path))
        assert report.is_valid
        assert report.simulation.total_current == pytest.approx(0.018)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            run_analysis_from_file(str(tmp_path / "missing.json"))
