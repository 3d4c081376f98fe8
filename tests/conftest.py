import pytest
from circuit_lab.core.components import Battery, Connection, Diode, Resistor, Wire


def link(conn_id, from_component, from_terminal, to_component, to_terminal):
    return Connection(conn_id=conn_id, from_component=from_component, from_terminal=from_terminal,
                      to_component=to_component, to_terminal=to_terminal)


@pytest.fixture
def connect():
    """Factory for connections: connect("c1", "B1", "positive", "R1", "terminal1")."""
    return link


@pytest.fixture
def series_circuit():
    """9 V battery with a single 1000 ohm resistor."""
    components = [Battery("B1", 9.0), Resistor("R1", 1000.0)]
    connections = [
        link("c1", "B1", "positive", "R1", "terminal1"),
        link("c2", "R1", "terminal2", "B1", "negative"),
    ]
    return components, connections


@pytest.fixture
def two_resistor_series():
    """12 V battery with 500 ohm and 1000 ohm resistors in series."""
    components = [Battery("B1", 12.0), Resistor("R1", 500.0), Resistor("R2", 1000.0)]
    connections = [
        link("c1", "B1", "positive", "R1", "terminal1"),
        link("c2", "R1", "terminal2", "R2", "terminal1"),
        link("c3", "R2", "terminal2", "B1", "negative"),
    ]
    return components, connections


@pytest.fixture
def parallel_circuit():
    """12 V battery with 1000 ohm and 2000 ohm resistors in parallel."""
    components = [Battery("B1", 12.0), Resistor("R1", 1000.0), Resistor("R2", 2000.0)]
    connections = [
        link("c1", "B1", "positive", "R1", "terminal1"),
        link("c2", "R1", "terminal2", "B1", "negative"),
        link("c3", "B1", "positive", "R2", "terminal1"),
        link("c4", "R2", "terminal2", "B1", "negative"),
    ]
    return components, connections


@pytest.fixture
def led_circuit():
    """5 V battery, 150 ohm resistor and a 2 V LED in one loop."""
    components = [Battery("B1", 5.0), Resistor("R1", 150.0), Diode("LED1", 2.0)]
    connections = [
        link("c1", "B1", "positive", "R1", "terminal1"),
        link("c2", "R1", "terminal2", "LED1", "anode"),
        link("c3", "LED1", "cathode", "B1", "negative"),
    ]
    return components, connections


@pytest.fixture
def wire_short_circuit():
    """Battery whose terminals are bridged by a bare wire."""
    components = [Battery("B1", 9.0), Wire("W1", [(0, 0), (40, 0)])]
    connections = [
        link("c1", "B1", "positive", "W1", "start"),
        link("c2", "W1", "end", "B1", "negative"),
    ]
    return components, connections


@pytest.fixture
def open_circuit():
    """Battery with a resistor hanging off its positive terminal only."""
    components = [Battery("B1", 9.0), Resistor("R1", 1000.0)]
    connections = [link("c1", "B1", "positive", "R1", "terminal1")]
    return components, connections
