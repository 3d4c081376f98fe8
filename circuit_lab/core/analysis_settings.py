import re
from pydantic import BaseModel, Field, field_validator


class AnalysisSettings(BaseModel):
    """
    Settings for circuit validation and DC simulation.

    This class contains every numeric constant used by the validator and the
    simulator so that none of them are hard-coded in the analysis code.

    Attributes:
        tolerance (float): Current below this value is treated as no current.
        max_path_length (int): Maximum number of components in a traversed path.
        short_circuit_threshold (float): Path resistance in ohms below which a
            source is considered short-circuited.
        wire_resistance (float): Resistance in ohms attributed to a wire when
            summing path resistance.
        diode_on_resistance (float): Placeholder resistance in ohms of a
            conducting diode.
        diode_max_current (float): Current in amperes at which a diode reaches
            full brightness.
        overload_current (float): Safe diode current in amperes used by the
            overload check.
        gmin (float): Shunt conductance in siemens added to every net in the
            nodal solver.
        ground_node_id (str): Identifier given to the reference node.
    """
    tolerance: float = Field(default=1e-9, description="Numerical tolerance for zero current")
    max_path_length: int = Field(default=8, description="Maximum number of components in a searched path")
    short_circuit_threshold: float = Field(
        default=1.0,
        description="Path resistance in ohms below which a source is short-circuited"
    )
    wire_resistance: float = Field(
        default=0.01,
        description="Resistance in ohms attributed to a wire on a searched path"
    )
    diode_on_resistance: float = Field(
        default=100.0,
        description="Placeholder resistance in ohms of a conducting diode"
    )
    diode_max_current: float = Field(
        default=0.02,
        description="Current in amperes at which a diode reaches full brightness"
    )
    overload_current: float = Field(
        default=0.02,
        description="Safe diode current in amperes"
    )
    gmin: float = Field(
        default=1e-12,
        description="Shunt conductance in siemens added to every net"
    )
    ground_node_id: str = Field(default="ground", description="Identifier of the reference node")

    @field_validator('tolerance', 'short_circuit_threshold', 'diode_on_resistance',
                     'diode_max_current', 'overload_current', 'gmin')
    def validate_positive(cls, v):
        """Validate that the value is positive."""
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator('wire_resistance')
    def validate_wire_resistance(cls, v):
        """Validate that wire_resistance is non-negative."""
        if v < 0:
            raise ValueError("wire_resistance must be non-negative")
        return v

    @field_validator('max_path_length')
    def validate_max_path_length(cls, v):
        """A path needs at least the source and one other component."""
        if v < 2:
            raise ValueError("max_path_length must be at least 2")
        return v

    @field_validator('ground_node_id')
    def validate_ground_node_id(cls, v):
        if not v.strip():
            raise ValueError("ground_node_id must be a non-empty string")
        # Other nodes are named node_0, node_1, ...
        if re.fullmatch(r"node_\d+", v):
            raise ValueError(f"ground_node_id {v!r} clashes with generated node ids")
        return v
