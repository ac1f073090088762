"""
Configuration schema for the IBPM solver.

Dataclass-based configuration that can be loaded from YAML or constructed programmatically.
"""

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any


@dataclass
class GridConfig:
    """Uniform Cartesian grid."""

    nx: int = 200              # Cells in x
    ny: int = 200              # Cells in y
    length: float = 4.0        # Domain length in x (dx = length / nx)
    xoffset: float = -2.0      # x-coordinate of the left edge
    yoffset: float = -2.0      # y-coordinate of the bottom edge


@dataclass
class FlowConfig:
    """Flow conditions."""

    reynolds: float = 100.0
    magnitude: float = 1.0     # Free-stream speed
    alpha: float = 0.0         # Free-stream angle in degrees


@dataclass
class ModelConfig:
    """Model variant and base flow."""

    # "nonlinear", "linear", "adjoint" or "linearperiodic"
    type: str = "nonlinear"
    baseflow: str = ""                # Restart file (linear, adjoint)
    periodic_baseflow: str = ""       # File pattern, e.g. flow/ibpm%05d.npz (linearperiodic)
    period: int = 1                   # Number of periodic snapshots
    period_start: int = 0             # Index of the first snapshot
    phase: int = 0                    # Snapshot offset added to the timestep
    subtract_baseflow: bool = False   # Turn the initial condition into a perturbation


@dataclass
class SolverSettings:
    """Time integration settings."""

    scheme: str = "rk2"        # "euler", "rk2", "rk3" or "ab2"
    dt: float = 0.01
    nsteps: int = 250

    # Projection solve: "cholesky" (direct, factored once) or "cg" (matrix-free)
    projection: str = "cholesky"
    tol: float = 1e-10         # Relative tolerance of the CG iteration
    max_iter: int = 500        # CG iteration budget


@dataclass
class GeometryConfig:
    """Immersed bodies, from a YAML file or listed inline."""

    file: str = ""
    # Each body: {name, shape: circle|line|points, ..., motion: {type: ...}}
    bodies: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class OutputConfig:
    """Output configuration. A frequency of 0 disables that output."""

    directory: str = "."
    name: str = "ibpm"
    initial_condition: str = ""
    restart_freq: int = 100
    force_freq: int = 1
    vtk_freq: int = 100
    plot_freq: int = 0
    digits: int = 5            # Zero padding of the step number in file names


@dataclass
class SimulationConfig:
    """Complete simulation configuration."""

    grid: GridConfig = field(default_factory=GridConfig)
    flow: FlowConfig = field(default_factory=FlowConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    solver: SolverSettings = field(default_factory=SolverSettings)
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)


# Preset configurations
def quick_preset() -> GridConfig:
    """Coarse grid for smoke runs."""
    return GridConfig(nx=64, ny=64, length=4.0, xoffset=-2.0, yoffset=-2.0)


def default_preset() -> GridConfig:
    """Grid used by the reference cylinder case."""
    return GridConfig()
