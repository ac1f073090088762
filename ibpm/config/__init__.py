"""
Configuration module for the IBPM solver.

Provides YAML-based configuration with dataclass schema.
"""

from .schema import (
    SimulationConfig,
    GridConfig,
    FlowConfig,
    ModelConfig,
    SolverSettings,
    GeometryConfig,
    OutputConfig,
    quick_preset,
    default_preset,
)

from .loader import (
    load_yaml,
    from_dict,
    apply_cli_overrides,
    save_yaml,
)

__all__ = [
    # Schema classes
    'SimulationConfig',
    'GridConfig',
    'FlowConfig',
    'ModelConfig',
    'SolverSettings',
    'GeometryConfig',
    'OutputConfig',
    # Presets
    'quick_preset',
    'default_preset',
    # Loader functions
    'load_yaml',
    'from_dict',
    'apply_cli_overrides',
    'save_yaml',
]
