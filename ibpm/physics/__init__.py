"""
Navier-Stokes models for the projection method.

This package provides:
    - Nonlinear model with a potential background flow
    - Linearized model about a steady or time-periodic base flow
    - Adjoint of the linearized model
    - Factory mapping names and base-flow files onto a model
"""

from .navier_stokes import (
    ModelType,
    NavierStokesModel,
    NonlinearNavierStokes,
)

from .linearized import (
    LinearizedNavierStokes,
    AdjointNavierStokes,
    LinearizedPeriodicNavierStokes,
)

from .factory import (
    str_to_model_type,
    load_base_flow,
    periodic_base_flow_names,
    create_model,
)

__all__ = [
    # Models
    'ModelType',
    'NavierStokesModel',
    'NonlinearNavierStokes',
    'LinearizedNavierStokes',
    'AdjointNavierStokes',
    'LinearizedPeriodicNavierStokes',
    # Factory
    'str_to_model_type',
    'load_base_flow',
    'periodic_base_flow_names',
    'create_model',
]
