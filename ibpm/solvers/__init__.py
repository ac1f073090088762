"""
Solver components for the immersed boundary projection method.

This package provides:
    - Projection solvers (dense Cholesky, matrix-free CG) for the boundary force
    - Time stepping schemes (Euler, RK2, RK3, AB2) with Crank-Nicolson diffusion
"""

from .projection import (
    ProjectionConfig,
    ProjectionResult,
    ProjectionSolver,
    CholeskySolver,
    ConjugateGradientSolver,
    create_solver,
)

from .time_stepping import (
    TimeStepper,
    Euler,
    RungeKutta2,
    RungeKutta3,
    AdamsBashforth,
)

from .factory import SCHEMES, create_timestepper

__all__ = [
    # Projection
    'ProjectionConfig',
    'ProjectionResult',
    'ProjectionSolver',
    'CholeskySolver',
    'ConjugateGradientSolver',
    'create_solver',
    # Time stepping
    'TimeStepper',
    'Euler',
    'RungeKutta2',
    'RungeKutta3',
    'AdamsBashforth',
    'SCHEMES',
    'create_timestepper',
]
