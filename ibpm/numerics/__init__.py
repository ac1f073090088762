"""
Numerical building blocks for the IBPM solver.

This package provides:
    - Sine transforms diagonalizing the Dirichlet Laplacian
    - Curl / divergence / averaging operators with exact transposes
    - Advective terms (nonlinear, linearized, adjoint)
    - Regularized delta interpolation for immersed boundaries
"""

from .transforms import (
    sine_transform,
    inverse_sine_transform,
    laplacian_eigenvalues,
    solve_diagonal,
)

from .operators import (
    pad_interior,
    laplacian,
    curl,
    curl_transpose,
    nodal_average,
    nodal_average_transpose,
    ddx,
    ddy,
)

from .advection import (
    advection_term,
    linearized_advection_term,
    adjoint_advection_term,
)

from .regularizer import roma_delta, Regularizer

__all__ = [
    # Transforms
    'sine_transform',
    'inverse_sine_transform',
    'laplacian_eigenvalues',
    'solve_diagonal',
    # Operators
    'pad_interior',
    'laplacian',
    'curl',
    'curl_transpose',
    'nodal_average',
    'nodal_average_transpose',
    'ddx',
    'ddy',
    # Advection
    'advection_term',
    'linearized_advection_term',
    'adjoint_advection_term',
    # Immersed boundary
    'roma_delta',
    'Regularizer',
]
