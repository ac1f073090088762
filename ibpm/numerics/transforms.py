"""
Sine transforms diagonalizing the Dirichlet Laplacian.

The 5-point Laplacian with homogeneous Dirichlet conditions on the
(nx-1, ny-1) interior nodes has eigenvectors sin(pi k i / nx) sin(pi l j / ny)
and eigenvalues

    lambda_kl = [2 cos(pi k / nx) - 2 + 2 cos(pi l / ny) - 2] / dx^2.

The orthonormal type-I DST maps into that basis and is its own inverse.
"""

import numpy as np
import numpy.typing as npt
from scipy.fft import dstn, idstn

from ..grid.cartesian import Grid

NDArrayFloat = npt.NDArray[np.floating]


def sine_transform(x: NDArrayFloat) -> NDArrayFloat:
    """Forward orthonormal 2D DST-I."""
    return dstn(x, type=1, norm='ortho')


def inverse_sine_transform(x: NDArrayFloat) -> NDArrayFloat:
    """Inverse orthonormal 2D DST-I."""
    return idstn(x, type=1, norm='ortho')


def laplacian_eigenvalues(grid: Grid) -> NDArrayFloat:
    """Eigenvalues of the Dirichlet 5-point Laplacian, shape (nx-1, ny-1)."""
    k = np.arange(1, grid.nx)
    l = np.arange(1, grid.ny)
    lam_x = 2.0 * np.cos(np.pi * k / grid.nx) - 2.0
    lam_y = 2.0 * np.cos(np.pi * l / grid.ny) - 2.0
    return (lam_x[:, np.newaxis] + lam_y[np.newaxis, :]) / grid.dx**2


def solve_diagonal(rhs: NDArrayFloat, eigenvalues: NDArrayFloat) -> NDArrayFloat:
    """Solve A x = rhs for an operator A diagonal in the sine basis."""
    return inverse_sine_transform(sine_transform(rhs) / eigenvalues)
