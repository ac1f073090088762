"""
Discrete operators on the staggered vorticity/streamfunction grid.

Shapes (see grid.cartesian):
    interior field  (nx-1, ny-1)   zero on the boundary nodes
    u               (nx+1, ny)
    v               (nx, ny+1)

The curl R maps streamfunction to edge velocity, u = dpsi/dy, v = -dpsi/dx.
Its transpose R^T maps edge velocity to vorticity, and R^T R = -Laplacian.
Every operator here comes with its exact transpose so that linearized and
adjoint terms can be assembled from the same pieces.
"""

from typing import Tuple

import numpy as np
import numpy.typing as npt

NDArrayFloat = npt.NDArray[np.floating]


def pad_interior(field: NDArrayFloat) -> NDArrayFloat:
    """Embed an interior field into the full node array with zero boundary."""
    return np.pad(field, 1)


def laplacian(field: NDArrayFloat, dx: float) -> NDArrayFloat:
    """5-point Laplacian of an interior field with homogeneous Dirichlet BCs."""
    p = pad_interior(field)
    return (p[2:, 1:-1] + p[:-2, 1:-1] + p[1:-1, 2:] + p[1:-1, :-2]
            - 4.0 * field) / dx**2


def curl(psi: NDArrayFloat, dx: float) -> Tuple[NDArrayFloat, NDArrayFloat]:
    """Edge velocity (u, v) from interior streamfunction."""
    p = pad_interior(psi)
    u = (p[:, 1:] - p[:, :-1]) / dx
    v = -(p[1:, :] - p[:-1, :]) / dx
    return u, v


def curl_transpose(u: NDArrayFloat, v: NDArrayFloat, dx: float) -> NDArrayFloat:
    """Interior vorticity dv/dx - du/dy from edge velocity (transpose of curl)."""
    p = np.zeros((u.shape[0], v.shape[1]))
    p[:, 1:] += u
    p[:, :-1] -= u
    p[1:, :] -= v
    p[:-1, :] += v
    return p[1:-1, 1:-1] / dx


def nodal_average(u: NDArrayFloat, v: NDArrayFloat) -> Tuple[NDArrayFloat, NDArrayFloat]:
    """Average edge velocity onto interior nodes."""
    U = 0.5 * (u[1:-1, :-1] + u[1:-1, 1:])
    V = 0.5 * (v[:-1, 1:-1] + v[1:, 1:-1])
    return U, V


def nodal_average_transpose(U: NDArrayFloat, V: NDArrayFloat) -> Tuple[NDArrayFloat, NDArrayFloat]:
    """Scatter interior-node values back to the edges (transpose of nodal_average)."""
    nx1, ny1 = U.shape
    u = np.zeros((nx1 + 2, ny1 + 1))
    v = np.zeros((nx1 + 1, ny1 + 2))
    u[1:-1, :-1] += 0.5 * U
    u[1:-1, 1:] += 0.5 * U
    v[:-1, 1:-1] += 0.5 * V
    v[1:, 1:-1] += 0.5 * V
    return u, v


def ddx(field: NDArrayFloat, dx: float) -> NDArrayFloat:
    """Central x-derivative at interior nodes, zero outside. Skew-symmetric."""
    p = pad_interior(field)
    return (p[2:, 1:-1] - p[:-2, 1:-1]) / (2.0 * dx)


def ddy(field: NDArrayFloat, dx: float) -> NDArrayFloat:
    """Central y-derivative at interior nodes, zero outside. Skew-symmetric."""
    p = pad_interior(field)
    return (p[1:-1, 2:] - p[1:-1, :-2]) / (2.0 * dx)
