"""
Regularized delta function coupling Lagrangian markers to the grid.

E interpolates edge velocity to the markers; E^T spreads marker values
back to the edges. Both use the three-point discrete delta of
Roma, Peskin & Berger (1999), whose weights sum to one in each direction.

Reference: Roma, Peskin, Berger (1999), J. Comput. Phys. 153, 509-534.
"""

from typing import Tuple

import numpy as np
import numpy.typing as npt
import scipy.sparse as sp

from ..grid.cartesian import Grid

NDArrayFloat = npt.NDArray[np.floating]


def roma_delta(r: NDArrayFloat) -> NDArrayFloat:
    """One-dimensional three-point delta kernel, r in units of dx."""
    r = np.abs(np.asarray(r, dtype=float))
    inner = (1.0 + np.sqrt(np.clip(1.0 - 3.0 * r**2, 0.0, None))) / 3.0
    outer = (5.0 - 3.0 * r - np.sqrt(np.clip(1.0 - 3.0 * (1.0 - r)**2, 0.0, None))) / 6.0
    return np.where(r <= 0.5, inner, np.where(r <= 1.5, outer, 0.0))


def _stencil(coord: float, origin: float, dx: float, n: int) -> Tuple[NDArrayFloat, NDArrayFloat]:
    """Grid indices and weights of the delta stencil around coord."""
    base = int(np.floor((coord - origin) / dx))
    idx = np.arange(base - 1, base + 3)
    w = roma_delta((origin + idx * dx - coord) / dx)
    keep = (idx >= 0) & (idx < n) & (w > 0.0)
    return idx[keep], w[keep]


class Regularizer:
    """Builds the sparse interpolation operator E for a set of markers."""

    def __init__(self, grid: Grid):
        self.grid = grid
        dx = grid.dx
        self._n_u = grid.u_shape[0] * grid.u_shape[1]
        # (x origin, y origin, nx, ny) of the u and v edge lattices
        self._u_lattice = (grid.xoffset, grid.yoffset + 0.5 * dx, grid.nx + 1, grid.ny)
        self._v_lattice = (grid.xoffset + 0.5 * dx, grid.yoffset, grid.nx, grid.ny + 1)

    def _weights(self, point: NDArrayFloat, lattice) -> Tuple[NDArrayFloat, NDArrayFloat]:
        x0, y0, n_i, n_j = lattice
        dx = self.grid.dx
        ii, wx = _stencil(point[0], x0, dx, n_i)
        jj, wy = _stencil(point[1], y0, dx, n_j)
        cols = (ii[:, np.newaxis] * n_j + jj[np.newaxis, :]).ravel()
        vals = (wx[:, np.newaxis] * wy[np.newaxis, :]).ravel()
        return cols, vals

    def build(self, points: NDArrayFloat) -> sp.csr_matrix:
        """
        Interpolation matrix E of shape (2 * n_points, n_edges).

        Rows 0..n-1 give the x-velocity at each marker, rows n..2n-1 the
        y-velocity. Columns follow Flux.flatten(): u edges then v edges.
        """
        points = np.asarray(points, dtype=float).reshape(-1, 2)
        n = points.shape[0]
        rows, cols, vals = [], [], []
        for k, point in enumerate(points):
            c, w = self._weights(point, self._u_lattice)
            rows.append(np.full(c.size, k))
            cols.append(c)
            vals.append(w)
            c, w = self._weights(point, self._v_lattice)
            rows.append(np.full(c.size, n + k))
            cols.append(c + self._n_u)
            vals.append(w)
        shape = (2 * n, self.grid.num_edges)
        if n == 0:
            return sp.csr_matrix(shape)
        return sp.csr_matrix(
            (np.concatenate(vals), (np.concatenate(rows), np.concatenate(cols))),
            shape=shape,
        )
