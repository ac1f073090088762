"""
Uniform Cartesian grid for the vorticity/streamfunction discretization.

Layout (nx x ny cells of side dx):
    - Nodes:      (nx+1, ny+1), vorticity and streamfunction live here
    - Interior:   (nx-1, ny-1), the unknowns (boundary nodes are zero)
    - x-edges:    (nx+1, ny),   u-velocity at (x_i, y_{j+1/2})
    - y-edges:    (nx, ny+1),   v-velocity at (x_{i+1/2}, y_j)
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import numpy.typing as npt

from ..errors import ConfigurationError

NDArrayFloat = npt.NDArray[np.floating]


@dataclass(frozen=True)
class Grid:
    """Single-domain Cartesian grid with square cells."""

    nx: int
    ny: int
    length: float            # Extent in x; dx = length / nx
    xoffset: float = 0.0     # x-coordinate of the left edge
    yoffset: float = 0.0     # y-coordinate of the bottom edge

    def __post_init__(self):
        if int(self.nx) < 2 or int(self.ny) < 2:
            raise ConfigurationError(
                f"Grid needs at least 2 cells per direction, got {self.nx} x {self.ny}")
        if not self.length > 0.0:
            raise ConfigurationError(f"Grid length must be positive, got {self.length}")

    @property
    def dx(self) -> float:
        return self.length / self.nx

    @property
    def height(self) -> float:
        return self.ny * self.dx

    @property
    def interior_shape(self) -> Tuple[int, int]:
        return (self.nx - 1, self.ny - 1)

    @property
    def node_shape(self) -> Tuple[int, int]:
        return (self.nx + 1, self.ny + 1)

    @property
    def u_shape(self) -> Tuple[int, int]:
        return (self.nx + 1, self.ny)

    @property
    def v_shape(self) -> Tuple[int, int]:
        return (self.nx, self.ny + 1)

    @property
    def num_edges(self) -> int:
        """Total number of velocity unknowns (x-edges + y-edges)."""
        return (self.nx + 1) * self.ny + self.nx * (self.ny + 1)

    def x_nodes(self) -> NDArrayFloat:
        return self.xoffset + self.dx * np.arange(self.nx + 1)

    def y_nodes(self) -> NDArrayFloat:
        return self.yoffset + self.dx * np.arange(self.ny + 1)

    def node_coordinates(self) -> Tuple[NDArrayFloat, NDArrayFloat]:
        """Node coordinates X, Y with shape (nx+1, ny+1), 'ij' indexing."""
        return np.meshgrid(self.x_nodes(), self.y_nodes(), indexing='ij')

    def interior_coordinates(self) -> Tuple[NDArrayFloat, NDArrayFloat]:
        X, Y = self.node_coordinates()
        return X[1:-1, 1:-1], Y[1:-1, 1:-1]

    def contains(self, x: float, y: float) -> bool:
        return (self.xoffset <= x <= self.xoffset + self.length and
                self.yoffset <= y <= self.yoffset + self.height)

    def __str__(self) -> str:
        return (f"{self.nx} x {self.ny} cells, dx={self.dx:.4g}, "
                f"[{self.xoffset:g}, {self.xoffset + self.length:g}] x "
                f"[{self.yoffset:g}, {self.yoffset + self.height:g}]")
