"""
Flow state: vorticity, edge velocity (flux), boundary force and time.

Restart files are NumPy .npz archives holding the fields plus the grid
parameters they were computed on.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import numpy as np
import numpy.typing as npt
from loguru import logger

from .errors import ConfigurationError
from .grid.cartesian import Grid

NDArrayFloat = npt.NDArray[np.floating]


def _npz_path(path: Union[str, Path]) -> Path:
    path = Path(path)
    return path if path.suffix == '.npz' else path.with_name(path.name + '.npz')


@dataclass
class Flux:
    """Edge-centred velocity: u on x-edges (nx+1, ny), v on y-edges (nx, ny+1)."""

    u: NDArrayFloat
    v: NDArrayFloat

    @classmethod
    def zeros(cls, grid: Grid) -> 'Flux':
        return cls(np.zeros(grid.u_shape), np.zeros(grid.v_shape))

    @classmethod
    def uniform(cls, grid: Grid, magnitude: float = 1.0, alpha: float = 0.0) -> 'Flux':
        """Uniform free stream of given magnitude at angle alpha (radians)."""
        return cls(np.full(grid.u_shape, magnitude * np.cos(alpha)),
                   np.full(grid.v_shape, magnitude * np.sin(alpha)))

    @classmethod
    def from_flat(cls, vector: NDArrayFloat, grid: Grid) -> 'Flux':
        nu = grid.u_shape[0] * grid.u_shape[1]
        return cls(vector[:nu].reshape(grid.u_shape).copy(),
                   vector[nu:].reshape(grid.v_shape).copy())

    def flatten(self) -> NDArrayFloat:
        return np.concatenate([self.u.ravel(), self.v.ravel()])

    def copy(self) -> 'Flux':
        return Flux(self.u.copy(), self.v.copy())

    def assign(self, other: 'Flux') -> None:
        """Overwrite in place with another flux of the same shape."""
        self.u[...] = other.u
        self.v[...] = other.v

    def fill(self, value: float) -> None:
        self.u.fill(value)
        self.v.fill(value)

    @property
    def shapes(self) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        return (self.u.shape, self.v.shape)

    def __add__(self, other: 'Flux') -> 'Flux':
        return Flux(self.u + other.u, self.v + other.v)

    def __mul__(self, scale: float) -> 'Flux':
        return Flux(self.u * scale, self.v * scale)

    __rmul__ = __mul__


class State:
    """
    Snapshot of the simulated flow.

    Attributes
    ----------
    gamma : ndarray, shape (nx-1, ny-1)
        Vorticity at interior nodes.
    q : Flux
        Edge velocity consistent with gamma.
    f : ndarray, shape (2 * n_points,)
        Boundary force at the markers.
    time : float
        Simulation time.
    timestep : int
        Number of steps taken.
    """

    def __init__(self, grid: Grid, num_points: int):
        self.grid = grid
        self.gamma = np.zeros(grid.interior_shape)
        self.q = Flux.zeros(grid)
        self.f = np.zeros(2 * num_points)
        self.time = 0.0
        self.timestep = 0

    @property
    def num_points(self) -> int:
        return self.f.size // 2

    def copy(self) -> 'State':
        other = State(self.grid, self.num_points)
        other.assign(self)
        return other

    def assign(self, other: 'State') -> None:
        """Copy all fields from another state of the same size, in place."""
        self.gamma[...] = other.gamma
        self.q.assign(other.q)
        self.f[...] = other.f
        self.time = other.time
        self.timestep = other.timestep

    def zero(self) -> None:
        self.gamma.fill(0.0)
        self.q.fill(0.0)
        self.f.fill(0.0)

    def compute_net_force(self) -> Tuple[float, float]:
        """Net force (x, y) exerted on all bodies."""
        n = self.num_points
        area = self.grid.dx ** 2
        return float(area * np.sum(self.f[:n])), float(area * np.sum(self.f[n:]))

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self, path: Union[str, Path]) -> bool:
        """Write a restart file. Returns False (and logs) on failure."""
        path = _npz_path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            np.savez(
                path,
                gamma=self.gamma, qu=self.q.u, qv=self.q.v, f=self.f,
                time=self.time, timestep=self.timestep,
                nx=self.grid.nx, ny=self.grid.ny, length=self.grid.length,
                xoffset=self.grid.xoffset, yoffset=self.grid.yoffset,
            )
        except OSError as e:
            logger.warning(f"Could not write state to {path}: {e}")
            return False
        return True

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'State':
        """
        Read a restart file on the grid it was saved with.

        Raises
        ------
        OSError, KeyError, ValueError
            If the file is missing or not a valid restart file.
        ConfigurationError
            If the stored grid parameters are invalid.
        """
        path = _npz_path(path)
        with np.load(path) as data:
            grid = Grid(int(data['nx']), int(data['ny']), float(data['length']),
                        float(data['xoffset']), float(data['yoffset']))
            state = cls(grid, int(data['f'].size) // 2)
            state.gamma[...] = data['gamma']
            state.q.u[...] = data['qu']
            state.q.v[...] = data['qv']
            state.f[...] = data['f']
            state.time = float(data['time'])
            state.timestep = int(data['timestep'])
        return state

    def load(self, path: Union[str, Path]) -> bool:
        """
        Load a restart file into this state.

        Returns False (and logs) if the file cannot be read or was saved on a
        different grid or with a different number of boundary points.
        """
        try:
            other = State.from_file(path)
        except (OSError, KeyError, ValueError, ConfigurationError) as e:
            logger.warning(f"Could not read state from {path}: {e}")
            return False
        if other.gamma.shape != self.gamma.shape or other.f.shape != self.f.shape:
            logger.error(
                f"State in {path} has gamma {other.gamma.shape}, f {other.f.shape}; "
                f"expected gamma {self.gamma.shape}, f {self.f.shape}")
            return False
        self.assign(other)
        return True
