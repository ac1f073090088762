"""
Navier-Stokes models in vorticity form for the projection method.

Every model advances

    d(gamma)/dt = L gamma + N(x) - B f,    C gamma + offset = b

with L = Laplacian / Re (diagonal in the sine basis), N the explicit term,
B = R^T E^T the force-to-vorticity map and C = E R (-Laplacian)^-1 the
vorticity-to-boundary-velocity map. The variants differ only in N, in how
the flux is recovered from gamma, and in the boundary offset.
"""

from enum import Enum
from typing import Optional

import numpy as np
import numpy.typing as npt
import scipy.sparse as sp
from loguru import logger

from ..errors import ConfigurationError
from ..grid.cartesian import Grid
from ..grid.geometry import Geometry
from ..numerics.advection import advection_term
from ..numerics.operators import curl, curl_transpose
from ..numerics.regularizer import Regularizer
from ..numerics.transforms import (
    inverse_sine_transform,
    laplacian_eigenvalues,
    sine_transform,
    solve_diagonal,
)
from ..state import Flux, State

NDArrayFloat = npt.NDArray[np.floating]


class ModelType(Enum):
    """Closed set of model variants."""
    NONLINEAR = "nonlinear"
    LINEAR = "linear"
    ADJOINT = "adjoint"
    LINEAR_PERIODIC = "linearperiodic"


class NavierStokesModel:
    """
    Operators shared by all model variants.

    Subclasses implement nonlinear(state) and, where the flux carries a
    background flow, override compute_flux and boundary_offset.
    """

    model_type: ModelType
    name: str = "NavierStokes"

    def __init__(self, grid: Grid, geometry: Geometry, reynolds: float):
        if not reynolds > 0.0:
            raise ConfigurationError(f"Reynolds number must be positive, got {reynolds}")
        self.grid = grid
        self.geometry = geometry
        self.reynolds = float(reynolds)

        self._laplacian_eigenvalues = laplacian_eigenvalues(grid)
        self._lambda = self._laplacian_eigenvalues / self.reynolds
        self._lambda.setflags(write=False)

        self._regularizer = Regularizer(grid)
        self._E: Optional[sp.csr_matrix] = None
        self._E_revision: Optional[int] = None

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get_grid(self) -> Grid:
        return self.grid

    def get_geometry(self) -> Geometry:
        return self.geometry

    def get_lambda(self) -> NDArrayFloat:
        """Eigenvalues of L in the basis of S."""
        return self._lambda

    @property
    def num_points(self) -> int:
        return self.geometry.num_points

    # -------------------------------------------------------------------------
    # Linear operators
    # -------------------------------------------------------------------------

    def S(self, x: NDArrayFloat) -> NDArrayFloat:
        return sine_transform(x)

    def Sinv(self, x: NDArrayFloat) -> NDArrayFloat:
        return inverse_sine_transform(x)

    def laplacian_inverse(self, x: NDArrayFloat) -> NDArrayFloat:
        return solve_diagonal(x, self._laplacian_eigenvalues)

    def perturbation_flux(self, gamma: NDArrayFloat) -> Flux:
        """K gamma: velocity induced by the vorticity alone."""
        psi = -self.laplacian_inverse(gamma)
        u, v = curl(psi, self.grid.dx)
        return Flux(u, v)

    def flux_transpose(self, u: NDArrayFloat, v: NDArrayFloat) -> NDArrayFloat:
        """K^T (u, v)."""
        return -self.laplacian_inverse(curl_transpose(u, v, self.grid.dx))

    def interpolation_matrix(self) -> sp.csr_matrix:
        """E for the current marker positions, rebuilt when the bodies move."""
        if self._E is None or self._E_revision != self.geometry.revision:
            self._E = self._regularizer.build(self.geometry.get_points())
            self._E_revision = self.geometry.revision
            logger.debug(f"Built interpolation operator: {self._E.shape}, "
                         f"{self._E.nnz} nonzeros (geometry revision {self._E_revision})")
        return self._E

    def B(self, f: NDArrayFloat) -> NDArrayFloat:
        """Boundary force -> vorticity, R^T E^T f."""
        if f.size == 0:
            return np.zeros(self.grid.interior_shape)
        q = Flux.from_flat(self.interpolation_matrix().T @ f, self.grid)
        return curl_transpose(q.u, q.v, self.grid.dx)

    def C(self, gamma: NDArrayFloat) -> NDArrayFloat:
        """Vorticity -> boundary velocity induced by it, E K gamma."""
        E = self.interpolation_matrix()
        if E.shape[0] == 0:
            return np.zeros(0)
        return E @ self.perturbation_flux(gamma).flatten()

    def boundary_offset(self) -> NDArrayFloat:
        """Velocity at the markers not induced by gamma."""
        return np.zeros(2 * self.num_points)

    # -------------------------------------------------------------------------
    # Model-specific terms
    # -------------------------------------------------------------------------

    def compute_flux(self, gamma: NDArrayFloat, q: Flux) -> None:
        """Write into q the flux consistent with gamma."""
        q.assign(self.perturbation_flux(gamma))

    def nonlinear(self, state: State) -> NDArrayFloat:
        raise NotImplementedError

    def subtract_base_flow(self, state: State) -> None:
        raise ConfigurationError(
            f"{self.name} model has no base flow to subtract from the initial condition")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(grid={self.grid}, Re={self.reynolds:g})"


class NonlinearNavierStokes(NavierStokesModel):
    """Full nonlinear equations with a potential background flow."""

    model_type = ModelType.NONLINEAR
    name = "nonlinear"

    def __init__(self, grid: Grid, geometry: Geometry, reynolds: float,
                 q_potential: Optional[Flux] = None):
        super().__init__(grid, geometry, reynolds)
        if q_potential is None:
            q_potential = Flux.zeros(grid)
        if q_potential.shapes != (grid.u_shape, grid.v_shape):
            raise ConfigurationError(
                f"Potential flow shape {q_potential.shapes} does not match grid {grid}")
        self.q_potential = q_potential.copy()

    def compute_flux(self, gamma: NDArrayFloat, q: Flux) -> None:
        q.assign(self.perturbation_flux(gamma) + self.q_potential)

    def boundary_offset(self) -> NDArrayFloat:
        E = self.interpolation_matrix()
        if E.shape[0] == 0:
            return np.zeros(0)
        return E @ self.q_potential.flatten()

    def nonlinear(self, state: State) -> NDArrayFloat:
        return advection_term(state.gamma, state.q.u, state.q.v, self.grid.dx)
