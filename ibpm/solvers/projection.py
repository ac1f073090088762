"""
Projection solve for the immersed-boundary constraint.

Each stage of a time step solves the saddle-point system

    A gamma + h B f = a,       A = I - (h/2) L
    C gamma         = b - offset

by block elimination. With gamma* = A^-1 a the force satisfies

    M f = C gamma* - (b - offset),     M = h C A^-1 B,

and gamma = gamma* - h A^-1 B f. A is diagonal in the sine basis, so A^-1
costs two transforms. M is symmetric positive definite when the markers are
distinct, so it is either factored once with Cholesky or solved matrix-free
with conjugate gradients.

Reference: Taira & Colonius (2007), J. Comput. Phys. 225, 2118-2137.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import numpy.typing as npt
from loguru import logger
from scipy.linalg import LinAlgError, cho_factor, cho_solve
from scipy.sparse.linalg import LinearOperator, cg

from ..errors import ConfigurationError, ConvergenceError
from ..physics.navier_stokes import NavierStokesModel

NDArrayFloat = npt.NDArray[np.floating]


@dataclass
class ProjectionConfig:
    """Configuration for the projection solve."""
    method: str = "cholesky"      # "cholesky" or "cg"
    tol: float = 1e-10            # Relative tolerance of the CG iteration
    max_iter: int = 500           # CG iteration budget
    constraint_tol: float = 1e-6  # Accepted relative violation of C gamma = b


@dataclass
class ProjectionResult:
    """Diagnostics of the latest solve.

    Attributes
    ----------
    residual_norm : float
        ||C gamma + offset - b|| after the solve.
    iterations : int
        CG iterations (0 for a direct solve).
    """
    residual_norm: float
    iterations: int


class ProjectionSolver:
    """Base class: block elimination around a Schur complement solve."""

    name: str = "projection"

    def __init__(self, model: NavierStokesModel, timestep: float,
                 config: Optional[ProjectionConfig] = None):
        if not timestep > 0.0:
            raise ConfigurationError(f"Timestep must be positive, got {timestep}")
        self.model = model
        self._timestep = float(timestep)
        self.config = config if config is not None else ProjectionConfig()
        self._A_eigenvalues = 1.0 - 0.5 * self._timestep * model.get_lambda()
        self._A_eigenvalues.setflags(write=False)
        self.last_result: Optional[ProjectionResult] = None

    @property
    def timestep(self) -> float:
        return self._timestep

    def A_inverse(self, x: NDArrayFloat) -> NDArrayFloat:
        m = self.model
        return m.Sinv(m.S(x) / self._A_eigenvalues)

    def schur_apply(self, f: NDArrayFloat) -> NDArrayFloat:
        """M f = h C A^-1 B f."""
        m = self.model
        return self._timestep * m.C(self.A_inverse(m.B(f)))

    def _solve_schur(self, rhs: NDArrayFloat) -> Tuple[NDArrayFloat, int]:
        raise NotImplementedError

    def solve(self, a: NDArrayFloat, b: NDArrayFloat,
              gamma: NDArrayFloat, f: NDArrayFloat) -> None:
        """
        Solve for the new circulation and boundary force.

        Parameters
        ----------
        a : ndarray
            Right-hand side of the vorticity equation.
        b : ndarray
            Prescribed velocity at the markers (boundary vector).
        gamma : ndarray
            Output circulation, overwritten in place.
        f : ndarray
            Output boundary force, overwritten in place.

        Raises
        ------
        ConvergenceError
            If the constraint is not met. gamma and f are left untouched.
        """
        m = self.model
        gamma_star = self.A_inverse(a)
        if m.num_points == 0:
            gamma[...] = gamma_star
            self.last_result = ProjectionResult(0.0, 0)
            return

        offset = m.boundary_offset()
        rhs = m.C(gamma_star) - (b - offset)
        f_new, iterations = self._solve_schur(rhs)
        gamma_new = gamma_star - self._timestep * self.A_inverse(m.B(f_new))

        residual = float(np.linalg.norm(m.C(gamma_new) + offset - b))
        scale = max(1.0, float(np.linalg.norm(rhs)), float(np.linalg.norm(b)))
        if residual > self.config.constraint_tol * scale:
            raise ConvergenceError(
                f"{self.name} projection: constraint residual {residual:.3e} "
                f"exceeds tolerance {self.config.constraint_tol * scale:.3e}",
                residual=residual, iterations=iterations)

        gamma[...] = gamma_new
        f[...] = f_new
        self.last_result = ProjectionResult(residual, iterations)


class CholeskySolver(ProjectionSolver):
    """
    Direct solve with a dense Cholesky factor of M.

    M is assembled column by column from schur_apply. The factor is reused
    until the geometry revision changes, so stationary bodies are factored
    once per solver.
    """

    name = "cholesky"

    def __init__(self, model: NavierStokesModel, timestep: float,
                 config: Optional[ProjectionConfig] = None):
        super().__init__(model, timestep, config)
        self._factor = None
        self._factor_revision: Optional[int] = None

    def assemble(self) -> NDArrayFloat:
        """Dense Schur complement M, symmetrized."""
        n = 2 * self.model.num_points
        M = np.empty((n, n))
        e = np.zeros(n)
        for j in range(n):
            e[j] = 1.0
            M[:, j] = self.schur_apply(e)
            e[j] = 0.0
        return 0.5 * (M + M.T)

    def _factorize(self) -> None:
        revision = self.model.get_geometry().revision
        if self._factor is not None and self._factor_revision == revision:
            return
        M = self.assemble()
        try:
            self._factor = cho_factor(M)
        except LinAlgError as e:
            self._factor = None
            raise ConvergenceError(
                f"Schur complement is not positive definite ({M.shape[0]} unknowns): {e}"
            ) from e
        self._factor_revision = revision
        logger.debug(f"Factored {M.shape[0]}x{M.shape[0]} Schur complement "
                     f"(h={self._timestep:g}, geometry revision {revision})")

    def _solve_schur(self, rhs: NDArrayFloat) -> Tuple[NDArrayFloat, int]:
        self._factorize()
        return cho_solve(self._factor, rhs), 0


class ConjugateGradientSolver(ProjectionSolver):
    """Matrix-free conjugate gradients on M."""

    name = "cg"

    def _solve_schur(self, rhs: NDArrayFloat) -> Tuple[NDArrayFloat, int]:
        n = rhs.size
        count = [0]

        def matvec(f):
            count[0] += 1
            return self.schur_apply(np.asarray(f, dtype=float).ravel())

        op = LinearOperator((n, n), matvec=matvec, dtype=float)
        f, info = cg(op, rhs, rtol=self.config.tol, atol=0.0, maxiter=self.config.max_iter)
        if info != 0:
            residual = float(np.linalg.norm(rhs - self.schur_apply(f)))
            raise ConvergenceError(
                f"CG did not converge in {self.config.max_iter} iterations "
                f"(residual {residual:.3e}, info={info})",
                residual=residual, iterations=count[0])
        return f, count[0]


_SOLVERS = {
    "cholesky": CholeskySolver,
    "cg": ConjugateGradientSolver,
}


def create_solver(model: NavierStokesModel, timestep: float,
                  config: Optional[ProjectionConfig] = None) -> ProjectionSolver:
    """Build the projection solver named by config.method."""
    config = config if config is not None else ProjectionConfig()
    method = config.method.strip().lower()
    if method not in _SOLVERS:
        raise ConfigurationError(
            f"Unknown projection solver '{config.method}' (expected one of: "
            f"{', '.join(_SOLVERS)})")
    return _SOLVERS[method](model, timestep, config)
