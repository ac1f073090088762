"""
Time integration of the projection method.

All schemes treat the linear term with Crank-Nicolson and the explicit term
N with an explicit scheme:

    (I - h/2 L) gamma^{n+1} + h B f = (I + h/2 L) gamma^n + h N*
    C gamma^{n+1}                   = b(t^{n+1})

The factor (I + h/2 L) is applied in the sine basis through the precomputed
eigenvalues 1 + (h/2) lambda, which is why the timestep is fixed at
construction.

References:
    Peyret (2002), Spectral Methods for Incompressible Viscous Flow, p. 148.
    Spalart, Moser, Rogers (1991), J. Comput. Phys. 96, 297-324.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np
import numpy.typing as npt
from loguru import logger

from ..errors import ConfigurationError
from ..physics.navier_stokes import NavierStokesModel
from ..state import State
from .projection import ProjectionConfig, ProjectionSolver, create_solver

NDArrayFloat = npt.NDArray[np.floating]


class TimeStepper:
    """
    Base class for the schemes.

    Subclasses implement advance(state). Single-step schemes carry no history,
    so init/load/save succeed without doing anything.
    """

    name: str = "TimeStepper"

    def __init__(self, model: NavierStokesModel, timestep: float,
                 config: Optional[ProjectionConfig] = None):
        if not timestep > 0.0:
            raise ConfigurationError(f"Timestep must be positive, got {timestep}")
        self.model = model
        self._timestep = float(timestep)
        self.config = config if config is not None else ProjectionConfig()
        self._linear_term_eigenvalues = self._eigenvalue_factor(self._timestep)

    @property
    def timestep(self) -> float:
        return self._timestep

    def _eigenvalue_factor(self, h: float) -> NDArrayFloat:
        eig = 1.0 + 0.5 * h * self.model.get_lambda()
        eig.setflags(write=False)
        return eig

    def create_solver(self, timestep: float) -> ProjectionSolver:
        return create_solver(self.model, timestep, self.config)

    def _scratch_state(self) -> State:
        return State(self.model.get_grid(), self.model.num_points)

    def get_name(self) -> str:
        return self.name

    def init(self) -> None:
        pass

    def load(self, basename: Union[str, Path]) -> bool:
        return True

    def save(self, basename: Union[str, Path]) -> bool:
        return True

    def advance(self, state: State) -> None:
        raise NotImplementedError

    def _boundary_velocities(self, time: float) -> NDArrayFloat:
        """Marker velocities at the given time, moving the bodies there first."""
        geometry = self.model.get_geometry()
        if not geometry.is_stationary():
            geometry.move_bodies(time)
        return geometry.get_velocities()

    def _linear_term(self, gamma: NDArrayFloat, eigenvalues: NDArrayFloat) -> NDArrayFloat:
        """(I + h/2 L) gamma."""
        return self.model.Sinv(self.model.S(gamma) * eigenvalues)

    def _finish_step(self, state: State) -> None:
        state.time += self._timestep
        state.timestep += 1

    def __repr__(self) -> str:
        return f"{type(self).__name__}(h={self._timestep:g}, model={self.model.name})"


class Euler(TimeStepper):
    """Crank-Nicolson for L, explicit Euler for N."""

    name = "Euler"

    def __init__(self, model: NavierStokesModel, timestep: float,
                 config: Optional[ProjectionConfig] = None):
        super().__init__(model, timestep, config)
        self._solver = self.create_solver(timestep)

    def advance(self, state: State) -> None:
        h = self._timestep
        b = self._boundary_velocities(state.time + h)

        a = self._linear_term(state.gamma, self._linear_term_eigenvalues)
        a += h * self.model.nonlinear(state)

        self._solver.solve(a, b, state.gamma, state.f)
        self.model.compute_flux(state.gamma, state.q)
        self._finish_step(state)


class RungeKutta2(TimeStepper):
    """
    Crank-Nicolson for L, two-stage Runge-Kutta for N (Peyret, alpha=1, beta=1/2).

        (I - h/2 L) w1 + h B f1 = (I + h/2 L) w^n + h N(w^n)
        (I - h/2 L) w^{n+1} + h B f^{n+1} = (I + h/2 L) w^n + h/2 (N(w^n) + N(w1))
    """

    name = "RK2"

    def __init__(self, model: NavierStokesModel, timestep: float,
                 config: Optional[ProjectionConfig] = None):
        super().__init__(model, timestep, config)
        self._solver = self.create_solver(timestep)
        self._x1 = self._scratch_state()

    def advance(self, state: State) -> None:
        h = self._timestep
        x1 = self._x1
        model = self.model
        linear = self._linear_term(state.gamma, self._linear_term_eigenvalues)
        n0 = model.nonlinear(state)

        # Stage 1: predictor at t + h
        b = self._boundary_velocities(state.time + h)
        self._solver.solve(linear + h * n0, b, x1.gamma, x1.f)
        model.compute_flux(x1.gamma, x1.q)
        x1.time = state.time + h
        x1.timestep = state.timestep + 1

        # Stage 2: trapezoidal correction
        b = self._boundary_velocities(state.time + h)
        a = linear + 0.5 * h * (n0 + model.nonlinear(x1))
        self._solver.solve(a, b, state.gamma, state.f)
        model.compute_flux(state.gamma, state.q)
        self._finish_step(state)


class RungeKutta3(TimeStepper):
    """
    Crank-Nicolson for L, low-storage three-stage Runge-Kutta for N.

    Stage k covers c_k h with its own Crank-Nicolson factor and projection
    solver:

        (I - c_k h/2 L) w_k + c_k h B f_k
            = (I + c_k h/2 L) w_{k-1} + h (gamma_k N_{k-1} + zeta_k N_{k-2})

    Intermediate stages keep the step index of the state they start from.
    """

    name = "RK3"

    C = (8.0 / 15.0, 2.0 / 15.0, 1.0 / 3.0)
    GAMMA = (8.0 / 15.0, 5.0 / 12.0, 3.0 / 4.0)
    ZETA = (0.0, -17.0 / 60.0, -5.0 / 12.0)

    def __init__(self, model: NavierStokesModel, timestep: float,
                 config: Optional[ProjectionConfig] = None):
        super().__init__(model, timestep, config)
        self._stage_eigenvalues = [self._eigenvalue_factor(c * self._timestep) for c in self.C]
        self._solvers = [self.create_solver(c * self._timestep) for c in self.C]
        self._scratch = [self._scratch_state(), self._scratch_state()]

    def advance(self, state: State) -> None:
        h = self._timestep
        model = self.model
        start_time = state.time
        stage_time = start_time
        source = state
        previous: Optional[NDArrayFloat] = None

        for k in range(3):
            last = k == 2
            stage_time = start_time + h if last else stage_time + self.C[k] * h
            target = state if last else self._scratch[k]

            nonlinear = model.nonlinear(source)
            explicit = self.GAMMA[k] * nonlinear
            if previous is not None:
                explicit += self.ZETA[k] * previous

            b = self._boundary_velocities(stage_time)
            a = self._linear_term(source.gamma, self._stage_eigenvalues[k]) + h * explicit
            self._solvers[k].solve(a, b, target.gamma, target.f)
            model.compute_flux(target.gamma, target.q)
            if not last:
                target.time = stage_time
                target.timestep = state.timestep

            previous = nonlinear
            source = target

        self._finish_step(state)


class AdamsBashforth(TimeStepper):
    """
    Crank-Nicolson for L, second-order Adams-Bashforth for N.

        a = (I + h/2 L) w^n + h (3/2 N^n - 1/2 N^{n-1})

    N^{n-1} is history: save/load persist it next to a restart file, and a
    cold start uses N^{n-1} = N^n, i.e. one Euler step.
    """

    name = "AB2"
    SUFFIX = ".ab2.npz"

    def __init__(self, model: NavierStokesModel, timestep: float,
                 config: Optional[ProjectionConfig] = None):
        super().__init__(model, timestep, config)
        self._solver = self.create_solver(timestep)
        self._previous_nonlinear = np.zeros(model.get_grid().interior_shape)
        self._has_history = False

    @property
    def has_history(self) -> bool:
        return self._has_history

    def init(self) -> None:
        self._previous_nonlinear.fill(0.0)
        self._has_history = False

    def _history_path(self, basename: Union[str, Path]) -> Path:
        return Path(str(basename) + self.SUFFIX)

    def save(self, basename: Union[str, Path]) -> bool:
        path = self._history_path(basename)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            np.savez(path, nonlinear=self._previous_nonlinear,
                     has_history=self._has_history, timestep=self._timestep)
        except OSError as e:
            logger.warning(f"Could not write {self.name} history to {path}: {e}")
            return False
        return True

    def load(self, basename: Union[str, Path]) -> bool:
        path = self._history_path(basename)
        try:
            with np.load(path) as data:
                nonlinear = np.array(data['nonlinear'])
                has_history = bool(data['has_history'])
                h = float(data['timestep'])
        except (OSError, KeyError, ValueError) as e:
            logger.warning(f"Could not read {self.name} history from {path}: {e}")
            return False
        if nonlinear.shape != self._previous_nonlinear.shape:
            logger.warning(f"{self.name} history in {path} has shape {nonlinear.shape}, "
                           f"expected {self._previous_nonlinear.shape}")
            return False
        if not np.isclose(h, self._timestep, rtol=1e-12, atol=0.0):
            logger.warning(f"{self.name} history in {path} was written with h={h:g}, "
                           f"this run uses h={self._timestep:g}")
            return False
        self._previous_nonlinear[...] = nonlinear
        self._has_history = has_history
        logger.info(f"Loaded {self.name} history from {path}")
        return True

    def advance(self, state: State) -> None:
        h = self._timestep
        b = self._boundary_velocities(state.time + h)

        nonlinear = self.model.nonlinear(state)
        previous = self._previous_nonlinear if self._has_history else nonlinear
        a = self._linear_term(state.gamma, self._linear_term_eigenvalues)
        a += h * (1.5 * nonlinear - 0.5 * previous)

        self._solver.solve(a, b, state.gamma, state.f)
        self._previous_nonlinear[...] = nonlinear
        self._has_history = True
        self.model.compute_flux(state.gamma, state.q)
        self._finish_step(state)
