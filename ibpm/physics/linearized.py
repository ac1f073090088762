"""
Perturbation models: linearized about a steady or periodic base flow, and adjoint.

The state of these models is a perturbation. Its flux carries no background
flow; the base flow enters only through the explicit term.
"""

from typing import Sequence

import numpy as np
import numpy.typing as npt
from loguru import logger

from ..errors import ConfigurationError
from ..grid.cartesian import Grid
from ..grid.geometry import Geometry
from ..numerics.advection import adjoint_advection_term, linearized_advection_term
from ..state import State
from .navier_stokes import ModelType, NavierStokesModel

NDArrayFloat = npt.NDArray[np.floating]


def _check_base_flow(base: State, grid: Grid, label: str) -> State:
    """Copy of a base flow after checking it lives on the working grid."""
    if base.gamma.shape != grid.interior_shape:
        raise ConfigurationError(
            f"{label} vorticity has shape {base.gamma.shape}, "
            f"grid expects {grid.interior_shape}")
    if base.q.shapes != (grid.u_shape, grid.v_shape):
        raise ConfigurationError(
            f"{label} flux has shapes {base.q.shapes}, "
            f"grid expects {(grid.u_shape, grid.v_shape)}")
    if base.grid != grid:
        raise ConfigurationError(
            f"{label} was saved on {base.grid}, working grid is {grid}")
    return base.copy()


class LinearizedNavierStokes(NavierStokesModel):
    """Equations linearized about a steady base flow x0."""

    model_type = ModelType.LINEAR
    name = "linear"

    def __init__(self, grid: Grid, geometry: Geometry, reynolds: float, base_flow: State):
        super().__init__(grid, geometry, reynolds)
        self.base_flow = _check_base_flow(base_flow, grid, "Base flow")

    def _base_flow_for(self, state: State) -> State:
        return self.base_flow

    def nonlinear(self, state: State) -> NDArrayFloat:
        x0 = self._base_flow_for(state)
        return linearized_advection_term(state.gamma, state.q.u, state.q.v,
                                         x0.gamma, x0.q.u, x0.q.v, self.grid.dx)

    def subtract_base_flow(self, state: State) -> None:
        """Turn a full flow state into a perturbation about the base flow."""
        x0 = self._base_flow_for(state)
        state.gamma -= x0.gamma
        self.compute_flux(state.gamma, state.q)
        state.f.fill(0.0)


class AdjointNavierStokes(LinearizedNavierStokes):
    """Adjoint of the linearized equations about a steady base flow."""

    model_type = ModelType.ADJOINT
    name = "adjoint"

    def nonlinear(self, state: State) -> NDArrayFloat:
        x0 = self._base_flow_for(state)
        return adjoint_advection_term(state.gamma, x0.gamma, x0.q.u, x0.q.v,
                                      self.grid.dx, self.flux_transpose)


class LinearizedPeriodicNavierStokes(LinearizedNavierStokes):
    """
    Equations linearized about a time-periodic base flow.

    The base flow is a sequence of snapshots, one per timestep; step n uses
    snapshot (n + phase) mod period.
    """

    model_type = ModelType.LINEAR_PERIODIC
    name = "linearperiodic"

    def __init__(self, grid: Grid, geometry: Geometry, reynolds: float,
                 base_flows: Sequence[State], phase: int = 0):
        if len(base_flows) < 1:
            raise ConfigurationError("Periodic base flow needs at least one snapshot")
        super().__init__(grid, geometry, reynolds, base_flows[0])
        self.base_flows = [
            _check_base_flow(x0, grid, f"Periodic base flow {i}")
            for i, x0 in enumerate(base_flows)
        ]
        self.phase = int(phase)
        logger.info(f"Periodic base flow: {self.period} snapshots, phase {self.phase}")

    @property
    def period(self) -> int:
        return len(self.base_flows)

    def _base_flow_for(self, state: State) -> State:
        return self.base_flows[(state.timestep + self.phase) % self.period]
