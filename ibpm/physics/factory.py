"""
Model Factory Module.

Maps a model name plus base-flow files onto one of the four model variants,
rejecting incompatible combinations before any stepping starts.
"""

from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from ..errors import ConfigurationError
from ..grid.cartesian import Grid
from ..grid.geometry import Geometry
from ..state import Flux, State
from .linearized import (
    AdjointNavierStokes,
    LinearizedNavierStokes,
    LinearizedPeriodicNavierStokes,
)
from .navier_stokes import ModelType, NavierStokesModel, NonlinearNavierStokes


def str_to_model_type(name: Union[str, ModelType]) -> ModelType:
    """'nonlinear' | 'linear' | 'adjoint' | 'linearperiodic', case-insensitive."""
    if isinstance(name, ModelType):
        return name
    try:
        return ModelType(str(name).strip().lower())
    except ValueError:
        valid = ", ".join(t.value for t in ModelType)
        raise ConfigurationError(f"Unknown model type '{name}' (expected one of: {valid})") from None


def load_base_flow(path: Union[str, Path]) -> State:
    """
    Read a base flow snapshot.

    Raises
    ------
    ConfigurationError
        If the file cannot be read. A base flow is never optional.
    """
    try:
        state = State.from_file(path)
    except (OSError, KeyError, ValueError) as e:
        raise ConfigurationError(f"Could not load base flow from {path}: {e}") from e
    logger.info(f"Loaded base flow from {path} (t={state.time:g}, step {state.timestep})")
    return state


def periodic_base_flow_names(pattern: str, period: int, start: int = 0) -> List[str]:
    """
    File names of the periodic snapshots start .. start + period - 1.

    The pattern uses either printf style ('flow/ibpm%05d.npz') or
    str.format style ('flow/ibpm{:05d}.npz').

    Raises
    ------
    ConfigurationError
        If the pattern cannot be formatted with one integer, or does not
        give a distinct name for each snapshot.
    """
    try:
        if '%' in pattern:
            names = [pattern % (start + i) for i in range(period)]
        else:
            names = [pattern.format(start + i) for i in range(period)]
    except (TypeError, ValueError, KeyError, IndexError) as e:
        raise ConfigurationError(
            f"Invalid periodic base flow pattern '{pattern}': {e}") from e

    if len(set(names)) != len(names):
        raise ConfigurationError(
            f"Periodic base flow pattern '{pattern}' does not number the snapshots")
    return names


def create_model(
    model_type: Union[str, ModelType],
    grid: Grid,
    geometry: Geometry,
    reynolds: float,
    q_potential: Optional[Flux] = None,
    baseflow: str = "",
    periodic_baseflow: str = "",
    period: int = 1,
    period_start: int = 0,
    phase: int = 0,
) -> NavierStokesModel:
    """
    Create a model of the requested variant.

    Parameters
    ----------
    model_type : str or ModelType
        Variant to build.
    grid, geometry : Grid, Geometry
        Discretization and immersed bodies.
    reynolds : float
        Reynolds number.
    q_potential : Flux, optional
        Background flow for the nonlinear model.
    baseflow : str
        Restart file of the steady base flow (linear and adjoint models).
    periodic_baseflow : str
        File name pattern of the periodic base flow (linearperiodic model).
    period, period_start : int
        Number of periodic snapshots and index of the first one.
    phase : int
        Snapshot offset applied to the state's timestep.

    Raises
    ------
    ConfigurationError
        For unknown names, incompatible options or unreadable base flows.
    """
    kind = str_to_model_type(model_type)

    if kind is ModelType.NONLINEAR:
        if baseflow or periodic_baseflow:
            raise ConfigurationError("The nonlinear model does not take a base flow")
        model: NavierStokesModel = NonlinearNavierStokes(grid, geometry, reynolds, q_potential)

    elif kind in (ModelType.LINEAR, ModelType.ADJOINT):
        if periodic_baseflow:
            raise ConfigurationError(
                f"A periodic base flow is not used by the {kind.value} model")
        if not baseflow:
            raise ConfigurationError(f"The {kind.value} model needs a base flow")
        x0 = load_base_flow(baseflow)
        cls = LinearizedNavierStokes if kind is ModelType.LINEAR else AdjointNavierStokes
        model = cls(grid, geometry, reynolds, x0)

    else:
        if baseflow:
            raise ConfigurationError(
                "The linearperiodic model takes a periodic base flow, not a single one")
        if not periodic_baseflow:
            raise ConfigurationError("The linearperiodic model needs a periodic base flow")
        if period < 1:
            raise ConfigurationError(f"Period must be at least 1, got {period}")
        names = periodic_base_flow_names(periodic_baseflow, period, period_start)
        base_flows = [load_base_flow(name) for name in names]
        model = LinearizedPeriodicNavierStokes(grid, geometry, reynolds, base_flows, phase)

    logger.info(f"Set up {kind.value} Navier-Stokes model, Re = {reynolds:g}")
    return model
