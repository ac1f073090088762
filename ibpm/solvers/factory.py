"""
Solver Factory Module.

Provides a standardized way to create a time stepper by name, so the driver
and scripts share one mapping of scheme names onto classes.
"""

from typing import Dict, Optional, Type

from loguru import logger

from ..errors import ConfigurationError
from ..physics.navier_stokes import NavierStokesModel
from .projection import ProjectionConfig
from .time_stepping import AdamsBashforth, Euler, RungeKutta2, RungeKutta3, TimeStepper

SCHEMES: Dict[str, Type[TimeStepper]] = {
    "euler": Euler,
    "rk2": RungeKutta2,
    "rk3": RungeKutta3,
    "ab2": AdamsBashforth,
}


def create_timestepper(
    name: str,
    model: NavierStokesModel,
    timestep: float,
    config: Optional[ProjectionConfig] = None,
) -> TimeStepper:
    """
    Create a time stepper.

    Parameters
    ----------
    name : str
        Scheme: "euler", "rk2", "rk3" or "ab2" (case-insensitive).
    model : NavierStokesModel
        Model to integrate.
    timestep : float
        Fixed timestep h.
    config : ProjectionConfig, optional
        Projection solver settings.

    Raises
    ------
    ConfigurationError
        If the scheme is unknown or the timestep is not positive.
    """
    key = str(name).strip().lower()
    if key not in SCHEMES:
        raise ConfigurationError(
            f"Unknown time integration scheme '{name}' (expected one of: {', '.join(SCHEMES)})")
    stepper = SCHEMES[key](model, timestep, config)
    logger.info(f"Using {stepper.get_name()} timestepper, dt = {timestep:g}")
    return stepper
