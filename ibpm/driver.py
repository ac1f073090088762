"""
Simulation driver: builds a run from a configuration and integrates it.

Output cadence, restart handling and force logging live here, outside the
time steppers.
"""

import math
from pathlib import Path
from typing import Optional

from loguru import logger

from .config.loader import save_yaml
from .config.schema import SimulationConfig
from .errors import ConfigurationError
from .grid.cartesian import Grid
from .grid.geometry import Geometry, body_from_dict
from .io.output import OutputForce, OutputLogger, OutputPlot, OutputRestart, OutputVTK
from .physics.factory import create_model
from .physics.navier_stokes import ModelType, NavierStokesModel
from .solvers.factory import create_timestepper
from .solvers.projection import ProjectionConfig
from .solvers.time_stepping import TimeStepper
from .state import Flux, State


def build_grid(config: SimulationConfig) -> Grid:
    g = config.grid
    return Grid(int(g.nx), int(g.ny), float(g.length), float(g.xoffset), float(g.yoffset))


def build_geometry(config: SimulationConfig) -> Geometry:
    """Bodies from the geometry file, followed by any listed inline."""
    g = config.geometry
    geometry = Geometry.load(g.file) if g.file else Geometry()
    for body in g.bodies or []:
        geometry.add_body(body_from_dict(body))
    logger.info(f"Geometry: {len(geometry.bodies)} bodies, {geometry.num_points} points "
                f"on the boundary ({'stationary' if geometry.is_stationary() else 'moving'})")
    return geometry


def _strip_npz(path: str) -> str:
    return path[:-4] if path.endswith('.npz') else path


class Simulation:
    """A configured run: model, stepper, state and outputs."""

    def __init__(self, config: SimulationConfig, model: NavierStokesModel,
                 stepper: TimeStepper, state: State, outputs: OutputLogger):
        self.config = config
        self.model = model
        self.stepper = stepper
        self.state = state
        self.outputs = outputs

    @classmethod
    def from_config(cls, config: SimulationConfig) -> 'Simulation':
        """
        Set up a run.

        Raises
        ------
        ConfigurationError
            For any invalid or incompatible setting, before stepping starts.
        """
        out = config.output
        outdir = Path(out.directory)
        basename = str(outdir / out.name)
        logger.info(f"Run name: {out.name}, output directory: {outdir}")

        grid = build_grid(config)
        logger.info(f"Grid: {grid}")
        geometry = build_geometry(config)

        flow = config.flow
        q_potential = Flux.uniform(grid, float(flow.magnitude), math.radians(float(flow.alpha)))
        m = config.model
        model = create_model(
            m.type, grid, geometry, float(flow.reynolds),
            q_potential=q_potential,
            baseflow=m.baseflow,
            periodic_baseflow=m.periodic_baseflow,
            period=int(m.period),
            period_start=int(m.period_start),
            phase=int(m.phase),
        )
        if m.subtract_baseflow and model.model_type is ModelType.NONLINEAR:
            raise ConfigurationError(
                "subtract_baseflow only applies to the linear, adjoint and linearperiodic models")

        s = config.solver
        projection = ProjectionConfig(method=s.projection, tol=float(s.tol),
                                      max_iter=int(s.max_iter))
        stepper = create_timestepper(s.scheme, model, float(s.dt), projection)

        outdir.mkdir(parents=True, exist_ok=True)
        save_yaml(config, outdir / f"{out.name}.yaml")

        # Resume multistep history saved next to the initial condition
        if not (out.initial_condition and stepper.load(_strip_npz(out.initial_condition))):
            stepper.init()

        state = State(grid, geometry.num_points)
        if out.initial_condition:
            logger.info(f"Loading initial condition from {out.initial_condition}")
            if not state.load(out.initial_condition):
                logger.warning("Initial condition could not be loaded, using zero initial condition")
                state.zero()
                stepper.init()
            elif m.subtract_baseflow:
                logger.info("Subtracting base flow to form a perturbation initial condition")
                model.subtract_base_flow(state)
        else:
            logger.info("Using zero initial condition")
        model.compute_flux(state.gamma, state.q)
        logger.info(f"Initial time = {state.time:g} (step {state.timestep})")

        outputs = OutputLogger()
        outputs.add_output(OutputRestart(basename, out.digits, stepper), out.restart_freq)
        outputs.add_output(OutputForce(basename + ".force"), out.force_freq)
        outputs.add_output(OutputVTK(basename, out.digits), out.vtk_freq)
        outputs.add_output(OutputPlot(basename, out.digits, geometry), out.plot_freq)

        return cls(config, model, stepper, state, outputs)

    def run(self, nsteps: Optional[int] = None) -> State:
        """Advance nsteps times (default: config.solver.nsteps), writing outputs."""
        nsteps = int(self.config.solver.nsteps if nsteps is None else nsteps)
        state = self.state
        self.outputs.init()
        self.outputs.do_output(state)
        logger.info(f"Integrating for {nsteps} steps with {self.stepper.get_name()}")
        try:
            for _ in range(nsteps):
                self.stepper.advance(state)
                fx, fy = state.compute_net_force()
                logger.info(f"step {state.timestep:6d}  t = {state.time:.5f}  "
                            f"x force: {2.0 * fx: .6e}  y force: {2.0 * fy: .6e}")
                self.outputs.do_output(state)
        finally:
            self.outputs.cleanup()
        return state
