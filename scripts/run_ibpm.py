#!/usr/bin/env python3
"""
Run the immersed boundary projection method on a configured case.

Usage:
    python scripts/run_ibpm.py --config config/cylinder.yaml
    python scripts/run_ibpm.py --config config/cylinder.yaml --nsteps 10 --scheme ab2
    python scripts/run_ibpm.py --geom cylinder.geom.yaml --model linear --baseflow out/ibpm01000.npz
"""

import sys
import argparse
from pathlib import Path

from loguru import logger

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ibpm.config import SimulationConfig, load_yaml, apply_cli_overrides
from ibpm.driver import Simulation
from ibpm.errors import ConfigurationError, ConvergenceError
from ibpm.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Immersed boundary projection method for 2D incompressible flow")
    parser.add_argument('--config', type=str, default=None, help="YAML configuration file")

    grid = parser.add_argument_group('grid')
    grid.add_argument('--nx', type=int, help="Cells in x")
    grid.add_argument('--ny', type=int, help="Cells in y")
    grid.add_argument('--length', type=float, help="Domain length in x")
    grid.add_argument('--xoffset', type=float, help="x-coordinate of the left edge")
    grid.add_argument('--yoffset', type=float, help="y-coordinate of the bottom edge")

    flow = parser.add_argument_group('flow and model')
    flow.add_argument('--re', type=float, help="Reynolds number")
    flow.add_argument('--alpha', type=float, help="Free-stream angle in degrees")
    flow.add_argument('--model', type=str,
                      help="nonlinear, linear, adjoint or linearperiodic")
    flow.add_argument('--baseflow', type=str, help="Base flow restart file (linear, adjoint)")
    flow.add_argument('--pbaseflow', type=str,
                      help="Periodic base flow pattern, e.g. 'flow/ibpm%%05d.npz'")
    flow.add_argument('--period', type=int, help="Number of periodic base flow snapshots")
    flow.add_argument('--period-start', dest='period_start', type=int,
                      help="Index of the first periodic snapshot")
    flow.add_argument('--phase', type=int,
                      help="Periodic snapshot offset added to the timestep")
    flow.add_argument('--subtract-baseflow', dest='subtract_baseflow',
                      action='store_const', const=True, default=None,
                      help="Subtract the base flow from the initial condition")
    flow.add_argument('--geom', type=str, help="Geometry YAML file")

    solver = parser.add_argument_group('time integration')
    solver.add_argument('--scheme', type=str, help="euler, rk2, rk3 or ab2")
    solver.add_argument('--dt', type=float, help="Timestep")
    solver.add_argument('--nsteps', type=int, help="Number of steps")
    solver.add_argument('--projection', type=str, help="cholesky or cg")
    solver.add_argument('--tol', type=float, help="CG relative tolerance")

    output = parser.add_argument_group('output')
    output.add_argument('--ic', type=str, help="Initial condition restart file")
    output.add_argument('--outdir', type=str, help="Output directory")
    output.add_argument('--name', type=str, help="Run name")
    output.add_argument('--restart', type=int, help="Restart file every N steps (0: never)")
    output.add_argument('--force', type=int, help="Forces every N steps (0: never)")
    output.add_argument('--vtk', type=int, help="VTK file every N steps (0: never)")
    output.add_argument('--plot', type=int, help="Vorticity PDF every N steps (0: never)")
    output.add_argument('--log-level', dest='log_level', default='INFO',
                        help="DEBUG, INFO, WARNING, ...")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_yaml(args.config) if args.config else SimulationConfig()
        config = apply_cli_overrides(config, args)
        simulation = Simulation.from_config(config)
        simulation.run()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except ConvergenceError as e:
        logger.error(f"Projection solve failed at residual {e.residual}: {e}")
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
