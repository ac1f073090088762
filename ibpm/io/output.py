"""
Periodic output during a run.

Each output writes one kind of file; OutputLogger calls the registered
outputs every N steps. The time stepper never calls these.
"""

from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from loguru import logger

from ..grid.geometry import Geometry
from ..solvers.time_stepping import TimeStepper
from ..state import State
from .plotting import plot_vorticity
from .vtk import VTKWriter


class Output:
    """Base class: init() before the run, do_output(state), cleanup() after."""

    def init(self) -> bool:
        return True

    def do_output(self, state: State) -> bool:
        raise NotImplementedError

    def cleanup(self) -> bool:
        return True


class OutputRestart(Output):
    """Restart files <basename><step>.npz, plus the stepper's history if any."""

    def __init__(self, basename: str, digits: int = 5,
                 stepper: Optional[TimeStepper] = None):
        self.basename = basename
        self.digits = digits
        self.stepper = stepper

    def filename(self, step: int) -> str:
        return f"{self.basename}{step:0{self.digits}d}"

    def do_output(self, state: State) -> bool:
        base = self.filename(state.timestep)
        ok = state.save(base + ".npz")
        if ok and self.stepper is not None:
            ok = self.stepper.save(base)
        if ok:
            logger.debug(f"Wrote restart file {base}.npz")
        return ok


class OutputForce(Output):
    """Appends 'step time fx fy' (force coefficients, 2 x force) to a text file."""

    def __init__(self, filename: str):
        self.filename = Path(filename)
        self._file: Optional[TextIO] = None

    def init(self) -> bool:
        try:
            self.filename.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.filename, 'w')
        except OSError as e:
            logger.warning(f"Could not open force file {self.filename}: {e}")
            return False
        return True

    def do_output(self, state: State) -> bool:
        if self._file is None:
            return False
        fx, fy = state.compute_net_force()
        self._file.write(f"{state.timestep:5d} {state.time:.5e} "
                         f"{2.0 * fx:.5e} {2.0 * fy:.5e}\n")
        self._file.flush()
        return True

    def cleanup(self) -> bool:
        if self._file is not None:
            self._file.close()
            self._file = None
        return True


class OutputVTK(Output):
    """Node vorticity and velocity as VTK files with a .vtk.series index."""

    def __init__(self, basename: str, digits: int = 5):
        self.basename = basename
        self.digits = digits
        self._writer: Optional[VTKWriter] = None

    def do_output(self, state: State) -> bool:
        if self._writer is None:
            self._writer = VTKWriter(self.basename, state.grid, self.digits)
        filename = self._writer.write(state)
        logger.debug(f"Wrote {filename}")
        return True

    def cleanup(self) -> bool:
        if self._writer is not None:
            series = self._writer.finalize()
            if series:
                logger.info(f"Wrote VTK time series index {series}")
        return True


class OutputPlot(Output):
    """Vorticity contour PDF per output step."""

    def __init__(self, basename: str, digits: int = 5,
                 geometry: Optional[Geometry] = None):
        self.basename = basename
        self.digits = digits
        self.geometry = geometry

    def do_output(self, state: State) -> bool:
        filename = f"{self.basename}{state.timestep:0{self.digits}d}.pdf"
        plot_vorticity(state, filename, self.geometry)
        logger.debug(f"Wrote {filename}")
        return True


class OutputLogger:
    """Registry of outputs, each written every `every` steps."""

    def __init__(self):
        self._outputs: List[Tuple[Output, int]] = []

    def add_output(self, output: Output, every: int) -> None:
        if every > 0:
            self._outputs.append((output, int(every)))

    def __len__(self) -> int:
        return len(self._outputs)

    def init(self) -> bool:
        return all([out.init() for out, _ in self._outputs])

    def do_output(self, state: State) -> bool:
        ok = True
        for out, every in self._outputs:
            if state.timestep % every == 0:
                ok = out.do_output(state) and ok
        return ok

    def cleanup(self) -> bool:
        return all([out.cleanup() for out, _ in self._outputs])
