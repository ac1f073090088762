"""
I/O module for the IBPM solver.

Provides restart, force, VTK and plot outputs and the logger that schedules them.
"""

from .vtk import write_vtk, VTKWriter, node_vorticity, node_velocity
from .plotting import plot_vorticity
from .output import (
    Output,
    OutputRestart,
    OutputForce,
    OutputVTK,
    OutputPlot,
    OutputLogger,
)

__all__ = [
    'write_vtk',
    'VTKWriter',
    'node_vorticity',
    'node_velocity',
    'plot_vorticity',
    'Output',
    'OutputRestart',
    'OutputForce',
    'OutputVTK',
    'OutputPlot',
    'OutputLogger',
]
