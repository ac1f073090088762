"""
Vorticity plots for IBPM solutions.
"""

import os
from typing import Optional

import numpy as np

from ..grid.geometry import Geometry
from ..state import State
from .vtk import node_vorticity

# Lazy import matplotlib to keep it off the solver import path
_plt = None


def _ensure_matplotlib():
    """Ensure matplotlib is available and configured."""
    global _plt
    if _plt is None:
        import matplotlib
        matplotlib.use('Agg')  # Non-interactive backend
        import matplotlib.pyplot as plt
        _plt = plt
    return _plt


def plot_vorticity(state: State, filename: str,
                   geometry: Optional[Geometry] = None,
                   levels: int = 41) -> str:
    """
    Filled vorticity contours with the body markers overlaid.

    Parameters
    ----------
    state : State
        Flow to plot.
    filename : str
        Output PDF path.
    geometry : Geometry, optional
        Bodies to draw on top.
    levels : int
        Number of contour levels, symmetric about zero.

    Returns
    -------
    str
        Path to the written file.
    """
    plt = _ensure_matplotlib()

    output_dir = os.path.dirname(filename)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    X, Y = state.grid.node_coordinates()
    omega = node_vorticity(state)
    vmax = float(np.max(np.abs(omega[np.isfinite(omega)]), initial=0.0)) or 1.0

    fig, ax = plt.subplots(figsize=(8, 8 * state.grid.height / state.grid.length))
    cf = ax.contourf(X, Y, omega, levels=np.linspace(-vmax, vmax, levels), cmap='RdBu_r')
    fig.colorbar(cf, ax=ax, label='vorticity')
    if geometry is not None and geometry.num_points > 0:
        points = geometry.get_points()
        ax.plot(points[:, 0], points[:, 1], 'k.', markersize=2)
    ax.set_aspect('equal')
    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_title(f"step {state.timestep}, t = {state.time:.4g}")
    fig.savefig(filename, bbox_inches='tight')
    plt.close(fig)
    return filename
