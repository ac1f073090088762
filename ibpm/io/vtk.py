"""
VTK Output Writer for IBPM solutions.

Writes node fields on the uniform grid to legacy VTK ASCII files
(structured grid) for ParaView, plus a .vtk.series index for time series.
"""

import os
from typing import Dict, Optional, Tuple

import numpy as np

from ..grid.cartesian import Grid
from ..numerics.operators import pad_interior
from ..state import State


def node_vorticity(state: State) -> np.ndarray:
    """Vorticity on all nodes, zero on the outer boundary."""
    return pad_interior(state.gamma)


def node_velocity(state: State) -> Tuple[np.ndarray, np.ndarray]:
    """Edge velocity averaged onto all nodes, shape (nx+1, ny+1) each."""
    up = np.pad(state.q.u, ((0, 0), (1, 1)), mode='edge')
    vp = np.pad(state.q.v, ((1, 1), (0, 0)), mode='edge')
    return 0.5 * (up[:, :-1] + up[:, 1:]), 0.5 * (vp[:-1, :] + vp[1:, :])


def write_vtk(filename: str,
              grid: Grid,
              scalars: Dict[str, np.ndarray],
              vectors: Optional[Dict[str, Tuple[np.ndarray, np.ndarray]]] = None,
              title: str = "IBPM solution") -> str:
    """
    Write node fields to a VTK file.

    Parameters
    ----------
    filename : str
        Output filename (will add .vtk extension if not present).
    grid : Grid
        Grid the fields live on.
    scalars : dict
        Name -> array of shape (nx+1, ny+1).
    vectors : dict, optional
        Name -> (x, y) component arrays of shape (nx+1, ny+1).
    title : str
        Header line of the file.

    Returns
    -------
    str
        Path to the written file.
    """
    if not filename.endswith('.vtk'):
        filename = filename + '.vtk'

    output_dir = os.path.dirname(filename)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    X, Y = grid.node_coordinates()
    ni, nj = X.shape

    with open(filename, 'w') as f:
        f.write("# vtk DataFile Version 3.0\n")
        f.write(f"{title}\n")
        f.write("ASCII\n")
        f.write("DATASET STRUCTURED_GRID\n")
        f.write(f"DIMENSIONS {ni} {nj} 1\n")

        f.write(f"POINTS {ni * nj} double\n")
        for j in range(nj):
            for i in range(ni):
                f.write(f"{X[i, j]:.10e} {Y[i, j]:.10e} 0.0\n")

        f.write(f"\nPOINT_DATA {ni * nj}\n")
        for name, data in scalars.items():
            if data.shape != (ni, nj):
                raise ValueError(f"Scalar '{name}' has wrong shape: {data.shape}")
            _write_scalar_field(f, name, data)

        for name, (vx, vy) in (vectors or {}).items():
            if vx.shape != (ni, nj) or vy.shape != (ni, nj):
                raise ValueError(f"Vector '{name}' has wrong shape: {vx.shape}, {vy.shape}")
            _write_vector_field(f, name, vx, vy)

    return filename


def _write_scalar_field(f, name: str, data: np.ndarray) -> None:
    """Write a scalar field to VTK file."""
    data = np.nan_to_num(data, nan=0.0, posinf=0.0, neginf=0.0)
    f.write(f"\nSCALARS {name} double 1\n")
    f.write("LOOKUP_TABLE default\n")
    ni, nj = data.shape
    for j in range(nj):
        for i in range(ni):
            f.write(f"{data[i, j]:.10e}\n")


def _write_vector_field(f, name: str, vx: np.ndarray, vy: np.ndarray) -> None:
    """Write a vector field to VTK file."""
    f.write(f"\nVECTORS {name} double\n")
    ni, nj = vx.shape
    for j in range(nj):
        for i in range(ni):
            f.write(f"{vx[i, j]:.10e} {vy[i, j]:.10e} 0.0\n")


class VTKWriter:
    """
    Class-based VTK writer for managing output during simulation.

    Example
    -------
    >>> writer = VTKWriter("output/ibpm", grid)
    >>> for n in range(n_steps):
    >>>     stepper.advance(state)
    >>>     if n % save_interval == 0:
    >>>         writer.write(state)
    >>> writer.finalize()  # Writes .vtk.series file
    """

    def __init__(self, base_filename: str, grid: Grid, digits: int = 5):
        self.base_filename = base_filename
        self.grid = grid
        self.digits = digits
        self.solutions: Dict[int, Tuple[str, float]] = {}  # step -> (filename, time)

    def write(self, state: State) -> str:
        """Write vorticity and velocity of a state. Returns the file path."""
        filename = f"{self.base_filename}{state.timestep:0{self.digits}d}.vtk"
        write_vtk(filename, self.grid,
                  scalars={"vorticity": node_vorticity(state)},
                  vectors={"velocity": node_velocity(state)},
                  title=f"IBPM solution - step {state.timestep}, t = {state.time:.6g}")
        self.solutions[state.timestep] = (filename, float(state.time))
        return filename

    def finalize(self) -> str:
        """
        Write .vtk.series file for ParaView time series loading.

        Returns
        -------
        str
            Path to the .vtk.series file, or "" if nothing was written.
        """
        if not self.solutions:
            return ""

        series_filename = f"{self.base_filename}.vtk.series"
        with open(series_filename, 'w') as f:
            f.write('{\n')
            f.write('  "file-series-version" : "1.0",\n')
            f.write('  "files" : [\n')

            sorted_items = sorted(self.solutions.items())
            for idx, (_, (vtk_file, time)) in enumerate(sorted_items):
                comma = "," if idx < len(sorted_items) - 1 else ""
                vtk_basename = os.path.basename(vtk_file)
                f.write(f'    {{ "name" : "{vtk_basename}", "time" : {time!r} }}{comma}\n')

            f.write('  ]\n')
            f.write('}\n')

        return series_filename
