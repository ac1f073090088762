"""
Shared pytest fixtures for the test suite.

This module provides small grids, immersed-body geometries and models
reused across the numerics, physics and solver tests.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ibpm.grid import Geometry, Grid, RigidBody, circle
from ibpm.physics import NonlinearNavierStokes
from ibpm.state import Flux, State


# =============================================================================
# Grids
# =============================================================================

@pytest.fixture
def small_grid():
    """16 x 16 cells on [-1, 1]^2, dx = 0.125."""
    return Grid(16, 16, length=2.0, xoffset=-1.0, yoffset=-1.0)


@pytest.fixture
def rect_grid():
    """Non-square cell count, to catch transposed shapes."""
    return Grid(12, 8, length=3.0, xoffset=-1.0, yoffset=-1.0)


# =============================================================================
# Geometry
# =============================================================================

def make_cylinder(radius: float = 0.3, num_points: int = 12) -> Geometry:
    """Stationary cylinder centred at the origin."""
    return Geometry([RigidBody(circle(0.0, 0.0, radius, num_points), name="cylinder")])


@pytest.fixture
def cylinder():
    return make_cylinder()


@pytest.fixture
def no_bodies():
    return Geometry()


# =============================================================================
# Models and states
# =============================================================================

@pytest.fixture
def nonlinear_model(small_grid, cylinder):
    """Cylinder in a unit free stream at Re = 50."""
    return NonlinearNavierStokes(small_grid, cylinder, 50.0, Flux.uniform(small_grid, 1.0, 0.0))


def gaussian_vortex(grid: Grid, x0: float = 0.0, y0: float = 0.0,
                    width: float = 0.3, strength: float = 1.0) -> np.ndarray:
    """Smooth vorticity blob on the interior nodes."""
    X, Y = grid.interior_coordinates()
    return strength * np.exp(-((X - x0)**2 + (Y - y0)**2) / width**2)


def random_state(grid: Grid, num_points: int, model, seed: int = 0) -> State:
    """State with random vorticity and the flux the model assigns to it."""
    rng = np.random.default_rng(seed)
    state = State(grid, num_points)
    state.gamma[...] = rng.standard_normal(grid.interior_shape)
    model.compute_flux(state.gamma, state.q)
    return state


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
