"""
Tests for the time integration schemes.

Tests cover:
1. Bookkeeping shared by all schemes (time, step index, flux)
2. Order of accuracy on a single decaying Fourier mode
3. Adams-Bashforth history (cold start, save/load, restart equivalence)
4. Boundary motion during a step
5. Factory dispatch and error propagation
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from conftest import gaussian_vortex, random_state
from ibpm.errors import ConfigurationError, ConvergenceError
from ibpm.grid import FixedVelocity, Geometry, Grid, RigidBody, circle
from ibpm.physics import LinearizedNavierStokes, NavierStokesModel, NonlinearNavierStokes
from ibpm.solvers import (
    SCHEMES,
    AdamsBashforth,
    Euler,
    ProjectionConfig,
    RungeKutta2,
    RungeKutta3,
    create_timestepper,
)
from ibpm.state import Flux, State

ALL_SCHEMES = ["euler", "rk2", "rk3", "ab2"]


class DecayModel(NavierStokesModel):
    """No bodies, explicit term sigma * gamma."""

    name = "decay"

    def __init__(self, grid, sigma):
        super().__init__(grid, Geometry(), 1.0)
        self.sigma = sigma

    def nonlinear(self, state):
        return self.sigma * state.gamma


class RecordingGeometry(Geometry):
    """Geometry that remembers the times it was moved to."""

    def __init__(self, bodies):
        super().__init__(bodies)
        self.calls = []

    def move_bodies(self, time):
        self.calls.append(time)
        super().move_bodies(time)


def _lowest_mode(grid):
    i = np.arange(1, grid.nx)
    j = np.arange(1, grid.ny)
    return np.outer(np.sin(np.pi * i / grid.nx), np.sin(np.pi * j / grid.ny))


def _vortex_state(model, strength=1.0):
    state = State(model.grid, model.num_points)
    state.gamma[...] = gaussian_vortex(model.grid, 0.5, 0.1, 0.25, strength)
    model.compute_flux(state.gamma, state.q)
    return state


# =============================================================================
# Bookkeeping
# =============================================================================

class TestStepBookkeeping:

    @pytest.mark.parametrize("scheme", ALL_SCHEMES)
    def test_time_and_index_advance(self, scheme, nonlinear_model):
        h = 0.01
        stepper = create_timestepper(scheme, nonlinear_model, h)
        state = _vortex_state(nonlinear_model)
        for n in range(1, 4):
            stepper.advance(state)
            assert state.timestep == n
            assert state.time == pytest.approx(n * h, rel=1e-12)

    @pytest.mark.parametrize("scheme", ALL_SCHEMES)
    def test_flux_consistent_after_step(self, scheme, nonlinear_model):
        stepper = create_timestepper(scheme, nonlinear_model, 0.01)
        state = _vortex_state(nonlinear_model)
        stepper.advance(state)
        expected = Flux.zeros(nonlinear_model.grid)
        nonlinear_model.compute_flux(state.gamma, expected)
        assert_allclose(state.q.u, expected.u)
        assert_allclose(state.q.v, expected.v)

    @pytest.mark.parametrize("scheme", ALL_SCHEMES)
    def test_no_slip_after_step(self, scheme, nonlinear_model):
        stepper = create_timestepper(scheme, nonlinear_model, 0.01)
        state = _vortex_state(nonlinear_model)
        stepper.advance(state)
        slip = nonlinear_model.C(state.gamma) + nonlinear_model.boundary_offset()
        assert_allclose(slip, 0.0, atol=1e-8)

    @pytest.mark.parametrize("scheme", ALL_SCHEMES)
    def test_zero_perturbation_stays_zero(self, scheme, small_grid, cylinder):
        model = LinearizedNavierStokes(small_grid, cylinder, 50.0, State(small_grid, 0))
        stepper = create_timestepper(scheme, model, 0.05)
        state = State(small_grid, cylinder.num_points)
        for _ in range(3):
            stepper.advance(state)
        assert_allclose(state.gamma, 0.0, atol=1e-14)
        assert_allclose(state.f, 0.0, atol=1e-14)

    def test_eigenvalue_factors_are_read_only(self, nonlinear_model):
        stepper = Euler(nonlinear_model, 0.01)
        assert not stepper._linear_term_eigenvalues.flags.writeable
        with pytest.raises(ValueError):
            stepper._linear_term_eigenvalues[0, 0] = 0.0

    def test_rk3_intermediate_stages(self, nonlinear_model):
        h = 0.03
        stepper = RungeKutta3(nonlinear_model, h)
        state = _vortex_state(nonlinear_model)
        state.timestep = 7
        stepper.advance(state)
        first, second = stepper._scratch
        assert first.time == pytest.approx(8.0 / 15.0 * h)
        assert second.time == pytest.approx(2.0 / 3.0 * h)
        assert first.timestep == 7 and second.timestep == 7
        assert state.timestep == 8
        assert state.time == pytest.approx(h)

    def test_rk3_coefficients_consistent(self):
        for c, g, z in zip(RungeKutta3.C, RungeKutta3.GAMMA, RungeKutta3.ZETA):
            assert g + z == pytest.approx(c)
        assert sum(RungeKutta3.C) == pytest.approx(1.0)


# =============================================================================
# Accuracy
# =============================================================================

def _decay_error(scheme, nsteps, sigma=-1.0, T=1.0):
    grid = Grid(4, 4, length=4.0)
    model = DecayModel(grid, sigma)
    mode = _lowest_mode(grid)
    rate = model.get_lambda()[0, 0] + sigma

    stepper = create_timestepper(scheme, model, T / nsteps)
    state = State(grid, 0)
    state.gamma[...] = mode
    for _ in range(nsteps):
        stepper.advance(state)
    return np.max(np.abs(state.gamma - np.exp(rate * T) * mode))


class TestOrderOfAccuracy:

    @pytest.mark.parametrize("scheme,low,high", [
        ("euler", 0.85, 1.15),
        ("rk2", 1.8, 2.2),
        ("rk3", 1.7, 3.3),
        ("ab2", 1.7, 2.3),
    ])
    def test_convergence_rate(self, scheme, low, high):
        errors = [_decay_error(scheme, n) for n in (25, 50, 100)]
        assert errors[0] > errors[1] > errors[2]
        order = np.log2(errors[1] / errors[2])
        assert low <= order <= high

    def test_crank_nicolson_amplification(self):
        """With no explicit term every scheme reduces to Crank-Nicolson."""
        grid = Grid(4, 4, length=4.0)
        model = LinearizedNavierStokes(grid, Geometry(), 1.0, State(grid, 0))
        lam = model.get_lambda()[0, 0]
        h, n = 0.1, 10
        expected = ((1.0 + 0.5 * h * lam) / (1.0 - 0.5 * h * lam)) ** n * _lowest_mode(grid)

        for scheme in ("euler", "rk2", "ab2"):
            stepper = create_timestepper(scheme, model, h)
            state = State(grid, 0)
            state.gamma[...] = _lowest_mode(grid)
            for _ in range(n):
                stepper.advance(state)
            assert_allclose(state.gamma, expected, atol=1e-12)


# =============================================================================
# Adams-Bashforth history
# =============================================================================

class TestAdamsBashforthHistory:

    def test_cold_start_is_euler(self, nonlinear_model):
        a = _vortex_state(nonlinear_model)
        b = a.copy()
        ab2 = AdamsBashforth(nonlinear_model, 0.01)
        assert not ab2.has_history
        ab2.advance(a)
        Euler(nonlinear_model, 0.01).advance(b)
        assert ab2.has_history
        assert_allclose(a.gamma, b.gamma, atol=1e-13)

    def test_second_step_differs_from_euler(self, nonlinear_model):
        a = _vortex_state(nonlinear_model, strength=5.0)
        b = a.copy()
        ab2 = AdamsBashforth(nonlinear_model, 0.01)
        euler = Euler(nonlinear_model, 0.01)
        for _ in range(2):
            ab2.advance(a)
            euler.advance(b)
        assert not np.allclose(a.gamma, b.gamma, atol=1e-12)

    def test_init_clears_history(self, nonlinear_model):
        ab2 = AdamsBashforth(nonlinear_model, 0.01)
        ab2.advance(_vortex_state(nonlinear_model))
        ab2.init()
        assert not ab2.has_history
        assert_allclose(ab2._previous_nonlinear, 0.0)

    def test_restart_matches_continuous_run(self, nonlinear_model, tmp_path):
        h = 0.01
        continuous = _vortex_state(nonlinear_model, strength=5.0)
        stepper = AdamsBashforth(nonlinear_model, h)
        for _ in range(4):
            stepper.advance(continuous)

        first_half = _vortex_state(nonlinear_model, strength=5.0)
        stepper = AdamsBashforth(nonlinear_model, h)
        for _ in range(2):
            stepper.advance(first_half)
        basename = tmp_path / "run00002"
        assert first_half.save(basename)
        assert stepper.save(basename)
        assert (tmp_path / "run00002.ab2.npz").exists()

        resumed = State(nonlinear_model.grid, nonlinear_model.num_points)
        assert resumed.load(basename)
        stepper = AdamsBashforth(nonlinear_model, h)
        assert stepper.load(basename)
        assert stepper.has_history
        for _ in range(2):
            stepper.advance(resumed)

        assert resumed.timestep == continuous.timestep == 4
        assert_allclose(resumed.gamma, continuous.gamma, atol=1e-12)
        assert_allclose(resumed.f, continuous.f, atol=1e-10)

    def test_load_missing_file(self, nonlinear_model, tmp_path):
        stepper = AdamsBashforth(nonlinear_model, 0.01)
        assert not stepper.load(tmp_path / "nothing")
        assert not stepper.has_history

    def test_load_wrong_timestep(self, nonlinear_model, tmp_path):
        writer = AdamsBashforth(nonlinear_model, 0.01)
        writer.advance(_vortex_state(nonlinear_model))
        assert writer.save(tmp_path / "run")
        reader = AdamsBashforth(nonlinear_model, 0.02)
        assert not reader.load(tmp_path / "run")
        assert not reader.has_history

    def test_load_wrong_grid(self, nonlinear_model, cylinder, tmp_path):
        coarse = NonlinearNavierStokes(Grid(8, 8, 2.0, -1.0, -1.0), cylinder, 50.0)
        writer = AdamsBashforth(coarse, 0.01)
        assert writer.save(tmp_path / "run")
        reader = AdamsBashforth(nonlinear_model, 0.01)
        assert not reader.load(tmp_path / "run")

    def test_single_step_schemes_have_no_history(self, nonlinear_model, tmp_path):
        for cls in (Euler, RungeKutta2, RungeKutta3):
            stepper = cls(nonlinear_model, 0.01)
            assert stepper.save(tmp_path / "run")
            assert stepper.load(tmp_path / "missing")
        assert not list(tmp_path.iterdir())


# =============================================================================
# Moving bodies
# =============================================================================

class TestMovingBodies:

    def _model(self, grid):
        body = RigidBody(circle(0.0, 0.0, 0.3, 12), motion=FixedVelocity(xdot=-1.0))
        geometry = RecordingGeometry([body])
        return NonlinearNavierStokes(grid, geometry, 50.0, Flux.uniform(grid)), geometry

    @pytest.mark.parametrize("scheme,fractions", [
        ("euler", [1.0]),
        ("ab2", [1.0]),
        ("rk2", [1.0, 1.0]),
        ("rk3", [8.0 / 15.0, 2.0 / 3.0, 1.0]),
    ])
    def test_bodies_moved_to_stage_times(self, scheme, fractions, small_grid):
        h = 0.02
        model, geometry = self._model(small_grid)
        stepper = create_timestepper(scheme, model, h)
        stepper.advance(_vortex_state(model))
        assert_allclose(geometry.calls, [c * h for c in fractions], rtol=1e-12)
        assert geometry.time == pytest.approx(h)

    def test_boundary_velocity_enforced_at_new_position(self, small_grid):
        h = 0.02
        model, geometry = self._model(small_grid)
        state = _vortex_state(model)
        Euler(model, h).advance(state)
        n = geometry.num_points
        slip = model.C(state.gamma) + model.boundary_offset()
        assert_allclose(slip[:n], -1.0, atol=1e-8)
        assert_allclose(slip[n:], 0.0, atol=1e-8)
        assert_allclose(geometry.get_points()[:, 0],
                        circle(0.0, 0.0, 0.3, 12)[:, 0] - h, atol=1e-14)

    def test_stationary_bodies_not_moved(self, small_grid):
        geometry = RecordingGeometry([RigidBody(circle(0.0, 0.0, 0.3, 12))])
        model = NonlinearNavierStokes(small_grid, geometry, 50.0, Flux.uniform(small_grid))
        Euler(model, 0.02).advance(_vortex_state(model))
        assert geometry.calls == []


# =============================================================================
# Factory and errors
# =============================================================================

class TestFactory:

    @pytest.mark.parametrize("name,cls,label", [
        ("euler", Euler, "Euler"),
        ("RK2", RungeKutta2, "RK2"),
        ("rk3", RungeKutta3, "RK3"),
        ("Ab2", AdamsBashforth, "AB2"),
    ])
    def test_create(self, name, cls, label, nonlinear_model):
        stepper = create_timestepper(name, nonlinear_model, 0.01)
        assert type(stepper) is cls
        assert stepper.get_name() == label
        assert stepper.timestep == 0.01

    def test_registry(self):
        assert set(SCHEMES) == set(ALL_SCHEMES)

    def test_unknown_scheme(self, nonlinear_model):
        with pytest.raises(ConfigurationError, match="Unknown time integration scheme"):
            create_timestepper("leapfrog", nonlinear_model, 0.01)

    @pytest.mark.parametrize("h", [0.0, -1e-3])
    def test_nonpositive_timestep(self, nonlinear_model, h):
        with pytest.raises(ConfigurationError):
            create_timestepper("rk2", nonlinear_model, h)

    @pytest.mark.parametrize("scheme", ALL_SCHEMES)
    def test_convergence_error_leaves_state(self, scheme, nonlinear_model):
        config = ProjectionConfig(method="cg", tol=1e-14, max_iter=1)
        stepper = create_timestepper(scheme, nonlinear_model, 0.01, config)
        state = random_state(nonlinear_model.grid, nonlinear_model.num_points,
                             nonlinear_model, seed=4)
        before = state.copy()
        with pytest.raises(ConvergenceError):
            stepper.advance(state)
        assert_allclose(state.gamma, before.gamma)
        assert_allclose(state.f, before.f)
        assert state.time == before.time
        assert state.timestep == before.timestep
