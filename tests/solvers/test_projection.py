"""
Tests for the projection solvers.

Tests cover:
1. The saddle-point system is satisfied after a solve
2. Cholesky and CG agree
3. Factor caching against the geometry revision
4. Failure handling (outputs untouched, ConvergenceError raised)
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ibpm.errors import ConfigurationError, ConvergenceError
from ibpm.grid import FixedVelocity, Geometry, RigidBody, circle
from ibpm.numerics import laplacian
from ibpm.physics import NonlinearNavierStokes
from ibpm.solvers import (
    CholeskySolver,
    ConjugateGradientSolver,
    ProjectionConfig,
    create_solver,
)
from ibpm.state import Flux

H = 0.02


def _problem(model, seed=0):
    rng = np.random.default_rng(seed)
    a = rng.standard_normal(model.grid.interior_shape)
    b = 0.1 * rng.standard_normal(2 * model.num_points)
    return a, b


def _outputs(model):
    return np.zeros(model.grid.interior_shape), np.zeros(2 * model.num_points)


@pytest.fixture(params=["cholesky", "cg"])
def solver(request, nonlinear_model):
    config = ProjectionConfig(method=request.param, tol=1e-12, max_iter=500)
    return create_solver(nonlinear_model, H, config)


class TestSaddlePointSystem:

    def test_constraint_satisfied(self, solver, nonlinear_model):
        a, b = _problem(nonlinear_model)
        gamma, f = _outputs(nonlinear_model)
        solver.solve(a, b, gamma, f)
        residual = nonlinear_model.C(gamma) + nonlinear_model.boundary_offset() - b
        assert_allclose(residual, 0.0, atol=1e-8)
        assert solver.last_result.residual_norm < 1e-8

    def test_vorticity_equation_satisfied(self, solver, nonlinear_model):
        """(I - h/2 L) gamma + h B f = a."""
        grid = nonlinear_model.grid
        a, b = _problem(nonlinear_model, seed=1)
        gamma, f = _outputs(nonlinear_model)
        solver.solve(a, b, gamma, f)
        L_gamma = laplacian(gamma, grid.dx) / nonlinear_model.reynolds
        lhs = gamma - 0.5 * H * L_gamma + H * nonlinear_model.B(f)
        assert_allclose(lhs, a, atol=1e-9)

    def test_no_slip_with_free_stream(self, solver, nonlinear_model):
        """Zero wall velocity in a unit free stream needs a nonzero force."""
        gamma, f = _outputs(nonlinear_model)
        a = np.zeros(nonlinear_model.grid.interior_shape)
        b = np.zeros(2 * nonlinear_model.num_points)
        solver.solve(a, b, gamma, f)
        assert np.linalg.norm(f) > 0.0
        assert_allclose(nonlinear_model.C(gamma), -nonlinear_model.boundary_offset(), atol=1e-8)

    def test_deterministic(self, solver, nonlinear_model):
        a, b = _problem(nonlinear_model, seed=2)
        g1, f1 = _outputs(nonlinear_model)
        g2, f2 = _outputs(nonlinear_model)
        solver.solve(a, b, g1, f1)
        solver.solve(a, b, g2, f2)
        np.testing.assert_array_equal(g1, g2)
        np.testing.assert_array_equal(f1, f2)

    def test_no_boundary_points(self, small_grid, no_bodies, rng):
        model = NonlinearNavierStokes(small_grid, no_bodies, 50.0, Flux.uniform(small_grid))
        solver = create_solver(model, H)
        a = rng.standard_normal(small_grid.interior_shape)
        gamma = np.zeros(small_grid.interior_shape)
        f = np.zeros(0)
        solver.solve(a, np.zeros(0), gamma, f)
        assert_allclose(gamma, solver.A_inverse(a))
        assert solver.last_result.residual_norm == 0.0


class TestCholeskyAndCG:

    def test_agree(self, nonlinear_model):
        a, b = _problem(nonlinear_model, seed=3)
        results = []
        for method in ("cholesky", "cg"):
            config = ProjectionConfig(method=method, tol=1e-13, max_iter=1000)
            gamma, f = _outputs(nonlinear_model)
            create_solver(nonlinear_model, H, config).solve(a, b, gamma, f)
            results.append((gamma, f))
        (g_chol, f_chol), (g_cg, f_cg) = results
        assert_allclose(f_cg, f_chol, rtol=1e-6, atol=1e-8 * np.linalg.norm(f_chol))
        assert_allclose(g_cg, g_chol, atol=1e-8)

    def test_schur_complement_is_spd(self, nonlinear_model):
        M = CholeskySolver(nonlinear_model, H).assemble()
        assert M.shape == (2 * nonlinear_model.num_points,) * 2
        assert np.all(np.linalg.eigvalsh(M) > 0.0)

    def test_schur_apply_symmetric(self, nonlinear_model, rng):
        solver = ConjugateGradientSolver(nonlinear_model, H)
        x = rng.standard_normal(2 * nonlinear_model.num_points)
        y = rng.standard_normal(2 * nonlinear_model.num_points)
        assert_allclose(np.dot(solver.schur_apply(x), y),
                        np.dot(x, solver.schur_apply(y)), rtol=1e-9)

    def test_iteration_counts(self, nonlinear_model):
        a, b = _problem(nonlinear_model)
        gamma, f = _outputs(nonlinear_model)
        chol = create_solver(nonlinear_model, H, ProjectionConfig(method="cholesky"))
        chol.solve(a, b, gamma, f)
        assert chol.last_result.iterations == 0

        cg = create_solver(nonlinear_model, H, ProjectionConfig(method="cg", tol=1e-12))
        cg.solve(a, b, gamma, f)
        assert cg.last_result.iterations > 0


class TestFactorCache:

    def test_factor_reused_for_stationary_bodies(self, nonlinear_model):
        solver = CholeskySolver(nonlinear_model, H)
        a, b = _problem(nonlinear_model)
        gamma, f = _outputs(nonlinear_model)
        solver.solve(a, b, gamma, f)
        factor = solver._factor
        solver.solve(a, b, gamma, f)
        assert solver._factor is factor

    def test_refactored_after_bodies_move(self, small_grid):
        geometry = Geometry([RigidBody(circle(0.0, 0.0, 0.3, 12),
                                       motion=FixedVelocity(xdot=-1.0))])
        model = NonlinearNavierStokes(small_grid, geometry, 50.0, Flux.uniform(small_grid))
        solver = CholeskySolver(model, H)
        a, b = _problem(model)
        gamma, f = _outputs(model)
        solver.solve(a, b, gamma, f)
        first = solver._factor

        geometry.move_bodies(0.1)
        solver.solve(a, b, gamma, f)
        assert solver._factor is not first
        assert solver._factor_revision == geometry.revision
        assert_allclose(model.C(gamma) + model.boundary_offset(), b, atol=1e-8)


class TestFailures:

    def test_cg_budget_exhausted(self, nonlinear_model):
        config = ProjectionConfig(method="cg", tol=1e-14, max_iter=1)
        solver = create_solver(nonlinear_model, H, config)
        a, b = _problem(nonlinear_model)
        gamma = np.full(nonlinear_model.grid.interior_shape, 7.0)
        f = np.full(2 * nonlinear_model.num_points, -3.0)

        with pytest.raises(ConvergenceError) as excinfo:
            solver.solve(a, b, gamma, f)

        assert excinfo.value.residual > 0.0
        assert excinfo.value.iterations >= 1
        assert np.all(gamma == 7.0)
        assert np.all(f == -3.0)

    def test_unknown_method(self, nonlinear_model):
        with pytest.raises(ConfigurationError, match="Unknown projection solver"):
            create_solver(nonlinear_model, H, ProjectionConfig(method="gmres"))

    @pytest.mark.parametrize("h", [0.0, -0.1])
    def test_nonpositive_timestep(self, nonlinear_model, h):
        with pytest.raises(ConfigurationError):
            CholeskySolver(nonlinear_model, h)

    def test_method_name_case_insensitive(self, nonlinear_model):
        solver = create_solver(nonlinear_model, H, ProjectionConfig(method=" CG "))
        assert isinstance(solver, ConjugateGradientSolver)
