import logging

import numpy as np
import pytest

from hpfem1d import (
    DiscreteProblem, DivergenceError, NewtonParameters, NewtonSolver, SolverFailure,
    Space, WeakForm,
)
from hpfem1d.errors import ConfigurationError
from hpfem1d.solvers import NewtonState, newton_solve


# -u'' + u^3 = x^3 on (0, 1), u(0) = 0, u(1) = 1  ->  u = x
def cubic_jacobian(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data):
    return np.sum((dudx * dvdx + 3.0 * u_prev[0] ** 2 * u * v) * weights)


def cubic_residual(x, weights, u_prev, du_prevdx, v, dvdx, user_data):
    return np.sum((du_prevdx[0] * dvdx + (u_prev[0] ** 3 - x ** 3) * v) * weights)


def _cubic_problem(n_elem=4, p=2):
    wf = WeakForm()
    wf.add_matrix_form(cubic_jacobian)
    wf.add_vector_form(cubic_residual)
    space = Space(0.0, 1.0, n_elem, p_init=p)
    space.set_bc_left_dirichlet(0, 0.0)
    space.set_bc_right_dirichlet(0, 1.0)
    space.assign_dofs()
    return DiscreteProblem(wf, space)


def test_linear_problem_converges_after_one_update(poisson_wf, poisson_space):
    result = NewtonSolver(DiscreteProblem(poisson_wf, poisson_space)).solve()
    assert result.converged
    assert result.iterations == 1
    assert len(result.history) == 2
    # 1 - x^2 interpolated at the midpoint
    np.testing.assert_allclose(poisson_space.solution_to_vector(), [1.0], atol=1e-12)


def test_first_residual_is_never_accepted(poisson_wf, poisson_space):
    # start from the discrete solution: the residual already vanishes
    poisson_space.vector_to_solution(np.array([1.0]))
    result = newton_solve(DiscreteProblem(poisson_wf, poisson_space))
    assert result.iterations == 1
    assert result.history[0] < 1e-12


def test_nonlinear_reaction_recovers_linear_solution():
    dp = _cubic_problem()
    solver = NewtonSolver(dp, NewtonParameters(newton_tol=1e-10))
    result = solver.solve()
    assert result.converged
    assert solver.state is NewtonState.CONVERGED
    assert result.residual_norm < 1e-10
    assert np.all(np.diff(result.history) <= 1e-12)
    x = np.linspace(0.0, 1.0, 13)
    u, du = dp.space.evaluate(x)
    np.testing.assert_allclose(u[0], x, atol=1e-9)
    np.testing.assert_allclose(du[0], 1.0, atol=1e-8)


def test_iteration_cap_raises():
    with pytest.raises(DivergenceError):
        NewtonSolver(_cubic_problem(), NewtonParameters(max_newton_iter=1)).solve()


def test_singular_system_raises(poisson_wf):
    space = Space(0.0, 1.0, 1, p_init=1)
    space.assign_dofs()
    with pytest.raises(SolverFailure):
        NewtonSolver(DiscreteProblem(poisson_wf, space)).solve()


def test_neumann_surface_form():
    # -u'' = 0, u(0) = 0, u'(1) = 2  ->  u = 2x
    def jac(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data):
        return np.sum(dudx * dvdx * weights)

    def res(x, weights, u_prev, du_prevdx, v, dvdx, user_data):
        return np.sum(du_prevdx[0] * dvdx * weights)

    def flux(x, u_prev, du_prevdx, v, dvdx, user_data):
        return -2.0 * v

    wf = WeakForm().add_matrix_form(jac).add_vector_form(res)
    wf.add_vector_form_surf(flux, "right")
    space = Space(0.0, 1.0, 3, p_init=2)
    space.set_bc_left_dirichlet(0, 0.0)
    space.set_bc_right_natural(0, 2.0)
    space.assign_dofs()
    NewtonSolver(DiscreteProblem(wf, space)).solve()
    np.testing.assert_allclose(space.evaluate([0.5, 1.0])[0][0], [1.0, 2.0], atol=1e-12)


def test_two_coupled_equations():
    # -u0'' = 0, -u1'' + u1 - u0 = 0, both u(0) = 0, u(1) = 1  ->  u0 = u1 = x
    def j00(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data):
        return np.sum(dudx * dvdx * weights)

    def j11(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data):
        return np.sum((dudx * dvdx + u * v) * weights)

    def j10(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data):
        return -np.sum(u * v * weights)

    def r0(x, weights, u_prev, du_prevdx, v, dvdx, user_data):
        return np.sum(du_prevdx[0] * dvdx * weights)

    def r1(x, weights, u_prev, du_prevdx, v, dvdx, user_data):
        return np.sum((du_prevdx[1] * dvdx + (u_prev[1] - u_prev[0]) * v) * weights)

    wf = WeakForm(neq=2)
    wf.add_matrix_form(j00, 0, 0).add_matrix_form(j11, 1, 1).add_matrix_form(j10, 1, 0)
    wf.add_vector_form(r0, 0).add_vector_form(r1, 1)
    space = Space(0.0, 1.0, 2, p_init=3, neq=2)
    for eq in range(2):
        space.set_bc_left_dirichlet(eq, 0.0)
        space.set_bc_right_dirichlet(eq, 1.0)
    space.assign_dofs()
    result = NewtonSolver(DiscreteProblem(wf, space)).solve()
    assert result.converged
    x = np.linspace(0.0, 1.0, 7)
    u, _ = space.evaluate(x)
    np.testing.assert_allclose(u, np.vstack([x, x]), atol=1e-12)


def test_iteration_log(poisson_wf, poisson_space, caplog):
    with caplog.at_level(logging.INFO, logger="hpfem1d.solvers.nonlinear_solver"):
        NewtonSolver(DiscreteProblem(poisson_wf, poisson_space), label="[coarse] ").solve()
    assert "[coarse] ---- Newton iter 1, residual norm:" in caplog.text


def test_parameter_validation():
    with pytest.raises(ConfigurationError):
        NewtonParameters(newton_tol=0.0)
    with pytest.raises(ConfigurationError):
        NewtonParameters(max_newton_iter=0)
