import numpy as np
import pytest

from hpfem1d import (
    AdaptiveSolver, AdaptivityParameters, AdaptType, ConfigurationError, ExactSolution, Norm,
    Space, WeakForm, solve_adaptive,
)
from hpfem1d.analytic import x as X


def test_quadratic_solution_found_by_p_refinement(poisson_wf, poisson_space):
    exact = ExactSolution(1 - X ** 2)
    result = solve_adaptive(poisson_space, poisson_wf, exact_sol=exact)
    assert result.converged
    assert len(result.steps) == 2
    first, second = result.steps
    assert [r.kind for r in first.refinements] == ["p", "p"]
    assert first.err_est_rel == pytest.approx(np.sqrt(11.0 / 56.0), rel=1e-8)
    assert first.err_exact_rel == pytest.approx(first.err_est_rel, rel=1e-8)
    assert [e.p for e in result.space.active_elements()] == [2, 2]
    assert second.ndof_coarse == 3
    assert second.err_exact_rel < 1e-10
    assert result.err_est_rel < 1e-5


def test_h_adaptivity_stops_at_step_limit(poisson_wf, poisson_space):
    params = AdaptivityParameters(adapt_type=AdaptType.H, max_steps=2)
    result = AdaptiveSolver(poisson_space, poisson_wf, params).solve()
    assert not result.converged
    assert len(result.steps) == 2
    assert result.space.get_n_active_elem() == 4
    assert all(e.p == 1 for e in result.space.active_elements())
    # reference spaces are h-refined as well
    assert result.ref_space.get_n_active_elem() == 8
    assert result.steps[1].err_est_rel < result.steps[0].err_est_rel


def test_graphs_written(poisson_wf, poisson_space, tmp_path):
    result = solve_adaptive(poisson_space, poisson_wf, exact_sol=ExactSolution(1 - X ** 2))
    paths = result.save_graphs(tmp_path / "conv")
    assert sorted(p.name for p in paths) == [
        "conv_cpu_est.dat", "conv_cpu_exact.dat", "conv_dof_est.dat", "conv_dof_exact.dat",
    ]
    data = np.loadtxt(tmp_path / "conv" / "conv_dof_est.dat")
    np.testing.assert_array_equal(data[:, 0], [1, 3])


def test_exact_graphs_skipped_without_exact_solution(poisson_wf, poisson_space, tmp_path):
    result = solve_adaptive(poisson_space, poisson_wf)
    assert [p.name for p in result.save_graphs(tmp_path)] == ["conv_dof_est.dat", "conv_cpu_est.dat"]
    assert all(s.err_exact_rel is None for s in result.steps)


def sine_jacobian(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data):
    return np.sum(dudx * dvdx * weights)


def sine_residual(x, weights, u_prev, du_prevdx, v, dvdx, user_data):
    f = np.pi ** 2 * np.sin(np.pi * x)
    return np.sum((du_prevdx[0] * dvdx - f * v) * weights)


def test_smooth_problem_converges():
    wf = WeakForm().add_matrix_form(sine_jacobian).add_vector_form(sine_residual)
    space = Space(0.0, 1.0, 2, p_init=1)
    space.set_bc_left_dirichlet(0, 0.0)
    space.set_bc_right_dirichlet(0, 0.0)
    params = AdaptivityParameters(tol_err_rel=1e-3, max_steps=15)
    exact = ExactSolution(lambda t: np.sin(np.pi * t), derivatives=[lambda t: np.pi * np.cos(np.pi * t)])
    result = solve_adaptive(space, wf, adapt_params=params, exact_sol=exact, n_workers=2)
    assert result.converged
    assert result.steps[-1].err_exact_rel < result.steps[0].err_exact_rel
    assert result.steps[-1].ndof_coarse > result.steps[0].ndof_coarse


@pytest.mark.parametrize("kwargs", [
    {"threshold": 0.0},
    {"tol_err_rel": 0.0},
    {"max_steps": 0},
    {"ref_order_increase": 0},
])
def test_parameter_validation(kwargs):
    with pytest.raises(ConfigurationError):
        AdaptivityParameters(**kwargs)


def test_reference_refinement_follows_adapt_type():
    assert AdaptivityParameters(adapt_type=AdaptType.P).reference_refinement is AdaptType.P
    params = AdaptivityParameters(adapt_type=AdaptType.P, ref_refinement=AdaptType.HP, norm=0)
    assert params.reference_refinement is AdaptType.HP
    assert params.norm is Norm.L2


def test_repeated_solve_starts_fresh_graphs(poisson_wf, poisson_space):
    solver = AdaptiveSolver(poisson_space, poisson_wf)
    first = solver.solve()
    second = solver.solve()
    assert len(first.graphs["conv_dof_est"]) == len(first.steps) == 2
    assert len(second.graphs["conv_dof_est"]) == len(second.steps)
    assert second.graphs is not first.graphs
