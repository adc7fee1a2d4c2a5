import numpy as np
import pytest

from hpfem1d import (
    DiscreteProblem, ExactSolution, NewtonSolver, Norm, calc_err_est, calc_err_exact,
    construct_refined_space,
)
from hpfem1d.adapt import calc_elem_est_errors
from hpfem1d.analytic import x


@pytest.fixture
def solved_pair(poisson_wf, poisson_space):
    """Coarse solution 1 - |x| and the exact reference solution 1 - x^2."""
    NewtonSolver(DiscreteProblem(poisson_wf, poisson_space)).solve()
    ref = construct_refined_space(poisson_space)
    NewtonSolver(DiscreteProblem(poisson_wf, ref)).solve()
    return poisson_space, ref


def test_no_error_against_own_transfer(poisson_space):
    poisson_space.vector_to_solution(np.array([0.3]))
    ref = construct_refined_space(poisson_space)
    err = np.full(2, -1.0)
    assert calc_err_est(Norm.H1, poisson_space, ref, err) == pytest.approx(0.0, abs=1e-14)
    np.testing.assert_allclose(err, 0.0, atol=1e-14)


def test_estimate_equals_exact_error_for_exact_reference(solved_pair):
    space, ref = solved_pair
    err = np.zeros(space.get_n_active_elem())
    rel = calc_err_est(Norm.H1, space, ref, err)
    # |1-|x| - (1-x^2)|^2_H1 = 11/15, |1-x^2|^2_H1 = 56/15
    assert rel == pytest.approx(np.sqrt(11.0 / 56.0), rel=1e-10)
    np.testing.assert_allclose(err, np.sqrt(11.0 / 30.0), rtol=1e-10)
    exact = ExactSolution(1 - x ** 2)
    assert calc_err_exact(Norm.H1, space, exact) == pytest.approx(rel, rel=1e-10)


def test_l2_norm(solved_pair):
    space, ref = solved_pair
    assert calc_err_est(Norm.L2, space, ref) == pytest.approx(0.25, rel=1e-10)
    np.testing.assert_allclose(calc_elem_est_errors(Norm.L2, space, ref), np.sqrt(1.0 / 30.0), rtol=1e-10)


def test_exact_error_accepts_callables(solved_pair):
    space, _ = solved_pair
    exact = ExactSolution(lambda t: 1 - t ** 2, derivatives=[lambda t: -2 * t])
    err = np.zeros(2)
    rel = calc_err_exact(1, space, exact, err)
    assert rel == pytest.approx(np.sqrt(11.0 / 56.0), rel=1e-10)
    np.testing.assert_allclose(err, np.sqrt(11.0 / 30.0), rtol=1e-10)


def test_vanishing_reference_gives_absolute_error(poisson_space):
    poisson_space.vector_to_solution(np.array([1.0]))
    # |1 - |x||^2_L2 = 2/3
    assert calc_err_exact(Norm.L2, poisson_space, ExactSolution(0)) == pytest.approx(np.sqrt(2.0 / 3.0))


def test_error_array_too_short(solved_pair):
    space, ref = solved_pair
    with pytest.raises(ValueError):
        calc_err_est(Norm.H1, space, ref, np.zeros(1))
