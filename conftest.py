# conftest.py
import matplotlib
import numpy as np
import pytest

from hpfem1d import Space, WeakForm


@pytest.fixture(autouse=True)
def mpl_test_backend():
    """Switch to a non-interactive backend for all tests."""
    matplotlib.use('Agg')


def poisson_jacobian(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data):
    return np.sum(dudx * dvdx * weights)


def poisson_residual(x, weights, u_prev, du_prevdx, v, dvdx, user_data):
    # -u'' = f with f = 2, exact solution 1 - x^2 on [-1, 1]
    return np.sum((du_prevdx[0] * dvdx - 2.0 * v) * weights)


@pytest.fixture
def poisson_wf():
    wf = WeakForm()
    wf.add_matrix_form(poisson_jacobian)
    wf.add_vector_form(poisson_residual)
    return wf


@pytest.fixture
def poisson_space():
    """Domain [-1, 1], two linear elements, homogeneous Dirichlet at both ends."""
    space = Space(-1.0, 1.0, 2, p_init=1)
    space.set_bc_left_dirichlet(0, 0.0)
    space.set_bc_right_dirichlet(0, 0.0)
    space.assign_dofs()
    return space
