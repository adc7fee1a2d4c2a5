import numpy as np
import pytest
import sympy as sp

from hpfem1d import ExactSolution
from hpfem1d.analytic import x


def test_symbolic_derivative():
    exact = ExactSolution(sp.sin(sp.pi * x))
    pts = np.linspace(0.0, 1.0, 5)
    u, du = exact(pts)
    assert u.shape == du.shape == (1, 5)
    np.testing.assert_allclose(u[0], np.sin(np.pi * pts), atol=1e-14)
    np.testing.assert_allclose(du[0], np.pi * np.cos(np.pi * pts), atol=1e-13)


def test_constant_and_multiple_components():
    exact = ExactSolution(3, x ** 2)
    assert exact.neq == 2
    u, du = exact([0.0, 2.0])
    np.testing.assert_allclose(u, [[3.0, 3.0], [0.0, 4.0]])
    np.testing.assert_allclose(du, [[0.0, 0.0], [0.0, 4.0]])


def test_callables_need_derivatives():
    with pytest.raises(ValueError):
        ExactSolution(np.exp)
    exact = ExactSolution(np.exp, derivatives=[np.exp])
    u, du = exact(0.0)
    np.testing.assert_allclose(u, [[1.0]])
    np.testing.assert_allclose(du, [[1.0]])


def test_needs_a_component():
    with pytest.raises(ValueError):
        ExactSolution()
