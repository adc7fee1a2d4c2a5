import numpy as np
import pytest

from hpfem1d.integration import quadrature as q


def test_constant_length():
    for order in (1, 3, 7):
        pts, wts = q.gauss_legendre(order)
        assert len(pts) == order
        assert np.isclose(wts.sum(), 2.0, rtol=1e-12)


@pytest.mark.parametrize("p", [1, 2, 5, 10])
def test_element_rule_integrates_degree_2p(p):
    # p+1 points (no extra) must integrate x^{2p} on [-1, 1] exactly
    pts, wts = q.gauss_legendre(q.element_quad_order(p, extra=0))
    assert np.isclose(np.sum(pts ** (2 * p) * wts), 2.0 / (2 * p + 1), rtol=1e-12)


def test_line_rule_maps_interval():
    x, w = q.line_rule(2.0, 5.0, 4)
    assert np.all((x > 2.0) & (x < 5.0))
    assert np.isclose(w.sum(), 3.0)
    # ∫_2^5 x^3 dx
    assert np.isclose(np.sum(x ** 3 * w), (5.0 ** 4 - 2.0 ** 4) / 4.0)


def test_invalid_order():
    with pytest.raises(ValueError):
        q.gauss_legendre(0)
