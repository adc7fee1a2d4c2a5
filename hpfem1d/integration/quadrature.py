"""hpfem1d.integration.quadrature
Gauss–Legendre rules on the reference interval and on physical elements.
"""
import numpy as np
from functools import lru_cache
from numpy.polynomial.legendre import leggauss


# -------------------------------------------------------------------------
# 1‑D Gauss–Legendre
# -------------------------------------------------------------------------
@lru_cache(maxsize=None)
def _leggauss_cached(order: int):
    xi, w = leggauss(order)
    xi.setflags(write=False)
    w.setflags(write=False)
    return xi, w


def gauss_legendre(order: int):
    """Points and weights on [-1, 1]; exact for polynomials of degree 2*order-1."""
    if order < 1:
        raise ValueError(order)
    return _leggauss_cached(int(order))


def line_rule(x1: float, x2: float, order: int):
    """Gauss–Legendre rule mapped onto the physical interval [x1, x2]."""
    xi, w = gauss_legendre(order)
    half = 0.5 * (x2 - x1)
    mid = 0.5 * (x1 + x2)
    return mid + half * xi, half * w


def element_quad_order(p: int, extra: int = 2) -> int:
    """
    Number of Gauss points used on an element of degree *p*.

    ``p + 1`` points integrate degree ``2p + 1`` exactly, which covers
    mass and stiffness terms; *extra* points add head-room for nonlinear
    integrands and non-polynomial sources.
    """
    if p < 1:
        raise ValueError(p)
    return int(p) + 1 + max(int(extra), 0)
