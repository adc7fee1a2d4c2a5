"""
Hierarchical Lobatto shape functions on the reference interval [-1, 1].

Local ordering: index 0 is the left vertex function, index 1 the right
vertex function, indices 2..p the bubbles

    l_k(xi) = (P_k(xi) - P_{k-2}(xi)) / sqrt(2 (2k - 1)),   k >= 2,

whose derivatives sqrt((2k-1)/2) P_{k-1} are orthonormal in L2(-1, 1).
Raising the degree only appends functions, so coefficients of a
lower-degree element stay valid.
"""
from functools import lru_cache

import numpy as np

from hpfem1d.integration.quadrature import gauss_legendre


def legendre_table(xi, n: int) -> np.ndarray:
    """Legendre polynomials P_0..P_n at *xi*, shape (n+1, len(xi))."""
    xi = np.atleast_1d(np.asarray(xi, dtype=float))
    P = np.empty((n + 1, xi.size))
    P[0] = 1.0
    if n >= 1:
        P[1] = xi
    for k in range(2, n + 1):
        P[k] = ((2 * k - 1) * xi * P[k - 1] - (k - 1) * P[k - 2]) / k
    return P


class Lobatto1D:
    def __init__(self, poly_order: int):
        self.p = poly_order
        self.n_loc = poly_order + 1

    def shape(self, xi) -> np.ndarray:
        """Shape functions at *xi*, shape (p+1, nq)."""
        xi = np.atleast_1d(np.asarray(xi, dtype=float))
        p = self.p
        P = legendre_table(xi, p)
        N = np.empty((p + 1, xi.size))
        N[0] = 0.5 * (1.0 - xi)
        N[1] = 0.5 * (1.0 + xi)
        for k in range(2, p + 1):
            N[k] = (P[k] - P[k - 2]) / np.sqrt(2.0 * (2 * k - 1))
        return N

    def derivative(self, xi) -> np.ndarray:
        """d/dxi of the shape functions at *xi*, shape (p+1, nq)."""
        xi = np.atleast_1d(np.asarray(xi, dtype=float))
        p = self.p
        P = legendre_table(xi, max(p - 1, 0))
        dN = np.empty((p + 1, xi.size))
        dN[0] = -0.5
        dN[1] = 0.5
        for k in range(2, p + 1):
            dN[k] = np.sqrt(0.5 * (2 * k - 1)) * P[k - 1]
        return dN

    @lru_cache(maxsize=None)
    def tabulate(self, order: int):
        """
        Gauss points, weights, shape values and derivatives on [-1, 1]
        for an *order*-point rule.  Cached; the arrays are read-only.
        """
        xi, w = gauss_legendre(order)
        N = self.shape(xi)
        dN = self.derivative(xi)
        N.setflags(write=False)
        dN.setflags(write=False)
        return xi, w, N, dN

    def __repr__(self):
        return f"Lobatto1D(p={self.p})"
