"""hpfem1d.core.projection
Local projections and difference norms between piecewise polynomials.

Both operate on ordered lists of :class:`Element` objects, which makes
them usable for coarse↔reference transfers, for the error estimator and
for scoring refinement candidates built as throw-away elements.
"""
from __future__ import annotations

from typing import Callable, List, Sequence, Tuple

import numpy as np

from hpfem1d.core.constants import Norm
from hpfem1d.core.element import Element
from hpfem1d.fem import transform
from hpfem1d.fem.reference import get_reference
from hpfem1d.integration.quadrature import line_rule

_TOL = 1e-12


def overlaps(elements: Sequence[Element], x1: float, x2: float) -> List[Tuple[Element, float, float]]:
    """Elements of an ordered list that overlap [x1, x2], with the overlap bounds."""
    out = []
    eps = _TOL * (x2 - x1)
    for e in elements:
        if e.x2 <= x1 + eps:
            continue
        if e.x1 >= x2 - eps:
            break
        out.append((e, max(e.x1, x1), min(e.x2, x2)))
    return out


def project_solution(elements: Sequence[Element], x1: float, x2: float, p: int) -> np.ndarray:
    """
    Project the piecewise polynomial carried by *elements* onto a single
    degree-*p* element over [x1, x2].

    Vertex coefficients interpolate the source at x1 and x2, which keeps
    neighbouring projections continuous.  Bubble coefficients come from
    the H1-seminorm projection; bubble derivatives are orthogonal to each
    other and to the vertex functions, so the Gram matrix is diagonal.
    Exact whenever the source restricted to [x1, x2] has degree <= p.
    """
    pieces = overlaps(elements, x1, x2)
    if not pieces:
        raise ValueError(f"no source elements overlap [{x1}, {x2}]")
    neq = pieces[0][0].neq
    c = np.zeros((neq, p + 1))
    c[:, 0] = pieces[0][0].eval(x1)[0][:, 0]
    c[:, 1] = pieces[-1][0].eval(x2)[0][:, 0]
    if p < 2:
        return c

    ref = get_reference(p)
    num = np.zeros((neq, p - 1))
    den = np.zeros(p - 1)
    for e, a, b in pieces:
        x, w = line_rule(a, b, max(e.p, p) + 1)
        _, du = e.eval(x)
        xi = transform.inverse_mapping(x1, x2, x)
        dN = transform.map_grad(x1, x2, ref.derivative(xi))[2:]
        num += (du * w) @ dN.T
        den += (dN ** 2) @ w
    c[:, 2:] = num / den
    return c


def diff_norm_squared(norm: Norm, elems_a: Sequence[Element], elems_b: Sequence[Element],
                      extra: int = 1) -> float:
    """
    Squared norm of (u_a - u_b) over the common support of two ordered
    element lists, summed over all equations.
    """
    total = 0.0
    for ea in elems_a:
        for eb, a, b in overlaps(elems_b, ea.x1, ea.x2):
            x, w = line_rule(a, b, max(ea.p, eb.p) + 1 + extra)
            ua, dua = ea.eval(x)
            ub, dub = eb.eval(x)
            total += float(np.sum((ua - ub) ** 2 @ w))
            if norm == Norm.H1:
                total += float(np.sum((dua - dub) ** 2 @ w))
    return total


def norm_squared(norm: Norm, elements: Sequence[Element], extra: int = 1) -> float:
    total = 0.0
    for e in elements:
        x, w = line_rule(e.x1, e.x2, e.p + 1 + extra)
        u, du = e.eval(x)
        total += float(np.sum(u ** 2 @ w))
        if norm == Norm.H1:
            total += float(np.sum(du ** 2 @ w))
    return total


def diff_exact_squared(norm: Norm, elem: Element, exact_sol: Callable, order: int) -> Tuple[float, float]:
    """
    Squared norms of (u_h - u_exact) and of u_exact on one element.

    *exact_sol(x)* returns ``(u, dudx)`` with shapes ``(neq, len(x))``.
    """
    x, w = line_rule(elem.x1, elem.x2, order)
    u, du = elem.eval(x)
    ue, due = exact_sol(x)
    ue = np.broadcast_to(np.asarray(ue, dtype=float).reshape(-1, x.size), u.shape)
    due = np.broadcast_to(np.asarray(due, dtype=float).reshape(-1, x.size), du.shape)
    err = float(np.sum((u - ue) ** 2 @ w))
    ref = float(np.sum(ue ** 2 @ w))
    if norm == Norm.H1:
        err += float(np.sum((du - due) ** 2 @ w))
        ref += float(np.sum(due ** 2 @ w))
    return err, ref
