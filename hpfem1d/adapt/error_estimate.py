"""hpfem1d.adapt.error_estimate
Element-wise and global errors of a coarse solution.

``calc_err_est`` compares against the reference solution and feeds the
adaptivity engine; ``calc_err_exact`` compares against a known exact
solution and is meant for diagnostics only.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from hpfem1d.core.constants import Norm
from hpfem1d.core.projection import diff_exact_squared, diff_norm_squared, norm_squared, overlaps
from hpfem1d.core.space import Space

logger = logging.getLogger(__name__)

_EXACT_QUAD_EXTRA = 10      # extra Gauss points for non-polynomial exact solutions


def _relative(err2: float, ref2: float) -> float:
    # a vanishing reference norm leaves the absolute error as the measure
    if ref2 <= 0.0:
        return float(np.sqrt(err2))
    return float(np.sqrt(err2 / ref2))


def _check_err_array(err_array, n: int) -> None:
    if err_array is not None and len(err_array) < n:
        raise ValueError(f"Error array holds {len(err_array)} entries, {n} active elements")


def calc_elem_est_errors(norm: Norm, space: Space, ref_space: Space) -> np.ndarray:
    """Absolute error of every active coarse element against the reference solution."""
    norm = Norm(norm)
    ref_elems = ref_space.active_elements()
    errs = []
    for e in space.active_elements():
        sub = [r for r, _, _ in overlaps(ref_elems, e.x1, e.x2)]
        errs.append(np.sqrt(diff_norm_squared(norm, [e], sub)))
    return np.asarray(errs)


def calc_err_est(norm: Norm, space: Space, ref_space: Space,
                 err_array: Optional[np.ndarray] = None) -> float:
    """
    Relative error (fraction) of the coarse solution with respect to the
    reference solution.

    If *err_array* is given, entry ``i`` receives the absolute error of
    the ``i``-th active coarse element (left to right).
    """
    norm = Norm(norm)
    n = space.get_n_active_elem()
    _check_err_array(err_array, n)
    errs = calc_elem_est_errors(norm, space, ref_space)
    if err_array is not None:
        err_array[:n] = errs
    err2 = float(np.sum(errs ** 2))
    ref2 = norm_squared(norm, ref_space.active_elements())
    rel = _relative(err2, ref2)
    logger.debug(f"calc_err_est ({norm.name}): |e| = {np.sqrt(err2):.3e}, |u_ref| = {np.sqrt(ref2):.3e}")
    return rel


def calc_err_exact(norm: Norm, space: Space, exact_sol: Callable,
                   err_array: Optional[np.ndarray] = None) -> float:
    """
    Relative error (fraction) of the coarse solution with respect to
    ``exact_sol(x) -> (u, dudx)``, arrays of shape ``(neq, len(x))``.
    """
    norm = Norm(norm)
    elems = space.active_elements()
    _check_err_array(err_array, len(elems))
    err2 = ref2 = 0.0
    for i, e in enumerate(elems):
        e2, r2 = diff_exact_squared(norm, e, exact_sol, e.p + 1 + _EXACT_QUAD_EXTRA)
        if err_array is not None:
            err_array[i] = np.sqrt(e2)
        err2 += e2
        ref2 += r2
    return _relative(err2, ref2)
