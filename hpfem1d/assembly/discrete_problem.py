"""hpfem1d.assembly.discrete_problem
Element-by-element assembly of the Jacobian matrix and residual vector.
"""
from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Tuple

import numpy as np
import scipy.sparse as sp

from hpfem1d.assembly.weakform import WeakForm
from hpfem1d.core.constants import BOUNDARY_LEFT, BOUNDARY_RIGHT
from hpfem1d.core.element import Element
from hpfem1d.core.space import Space
from hpfem1d.errors import AssemblyError, ConfigurationError
from hpfem1d.fem import transform
from hpfem1d.fem.reference import get_reference
from hpfem1d.integration.quadrature import element_quad_order

logger = logging.getLogger(__name__)


class _Accumulator:
    """Global COO triplets and residual vector; one lock guards every add."""

    def __init__(self, ndof: int):
        self.ndof = ndof
        self._lock = threading.Lock()
        self._rows: list[np.ndarray] = []
        self._cols: list[np.ndarray] = []
        self._vals: list[np.ndarray] = []
        self.vector = np.zeros(ndof)

    def add(self, gdofs: np.ndarray, K_loc: np.ndarray, F_loc: np.ndarray) -> None:
        valid = gdofs >= 0                      # ignore Dirichlet (‑1)
        if not np.any(valid):
            return
        idx = gdofs[valid]
        r, c = np.meshgrid(idx, idx, indexing="ij")
        Ke = K_loc[np.ix_(valid, valid)]
        with self._lock:
            self._rows.append(r.ravel())
            self._cols.append(c.ravel())
            self._vals.append(Ke.ravel())
            np.add.at(self.vector, idx, F_loc[valid])

    def matrix(self) -> sp.csr_matrix:
        if not self._rows:
            return sp.csr_matrix((self.ndof, self.ndof))
        rows = np.concatenate(self._rows)
        cols = np.concatenate(self._cols)
        vals = np.concatenate(self._vals)
        # duplicates are summed by the COO → CSR conversion
        return sp.coo_matrix((vals, (rows, cols)), shape=(self.ndof, self.ndof)).tocsr()


def _checked(val, form, elem: Element) -> float:
    try:
        v = float(val)
    except (TypeError, ValueError) as exc:
        raise AssemblyError(
            f"Form '{form.name}' returned a non-scalar value on {elem!r}"
        ) from exc
    if not math.isfinite(v):
        raise AssemblyError(f"Form '{form.name}' returned {v} on {elem!r}")
    return v


class DiscreteProblem:
    """
    Binds a :class:`WeakForm` to a :class:`Space`.

    The space's dof numbering must be current (``assign_dofs``) before
    :meth:`assemble` is called.  Assembly never mutates the space.
    """

    def __init__(self, wf: WeakForm, space: Space, *, quad_extra: int = 2, n_workers: int = 1):
        if wf.neq != space.neq:
            raise ConfigurationError(f"Weak form has neq={wf.neq}, space has neq={space.neq}")
        if n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {n_workers}")
        self.wf = wf
        self.space = space
        self.quad_extra = quad_extra
        self.n_workers = n_workers
        self._vol_mat = tuple(f for f in wf.matrix_forms if f.boundary is None)
        self._vol_vec = tuple(f for f in wf.vector_forms if f.boundary is None)
        self._surf_mat = tuple(f for f in wf.matrix_forms if f.boundary is not None)
        self._surf_vec = tuple(f for f in wf.vector_forms if f.boundary is not None)

    def get_num_dofs(self) -> int:
        return self.space.get_num_dofs()

    # ------------------------------------------------------------------
    #  Public interface
    # ------------------------------------------------------------------
    def assemble(self, coeff_vec=None) -> Tuple[sp.csr_matrix, np.ndarray]:
        """
        Jacobian matrix and residual vector at the iterate *coeff_vec*
        (defaults to the coefficients stored in the elements).
        """
        space = self.space
        ndof = space.get_num_dofs()
        if coeff_vec is not None:
            coeff_vec = np.asarray(coeff_vec, dtype=float)
            if coeff_vec.shape != (ndof,):
                raise ValueError(f"Coefficient vector has shape {coeff_vec.shape}, expected ({ndof},)")

        elems = space.active_elements()
        first, last = elems[0].id, elems[-1].id
        acc = _Accumulator(ndof)

        def work(e: Element) -> None:
            K_loc, F_loc = self._local_contribution(e, coeff_vec, e.id == first, e.id == last)
            acc.add(e.dof.ravel(), K_loc, F_loc)

        if self.n_workers == 1 or len(elems) == 1:
            for e in elems:
                work(e)
        else:
            with ThreadPoolExecutor(max_workers=self.n_workers) as pool:
                # consume the iterator so worker exceptions propagate
                list(pool.map(work, elems))

        logger.debug(f"Assembled {len(elems)} elements into {ndof} dofs")
        return acc.matrix(), acc.vector

    # ------------------------------------------------------------------
    #  Local contributions
    # ------------------------------------------------------------------
    def _local_contribution(self, e: Element, coeff_vec, is_first: bool, is_last: bool):
        neq, nloc = e.neq, e.n_loc
        ud = self.wf.user_data
        ref = get_reference(e.p)
        xi, w_ref, N, dN_ref = ref.tabulate(element_quad_order(e.p, self.quad_extra))
        x = transform.x_mapping(e.x1, e.x2, xi)
        w = w_ref * transform.jacobian(e.x1, e.x2)
        dN = transform.map_grad(e.x1, e.x2, dN_ref)

        c = self.space.element_coeffs(e, coeff_vec)
        u_prev = c @ N
        du_prev = c @ dN

        K = np.zeros((neq * nloc, neq * nloc))
        F = np.zeros(neq * nloc)
        try:
            for form in self._vol_mat:
                r0, c0 = form.i * nloc, form.j * nloc
                for k in range(nloc):
                    for m in range(nloc):
                        val = form.fn(x, w, N[m], dN[m], N[k], dN[k], u_prev, du_prev, ud)
                        K[r0 + k, c0 + m] += _checked(val, form, e)
            for form in self._vol_vec:
                r0 = form.i * nloc
                for k in range(nloc):
                    val = form.fn(x, w, u_prev, du_prev, N[k], dN[k], ud)
                    F[r0 + k] += _checked(val, form, e)
            if is_first:
                self._surface(e, c, BOUNDARY_LEFT, K, F)
            if is_last:
                self._surface(e, c, BOUNDARY_RIGHT, K, F)
        except ArithmeticError as exc:
            raise AssemblyError(f"Arithmetic failure while integrating {e!r}: {exc}") from exc
        return K, F

    def _surface(self, e: Element, c: np.ndarray, side: str, K: np.ndarray, F: np.ndarray) -> None:
        mat = [f for f in self._surf_mat if f.boundary == side]
        vec = [f for f in self._surf_vec if f.boundary == side]
        if not mat and not vec:
            return
        nloc = e.n_loc
        ud = self.wf.user_data
        xi_b = -1.0 if side == BOUNDARY_LEFT else 1.0
        x_b = e.x1 if side == BOUNDARY_LEFT else e.x2
        ref = get_reference(e.p)
        N = ref.shape(xi_b)[:, 0]
        dN = transform.map_grad(e.x1, e.x2, ref.derivative(xi_b)[:, 0])
        u_prev = c @ N
        du_prev = c @ dN
        for form in mat:
            r0, c0 = form.i * nloc, form.j * nloc
            for k in range(nloc):
                for m in range(nloc):
                    val = form.fn(x_b, N[m], dN[m], N[k], dN[k], u_prev, du_prev, ud)
                    K[r0 + k, c0 + m] += _checked(val, form, e)
        for form in vec:
            r0 = form.i * nloc
            for k in range(nloc):
                val = form.fn(x_b, u_prev, du_prev, N[k], dN[k], ud)
                F[r0 + k] += _checked(val, form, e)
