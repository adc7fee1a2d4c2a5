"""hpfem1d.assembly.weakform
Weak formulations as a closed set of tagged callbacks.

Volume forms are integrated element by element; surface forms are
evaluated at a domain endpoint.  Callback signatures:

* matrix volume form  ``fn(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data)``
* vector volume form  ``fn(x, weights, u_prev, du_prevdx, v, dvdx, user_data)``
* matrix surface form ``fn(x, u, dudx, v, dvdx, u_prev, du_prevdx, user_data)``
* vector surface form ``fn(x, u_prev, du_prevdx, v, dvdx, user_data)``

``x`` and ``weights`` are the physical Gauss points and weights of the
element, ``u``/``v`` basis and test function values at those points and
``u_prev``/``du_prevdx`` the previous Newton iterate of *all* equations,
shape ``(neq, nq)``.  Surface forms receive point values instead.  Every
callback returns a scalar and must not have side effects.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from hpfem1d.core.constants import BOUNDARIES
from hpfem1d.errors import ConfigurationError


@dataclass(frozen=True)
class MatrixForm:
    """Contribution to block (i, j) of the Jacobian."""
    i: int
    j: int
    fn: Callable
    boundary: Optional[str] = None

    @property
    def name(self) -> str:
        return getattr(self.fn, "__name__", repr(self.fn))


@dataclass(frozen=True)
class VectorForm:
    """Contribution to block i of the residual."""
    i: int
    fn: Callable
    boundary: Optional[str] = None

    @property
    def name(self) -> str:
        return getattr(self.fn, "__name__", repr(self.fn))


class WeakForm:
    def __init__(self, neq: int = 1, user_data: Any = None):
        self.neq = neq
        self.user_data = user_data
        self._matrix_forms: list[MatrixForm] = []
        self._vector_forms: list[VectorForm] = []

    def _check(self, fn, boundary, *indices) -> None:
        if not callable(fn):
            raise TypeError(f"Form callback must be callable, got {type(fn)}")
        if boundary is not None and boundary not in BOUNDARIES:
            raise ConfigurationError(f"Unknown boundary '{boundary}'")
        for k in indices:
            if not 0 <= k < self.neq:
                raise ConfigurationError(f"Equation index {k} out of range for neq={self.neq}")

    def add_matrix_form(self, fn: Callable, i: int = 0, j: int = 0) -> "WeakForm":
        self._check(fn, None, i, j)
        self._matrix_forms.append(MatrixForm(i, j, fn))
        return self

    def add_vector_form(self, fn: Callable, i: int = 0) -> "WeakForm":
        self._check(fn, None, i)
        self._vector_forms.append(VectorForm(i, fn))
        return self

    def add_matrix_form_surf(self, fn: Callable, boundary: str, i: int = 0, j: int = 0) -> "WeakForm":
        self._check(fn, boundary, i, j)
        self._matrix_forms.append(MatrixForm(i, j, fn, boundary))
        return self

    def add_vector_form_surf(self, fn: Callable, boundary: str, i: int = 0) -> "WeakForm":
        self._check(fn, boundary, i)
        self._vector_forms.append(VectorForm(i, fn, boundary))
        return self

    @property
    def matrix_forms(self) -> Tuple[MatrixForm, ...]:
        return tuple(self._matrix_forms)

    @property
    def vector_forms(self) -> Tuple[VectorForm, ...]:
        return tuple(self._vector_forms)

    def __repr__(self):
        return (f"WeakForm(neq={self.neq}, matrix_forms={len(self._matrix_forms)}, "
                f"vector_forms={len(self._vector_forms)})")
