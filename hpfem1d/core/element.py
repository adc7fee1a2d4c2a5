from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from hpfem1d.fem import transform
from hpfem1d.fem.reference import get_reference


@dataclass
class Element:
    """
    One interval of the mesh together with its polynomial degree and the
    local solution coefficients of every equation.

    ``coeffs`` and ``dof`` have shape ``(neq, p+1)``.  A dof of ``-1``
    marks a coefficient that is not a free unknown (Dirichlet vertex, or
    not yet numbered).  Elements are never deleted: h-refinement flips
    ``active`` off and records the two children, so the refinement
    history survives for later projections.
    """
    id: int
    x1: float
    x2: float
    p: int
    neq: int = 1
    level: int = 0
    parent_id: Optional[int] = None
    children_ids: List[int] = field(default_factory=list)
    active: bool = True
    coeffs: np.ndarray = field(default=None, repr=False)
    dof: np.ndarray = field(default=None, repr=False)

    def __post_init__(self):
        if self.coeffs is None:
            self.coeffs = np.zeros((self.neq, self.p + 1))
        if self.dof is None:
            self.dof = -np.ones((self.neq, self.p + 1), dtype=int)

    # ------------------------------------------------------------------
    #  Geometry
    # ------------------------------------------------------------------
    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def midpoint(self) -> float:
        return 0.5 * (self.x1 + self.x2)

    @property
    def n_loc(self) -> int:
        """Local coefficients per equation."""
        return self.p + 1

    # ------------------------------------------------------------------
    #  Degree changes
    # ------------------------------------------------------------------
    def set_degree(self, p: int) -> None:
        """Change the degree, keeping the leading hierarchical coefficients."""
        if p == self.p:
            return
        coeffs = np.zeros((self.neq, p + 1))
        n = min(p, self.p) + 1
        coeffs[:, :n] = self.coeffs[:, :n]
        self.coeffs = coeffs
        self.dof = -np.ones((self.neq, p + 1), dtype=int)
        self.p = p

    # ------------------------------------------------------------------
    #  Evaluation
    # ------------------------------------------------------------------
    def eval(self, x, coeffs: np.ndarray | None = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Solution value and x-derivative at physical points *x*.

        Returns two arrays of shape ``(neq, len(x))``.  *coeffs* overrides
        the stored coefficients (same shape).
        """
        c = self.coeffs if coeffs is None else coeffs
        xi = transform.inverse_mapping(self.x1, self.x2, np.atleast_1d(x))
        ref = get_reference(self.p)
        N = ref.shape(xi)
        dN = transform.map_grad(self.x1, self.x2, ref.derivative(xi))
        return c @ N, c @ dN

    def __repr__(self):
        state = "active" if self.active else "inactive"
        return f"Element {self.id}([{self.x1:.4g}, {self.x2:.4g}], p={self.p}, {state})"
