# space.py
"""
Hierarchical H1 finite-element space over an ordered 1‑D partition.

The Space owns an *arena* of :class:`Element` objects indexed by id and
the ids of the root elements of the refinement forest.  The active
elements are the leaves of that forest, read left to right; they
partition the domain.  Global degrees of freedom are numbered equation by
equation by :meth:`Space.assign_dofs`.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from hpfem1d.core.constants import (
    AdaptType, BOUNDARIES, BOUNDARY_LEFT, BOUNDARY_RIGHT, MAX_EQN_NUM,
)
from hpfem1d.core.element import Element
from hpfem1d.core.projection import project_solution
from hpfem1d.errors import ConfigurationError
from hpfem1d.fem.reference import MAX_P

logger = logging.getLogger(__name__)


@dataclass
class BoundaryCondition:
    """Boundary condition of one equation at one domain endpoint."""
    eq: int
    method: str
    side: str
    value: float | None = 0.0

    def __post_init__(self):
        m = self.method.lower()
        if m not in ("dirichlet", "neumann"):
            raise ConfigurationError("BC method must be 'dirichlet' or 'neumann'")
        self.method = m
        if self.side not in BOUNDARIES:
            raise ConfigurationError(f"Unknown boundary '{self.side}'")
        if m == "dirichlet":
            if self.value is None or not math.isfinite(float(self.value)):
                raise ConfigurationError(
                    f"Dirichlet condition for equation {self.eq} on the {self.side} "
                    f"boundary needs a finite value, got {self.value!r}"
                )
            self.value = float(self.value)

    @property
    def is_dirichlet(self) -> bool:
        return self.method == "dirichlet"


class Space:
    def __init__(self, a: float, b: float, n_elem: int, p_init: int = 1, neq: int = 1,
                 *, max_p: int = MAX_P):
        if n_elem < 1:
            raise ConfigurationError(f"Need at least one element, got {n_elem}")
        self._init(np.linspace(a, b, n_elem + 1), p_init, neq, max_p)

    @classmethod
    def from_nodes(cls, nodes: Sequence[float], p_init=1, neq: int = 1, *, max_p: int = MAX_P) -> "Space":
        """
        Build a space on explicit, strictly increasing *nodes*.  *p_init*
        is either one degree for all elements or one degree per element.
        """
        space = cls.__new__(cls)
        space._init(np.asarray(nodes, dtype=float), p_init, neq, max_p)
        return space

    def _init(self, nodes: np.ndarray, p_init, neq: int, max_p: int) -> None:
        if not 1 <= neq <= MAX_EQN_NUM:
            raise ConfigurationError(f"Number of equations must lie in 1..{MAX_EQN_NUM}, got {neq}")
        if not 1 <= max_p <= MAX_P:
            raise ConfigurationError(f"Maximum degree must lie in 1..{MAX_P}, got {max_p}")
        if nodes.ndim != 1 or nodes.size < 2:
            raise ConfigurationError("A space needs at least two nodes")
        if not np.all(np.isfinite(nodes)) or np.any(np.diff(nodes) <= 0.0):
            raise ConfigurationError("Nodes must be finite and strictly increasing")
        n_elem = nodes.size - 1
        degrees = np.asarray(p_init, dtype=int)
        if degrees.ndim > 1 or (degrees.ndim == 1 and degrees.size != n_elem):
            raise ConfigurationError(
                f"p_init must be one degree or {n_elem} degrees, got {degrees.size}"
            )
        degrees = np.broadcast_to(degrees, (n_elem,))
        for p in degrees:
            self._check_degree(int(p), max_p)

        self.a = float(nodes[0])
        self.b = float(nodes[-1])
        self.neq = int(neq)
        self.max_p = int(max_p)
        self.elements: List[Element] = []
        self.roots: List[int] = []
        self._ndof = 0
        self.bcs: Dict[Tuple[str, int], BoundaryCondition] = {
            (side, c): BoundaryCondition(c, "neumann", side, 0.0)
            for side in BOUNDARIES for c in range(self.neq)
        }
        for i in range(n_elem):
            e = self._new_element(nodes[i], nodes[i + 1], int(degrees[i]))
            self.roots.append(e.id)

    @staticmethod
    def _check_degree(p: int, max_p: int) -> None:
        if not 1 <= p <= max_p:
            raise ConfigurationError(f"Polynomial degree must lie in 1..{max_p}, got {p}")

    def _new_element(self, x1, x2, p, level=0, parent_id=None) -> Element:
        e = Element(id=len(self.elements), x1=float(x1), x2=float(x2), p=p,
                    neq=self.neq, level=level, parent_id=parent_id)
        self.elements.append(e)
        return e

    # ------------------------------------------------------------------
    #  Boundary conditions
    # ------------------------------------------------------------------
    def _check_eq(self, eq: int) -> int:
        if not 0 <= eq < self.neq:
            raise ConfigurationError(f"Equation index {eq} out of range for neq={self.neq}")
        return eq

    def set_bc(self, bc: BoundaryCondition) -> None:
        self.bcs[(bc.side, self._check_eq(bc.eq))] = bc

    def set_bc_left_dirichlet(self, eq: int, value: float) -> None:
        self.set_bc(BoundaryCondition(eq, "dirichlet", BOUNDARY_LEFT, value))

    def set_bc_right_dirichlet(self, eq: int, value: float) -> None:
        self.set_bc(BoundaryCondition(eq, "dirichlet", BOUNDARY_RIGHT, value))

    def set_bc_left_natural(self, eq: int, value: float = 0.0) -> None:
        self.set_bc(BoundaryCondition(eq, "neumann", BOUNDARY_LEFT, value))

    def set_bc_right_natural(self, eq: int, value: float = 0.0) -> None:
        self.set_bc(BoundaryCondition(eq, "neumann", BOUNDARY_RIGHT, value))

    def get_bc(self, side: str, eq: int) -> BoundaryCondition:
        if side not in BOUNDARIES:
            raise ConfigurationError(f"Unknown boundary '{side}'")
        return self.bcs[(side, self._check_eq(eq))]

    def n_dirichlet(self) -> int:
        return sum(1 for bc in self.bcs.values() if bc.is_dirichlet)

    # ------------------------------------------------------------------
    #  Element access
    # ------------------------------------------------------------------
    def get_element(self, eid: int) -> Element:
        return self.elements[eid]

    def _leaves(self, eid: int) -> Iterable[Element]:
        e = self.elements[eid]
        if e.active:
            yield e
            return
        for cid in e.children_ids:
            yield from self._leaves(cid)

    def active_elements(self) -> List[Element]:
        """Active elements, left to right."""
        out = []
        for rid in self.roots:
            out.extend(self._leaves(rid))
        return out

    def get_n_active_elem(self) -> int:
        return len(self.active_elements())

    def first_active_element(self) -> Element:
        return next(self._leaves(self.roots[0]))

    def last_active_element(self) -> Element:
        e = self.elements[self.roots[-1]]
        while not e.active:
            e = self.elements[e.children_ids[-1]]
        return e

    def nodes(self) -> np.ndarray:
        """Vertex coordinates of the active mesh."""
        elems = self.active_elements()
        return np.array([e.x1 for e in elems] + [elems[-1].x2])

    def get_num_dofs(self) -> int:
        return self._ndof

    # ------------------------------------------------------------------
    #  Refinement
    # ------------------------------------------------------------------
    def split_element(self, eid: int, p_left: int | None = None, p_right: int | None = None) -> Tuple[Element, Element]:
        """
        Replace an active element by its two halves.  The parent keeps
        links to the children and becomes inactive.  Children inherit the
        parent's solution restricted to their halves (exact).
        """
        parent = self.elements[eid]
        if not parent.active:
            raise ValueError(f"Element {eid} is not active")
        p_left = parent.p if p_left is None else p_left
        p_right = parent.p if p_right is None else p_right
        self._check_degree(p_left, self.max_p)
        self._check_degree(p_right, self.max_p)

        mid = parent.midpoint
        children = []
        for x1, x2, p in ((parent.x1, mid, p_left), (mid, parent.x2, p_right)):
            child = self._new_element(x1, x2, p, level=parent.level + 1, parent_id=parent.id)
            child.coeffs = project_solution([parent], x1, x2, p)
            parent.children_ids.append(child.id)
            children.append(child)
        parent.active = False
        return children[0], children[1]

    def set_element_degree(self, eid: int, p: int) -> None:
        e = self.elements[eid]
        if not e.active:
            raise ValueError(f"Element {eid} is not active")
        self._check_degree(p, self.max_p)
        e.set_degree(p)

    # ------------------------------------------------------------------
    #  DOF numbering
    # ------------------------------------------------------------------
    def assign_dofs(self) -> int:
        """
        Number the free coefficients of all active elements and return the
        number of free dofs.  Coefficients of Dirichlet vertices receive
        dof -1 and hold the prescribed value.
        """
        elems = self.active_elements()
        n = 0
        for c in range(self.neq):
            bc_left = self.get_bc(BOUNDARY_LEFT, c)
            bc_right = self.get_bc(BOUNDARY_RIGHT, c)
            prev_right = None
            for i, e in enumerate(elems):
                if i == 0:
                    if bc_left.is_dirichlet:
                        e.dof[c, 0] = -1
                        e.coeffs[c, 0] = bc_left.value
                    else:
                        e.dof[c, 0] = n
                        n += 1
                else:
                    e.dof[c, 0] = prev_right
                for k in range(2, e.p + 1):
                    e.dof[c, k] = n
                    n += 1
                if i == len(elems) - 1 and bc_right.is_dirichlet:
                    e.dof[c, 1] = -1
                    e.coeffs[c, 1] = bc_right.value
                else:
                    e.dof[c, 1] = n
                    n += 1
                prev_right = e.dof[c, 1]
        self._ndof = n
        logger.debug(f"assign_dofs: {len(elems)} active elements, {n} dofs")
        return n

    # ------------------------------------------------------------------
    #  Coefficient vector ↔ element coefficients
    # ------------------------------------------------------------------
    def _check_vector(self, y) -> np.ndarray:
        y = np.asarray(y, dtype=float)
        if y.shape != (self._ndof,):
            raise ValueError(f"Coefficient vector has shape {y.shape}, expected ({self._ndof},)")
        return y

    def vector_to_solution(self, y) -> None:
        """Copy the coefficient vector *y* into the active elements."""
        y = self._check_vector(y)
        for e in self.active_elements():
            mask = e.dof >= 0
            e.coeffs[mask] = y[e.dof[mask]]

    def solution_to_vector(self) -> np.ndarray:
        """Gather the free element coefficients into a coefficient vector."""
        y = np.zeros(self._ndof)
        for e in self.active_elements():
            mask = e.dof >= 0
            y[e.dof[mask]] = e.coeffs[mask]
        return y

    def element_coeffs(self, e: Element, y=None) -> np.ndarray:
        """Local coefficients *e* would hold for vector *y*; the space is untouched."""
        if y is None:
            return e.coeffs
        c = e.coeffs.copy()
        mask = e.dof >= 0
        c[mask] = y[e.dof[mask]]
        return c

    # ------------------------------------------------------------------
    #  Evaluation
    # ------------------------------------------------------------------
    def evaluate(self, x) -> Tuple[np.ndarray, np.ndarray]:
        """Solution values and derivatives at points *x*, each of shape (neq, len(x))."""
        x = np.atleast_1d(np.asarray(x, dtype=float))
        if np.any(x < self.a - 1e-12) or np.any(x > self.b + 1e-12):
            raise ValueError(f"Points outside the domain [{self.a}, {self.b}]")
        elems = self.active_elements()
        breaks = np.array([e.x2 for e in elems[:-1]])
        owner = np.searchsorted(breaks, x, side="right")
        u = np.zeros((self.neq, x.size))
        du = np.zeros((self.neq, x.size))
        for idx in np.unique(owner):
            sel = owner == idx
            u[:, sel], du[:, sel] = elems[idx].eval(x[sel])
        return u, du

    def __repr__(self):
        return (f"Space([{self.a}, {self.b}], n_active={self.get_n_active_elem()}, "
                f"neq={self.neq}, ndof={self._ndof})")


# ----------------------------------------------------------------------------
#  Reference space
# ----------------------------------------------------------------------------
def construct_refined_space(coarse: Space, order_increase: int = 1,
                            refinement: AdaptType = AdaptType.HP) -> Space:
    """
    Globally refined copy of *coarse*: every active element is split (H),
    raised by *order_increase* (P) or both (HP).  Degrees are capped at
    ``coarse.max_p``; a P step that cannot raise the degree splits the
    element instead, so the result always carries more dofs.  The coarse
    solution is transferred exactly and *coarse* is left unchanged.
    """
    refinement = AdaptType(refinement)
    if order_increase < 1:
        raise ConfigurationError(f"order_increase must be >= 1, got {order_increase}")
    coarse_elems = coarse.active_elements()
    ref = Space.from_nodes(coarse.nodes(), [e.p for e in coarse_elems], coarse.neq, max_p=coarse.max_p)
    ref.bcs = dict(coarse.bcs)
    for root_id, ce in zip(ref.roots, coarse_elems):
        re = ref.elements[root_id]
        re.level = ce.level
        re.coeffs = ce.coeffs.copy()
        p_up = min(ce.p + order_increase, ref.max_p)
        split = refinement in (AdaptType.H, AdaptType.HP)
        if refinement == AdaptType.P and p_up == ce.p:
            split = True
        if refinement in (AdaptType.P, AdaptType.HP):
            re.set_degree(p_up)
        if split:
            ref.split_element(root_id)
    ndof = ref.assign_dofs()
    if ndof <= coarse.get_num_dofs():
        raise ConfigurationError(
            f"Reference space has {ndof} dofs, not more than the coarse {coarse.get_num_dofs()}"
        )
    return ref
