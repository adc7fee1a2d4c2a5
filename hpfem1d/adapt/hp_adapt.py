"""hpfem1d.adapt.hp_adapt
Refinement decisions driven by element errors.

Elements whose error reaches ``threshold * max_error`` are refined.  In
hp mode the two candidates of an element, one degree more or a split
into two halves of the same degree, are scored by projecting the
reference solution onto each of them.  A split that removes clearly
more error wins; comparable reductions are weighed per added dof, and a
tie goes to the degree increase.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from hpfem1d.core.constants import AdaptType, Norm
from hpfem1d.core.element import Element
from hpfem1d.core.projection import diff_norm_squared, overlaps, project_solution
from hpfem1d.core.space import Space
from hpfem1d.errors import ConfigurationError

logger = logging.getLogger(__name__)

_TIE_RTOL = 1e-10
H_GAIN_FACTOR = 2.0     # split must remove this many times the p-candidate's reduction


@dataclass
class Refinement:
    """One executed refinement of a coarse element."""
    elem_id: int
    kind: str                           # "h" or "p"
    p_new: int
    children: Tuple[int, ...] = ()


def _candidate(ref_elems: Sequence[Element], pieces: Sequence[Tuple[float, float, int]],
               neq: int) -> List[Element]:
    """Throw-away elements carrying the reference solution projected onto *pieces*."""
    out = []
    for x1, x2, p in pieces:
        e = Element(id=-1, x1=x1, x2=x2, p=p, neq=neq)
        e.coeffs = project_solution(ref_elems, x1, x2, p)
        out.append(e)
    return out


def candidate_errors(norm: Norm, e: Element, ref_elems: Sequence[Element], max_p: int):
    """
    Projection errors of the p-candidate (``None`` when ``p+1 > max_p``)
    and of the h-candidate of element *e*.
    """
    sub = [r for r, _, _ in overlaps(ref_elems, e.x1, e.x2)]
    err_p = None
    if e.p + 1 <= max_p:
        cand = _candidate(sub, [(e.x1, e.x2, e.p + 1)], e.neq)
        err_p = float(np.sqrt(diff_norm_squared(norm, cand, sub)))
    mid = e.midpoint
    cand = _candidate(sub, [(e.x1, mid, e.p), (mid, e.x2, e.p)], e.neq)
    err_h = float(np.sqrt(diff_norm_squared(norm, cand, sub)))
    return err_p, err_h


def select_hp_refinement(norm: Norm, e: Element, elem_err: float,
                         ref_elems: Sequence[Element], max_p: int) -> str:
    """
    Return ``"p"`` or ``"h"`` for an element chosen for refinement.

    A split wins outright when it removes more than ``H_GAIN_FACTOR``
    times the error the degree increase removes.  Otherwise the two
    reductions count as comparable and the error decrease per added dof
    decides; a tie goes to p.
    """
    err_p, err_h = candidate_errors(norm, e, ref_elems, max_p)
    if err_p is None:
        logger.info(f"  {e!r}: degree cap {max_p} reached, h-refinement")
        return "h"
    gain_p = elem_err - err_p
    gain_h = elem_err - err_h
    if gain_h > H_GAIN_FACTOR * max(gain_p, 0.0):
        kind = "h"
    else:
        rate_p = gain_p / e.neq
        rate_h = gain_h / (e.neq * e.p)
        scale = max(abs(rate_p), abs(rate_h))
        kind = "p" if rate_p >= rate_h - _TIE_RTOL * scale else "h"
    logger.info(
        f"  {e!r}: err {elem_err:.3e}, p-candidate {err_p:.3e}, h-candidate {err_h:.3e} → {kind}"
    )
    return kind


def adapt(norm: Norm, adapt_type: AdaptType, threshold: float, err_array,
          space: Space, ref_space: Space) -> List[Refinement]:
    """
    Refine *space* in place according to *err_array* (one entry per
    active element, left to right) and transfer the reference solution
    onto the refined space.  Returns the executed refinements.
    """
    norm = Norm(norm)
    adapt_type = AdaptType(adapt_type)
    if not 0.0 < threshold <= 1.0:
        raise ConfigurationError(f"threshold must lie in (0, 1], got {threshold}")

    elems = space.active_elements()
    n = len(elems)
    errs = np.asarray(err_array, dtype=float)[:n]
    if errs.size < n:
        raise ValueError(f"Error array holds {errs.size} entries, {n} active elements")
    max_err = float(errs.max())
    if max_err <= 0.0:
        logger.info("All element errors vanish, nothing to refine")
        return []

    ref_elems = ref_space.active_elements()
    marked = [i for i in range(n) if errs[i] >= threshold * max_err]
    logger.info(f"Refining {len(marked)} of {n} elements ({adapt_type.name}, threshold {threshold})")

    decisions = []
    for i in marked:
        e = elems[i]
        if adapt_type == AdaptType.H:
            kind = "h"
        elif adapt_type == AdaptType.P:
            if e.p + 1 > space.max_p:
                logger.warning(f"  {e!r} already has the maximum degree {space.max_p}; left unchanged")
                continue
            kind = "p"
        else:
            kind = select_hp_refinement(norm, e, errs[i], ref_elems, space.max_p)
        decisions.append((e.id, kind))

    done = []
    for eid, kind in decisions:
        e = space.get_element(eid)
        if kind == "p":
            space.set_element_degree(eid, e.p + 1)
            done.append(Refinement(eid, "p", e.p))
        else:
            left, right = space.split_element(eid)
            done.append(Refinement(eid, "h", e.p, (left.id, right.id)))

    # next coarse solve starts from the reference solution
    for e in space.active_elements():
        e.coeffs = project_solution(ref_elems, e.x1, e.x2, e.p)
    space.assign_dofs()
    return done
