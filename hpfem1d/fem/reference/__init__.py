# hpfem1d.fem.reference
"""
Degree-agnostic reference-element factory.
"""
from functools import lru_cache

from .lobatto import Lobatto1D

MAX_P = 30  # highest polynomial degree an element may carry


@lru_cache(maxsize=None)
def get_reference(poly_order: int = 1) -> Lobatto1D:
    if poly_order < 1 or poly_order > MAX_P:
        raise KeyError(poly_order)
    return Lobatto1D(int(poly_order))


__all__ = ["Lobatto1D", "get_reference", "MAX_P"]
