from .graphs import ConvergenceGraph

__all__ = ["ConvergenceGraph"]
