"""hpfem1d.io.graphs
Convergence records (dofs or CPU time against error) and their ``.dat`` output.
"""
from __future__ import annotations

from pathlib import Path

import numpy as np


class ConvergenceGraph:
    def __init__(self, name: str = "", xlabel: str = "", ylabel: str = ""):
        self.name = name
        self.xlabel = xlabel
        self.ylabel = ylabel
        self._x: list[float] = []
        self._y: list[float] = []

    def add_values(self, x: float, y: float) -> None:
        self._x.append(float(x))
        self._y.append(float(y))

    def __len__(self):
        return len(self._x)

    @property
    def values(self) -> np.ndarray:
        """Recorded pairs as an ``(n, 2)`` array."""
        return np.column_stack([self._x, self._y]) if self._x else np.empty((0, 2))

    def save(self, path) -> Path:
        """Write the pairs as two whitespace separated columns."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        header = f"{self.xlabel} {self.ylabel}".strip()
        np.savetxt(path, self.values, fmt="%.15g", header=header)
        return path

    def plot(self, ax=None, **kwargs):
        from hpfem1d.io.visualization import plot_convergence
        return plot_convergence(self, ax=ax, **kwargs)

    def __repr__(self):
        return f"ConvergenceGraph({self.name!r}, {len(self)} points)"
