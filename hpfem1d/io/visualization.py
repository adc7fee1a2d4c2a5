"""hpfem1d.io.visualization
matplotlib views of solutions, meshes and convergence graphs.
"""
from __future__ import annotations

import matplotlib.pyplot as plt
import numpy as np


def plot_solution(space, eq: int = 0, ax=None, n_per_elem: int = 20, exact_sol=None, **kwargs):
    """Plot component *eq* of the solution carried by *space*."""
    if ax is None:
        _, ax = plt.subplots()
    xs = []
    for e in space.active_elements():
        xs.append(np.linspace(e.x1, e.x2, n_per_elem, endpoint=False))
    xs.append(np.array([space.b]))
    x = np.concatenate(xs)
    u, _ = space.evaluate(x)
    ax.plot(x, u[eq], label=kwargs.pop("label", "u_h"), **kwargs)
    if exact_sol is not None:
        ue, _ = exact_sol(x)
        ax.plot(x, np.atleast_2d(ue)[eq], "k--", label="exact")
    ax.plot(space.nodes(), space.evaluate(space.nodes())[0][eq], "o", ms=3, color="gray")
    ax.set_xlabel("x")
    ax.legend()
    return ax


def plot_mesh(space, ax=None, err_array=None):
    """Bar chart of element degrees; element errors on a twin axis when given."""
    if ax is None:
        _, ax = plt.subplots()
    elems = space.active_elements()
    left = np.array([e.x1 for e in elems])
    width = np.array([e.width for e in elems])
    ax.bar(left, [e.p for e in elems], width=width, align="edge",
           edgecolor="k", color="tab:blue", alpha=0.6)
    ax.set_xlabel("x")
    ax.set_ylabel("polynomial degree")
    ax.set_xlim(space.a, space.b)
    if err_array is not None:
        ax2 = ax.twinx()
        ax2.step(np.append(left, space.b), np.append(err_array[:len(elems)], err_array[len(elems) - 1]),
                 where="post", color="tab:red")
        ax2.set_ylabel("element error")
    return ax


def plot_convergence(graph, ax=None, **kwargs):
    """Semilog-y plot of a :class:`~hpfem1d.io.graphs.ConvergenceGraph`."""
    if ax is None:
        _, ax = plt.subplots()
    data = graph.values
    ax.semilogy(data[:, 0], data[:, 1], marker="o", label=kwargs.pop("label", graph.name), **kwargs)
    ax.set_xlabel(graph.xlabel)
    ax.set_ylabel(graph.ylabel)
    ax.grid(True, which="both", ls=":")
    ax.legend()
    return ax
