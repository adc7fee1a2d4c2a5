# analytic.py
import sympy as sp
import numpy as np


class ExactSolution:
    """
    Exact solution of an ``neq``-equation problem built from SymPy
    expressions (or plain callables) in the coordinate ``x``.

    Calling the object returns ``(u, dudx)`` with shapes ``(neq, len(x))``,
    the contract expected by :func:`hpfem1d.adapt.error_estimate.calc_err_exact`.
    """
    _x = sp.symbols("x")

    def __init__(self, *exprs, derivatives=None):
        if not exprs:
            raise ValueError("ExactSolution needs at least one component")
        self.exprs = exprs
        self._u = []
        self._du = []
        for k, e in enumerate(exprs):
            if callable(e) and not isinstance(e, sp.Basic):
                if derivatives is None:
                    raise ValueError("Callable components need explicit derivatives")
                self._u.append(e)
                self._du.append(derivatives[k])
            else:
                e = sp.sympify(e)
                self._u.append(sp.lambdify(self._x, e, "numpy"))
                self._du.append(sp.lambdify(self._x, sp.diff(e, self._x), "numpy"))

    @property
    def neq(self) -> int:
        return len(self._u)

    def __call__(self, x):
        x = np.atleast_1d(np.asarray(x, dtype=float))
        u = np.array([np.broadcast_to(f(x), x.shape) for f in self._u], dtype=float)
        du = np.array([np.broadcast_to(f(x), x.shape) for f in self._du], dtype=float)
        return u, du


# helper to avoid typing ExactSolution._x all the time
x = ExactSolution._x
