"""hpfem1d.solvers.linear_solver
Linear-solve service used by the Newton driver.

Every backend exposes ``solve(A, b) -> x`` and raises
:class:`SolverFailure` when the system cannot be solved.
"""
from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from hpfem1d.errors import ConfigurationError, SolverFailure

_skip_petsc = os.getenv("HPFEM1D_SKIP_PETSC", "").lower() in {"1", "true", "yes"}
if not _skip_petsc:
    try:
        from petsc4py import PETSc
        HAS_PETSC = True
    except Exception:  # noqa: PERF203
        PETSc = None
        HAS_PETSC = False
else:
    PETSc = None
    HAS_PETSC = False

logger = logging.getLogger(__name__)


@dataclass
class LinearSolverParameters:
    """Sparse linear solver settings."""

    backend: str = "scipy"              # "scipy" | "gmres" | "petsc"
    tol: float = 1e-12                  # relative tolerance (iterative backends)
    maxit: int = 10_000

    def __post_init__(self):
        self.backend = self.backend.lower()
        if self.backend not in _BACKENDS:
            raise ConfigurationError(
                f"Unknown linear solver backend '{self.backend}'; choose from {sorted(_BACKENDS)}"
            )
        if self.tol <= 0.0 or self.maxit < 1:
            raise ConfigurationError("Linear solver tolerance must be > 0 and maxit >= 1")


def _check_solution(x: np.ndarray, backend: str) -> np.ndarray:
    x = np.asarray(x, dtype=float).ravel()
    if not np.all(np.isfinite(x)):
        raise SolverFailure(f"{backend}: solution contains non-finite entries")
    return x


class ScipyDirectSolver:
    """SuperLU through :func:`scipy.sparse.linalg.spsolve`."""

    name = "scipy"

    def __init__(self, params: LinearSolverParameters):
        self.params = params

    def solve(self, A, b) -> np.ndarray:
        b = np.asarray(b, dtype=float)
        if b.size == 0:
            return np.zeros(0)
        with warnings.catch_warnings():
            warnings.simplefilter("error", spla.MatrixRankWarning)
            try:
                x = spla.spsolve(sp.csc_matrix(A), b)
            except spla.MatrixRankWarning as exc:
                raise SolverFailure(f"Matrix solver failed: {exc}") from exc
            except RuntimeError as exc:
                raise SolverFailure(f"Matrix solver failed: {exc}") from exc
        return _check_solution(x, self.name)


class ScipyGmresSolver:
    """Restarted GMRES with an incomplete-LU preconditioner."""

    name = "gmres"

    def __init__(self, params: LinearSolverParameters):
        self.params = params

    def solve(self, A, b) -> np.ndarray:
        b = np.asarray(b, dtype=float)
        if b.size == 0:
            return np.zeros(0)
        A = sp.csc_matrix(A)
        try:
            ilu = spla.spilu(A)
        except RuntimeError as exc:
            raise SolverFailure(f"ILU preconditioner failed: {exc}") from exc
        M = spla.LinearOperator(A.shape, ilu.solve)
        x, info = spla.gmres(A, b, rtol=self.params.tol, atol=0.0,
                             maxiter=self.params.maxit, M=M)
        if info != 0:
            raise SolverFailure(f"GMRES did not converge (info={info})")
        return _check_solution(x, self.name)


class PetscSolver:
    """Direct LU through a PETSc KSP."""

    name = "petsc"

    def __init__(self, params: LinearSolverParameters):
        if not HAS_PETSC:
            raise ConfigurationError("petsc4py is not available; install the 'petsc' extra")
        self.params = params

    def solve(self, A, b) -> np.ndarray:
        b = np.asarray(b, dtype=float)
        if b.size == 0:
            return np.zeros(0)
        A = sp.csr_matrix(A)
        mat = PETSc.Mat().createAIJ(size=A.shape, csr=(A.indptr, A.indices, A.data))
        mat.assemble()
        ksp = PETSc.KSP().create()
        ksp.setOperators(mat)
        ksp.setType("preonly")
        ksp.getPC().setType("lu")
        ksp.setTolerances(rtol=self.params.tol, max_it=self.params.maxit)
        rhs = PETSc.Vec().createWithArray(b.copy())
        sol = rhs.duplicate()
        try:
            try:
                ksp.solve(rhs, sol)
            except PETSc.Error as exc:
                raise SolverFailure(f"PETSc solve failed: {exc}") from exc
            reason = ksp.getConvergedReason()
            if reason < 0:
                raise SolverFailure(f"PETSc KSP diverged (reason={reason})")
            x = sol.getArray().copy()
        finally:
            for obj in (ksp, mat, rhs, sol):
                obj.destroy()
        return _check_solution(x, self.name)


_BACKENDS = {
    "scipy": ScipyDirectSolver,
    "gmres": ScipyGmresSolver,
    "petsc": PetscSolver,
}


def create_linear_solver(params: LinearSolverParameters | None = None):
    params = params or LinearSolverParameters()
    solver = _BACKENDS[params.backend](params)
    logger.debug(f"Linear solver backend: {solver.name}")
    return solver
