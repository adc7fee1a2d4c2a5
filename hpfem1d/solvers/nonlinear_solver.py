r"""
nonlinear_solver.py  –  Newton driver for hpfem1d
=================================================
Solves the discrete nonlinear system F(Y) = 0 of a
:class:`~hpfem1d.assembly.discrete_problem.DiscreteProblem` with Newton's
method,

    J(Y^n) \delta Y^{n+1} = -F(Y^n),     Y^{n+1} = Y^n + \delta Y^{n+1},

written as an explicit state machine.  The residual of the very first
assembly is never accepted as converged: at least one update is always
made, since an initial guess transferred from another mesh can have a
deceptively small residual.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

import numpy as np

from hpfem1d.assembly.discrete_problem import DiscreteProblem
from hpfem1d.errors import AssemblyError, ConfigurationError, DivergenceError
from hpfem1d.solvers.linear_solver import LinearSolverParameters, create_linear_solver

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------------
#  Parameter dataclasses
# ----------------------------------------------------------------------------

@dataclass
class NewtonParameters:
    """Settings that govern a *single* Newton solve."""

    newton_tol: float = 1e-6            # ‖F‖_2 convergence threshold
    max_newton_iter: int = 150          # hard cap on Newton updates

    def __post_init__(self):
        if not self.newton_tol > 0.0:
            raise ConfigurationError(f"newton_tol must be > 0, got {self.newton_tol}")
        if self.max_newton_iter < 1:
            raise ConfigurationError(f"max_newton_iter must be >= 1, got {self.max_newton_iter}")


class NewtonState(Enum):
    INITIALIZING = auto()
    ASSEMBLING = auto()
    CHECK_CONVERGED = auto()
    LINEAR_SOLVE = auto()
    UPDATE = auto()
    CONVERGED = auto()
    FAILED = auto()


@dataclass
class NewtonResult:
    converged: bool
    iterations: int                     # number of completed updates
    residual_norm: float                # ‖F‖_2 at the accepted iterate
    history: List[float] = field(default_factory=list)
    elapsed: float = 0.0


# ----------------------------------------------------------------------------
#  NewtonSolver class
# ----------------------------------------------------------------------------

class NewtonSolver:
    r"""Newton iteration on one :class:`DiscreteProblem`.

    On success the space's elements hold the converged coefficients.
    Failures are fatal: :class:`~hpfem1d.errors.SolverFailure` from the
    linear solve, :class:`~hpfem1d.errors.DivergenceError` when the
    iteration cap is reached.
    """

    def __init__(
        self,
        dp: DiscreteProblem,
        newton_params: Optional[NewtonParameters] = None,
        lin_params: Optional[LinearSolverParameters] = None,
        *,
        label: str = "",
    ) -> None:
        self.dp = dp
        self.space = dp.space
        self.np = newton_params or NewtonParameters()
        self.linear_solver = create_linear_solver(lin_params)
        self.label = label
        self.state = NewtonState.INITIALIZING

    def solve(self) -> NewtonResult:
        space = self.space
        tol2 = self.np.newton_tol ** 2
        ndof = space.get_num_dofs()
        history: List[float] = []
        iterations = 0
        one_iteration_done = False      # guard against trusting the first residual
        y = J = F = delta = None
        res2 = np.inf

        t_start = time.perf_counter()
        self.state = NewtonState.INITIALIZING
        while True:
            if self.state is NewtonState.INITIALIZING:
                y = space.solution_to_vector()
                self.state = NewtonState.ASSEMBLING

            elif self.state is NewtonState.ASSEMBLING:
                if space.get_num_dofs() != ndof:
                    raise AssemblyError(
                        f"Number of dofs changed during Newton ({ndof} → {space.get_num_dofs()})"
                    )
                J, F = self.dp.assemble(y)
                self.state = NewtonState.CHECK_CONVERGED

            elif self.state is NewtonState.CHECK_CONVERGED:
                res2 = float(F @ F)
                history.append(np.sqrt(res2))
                logger.info(f"{self.label}---- Newton iter {iterations + 1}, residual norm: {np.sqrt(res2):.15f}")
                if res2 < tol2 and one_iteration_done:
                    self.state = NewtonState.CONVERGED
                elif iterations >= self.np.max_newton_iter:
                    self.state = NewtonState.FAILED
                else:
                    self.state = NewtonState.LINEAR_SOLVE

            elif self.state is NewtonState.LINEAR_SOLVE:
                delta = self.linear_solver.solve(J, -F)
                self.state = NewtonState.UPDATE

            elif self.state is NewtonState.UPDATE:
                y = y + delta
                space.vector_to_solution(y)
                iterations += 1
                one_iteration_done = True
                self.state = NewtonState.ASSEMBLING

            elif self.state is NewtonState.CONVERGED:
                elapsed = time.perf_counter() - t_start
                return NewtonResult(True, iterations, float(np.sqrt(res2)), history, elapsed)

            else:  # FAILED
                raise DivergenceError(
                    f"Newton method did not converge in {self.np.max_newton_iter} iterations "
                    f"(residual norm {np.sqrt(res2):.3e}, tolerance {self.np.newton_tol:.3e})"
                )


def newton_solve(dp: DiscreteProblem, newton_params: Optional[NewtonParameters] = None,
                 lin_params: Optional[LinearSolverParameters] = None, *, label: str = "") -> NewtonResult:
    """One-shot helper around :class:`NewtonSolver`."""
    return NewtonSolver(dp, newton_params, lin_params, label=label).solve()
