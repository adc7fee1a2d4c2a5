"""hpfem1d.adapt.driver
The outer adaptivity loop.

Per step: build the reference space, solve on it, re-solve on the coarse
space (from the second step on), estimate element errors, stop or adapt.
Steps are strictly sequential.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

import numpy as np

from hpfem1d.adapt.hp_adapt import Refinement, adapt
from hpfem1d.adapt.error_estimate import calc_err_est, calc_err_exact
from hpfem1d.assembly.discrete_problem import DiscreteProblem
from hpfem1d.assembly.weakform import WeakForm
from hpfem1d.core.constants import AdaptType, Norm
from hpfem1d.core.space import Space, construct_refined_space
from hpfem1d.errors import ConfigurationError
from hpfem1d.io.graphs import ConvergenceGraph
from hpfem1d.solvers.linear_solver import LinearSolverParameters
from hpfem1d.solvers.nonlinear_solver import NewtonParameters, NewtonSolver

logger = logging.getLogger(__name__)


@dataclass
class AdaptivityParameters:
    """Controls the adaptivity loop."""

    adapt_type: AdaptType = AdaptType.HP
    threshold: float = 0.7              # refine elements with err >= threshold*max_err
    norm: Norm = Norm.H1
    tol_err_rel: float = 1e-5           # stop when the relative error (fraction) drops below
    max_steps: int = 30
    ref_order_increase: int = 1
    ref_refinement: Optional[AdaptType] = None   # None: follow adapt_type

    def __post_init__(self):
        self.adapt_type = AdaptType(self.adapt_type)
        self.norm = Norm(self.norm)
        if self.ref_refinement is not None:
            self.ref_refinement = AdaptType(self.ref_refinement)
        if not 0.0 < self.threshold <= 1.0:
            raise ConfigurationError(f"threshold must lie in (0, 1], got {self.threshold}")
        if not self.tol_err_rel > 0.0:
            raise ConfigurationError(f"tol_err_rel must be > 0, got {self.tol_err_rel}")
        if self.max_steps < 1:
            raise ConfigurationError(f"max_steps must be >= 1, got {self.max_steps}")
        if self.ref_order_increase < 1:
            raise ConfigurationError(f"ref_order_increase must be >= 1, got {self.ref_order_increase}")

    @property
    def reference_refinement(self) -> AdaptType:
        return self.adapt_type if self.ref_refinement is None else self.ref_refinement


@dataclass
class AdaptivityStep:
    step: int
    ndof_coarse: int
    ndof_ref: int
    n_elem: int
    err_est_rel: float
    err_exact_rel: Optional[float] = None
    cpu_time: float = 0.0
    refinements: List[Refinement] = field(default_factory=list)


@dataclass
class AdaptiveResult:
    space: Space
    ref_space: Space
    steps: List[AdaptivityStep]
    converged: bool
    graphs: dict

    @property
    def err_est_rel(self) -> float:
        return self.steps[-1].err_est_rel

    def save_graphs(self, directory=".") -> List[Path]:
        """Write ``conv_<x>_<kind>.dat`` files for every non-empty graph."""
        directory = Path(directory)
        return [g.save(directory / f"{name}.dat") for name, g in self.graphs.items() if len(g)]


class AdaptiveSolver:
    def __init__(
        self,
        space: Space,
        wf: WeakForm,
        adapt_params: Optional[AdaptivityParameters] = None,
        newton_coarse: Optional[NewtonParameters] = None,
        newton_ref: Optional[NewtonParameters] = None,
        lin_params: Optional[LinearSolverParameters] = None,
        *,
        exact_sol: Optional[Callable] = None,
        n_workers: int = 1,
        quad_extra: int = 2,
    ) -> None:
        self.space = space
        self.wf = wf
        self.ap = adapt_params or AdaptivityParameters()
        self.newton_coarse = newton_coarse or NewtonParameters()
        self.newton_ref = newton_ref or NewtonParameters()
        self.lin_params = lin_params or LinearSolverParameters()
        self.exact_sol = exact_sol
        self.n_workers = n_workers
        self.quad_extra = quad_extra
        self.graphs: dict = {}

    @staticmethod
    def _new_graphs() -> dict:
        return {
            "conv_dof_est": ConvergenceGraph("error (est)", "ndof", "rel. error"),
            "conv_cpu_est": ConvergenceGraph("error (est)", "cpu time [s]", "rel. error"),
            "conv_dof_exact": ConvergenceGraph("error (exact)", "ndof", "rel. error"),
            "conv_cpu_exact": ConvergenceGraph("error (exact)", "cpu time [s]", "rel. error"),
        }

    def _newton(self, space: Space, params: NewtonParameters, label: str):
        dp = DiscreteProblem(self.wf, space, quad_extra=self.quad_extra, n_workers=self.n_workers)
        return NewtonSolver(dp, params, self.lin_params, label=label).solve()

    def solve(self) -> AdaptiveResult:
        ap = self.ap
        space = self.space
        self.graphs = self._new_graphs()
        logger.info(f"N_dof = {space.assign_dofs()}")

        cpu = 0.0
        t0 = time.perf_counter()
        self._newton(space, self.newton_coarse, "[coarse] ")

        steps: List[AdaptivityStep] = []
        converged = False
        ref_space = None
        step = 1
        while True:
            logger.info(f"============ Adaptivity step {step} ============")
            ref_space = construct_refined_space(space, ap.ref_order_increase, ap.reference_refinement)
            logger.info(f"Ndof coarse: {space.get_num_dofs()}, ndof ref: {ref_space.get_num_dofs()}")
            self._newton(ref_space, self.newton_ref, "[ref] ")

            if step > 1:
                logger.info("Solving on coarse mesh")
                self._newton(space, self.newton_coarse, "[coarse] ")

            err_array = np.zeros(space.get_n_active_elem())
            err_est_rel = calc_err_est(ap.norm, space, ref_space, err_array)
            logger.info(f"Relative error (est) = {err_est_rel * 100:g} %")

            cpu += time.perf_counter() - t0
            record = AdaptivityStep(
                step=step,
                ndof_coarse=space.get_num_dofs(),
                ndof_ref=ref_space.get_num_dofs(),
                n_elem=space.get_n_active_elem(),
                err_est_rel=err_est_rel,
                cpu_time=cpu,
            )
            if self.exact_sol is not None:
                record.err_exact_rel = calc_err_exact(ap.norm, space, self.exact_sol)
                logger.info(f"Relative error (exact) = {record.err_exact_rel * 100:g} %")
                self.graphs["conv_dof_exact"].add_values(record.ndof_coarse, record.err_exact_rel)
                self.graphs["conv_cpu_exact"].add_values(cpu, record.err_exact_rel)
            self.graphs["conv_dof_est"].add_values(record.ndof_coarse, err_est_rel)
            self.graphs["conv_cpu_est"].add_values(cpu, err_est_rel)
            steps.append(record)
            t0 = time.perf_counter()

            if err_est_rel < ap.tol_err_rel:
                converged = True
                break
            if step >= ap.max_steps:
                logger.warning(f"Maximum number of adaptivity steps ({ap.max_steps}) reached")
                break

            record.refinements = adapt(ap.norm, ap.adapt_type, ap.threshold, err_array, space, ref_space)
            if not record.refinements:
                logger.warning("No element could be refined; stopping")
                break
            step += 1

        return AdaptiveResult(space, ref_space, steps, converged, self.graphs)


def solve_adaptive(space: Space, wf: WeakForm, **kwargs) -> AdaptiveResult:
    """One-shot helper around :class:`AdaptiveSolver`."""
    return AdaptiveSolver(space, wf, **kwargs).solve()
