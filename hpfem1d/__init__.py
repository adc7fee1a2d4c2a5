"""hpfem1d – adaptive hp finite elements for 1‑D boundary-value problems.

Main components:
- Space, Element: hierarchical H1 space and its elements
- WeakForm, DiscreteProblem: weak formulation and Jacobian/residual assembly
- NewtonSolver: nonlinear solve
- calc_err_est, calc_err_exact, adapt: error estimation and refinement
- AdaptiveSolver: the complete adaptivity loop
"""
import logging

from hpfem1d.core import (
    Element, Space, BoundaryCondition, construct_refined_space, AdaptType, Norm,
    MAX_EQN_NUM, BOUNDARY_LEFT, BOUNDARY_RIGHT,
)
from hpfem1d.assembly import WeakForm, DiscreteProblem
from hpfem1d.solvers import (
    NewtonSolver, NewtonParameters, NewtonResult, LinearSolverParameters, create_linear_solver,
)
from hpfem1d.adapt import (
    adapt, calc_err_est, calc_err_exact, AdaptiveSolver, AdaptivityParameters, solve_adaptive,
)
from hpfem1d.analytic import ExactSolution
from hpfem1d.errors import (
    HpFemError, ConfigurationError, AssemblyError, SolverFailure, DivergenceError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Space
    "Element",
    "Space",
    "BoundaryCondition",
    "construct_refined_space",
    "AdaptType",
    "Norm",
    "MAX_EQN_NUM",
    "BOUNDARY_LEFT",
    "BOUNDARY_RIGHT",
    # Assembly
    "WeakForm",
    "DiscreteProblem",
    # Solvers
    "NewtonSolver",
    "NewtonParameters",
    "NewtonResult",
    "LinearSolverParameters",
    "create_linear_solver",
    # Adaptivity
    "adapt",
    "calc_err_est",
    "calc_err_exact",
    "AdaptiveSolver",
    "AdaptivityParameters",
    "solve_adaptive",
    "ExactSolution",
    # Errors
    "HpFemError",
    "ConfigurationError",
    "AssemblyError",
    "SolverFailure",
    "DivergenceError",
]
