from .error_estimate import calc_err_est, calc_err_exact, calc_elem_est_errors
from .hp_adapt import adapt, Refinement, candidate_errors, select_hp_refinement
from .driver import (
    AdaptiveSolver, AdaptivityParameters, AdaptivityStep, AdaptiveResult, solve_adaptive,
)
