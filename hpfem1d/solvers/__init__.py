from .linear_solver import LinearSolverParameters, create_linear_solver
from .nonlinear_solver import NewtonSolver, NewtonParameters, NewtonResult, NewtonState, newton_solve
