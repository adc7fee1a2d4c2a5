from .weakform import WeakForm, MatrixForm, VectorForm
from .discrete_problem import DiscreteProblem
