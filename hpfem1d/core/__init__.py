from .constants import AdaptType, Norm, MAX_EQN_NUM, BOUNDARY_LEFT, BOUNDARY_RIGHT
from .element import Element
from .space import Space, BoundaryCondition, construct_refined_space
