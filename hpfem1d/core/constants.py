"""Enumerations and limits shared across hpfem1d."""
from enum import IntEnum

MAX_EQN_NUM = 10          # highest number of equations a Space may carry

BOUNDARY_LEFT = "left"
BOUNDARY_RIGHT = "right"
BOUNDARIES = (BOUNDARY_LEFT, BOUNDARY_RIGHT)


class Norm(IntEnum):
    """Norm used to measure errors."""
    L2 = 0
    H1 = 1


class AdaptType(IntEnum):
    """Refinement strategy of the adaptivity engine."""
    HP = 0
    H = 1
    P = 2
