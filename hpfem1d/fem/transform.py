"""hpfem1d.fem.transform
Affine reference → physical mapping for interval elements.
"""
import numpy as np


def x_mapping(x1: float, x2: float, xi):
    """Map reference points in [-1, 1] onto [x1, x2]."""
    return 0.5 * (x1 + x2) + 0.5 * (x2 - x1) * np.asarray(xi, dtype=float)


def inverse_mapping(x1: float, x2: float, x):
    """Map physical points of [x1, x2] back to [-1, 1]."""
    return (2.0 * np.asarray(x, dtype=float) - x1 - x2) / (x2 - x1)


def jacobian(x1: float, x2: float) -> float:
    """dx/dxi of the affine map."""
    return 0.5 * (x2 - x1)


def map_grad(x1: float, x2: float, dphi_ref):
    """Turn reference derivatives d/dxi into physical derivatives d/dx."""
    return np.asarray(dphi_ref) / jacobian(x1, x2)
