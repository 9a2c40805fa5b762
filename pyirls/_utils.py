"""
Utility functions and warning classes.
"""

import numpy as np


class ConvergenceWarning(UserWarning):
    """IRLS stopped at the iteration cap without converging."""


class PerfectSeparationWarning(UserWarning):
    """Fitted probabilities numerically 0 or 1 occurred."""


def check_array(X, name='X', dtype=np.float64):
    """Validate array input."""
    X = np.asarray(X, dtype=dtype)
    if X.ndim != 2:
        raise ValueError(f"{name} must be 2-dimensional")
    if not np.all(np.isfinite(X)):
        raise ValueError(f"{name} contains NaN or Inf")
    return X


def check_vector(y, name='y', dtype=np.float64, n=None):
    """Validate vector input (optionally of length n)."""
    y = np.asarray(y, dtype=dtype)
    if y.ndim != 1:
        raise ValueError(f"{name} must be 1-dimensional")
    if not np.all(np.isfinite(y)):
        raise ValueError(f"{name} contains NaN or Inf")
    if n is not None and len(y) != n:
        raise ValueError(f"{name} has length {len(y)}, expected {n}")
    return y
