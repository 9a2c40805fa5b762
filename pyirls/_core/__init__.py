"""
Core algorithms (backend-agnostic).
"""

from .families import Family, Bernoulli, Gaussian, Poisson
from .response import ResponseTable
from .qr import qr_decomposition_with_pivoting
from .wls import solve_least_squares, update_beta, linear_predictor
from .irls import irls, IRLSResult

__all__ = [
    "Family",
    "Bernoulli",
    "Gaussian",
    "Poisson",
    "ResponseTable",
    "qr_decomposition_with_pivoting",
    "solve_least_squares",
    "update_beta",
    "linear_predictor",
    "irls",
    "IRLSResult",
]
