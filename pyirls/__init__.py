"""
pyirls: generalized linear models by Iteratively Reweighted Least Squares.

Licensed under GPL-3.0
"""

import logging

__version__ = "0.1.0"

# Import main user-facing API
from .glm import glm, GeneralizedLinearModel
from ._core.families import Family, Bernoulli, Gaussian, Poisson
from ._core.response import ResponseTable
from ._core.wls import update_beta, solve_least_squares
from ._core.irls import irls, IRLSResult
from ._config import IRLSControl, get_default_backend, set_default_backend
from ._utils import ConvergenceWarning, PerfectSeparationWarning

# Import backend utilities (for advanced users)
from ._backends import get_backend, list_available_backends

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'glm',
    'GeneralizedLinearModel',
    'Family',
    'Bernoulli',
    'Gaussian',
    'Poisson',
    'ResponseTable',
    'update_beta',
    'solve_least_squares',
    'irls',
    'IRLSResult',
    'IRLSControl',
    'get_default_backend',
    'set_default_backend',
    'ConvergenceWarning',
    'PerfectSeparationWarning',
    'get_backend',
    'list_available_backends',
]
