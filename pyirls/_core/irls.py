"""
Iteratively Reweighted Least Squares.

Alternates the coefficient update (weighted least squares via QR) and
the response-table update until the deviance settles. The iteration
policy follows R's glm.fit():

    converged when |dev - dev_old| / (|dev| + 0.1) < epsilon

with step-halving toward the previous coefficients when the deviance
becomes non-finite or increases.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .._backends.base import LeastSquaresResult
from .._config import IRLSControl
from .._utils import ConvergenceWarning, PerfectSeparationWarning, check_array, check_vector
from .families import Bernoulli
from .response import ResponseTable
from .wls import linear_predictor, update_beta

logger = logging.getLogger(__name__)


@dataclass
class IRLSResult:
    """Outcome of an IRLS run."""
    beta: np.ndarray               # Final coefficients (NaN where aliased)
    deviance: float                # Final deviance
    iterations: int                # Iterations performed
    converged: bool                # Convergence criterion met?
    boundary: bool                 # Step-halving was needed?
    lstsq: LeastSquaresResult      # Solver output of the last iteration
    trace: List[float] = field(default_factory=list)  # Deviance per iteration


def _diverged(dev: float, dev_old: float, epsilon: float) -> bool:
    if not np.isfinite(dev):
        return True
    return dev - dev_old > epsilon * (abs(dev) + 0.1)


def irls(
    X: np.ndarray,
    table: ResponseTable,
    control: Optional[IRLSControl] = None,
    backend=None,
    start: Optional[np.ndarray] = None,
    singular_ok: bool = True,
) -> IRLSResult:
    """
    Fit coefficients by IRLS.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Design matrix
    table : ResponseTable
        Response table; updated in place and left consistent with the
        returned coefficients
    control : IRLSControl, optional
        Iteration policy (defaults to R's glm.control())
    backend : Backend, optional
        Computational backend for the least-squares solve
    start : ndarray, shape (p,), optional
        Starting coefficients. Otherwise μ starts at
        ``family.initialize(y, wt)``, which validates y in both cases.
    singular_ok : bool, default=True
        If False, raise ValueError on a rank-deficient design

    Returns
    -------
    result : IRLSResult
    """
    if control is None:
        control = IRLSControl()
    if backend is None:
        from .._backends import get_backend
        backend = get_backend()

    X = check_array(X)
    n, p = X.shape
    if n != len(table):
        raise ValueError(f"X has {n} rows but the response has {len(table)}")

    family = table.family
    tol = min(1e-7, control.epsilon / 1000)
    log = logger.info if control.trace else logger.debug

    beta = np.zeros(p)
    beta0 = np.zeros(p)

    # Validates y against the family's support even when start is given
    mu = family.initialize(table.y, table.wt)

    if start is not None:
        beta[:] = check_vector(start, 'start', n=p)
        dev_old = table.update(linear_predictor(X, beta, table.offset))
        have_old = True
    else:
        dev_old = table.update(family.linkfun(mu))
        have_old = False

    trace = [dev_old]
    converged = False
    boundary = False
    lstsq = None
    iteration = 0

    for iteration in range(1, control.maxit + 1):
        lstsq = update_beta(
            X, table, beta, beta0,
            tol=tol, singular_ok=singular_ok, backend=backend
        )
        dev = table.update(linear_predictor(X, beta, table.offset))

        if not np.isfinite(dev) and not have_old:
            raise FloatingPointError(
                "no valid set of coefficients has been found: "
                "please supply starting values"
            )

        nhalf = 0
        while have_old and _diverged(dev, dev_old, control.epsilon):
            if nhalf >= control.maxhalf:
                if not np.isfinite(dev):
                    raise FloatingPointError(
                        "inner loop: cannot correct step size"
                    )
                break
            nhalf += 1
            boundary = True
            beta[:] = (beta + beta0) / 2
            dev = table.update(linear_predictor(X, beta, table.offset))
            log("Step-halving %d at iteration %d: deviance %.6f", nhalf, iteration, dev)

        have_old = True
        trace.append(dev)
        delta = np.linalg.norm(np.nan_to_num(beta - beta0))
        log("Iteration %d: deviance %.8f, |Δβ| %.3e", iteration, dev, delta)

        if abs(dev - dev_old) / (abs(dev) + 0.1) < control.epsilon:
            converged = True
            break

        dev_old = dev

    if not converged:
        warnings.warn(
            f"IRLS did not converge in {control.maxit} iterations",
            ConvergenceWarning
        )

    if isinstance(family, Bernoulli):
        if np.any(family.separated(table.eta)):
            warnings.warn(
                "fitted probabilities numerically 0 or 1 occurred",
                PerfectSeparationWarning
            )

    return IRLSResult(
        beta=beta,
        deviance=table.deviance,
        iterations=iteration,
        converged=converged,
        boundary=boundary,
        lstsq=lstsq,
        trace=trace,
    )
