"""
Weighted least squares: the IRLS coefficient update.

Solves (XᵗWX) β = XᵗW z through a QR factorization of W^(1/2) X, so
the cross-product matrix (and its squared condition number) is never
formed.
"""

import numpy as np

from .._backends.base import LeastSquaresResult


def solve_least_squares(
    X: np.ndarray,
    y: np.ndarray,
    tol: float = 1e-7,
    singular_ok: bool = True,
    backend=None,
) -> LeastSquaresResult:
    """
    Least squares via pivoted QR.

    This is just a thin wrapper - backends do all the work.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Design matrix
    y : ndarray, shape (n,)
        Response vector
    tol : float
        Relative tolerance for rank determination
    singular_ok : bool
        Allow singular fits
    backend : Backend, optional
        Computational backend

    Returns
    -------
    result : LeastSquaresResult
        Coefficients (NaN where aliased) and QR factors
    """
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    return backend.solve_least_squares(X, y, tol=tol, singular_ok=singular_ok)


def update_beta(
    X: np.ndarray,
    table,
    beta: np.ndarray,
    beta0: np.ndarray,
    tol: float = 1e-7,
    singular_ok: bool = True,
    backend=None,
) -> LeastSquaresResult:
    """
    Coefficient update for one IRLS iteration.

    Copies ``beta`` into ``beta0``, then overwrites ``beta`` with the
    solution of min || wwresp - diag(rtwwt) X β ||.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Design matrix (unweighted)
    table : ResponseTable
        Supplies ``rtwwt`` and ``wwresp`` for the current η
    beta : ndarray, shape (p,)
        Coefficient buffer, updated in place
    beta0 : ndarray, shape (p,)
        Shadow buffer receiving the previous coefficients
    tol, singular_ok, backend
        Passed to :func:`solve_least_squares`

    Returns
    -------
    result : LeastSquaresResult
        Solver output for this iteration
    """
    beta0[:] = beta
    WX = X * table.rtwwt[:, np.newaxis]
    result = solve_least_squares(
        WX, table.wwresp, tol=tol, singular_ok=singular_ok, backend=backend
    )
    beta[:] = result.coef
    return result


def linear_predictor(X: np.ndarray, beta: np.ndarray, offset: np.ndarray) -> np.ndarray:
    """η = X β + offset, with aliased (NaN) coefficients contributing zero."""
    valid = ~np.isnan(beta)
    return X[:, valid] @ beta[valid] + offset
