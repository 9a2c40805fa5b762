"""
QR decomposition with column pivoting.

Backend-agnostic interface to QR factorization.
"""

import numpy as np

from .._backends.base import QRDecomposition


def qr_decomposition_with_pivoting(
    X: np.ndarray,
    tol: float = 1e-7,
    backend=None,
) -> QRDecomposition:
    """
    QR decomposition with column pivoting.

    Delegates to backend-specific implementation.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Matrix to decompose
    tol : float, default=1e-7
        Relative tolerance for rank determination
    backend : Backend, optional
        Computational backend

    Returns
    -------
    result : QRDecomposition
        QR decomposition with pivoting
    """
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    return backend.qr_with_pivoting(X, tol=tol)


__all__ = ["QRDecomposition", "qr_decomposition_with_pivoting"]
