"""
CPU backend using NumPy + SciPy.

This is the reference implementation.
"""

import numpy as np
from scipy.linalg import qr, solve_triangular

from .base import CPUBackend, LeastSquaresResult, QRDecomposition


class CPUBackendFP64(CPUBackend):
    """
    CPU backend using NumPy + SciPy.

    Householder QR with column pivoting from LAPACK (geqp3).
    Always uses FP64 precision.
    """

    def __init__(self):
        self.name = "cpu_fp64"
        self.precision = "fp64"

    def qr_with_pivoting(self, X: np.ndarray, tol: float = 1e-7) -> QRDecomposition:
        X = np.asarray(X, dtype=np.float64)

        Q, R, P = qr(X, mode='economic', pivoting=True)

        # Determine rank
        R_diag = np.abs(np.diag(R))
        if R_diag.size == 0 or R_diag[0] == 0:
            rank = 0
        else:
            rank = int(np.sum(R_diag >= tol * R_diag[0]))

        return QRDecomposition(
            Q=Q, R=R, pivot=P.astype(np.int64), rank=rank, tol=tol
        )

    def solve_least_squares(
        self,
        X: np.ndarray,
        y: np.ndarray,
        tol: float = 1e-7,
        singular_ok: bool = True
    ) -> LeastSquaresResult:
        """
        Least squares using NumPy/LAPACK.

        Complete implementation - all computation stays in NumPy.
        """
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        p = X.shape[1]

        decomp = self.qr_with_pivoting(X, tol=tol)
        rank = decomp.rank

        if not singular_ok and rank < p:
            raise ValueError(f"Singular fit: rank {rank} < {p} columns")

        # Solve R β = Q'y
        qty = decomp.Q.T @ y

        # NaN marks aliased coefficients
        coef = np.full(p, np.nan, dtype=np.float64)

        if rank > 0:
            coef_active = solve_triangular(
                decomp.R[:rank, :rank],
                qty[:rank],
                lower=False
            )
            coef[decomp.pivot[:rank]] = coef_active

        return LeastSquaresResult(
            coef=coef,
            rank=rank,
            qr_R=decomp.R,
            qr_pivot=decomp.pivot,
            qr_tol=tol
        )

    def get_device_info(self) -> dict:
        """Get backend information."""
        import scipy
        return {
            'backend': 'cpu',
            'precision': 'fp64',
            'library': f'NumPy {np.__version__}, SciPy {scipy.__version__}',
        }
