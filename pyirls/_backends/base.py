"""
Abstract base classes for backends.

Defines the interface all backends must implement.
"""

from abc import ABC, abstractmethod
import numpy as np
from typing import Optional
from dataclasses import dataclass


@dataclass
class QRDecomposition:
    """Result of QR decomposition with pivoting."""
    Q: np.ndarray            # Orthonormal factor (economic form, n × k)
    R: np.ndarray            # Upper triangular factor (k × p)
    pivot: np.ndarray        # Column pivot indices (0-indexed)
    rank: int                # Determined rank
    tol: float               # Relative tolerance used


@dataclass
class LeastSquaresResult:
    """Least-squares solution via pivoted QR."""
    coef: np.ndarray         # NaN for aliased columns
    rank: int
    qr_R: np.ndarray
    qr_pivot: np.ndarray
    qr_tol: float

    @property
    def aliased(self) -> np.ndarray:
        """Boolean mask of columns dropped for rank deficiency."""
        return np.isnan(self.coef)


class BackendBase(ABC):
    """Abstract base class for all backends."""

    name: str = "base"
    precision: str = "fp64"

    @abstractmethod
    def qr_with_pivoting(
        self,
        X: np.ndarray,
        tol: float = 1e-7
    ) -> QRDecomposition:
        """
        QR decomposition with column pivoting.

        Rank is the number of diagonal entries of R with
        |R[j, j]| >= tol * |R[0, 0]|.
        """
        pass

    @abstractmethod
    def solve_least_squares(
        self,
        X: np.ndarray,
        y: np.ndarray,
        tol: float = 1e-7,
        singular_ok: bool = True
    ) -> LeastSquaresResult:
        """
        Solve min ||y - X β|| via pivoted QR.

        Backends implement ALL computation internally using their
        native types, only converting at entry/exit.

        Parameters
        ----------
        X : ndarray, shape (n, p)
            Design matrix (already row-weighted for WLS)
        y : ndarray, shape (n,)
            Response vector (already row-weighted for WLS)
        tol : float
            Relative tolerance for rank determination
        singular_ok : bool
            Allow rank-deficient fits

        Returns
        -------
        LeastSquaresResult
            Solution and QR factors (all numpy arrays)
        """
        pass

    @abstractmethod
    def get_device_info(self) -> dict:
        """Get backend information."""
        pass

    def __repr__(self):
        return f"{type(self).__name__}(name='{self.name}')"


class CPUBackend(BackendBase):
    """CPU backend base class (always FP64)."""
    pass


class GPUBackend(BackendBase):
    """GPU backend base class."""
    pass
