"""
GPU backend using PyTorch with FP32 precision.

NVIDIA CUDA GPUs only.
"""

import numpy as np
from typing import Optional, Any

from .base import GPUBackend, LeastSquaresResult, QRDecomposition


class PyTorchBackendFP32(GPUBackend):
    """
    PyTorch GPU backend with FP32 precision.

    Keeps all computation on GPU using torch tensors.
    Only converts at entry (numpy → torch) and exit (torch → numpy).

    torch.linalg.qr does not pivot. Columns whose diagonal of R falls
    below the rank tolerance are treated as aliased, and the QR is
    recomputed on the remaining columns so the solution matches a
    pivoted factorization on the retained set.
    """

    def __init__(self, device: Optional[str] = None):
        """Initialize PyTorch backend."""
        self.name = "pytorch_fp32"
        self.precision = "fp32"

        try:
            import torch
            self.torch = torch
        except ImportError:
            raise ImportError(
                "PyTorch required for GPU backend. "
                "Install: pip install torch"
            )

        self.dtype = self._dtype()
        self.device = self._select_device(device)

    def _dtype(self):
        return self.torch.float32

    def _select_device(self, requested: Optional[str]) -> Any:
        """Select CUDA GPU device. Fails if CUDA unavailable."""
        torch = self.torch

        if requested:
            return torch.device(requested)

        if not torch.cuda.is_available():
            raise RuntimeError(
                "PyTorch backend requires NVIDIA CUDA GPU.\n"
                "Options:\n"
                "  1. Use get_backend('cpu') for CPU (FP64)\n"
                "  2. Install CUDA-enabled PyTorch"
            )

        return torch.device('cuda')

    def _to_tensor(self, a: np.ndarray):
        return self.torch.as_tensor(
            np.ascontiguousarray(a), dtype=self.dtype, device=self.device
        )

    def _qr_gpu(self, X_gpu, tol: float):
        """Unpivoted QR followed by a reduced QR on non-aliased columns."""
        torch = self.torch
        p = X_gpu.shape[1]

        Q, R = torch.linalg.qr(X_gpu, mode='reduced')
        R_diag = torch.abs(torch.diagonal(R))
        if R_diag.numel() == 0 or float(R_diag[0].item()) == 0.0:
            pivot = torch.arange(p, dtype=torch.int64, device=self.device)
            return Q, R, pivot, 0

        keep = torch.zeros(p, dtype=torch.bool, device=self.device)
        keep[:R_diag.numel()] = R_diag >= tol * R_diag[0]
        rank = int(torch.sum(keep).item())

        idx = torch.arange(p, dtype=torch.int64, device=self.device)
        pivot = torch.cat([idx[keep], idx[~keep]])

        if rank < p:
            Q, R = torch.linalg.qr(X_gpu[:, pivot], mode='reduced')

        return Q, R, pivot, rank

    def qr_with_pivoting(self, X: np.ndarray, tol: float = 1e-7) -> QRDecomposition:
        X_gpu = self._to_tensor(X)
        Q, R, pivot, rank = self._qr_gpu(X_gpu, tol)
        return QRDecomposition(
            Q=Q.cpu().numpy().astype(np.float64),
            R=R.cpu().numpy().astype(np.float64),
            pivot=pivot.cpu().numpy().astype(np.int64),
            rank=rank,
            tol=tol
        )

    def solve_least_squares(
        self,
        X: np.ndarray,
        y: np.ndarray,
        tol: float = 1e-7,
        singular_ok: bool = True
    ) -> LeastSquaresResult:
        """
        Least squares on GPU.

        ALL computation happens on GPU with torch tensors.
        Only convert at boundaries (entry/exit).
        """
        torch = self.torch

        X_gpu = self._to_tensor(X)
        y_gpu = self._to_tensor(y)
        p = X_gpu.shape[1]

        Q, R, pivot, rank = self._qr_gpu(X_gpu, tol)

        if not singular_ok and rank < p:
            raise ValueError(f"Singular fit: rank {rank} < {p} columns")

        # Solve R β = Q'y (on GPU)
        qty = Q.T @ y_gpu

        coef = torch.full((p,), float('nan'), dtype=self.dtype, device=self.device)

        if rank > 0:
            coef_active = torch.linalg.solve_triangular(
                R[:rank, :rank],
                qty[:rank].unsqueeze(1),
                upper=True
            ).squeeze(1)
            coef[pivot[:rank]] = coef_active

        # Convert ONCE at exit
        return LeastSquaresResult(
            coef=coef.cpu().numpy().astype(np.float64),
            rank=rank,
            qr_R=R.cpu().numpy().astype(np.float64),
            qr_pivot=pivot.cpu().numpy().astype(np.int64),
            qr_tol=tol
        )

    def get_device_info(self) -> dict:
        """Get backend information."""
        return {
            'backend': 'gpu',
            'precision': self.precision,
            'device': str(self.device),
            'library': f'PyTorch {self.torch.__version__}',
        }
