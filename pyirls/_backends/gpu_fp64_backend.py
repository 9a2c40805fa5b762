"""
GPU backend using PyTorch with FP64 precision.

For data center GPUs: A100, H100, V100.
"""

from typing import Optional

from .gpu_fp32_backend import PyTorchBackendFP32


class PyTorchBackendFP64(PyTorchBackendFP32):
    """
    PyTorch GPU backend with FP64 precision.

    Same as FP32 but uses float64 tensors.
    Only recommended for data center GPUs with full FP64 support.
    """

    def __init__(self, device: Optional[str] = None):
        """Initialize PyTorch FP64 backend."""
        super().__init__(device=device)
        self.name = "pytorch_fp64"
        self.precision = "fp64"

    def _dtype(self):
        return self.torch.float64
