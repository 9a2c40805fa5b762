"""
Backend selection and management.

Provides a unified interface for the CPU reference backend and the
optional PyTorch CUDA backends.
"""

import logging
from typing import Optional
import warnings

from .base import BackendBase, LeastSquaresResult, QRDecomposition
from .devices import detect_devices, recommend_precision, DeviceInfo

logger = logging.getLogger(__name__)

# Try importing CPU backend (always available)
try:
    from .cpu_fp64_backend import CPUBackendFP64
    CPU_AVAILABLE = True
except ImportError:
    CPU_AVAILABLE = False
    warnings.warn("CPU backend unavailable - installation error!")

# PyTorch backends (NVIDIA GPU); the modules import torch lazily
try:
    import torch  # noqa: F401
    from .gpu_fp32_backend import PyTorchBackendFP32
    from .gpu_fp64_backend import PyTorchBackendFP64
    PYTORCH_AVAILABLE = True
except ImportError:
    PYTORCH_AVAILABLE = False


def _cpu() -> BackendBase:
    if not CPU_AVAILABLE:
        raise RuntimeError("CPU backend unavailable!")
    return CPUBackendFP64()


def _pytorch(use_fp64: bool) -> BackendBase:
    if not PYTORCH_AVAILABLE:
        raise RuntimeError(
            "PyTorch backend unavailable.\n"
            "Install: pip install torch"
        )
    return PyTorchBackendFP64() if use_fp64 else PyTorchBackendFP32()


def get_backend(backend: Optional[str] = None, use_fp64: Optional[bool] = None) -> BackendBase:
    """
    Get computational backend.

    Parameters
    ----------
    backend : str or None
        Backend selection:
        - None: package default (see ``pyirls.set_default_backend``)
        - 'auto': Auto-select based on hardware
        - 'cpu': CPU with NumPy/SciPy (FP64, reference)
        - 'gpu': CUDA GPU, error if none is present
        - 'pytorch': Force PyTorch (CUDA required)

    use_fp64 : bool or None
        Precision preference:
        - None: Auto-detect
        - True: Force FP64
        - False: Allow FP32 on GPU

    Returns
    -------
    BackendBase
        Backend instance

    Examples
    --------
    >>> backend = get_backend('cpu')
    >>> backend = get_backend('auto', use_fp64=True)
    """
    if backend is None:
        from .._config import get_default_backend
        backend = get_default_backend()

    if backend == 'auto':
        info = detect_devices()
        use_fp64_final = recommend_precision(info, use_fp64)

        if info.has_cuda and PYTORCH_AVAILABLE and (info.full_fp64 or not use_fp64_final):
            selected = _pytorch(use_fp64_final)
        else:
            selected = _cpu()

    elif backend == 'cpu':
        selected = _cpu()

    elif backend == 'gpu':
        info = detect_devices()
        if not info.has_cuda:
            raise ValueError(
                "No GPU detected.\n"
                "Options:\n"
                "  - Use backend='cpu'\n"
                "  - Install PyTorch with CUDA for NVIDIA"
            )
        selected = _pytorch(recommend_precision(info, use_fp64))

    elif backend == 'pytorch':
        info = detect_devices()
        selected = _pytorch(recommend_precision(info, use_fp64))

    else:
        raise ValueError(
            f"Unknown backend: '{backend}'\n"
            f"Valid options: 'auto', 'cpu', 'gpu', 'pytorch'"
        )

    logger.debug("Selected backend %s for request '%s'", selected.name, backend)
    return selected


def list_available_backends() -> list:
    """List names of available backends."""
    backends = []
    if CPU_AVAILABLE:
        backends.append('cpu')
    if PYTORCH_AVAILABLE and detect_devices().has_cuda:
        backends.append('pytorch')
    return backends


def print_backend_info():
    """Print detailed backend information (diagnostic)."""
    info = detect_devices()

    print("pyirls Backend Status")
    print("=" * 50)
    print(f"\nAvailable Backends:")
    print(f"  CPU (FP64):          {'✓' if CPU_AVAILABLE else '✗'} - pivoted QR (LAPACK)")
    print(f"  PyTorch CUDA:        {'✓' if PYTORCH_AVAILABLE and info.has_cuda else '✗'} - QR (torch.linalg)")

    print(f"\nHardware Detection:")
    if info.has_cuda:
        print(f"  GPU Name: {info.name}")
        print(f"  Full-rate FP64: {info.full_fp64}")
    else:
        print(f"  No GPU detected")

    print(f"\nRecommended Backend:")
    try:
        backend = get_backend('auto')
        print(f"  {backend.name}")
    except (RuntimeError, ValueError) as e:
        print(f"  Error: {e}")


__all__ = [
    'get_backend',
    'list_available_backends',
    'print_backend_info',
    'BackendBase',
    'LeastSquaresResult',
    'QRDecomposition',
    'DeviceInfo',
    'detect_devices',
    'CPU_AVAILABLE',
    'PYTORCH_AVAILABLE',
]


if __name__ == "__main__":
    print_backend_info()
