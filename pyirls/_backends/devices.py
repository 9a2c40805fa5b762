"""
Compute device detection.

Decides whether a CUDA device is usable and whether it runs FP64 at
full speed. IRLS accumulates rounding error across iterations, so FP64
is preferred unless the user opts into FP32.
"""

import warnings
from dataclasses import dataclass
from typing import Optional


# Data center GPUs with full-rate FP64
FULL_FP64_MODELS = ('A100', 'A800', 'H100', 'H200', 'H800', 'V100', 'P100')


@dataclass
class DeviceInfo:
    """
    Detected compute device.

    Attributes
    ----------
    has_cuda : bool
        Whether a CUDA device is usable through PyTorch
    name : str
        Human-readable device name
    full_fp64 : bool
        Whether the device runs FP64 at full rate
    """
    has_cuda: bool
    name: str
    full_fp64: bool


def detect_devices() -> DeviceInfo:
    """Detect a CUDA device via PyTorch, falling back to CPU."""
    try:
        import torch
    except ImportError:
        return DeviceInfo(has_cuda=False, name="CPU only", full_fp64=True)

    if not torch.cuda.is_available():
        return DeviceInfo(has_cuda=False, name="CPU only", full_fp64=True)

    name = torch.cuda.get_device_name(0)
    upper = name.upper()
    full = any(model in upper for model in FULL_FP64_MODELS)
    return DeviceInfo(has_cuda=True, name=name, full_fp64=full)


def recommend_precision(info: DeviceInfo, use_fp64: Optional[bool]) -> bool:
    """
    Return True for FP64, False for FP32.

    An explicit FP64 request on a device with reduced FP64 throughput is
    honoured with a warning.
    """
    if use_fp64 is None:
        return info.full_fp64

    if use_fp64 and info.has_cuda and not info.full_fp64:
        warnings.warn(
            f"FP64 requested on {info.name}, which has reduced FP64 throughput. "
            f"Consider use_fp64=False or backend='cpu'.",
            UserWarning
        )
    return use_fp64
