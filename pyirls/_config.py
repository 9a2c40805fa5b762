"""
Package configuration.

Default backend resolution order (first match wins):
    1. Programmatic override via :func:`set_default_backend`.
    2. The ``PYIRLS_BACKEND`` environment variable.
    3. ``'cpu'`` (FP64 reference backend).

Iteration policy for the IRLS loop lives in :class:`IRLSControl`,
mirroring R's ``glm.control()``.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

_VALID_BACKENDS = {'auto', 'cpu', 'gpu', 'pytorch'}
_ENV_VAR = 'PYIRLS_BACKEND'

_backend_override: Optional[str] = None


def get_default_backend() -> str:
    """Return the backend name used when none is given explicitly."""
    if _backend_override is not None:
        return _backend_override

    env = os.environ.get(_ENV_VAR, '').strip().lower()
    if env in _VALID_BACKENDS:
        return env

    return 'cpu'


def set_default_backend(name: Optional[str]) -> None:
    """
    Override the default backend.

    Parameters
    ----------
    name : str or None
        One of 'auto', 'cpu', 'gpu', 'pytorch'. None clears the override
        and restores the environment/default resolution.
    """
    global _backend_override
    if name is None:
        _backend_override = None
        return
    normalised = name.strip().lower()
    if normalised not in _VALID_BACKENDS:
        raise ValueError(
            f"Unknown backend '{name}'. Choose from: {sorted(_VALID_BACKENDS)}"
        )
    _backend_override = normalised


@dataclass(frozen=True)
class IRLSControl:
    """
    Iteration policy for IRLS.

    Attributes
    ----------
    epsilon : float
        Convergence tolerance on |dev - dev_old| / (|dev| + 0.1)
    maxit : int
        Maximum number of IRLS iterations
    maxhalf : int
        Maximum number of step-halvings per iteration
    trace : bool
        Log deviance at INFO level each iteration (DEBUG otherwise)
    """
    epsilon: float = 1e-8
    maxit: int = 25
    maxhalf: int = 10
    trace: bool = False

    def __post_init__(self):
        if not self.epsilon > 0:
            raise ValueError("value of 'epsilon' must be > 0")
        if self.maxit < 1:
            raise ValueError("maximum number of iterations must be > 0")
        if self.maxhalf < 0:
            raise ValueError("'maxhalf' must be >= 0")

    def updated(self, **kwargs) -> 'IRLSControl':
        """Return a copy with the given fields replaced."""
        unknown = set(kwargs) - {'epsilon', 'maxit', 'maxhalf', 'trace'}
        if unknown:
            raise TypeError(f"Unknown control arguments: {sorted(unknown)}")
        return replace(self, **kwargs)
