"""
Per-observation response table for IRLS.

Holds the observed response together with every quantity derived from
the current linear predictor. All columns are preallocated float64
buffers that are overwritten in place on each update.
"""

import numpy as np
import pandas as pd
from typing import Optional

from .._utils import check_vector
from .families import Family


class ResponseTable:
    """
    Response-derived table.

    Columns
    -------
    y       observed response
    offset  offset added to the linear predictor
    wt      prior weights
    eta     linear predictor η
    mu      fitted mean μ
    dev     unit deviance
    rtwwt   square-root working weight
    wwresp  weighted working response
    """

    COLUMNS = ('y', 'offset', 'wt', 'eta', 'mu', 'dev', 'rtwwt', 'wwresp')

    def __init__(
        self,
        y: np.ndarray,
        family: Family,
        offset: Optional[np.ndarray] = None,
        wt: Optional[np.ndarray] = None,
    ):
        self.y = check_vector(y, 'y').copy()
        n = len(self.y)
        self.family = family

        if offset is None:
            self.offset = np.zeros(n)
        else:
            self.offset = check_vector(offset, 'offset', n=n).copy()

        if wt is None:
            self.wt = np.ones(n)
        else:
            self.wt = check_vector(wt, 'weights', n=n).copy()
            if np.any(self.wt < 0):
                raise ValueError("negative weights not allowed")

        self.eta = np.zeros(n)
        self.mu = np.zeros(n)
        self.dev = np.zeros(n)
        self.rtwwt = np.zeros(n)
        self.wwresp = np.zeros(n)

    def __len__(self):
        return len(self.y)

    def update(self, eta: np.ndarray) -> float:
        """
        Refresh every derived column from a new linear predictor.

        Parameters
        ----------
        eta : ndarray, shape (n,)
            Linear predictor, including the offset

        Returns
        -------
        float
            Total deviance
        """
        self.eta[:] = eta
        self.family.update_response(self)
        return self.deviance

    @property
    def deviance(self) -> float:
        return float(np.sum(self.dev))

    @property
    def n_good(self) -> int:
        """Number of observations with positive prior weight."""
        return int(np.sum(self.wt > 0))

    def to_frame(self) -> pd.DataFrame:
        """Snapshot of the table as a DataFrame."""
        return pd.DataFrame({c: getattr(self, c).copy() for c in self.COLUMNS})

    def __repr__(self):
        return f"ResponseTable(n={len(self)}, family={self.family!r})"
