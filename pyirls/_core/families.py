"""
GLM family definitions.

Each family is a strategy object selected once per fit. It bundles the
link, variance and deviance functions and knows how to refresh a
:class:`~pyirls._core.response.ResponseTable` from a new linear predictor.
"""

import numpy as np
from abc import ABC, abstractmethod
from scipy import stats
from scipy.special import xlogy


class Family(ABC):
    """Base class for GLM families."""

    # Dispersion is 1 (Bernoulli, Poisson) rather than estimated
    dispersion_fixed = True

    @property
    @abstractmethod
    def name(self) -> str:
        """Family name."""
        pass

    @property
    @abstractmethod
    def link(self) -> str:
        """Link name."""
        pass

    @abstractmethod
    def linkfun(self, mu: np.ndarray) -> np.ndarray:
        """Link function: η = g(μ)"""
        pass

    @abstractmethod
    def linkinv(self, eta: np.ndarray) -> np.ndarray:
        """Inverse link: μ = g⁻¹(η)"""
        pass

    @abstractmethod
    def mu_eta(self, eta: np.ndarray) -> np.ndarray:
        """Derivative: dμ/dη"""
        pass

    @abstractmethod
    def variance(self, mu: np.ndarray) -> np.ndarray:
        """Variance function: V(μ)"""
        pass

    @abstractmethod
    def dev_resids(
        self,
        y: np.ndarray,
        mu: np.ndarray,
        wt: np.ndarray
    ) -> np.ndarray:
        """Unit deviances (weighted)."""
        pass

    @abstractmethod
    def initialize(self, y: np.ndarray, wt: np.ndarray) -> np.ndarray:
        """Validate y and return starting values for μ."""
        pass

    @abstractmethod
    def aic(
        self,
        y: np.ndarray,
        mu: np.ndarray,
        wt: np.ndarray,
        dev: float
    ) -> float:
        """-2 * log-likelihood (R's family$aic, without the 2*rank term)."""
        pass

    def update_response(self, table) -> None:
        """
        Recompute μ, deviance, working weight and working response.

        Generic version built from the link and variance functions.
        Every derived column of ``table`` is overwritten from ``table.eta``.

        Parameters
        ----------
        table : ResponseTable
            Table whose ``eta`` column has just been updated
        """
        eta = table.eta
        table.mu[:] = self.linkinv(eta)
        d = self.mu_eta(eta)
        table.dev[:] = self.dev_resids(table.y, table.mu, table.wt)
        np.multiply(
            np.sqrt(table.wt) * d, 1.0 / np.sqrt(self.variance(table.mu)),
            out=table.rtwwt
        )
        table.wwresp[:] = table.rtwwt * ((eta - table.offset) + (table.y - table.mu) / d)

    def __repr__(self):
        return f"{type(self).__name__}(link='{self.link}')"


class Gaussian(Family):
    """Gaussian family with identity link."""

    dispersion_fixed = False

    @property
    def name(self) -> str:
        return "gaussian"

    @property
    def link(self) -> str:
        return "identity"

    def linkfun(self, mu: np.ndarray) -> np.ndarray:
        return mu

    def linkinv(self, eta: np.ndarray) -> np.ndarray:
        return eta

    def mu_eta(self, eta: np.ndarray) -> np.ndarray:
        return np.ones_like(eta)

    def variance(self, mu: np.ndarray) -> np.ndarray:
        return np.ones_like(mu)

    def dev_resids(
        self,
        y: np.ndarray,
        mu: np.ndarray,
        wt: np.ndarray
    ) -> np.ndarray:
        return wt * (y - mu) ** 2

    def initialize(self, y: np.ndarray, wt: np.ndarray) -> np.ndarray:
        return y.astype(np.float64, copy=True)

    def aic(self, y, mu, wt, dev):
        nobs = int(np.sum(wt > 0))
        return nobs * (np.log(2 * np.pi * dev / nobs) + 1) + 2


class Bernoulli(Family):
    """
    Bernoulli family with logit link.

    ``update_response`` is specialized: exp(-η) is obtained by squaring
    exp(-η/2), so each observation costs a single transcendental call
    for μ and the square-root working weight together. η is clamped to
    R's ±30 thresholds for μ and the working weight, which keeps μ
    strictly inside (0, 1) and the weights positive.
    """

    # Thresholds from R's family.c
    THRESH = 30.0
    MTHRESH = -30.0
    EPS = np.finfo(np.float64).eps

    @property
    def name(self) -> str:
        return "bernoulli"

    @property
    def link(self) -> str:
        return "logit"

    def linkfun(self, mu: np.ndarray) -> np.ndarray:
        """Logit link: η = log(μ/(1-μ))"""
        return np.log(mu / (1 - mu))

    def linkinv(self, eta: np.ndarray) -> np.ndarray:
        """Inverse logit: μ = 1/(1 + exp(-η)), η clamped to [-30, 30]."""
        eta = np.clip(eta, self.MTHRESH, self.THRESH)
        return 1.0 / (1.0 + np.exp(-eta))

    def mu_eta(self, eta: np.ndarray) -> np.ndarray:
        """Derivative: dμ/dη = exp(η)/(1 + exp(η))², EPS outside [-30, 30]."""
        d = np.empty_like(eta, dtype=np.float64)
        outside = (eta < self.MTHRESH) | (eta > self.THRESH)
        d[outside] = self.EPS
        inside = ~outside
        exp_eta = np.exp(eta[inside])
        d[inside] = exp_eta / (1.0 + exp_eta) ** 2
        return d

    def variance(self, mu: np.ndarray) -> np.ndarray:
        """Variance: V(μ) = μ(1-μ)"""
        return mu * (1 - mu)

    def dev_resids(
        self,
        y: np.ndarray,
        mu: np.ndarray,
        wt: np.ndarray
    ) -> np.ndarray:
        """2 wt [y log(y/μ) + (1-y) log((1-y)/(1-μ))], with 0 log 0 = 0."""
        return 2.0 * wt * (
            xlogy(y, y) - xlogy(y, mu)
            + xlogy(1 - y, 1 - y) - xlogy(1 - y, 1 - mu)
        )

    def initialize(self, y: np.ndarray, wt: np.ndarray) -> np.ndarray:
        if np.any((y < 0) | (y > 1)):
            raise ValueError("y values must be 0 <= y <= 1")
        return (wt * y + 0.5) / (wt + 1)

    def aic(self, y, mu, wt, dev):
        return -2.0 * np.sum(wt * (xlogy(y, mu) + xlogy(1 - y, 1 - mu)))

    def separated(self, eta: np.ndarray) -> np.ndarray:
        """
        Mask of fitted probabilities numerically 0 or 1.

        R flags μ within 10·eps of 0 or 1. Its logit inverse maps
        η beyond ±30 to eps or 1/(1 + eps) and keeps μ at least 9e-14
        away from the bounds inside, so the flag is raised exactly
        when |η| > 30.
        """
        return (eta > self.THRESH) | (eta < self.MTHRESH)

    def update_response(self, table) -> None:
        """
        Bernoulli/logit response update.

        Per observation:
            μ      = 1 / (1 + exp(-η))
            dev    = 2 wt [(1-y) η + log(1 + exp(-η)) + y log y + (1-y) log(1-y)]
            rtwwt  = sqrt(wt) sqrt(exp(-η)) μ
            wwresp = wt (y - μ) / rtwwt + rtwwt (η - offset)

        The entropy terms in ``dev`` vanish for y in {0, 1}.
        """
        y, wt, eta = table.y, table.wt, table.eta

        ehalf = np.exp(-0.5 * np.clip(eta, self.MTHRESH, self.THRESH))
        np.divide(1.0, 1.0 + ehalf * ehalf, out=table.mu)
        np.multiply(np.sqrt(wt) * ehalf, table.mu, out=table.rtwwt)

        np.multiply(
            2.0 * wt,
            (1.0 - y) * eta + np.logaddexp(0.0, -eta)
            + xlogy(y, y) + xlogy(1.0 - y, 1.0 - y),
            out=table.dev
        )

        # Zero-weight observations drop out of the least-squares problem
        resid = np.zeros_like(table.wwresp)
        np.divide(wt * (y - table.mu), table.rtwwt, out=resid, where=table.rtwwt > 0)
        table.wwresp[:] = resid + table.rtwwt * (eta - table.offset)


class Poisson(Family):
    """Poisson family with log link."""

    EPS = np.finfo(np.float64).eps

    @property
    def name(self) -> str:
        return "poisson"

    @property
    def link(self) -> str:
        return "log"

    def linkfun(self, mu: np.ndarray) -> np.ndarray:
        return np.log(mu)

    def linkinv(self, eta: np.ndarray) -> np.ndarray:
        return np.maximum(np.exp(eta), self.EPS)

    def mu_eta(self, eta: np.ndarray) -> np.ndarray:
        return np.maximum(np.exp(eta), self.EPS)

    def variance(self, mu: np.ndarray) -> np.ndarray:
        return mu

    def dev_resids(
        self,
        y: np.ndarray,
        mu: np.ndarray,
        wt: np.ndarray
    ) -> np.ndarray:
        return 2.0 * wt * (xlogy(y, y) - xlogy(y, mu) - (y - mu))

    def initialize(self, y: np.ndarray, wt: np.ndarray) -> np.ndarray:
        if np.any(y < 0):
            raise ValueError("negative values not allowed for the 'Poisson' family")
        return y + 0.1

    def aic(self, y, mu, wt, dev):
        return -2.0 * np.sum(stats.poisson.logpmf(y, mu) * wt)


__all__ = ["Family", "Gaussian", "Bernoulli", "Poisson"]
