"""
Generalized linear models with R-style interface and output.

This is the user-facing API: formula or column-name input, IRLS
fitting, Wald inference and an R-like summary table.
"""

import numpy as np
import pandas as pd
import patsy
from typing import Optional, Union, List
from scipy import stats
from scipy.linalg import solve_triangular

from ._backends import get_backend
from ._config import IRLSControl
from ._core.families import Family, Bernoulli
from ._core.irls import irls
from ._core.response import ResponseTable
from ._utils import check_array


class GeneralizedLinearModel:
    """
    Fit a generalized linear model by IRLS (like R's glm()).

    Examples
    --------
    >>> import pandas as pd
    >>> from pyirls import glm, Bernoulli
    >>>
    >>> contra = pd.read_csv('contra.csv')
    >>>
    >>> # Formula interface (patsy)
    >>> model = glm('use ~ 1 + age + I(age**2) + urban + livch',
    ...             data=contra, family=Bernoulli())
    >>> model.summary()
    >>>
    >>> # Column names, intercept added automatically
    >>> model = glm(y='use', X=['age', 'urban'], data=contra)
    >>>
    >>> model.coef        # Named coefficients
    >>> model.resp        # Per-observation response table
    >>> model.predict(new_data)
    """

    def __init__(
        self,
        formula: Optional[str] = None,
        data: Optional[pd.DataFrame] = None,
        *,
        y: Optional[Union[str, np.ndarray]] = None,
        X: Optional[Union[List[str], np.ndarray]] = None,
        family: Optional[Family] = None,
        weights: Optional[Union[str, np.ndarray]] = None,
        offset: Optional[Union[str, np.ndarray]] = None,
        intercept: bool = True,
        start: Optional[np.ndarray] = None,
        singular_ok: bool = True,
        backend: Optional[str] = None,
        use_fp64: Optional[bool] = None,
        control: Optional[IRLSControl] = None,
        **control_kwargs
    ):
        """
        Fit generalized linear model.

        Parameters
        ----------
        formula : str, optional
            patsy formula such as ``'use ~ age + urban'``. Requires data.
            A two-level categorical/boolean response is coded as the
            indicator of its last level.
        data : DataFrame, optional
            Dataset containing the variables
        y : str or array, optional
            Response (column name or values), used when no formula is given
        X : list of str or array, optional
            Predictors (column names or n × p matrix), used when no
            formula is given
        family : Family, default=Bernoulli()
            Response distribution and link
        weights : str or array, optional
            Prior weights
        offset : str or array, optional
            Offset added to the linear predictor
        intercept : bool, default=True
            Prepend an intercept column (array/column-name input only)
        start : array, optional
            Starting coefficients
        singular_ok : bool, default=True
            If False, raise on a rank-deficient design
        backend : str, optional
            'auto', 'cpu', 'gpu', 'pytorch' (None uses the package default)
        use_fp64 : bool, optional
            Force double precision
        control : IRLSControl, optional
            Iteration policy
        **control_kwargs
            Overrides for control fields (epsilon, maxit, maxhalf, trace)
        """
        self.family = family if family is not None else Bernoulli()
        self.formula = formula
        self._design_info = None

        if formula is not None:
            if data is None:
                raise ValueError("Must provide data when using a formula")
            y_df, X_df = patsy.dmatrices(
                formula, data, NA_action='raise', return_type='dataframe'
            )
            if y_df.shape[1] == 1:
                self.y_values = y_df.iloc[:, 0].to_numpy(dtype=np.float64)
                self.y_name = y_df.columns[0]
            elif y_df.shape[1] == 2:
                # Two-level factor response: indicator of the last level
                self.y_values = y_df.iloc[:, 1].to_numpy(dtype=np.float64)
                self.y_name = y_df.columns[1]
            else:
                raise ValueError(
                    f"Response must be numeric or have two levels, "
                    f"got columns {list(y_df.columns)}"
                )
            self.X = check_array(X_df.to_numpy(), 'X')
            self.var_names = list(X_df.columns)
            self._design_info = X_df.design_info
            self._add_intercept = False
        else:
            if y is None or X is None:
                raise ValueError("Must provide either a formula or both y and X")
            self._parse_arrays(y, X, data, intercept)

        self.weights_values = self._column_or_array(weights, data, 'weights')
        self.offset_values = self._column_or_array(offset, data, 'offset')

        # Store metadata
        self.n_obs = len(self.y_values)
        self.n_coef = self.X.shape[1]
        self.has_intercept = bool(np.any(np.all(self.X == 1.0, axis=0)))

        if control is None:
            control = IRLSControl()
        if control_kwargs:
            control = control.updated(**control_kwargs)
        self.control = control

        # Fit model using backend
        self.backend = get_backend(backend, use_fp64=use_fp64)
        self.resp_table = ResponseTable(
            self.y_values, self.family,
            offset=self.offset_values, wt=self.weights_values
        )
        self._irls_result = irls(
            self.X, self.resp_table,
            control=self.control,
            backend=self.backend,
            start=start,
            singular_ok=singular_ok,
        )

        self._compute_statistics()

    def _parse_arrays(self, y, X, data, intercept):
        if isinstance(y, str):
            if data is None:
                raise ValueError("Must provide data when y is a string")
            self.y_values = data[y].to_numpy(dtype=np.float64)
            self.y_name = y
        else:
            self.y_values = np.asarray(y, dtype=np.float64)
            self.y_name = 'y'

        if isinstance(X, list) and all(isinstance(x, str) for x in X):
            if data is None:
                raise ValueError("Must provide data when X is list of strings")
            X_values = data[X].to_numpy(dtype=np.float64)
            X_names = list(X)
        else:
            X_values = np.asarray(X, dtype=np.float64)
            if X_values.ndim == 1:
                X_values = X_values[:, np.newaxis]
            X_names = [f'x{i}' for i in range(X_values.shape[1])]

        self._X_names = X_names
        self._add_intercept = intercept
        if intercept:
            X_values = np.column_stack([np.ones(len(X_values)), X_values])
            X_names = ['Intercept'] + X_names

        self.X = check_array(X_values, 'X')
        self.var_names = X_names

    @staticmethod
    def _column_or_array(value, data, name):
        if value is None:
            return None
        if isinstance(value, str):
            if data is None:
                raise ValueError(f"Must provide data when {name} is a string")
            return data[value].to_numpy(dtype=np.float64)
        return np.asarray(value, dtype=np.float64)

    def _compute_statistics(self):
        """Compute deviances, dispersion, standard errors and p-values."""
        result = self._irls_result
        table = self.resp_table
        family = self.family

        self.coefficients = result.beta.copy()
        self.converged = result.converged
        self.boundary = result.boundary
        self.iterations = result.iterations
        self.rank = result.lstsq.rank

        n_ok = table.n_good
        self.df_residual = n_ok - self.rank
        self.df_null = n_ok - int(self.has_intercept)

        self.deviance = table.deviance
        self.null_deviance = self._null_deviance()
        self.aic = family.aic(table.y, table.mu, table.wt, self.deviance) + 2 * self.rank

        # Dispersion: fixed at 1, or Pearson chi² / df
        if family.dispersion_fixed:
            self.dispersion = 1.0
        elif self.df_residual > 0:
            pearson = table.wt * (table.y - table.mu) ** 2 / family.variance(table.mu)
            self.dispersion = float(np.sum(pearson[table.wt > 0]) / self.df_residual)
        else:
            self.dispersion = np.nan

        # Var(β) = φ (XᵗWX)⁻¹ from the R factor of the last WLS solve
        R = result.lstsq.qr_R[:self.rank, :self.rank]
        R_inv = solve_triangular(R, np.eye(self.rank), lower=False)
        unscaled = R_inv @ R_inv.T

        pivot = result.lstsq.qr_pivot[:self.rank]
        vcov = np.full((self.n_coef, self.n_coef), np.nan)
        vcov[np.ix_(pivot, pivot)] = unscaled * self.dispersion
        self.vcov = vcov

        self.std_errors = np.sqrt(np.diag(self.vcov))
        self.z_values = self.coefficients / self.std_errors

        if family.dispersion_fixed:
            self.pvalues = 2 * stats.norm.sf(np.abs(self.z_values))
        else:
            self.pvalues = 2 * stats.t.sf(np.abs(self.z_values), self.df_residual)

    def _null_deviance(self) -> float:
        """Deviance of the intercept-only model (or offset-only without intercept)."""
        table = self.resp_table
        family = self.family
        no_offset = not np.any(table.offset)

        if not self.has_intercept:
            mu = family.linkinv(table.offset)
            return float(np.sum(family.dev_resids(table.y, mu, table.wt)))

        if no_offset:
            wtdmu = np.sum(table.wt * table.y) / np.sum(table.wt)
            mu = np.full(len(table), wtdmu)
            return float(np.sum(family.dev_resids(table.y, mu, table.wt)))

        null_table = ResponseTable(table.y, family, offset=table.offset, wt=table.wt)
        null_fit = irls(
            np.ones((len(table), 1)), null_table,
            control=self.control, backend=self.backend
        )
        return null_fit.deviance

    @property
    def coef(self):
        """Named coefficients (pandas Series)."""
        return pd.Series(self.coefficients, index=self.var_names)

    @property
    def beta(self) -> np.ndarray:
        """Coefficient vector."""
        return self.coefficients

    @property
    def resp(self) -> pd.DataFrame:
        """Response table (y, offset, wt, eta, mu, dev, rtwwt, wwresp)."""
        return self.resp_table.to_frame()

    @property
    def fitted_values(self) -> np.ndarray:
        return self.resp_table.mu.copy()

    @property
    def linear_predictors(self) -> np.ndarray:
        return self.resp_table.eta.copy()

    def residuals(self, type: str = 'deviance') -> np.ndarray:
        """
        Model residuals.

        Parameters
        ----------
        type : str
            'deviance', 'pearson', 'working' or 'response'
        """
        table = self.resp_table
        family = self.family
        diff = table.y - table.mu

        if type == 'response':
            return diff
        if type == 'working':
            return diff / family.mu_eta(table.eta)
        if type == 'pearson':
            return diff * np.sqrt(table.wt) / np.sqrt(family.variance(table.mu))
        if type == 'deviance':
            return np.sign(diff) * np.sqrt(np.maximum(table.dev, 0.0))
        raise ValueError(
            f"Unknown residual type '{type}'. "
            f"Choose from 'deviance', 'pearson', 'working', 'response'"
        )

    def conf_int(self, alpha: float = 0.05):
        """
        Wald confidence intervals for coefficients.

        Parameters
        ----------
        alpha : float
            Significance level (default: 0.05 for 95% CI)

        Returns
        -------
        DataFrame
            Confidence intervals with columns 'lower' and 'upper'
        """
        if self.family.dispersion_fixed:
            crit = stats.norm.ppf(1 - alpha / 2)
        else:
            crit = stats.t.ppf(1 - alpha / 2, self.df_residual)
        lower = self.coefficients - crit * self.std_errors
        upper = self.coefficients + crit * self.std_errors

        return pd.DataFrame({
            'lower': lower,
            'upper': upper
        }, index=self.var_names)

    def predict(
        self,
        newdata: Optional[Union[pd.DataFrame, np.ndarray]] = None,
        type: str = 'response',
        offset: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """
        Predict for new data.

        Parameters
        ----------
        newdata : DataFrame or array, optional
            New predictor values. None returns the fitted values.
        type : str
            'response' (μ scale) or 'link' (η scale)
        offset : array, optional
            Offset for the new observations

        Returns
        -------
        array
            Predicted values
        """
        if type not in ('response', 'link'):
            raise ValueError("type must be 'response' or 'link'")

        if newdata is None:
            return self.fitted_values if type == 'response' else self.linear_predictors

        if self._design_info is not None:
            (X_new,) = patsy.build_design_matrices(
                [self._design_info], newdata, return_type='dataframe'
            )
            X_new = X_new.to_numpy(dtype=np.float64)
        else:
            if isinstance(newdata, pd.DataFrame):
                X_new = newdata[self._X_names].to_numpy(dtype=np.float64)
            else:
                X_new = np.asarray(newdata, dtype=np.float64)
                if X_new.ndim == 1:
                    X_new = X_new[:, np.newaxis]
            if self._add_intercept:
                X_new = np.column_stack([np.ones(len(X_new)), X_new])

        valid = ~np.isnan(self.coefficients)
        eta = X_new[:, valid] @ self.coefficients[valid]
        if offset is not None:
            eta = eta + np.asarray(offset, dtype=np.float64)

        if type == 'link':
            return eta
        return self.family.linkinv(eta)

    def summary(self):
        """
        Print summary of the fit (like R's summary.glm).
        """
        stat = 'z' if self.family.dispersion_fixed else 't'

        print()
        print("="*80)
        print("GENERALIZED LINEAR MODEL RESULTS")
        print("="*80)
        print()

        print(f"Dependent variable: {self.y_name}")
        print(f"Family: {self.family.name} (link = {self.family.link})")
        print(f"Number of observations: {self.n_obs}")
        print()

        print("Deviance Residuals:")
        residual_summary = pd.Series(self.residuals('deviance')).describe()
        print(f"  Min:    {residual_summary['min']:>10.4f}")
        print(f"  1Q:     {residual_summary['25%']:>10.4f}")
        print(f"  Median: {residual_summary['50%']:>10.4f}")
        print(f"  3Q:     {residual_summary['75%']:>10.4f}")
        print(f"  Max:    {residual_summary['max']:>10.4f}")
        print()

        print("Coefficients:")
        print("-"*80)
        print(f"{'Variable':<20} {'Estimate':>12} {'Std. Error':>12} "
              f"{stat + ' value':>10} {'Pr(>|' + stat + '|)':>12}")
        print("-"*80)

        for i, name in enumerate(self.var_names):
            p = self.pvalues[i]
            if np.isnan(p):
                sig = ' (aliased)'
                p_str = 'NA'
            else:
                if p < 0.001:
                    sig = ' ***'
                elif p < 0.01:
                    sig = ' **'
                elif p < 0.05:
                    sig = ' *'
                elif p < 0.1:
                    sig = ' .'
                else:
                    sig = ''

                p_str = f"{p:.4f}" if p >= 0.0001 else "<.0001"

            print(f"{name:<20} {self.coefficients[i]:>12.4f} {self.std_errors[i]:>12.4f} "
                  f"{self.z_values[i]:>10.3f} {p_str:>12}{sig}")

        print("-"*80)
        print("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        print()

        if self.family.dispersion_fixed:
            print(f"(Dispersion parameter for {self.family.name} family taken to be 1)")
        else:
            print(f"(Dispersion parameter for {self.family.name} family taken to be {self.dispersion:.4f})")
        print()
        print(f"    Null deviance: {self.null_deviance:.4f} on {self.df_null} degrees of freedom")
        print(f"Residual deviance: {self.deviance:.4f} on {self.df_residual} degrees of freedom")
        print(f"AIC: {self.aic:.4f}")
        print()
        print(f"Number of Fisher Scoring iterations: {self.iterations}")
        if not self.converged:
            print("Warning: algorithm did not converge")
        print()
        print(f"Backend: {self.backend.name}")
        print("="*80)
        print()

    def __repr__(self):
        return (f"GeneralizedLinearModel(family={self.family.name}, n={self.n_obs}, "
                f"p={self.rank}, deviance={self.deviance:.3f})")


def glm(formula=None, data=None, **kwargs):
    """
    Fit a generalized linear model (convenience function).

    Parameters
    ----------
    formula : str, optional
        patsy formula
    data : DataFrame, optional
        Dataset
    **kwargs
        Additional arguments passed to GeneralizedLinearModel

    Returns
    -------
    GeneralizedLinearModel
        Fitted model object

    Examples
    --------
    >>> model = glm('use ~ age + urban', data=contra, family=Bernoulli())
    >>> model.summary()
    >>> model.coef
    >>> model.conf_int()
    """
    return GeneralizedLinearModel(formula=formula, data=data, **kwargs)
