"""
Test the user-facing GLM interface.
"""

import pytest
import numpy as np
import pandas as pd

from pyirls import (
    glm,
    GeneralizedLinearModel,
    Bernoulli,
    Gaussian,
    Poisson,
    ConvergenceWarning,
)


@pytest.fixture
def contra():
    """Synthetic contraception-use survey data."""
    np.random.seed(20241224)
    n = 400
    age = np.random.normal(0, 9, n)
    urban = np.random.choice(['N', 'Y'], n)
    livch = np.random.choice([0, 1, 2, 3], n)
    eta = -0.6 + 0.01 * age - 0.004 * age ** 2 + 0.8 * (urban == 'Y') + 0.3 * (livch > 0)
    p = 1 / (1 + np.exp(-eta))
    use = np.where(np.random.rand(n) < p, 'Y', 'N')
    return pd.DataFrame({'age': age, 'urban': urban, 'livch': livch, 'use': use})


class TestFormulaInterface:
    """patsy formula input."""

    def test_factor_response(self, contra):
        model = glm('use ~ age + urban', data=contra, family=Bernoulli())

        assert model.y_name == 'use[Y]'
        assert set(model.var_names) == {'Intercept', 'urban[T.Y]', 'age'}
        np.testing.assert_array_equal(model.resp['y'], (contra['use'] == 'Y').astype(float))
        assert model.converged

    def test_matches_column_interface(self, contra):
        data = contra.assign(
            use01=(contra['use'] == 'Y').astype(float),
            urban01=(contra['urban'] == 'Y').astype(float),
        )
        by_formula = glm('use01 ~ age + urban01', data=data, family=Bernoulli())
        by_columns = glm(y='use01', X=['age', 'urban01'], data=data, family=Bernoulli())

        pd.testing.assert_series_equal(
            by_formula.coef.sort_index(), by_columns.coef.sort_index(), rtol=1e-10
        )
        assert by_formula.deviance == pytest.approx(by_columns.deviance)

    def test_quadratic_term(self, contra):
        model = glm('use ~ 1 + age + I(age**2) + urban', data=contra, family=Bernoulli())
        assert 'I(age ** 2)' in model.var_names
        assert model.coef['I(age ** 2)'] < 0

    def test_predict_newdata(self, contra):
        model = glm('use ~ age + urban', data=contra, family=Bernoulli())

        np.testing.assert_allclose(model.predict(contra), model.fitted_values, rtol=1e-12)
        np.testing.assert_allclose(
            model.predict(contra, type='link'), model.linear_predictors, rtol=1e-12
        )

    def test_formula_requires_data(self):
        with pytest.raises(ValueError, match="Must provide data"):
            glm('y ~ x')


class TestBernoulliFit:
    """Statistics of a logistic regression fit."""

    def test_score_equations(self, contra):
        model = glm('use ~ age + urban', data=contra, family=Bernoulli(), epsilon=1e-10)
        residual = model.resp['y'] - model.resp['mu']
        np.testing.assert_allclose(model.X.T @ residual, 0.0, atol=1e-6)

    def test_null_deviance(self, contra):
        model = glm('use ~ age + urban', data=contra, family=Bernoulli())
        y = model.resp['y'].to_numpy()
        ybar = y.mean()
        expected = -2 * np.sum(y * np.log(ybar) + (1 - y) * np.log(1 - ybar))

        assert model.null_deviance == pytest.approx(expected, rel=1e-10)
        assert model.deviance < model.null_deviance
        assert model.df_null == len(y) - 1
        assert model.df_residual == len(y) - 3

    def test_aic(self, contra):
        model = glm('use ~ age + urban', data=contra, family=Bernoulli())
        assert model.aic == pytest.approx(model.deviance + 2 * model.rank, rel=1e-10)

    def test_deviance_residuals(self, contra):
        model = glm('use ~ age + urban', data=contra, family=Bernoulli())
        dres = model.residuals('deviance')
        assert np.sum(dres ** 2) == pytest.approx(model.deviance, rel=1e-10)

        resp = model.residuals('response')
        assert np.all(np.sign(dres[resp != 0]) == np.sign(resp[resp != 0]))

    def test_residual_type(self, contra):
        model = glm('use ~ age', data=contra, family=Bernoulli())
        with pytest.raises(ValueError, match="Unknown residual type"):
            model.residuals('studentized')

    def test_conf_int(self, contra):
        model = glm('use ~ age + urban', data=contra, family=Bernoulli())
        ci = model.conf_int()

        assert list(ci.columns) == ['lower', 'upper']
        assert np.all(ci['lower'] < model.coef)
        assert np.all(model.coef < ci['upper'])
        np.testing.assert_allclose(
            (ci['upper'] - ci['lower']) / 2, 1.959963984540054 * model.std_errors, rtol=1e-10
        )

    def test_response_table_fields(self, contra):
        model = glm('use ~ age + urban', data=contra, family=Bernoulli())
        resp = model.resp

        assert list(resp.columns) == ['y', 'offset', 'wt', 'eta', 'mu', 'dev', 'rtwwt', 'wwresp']
        assert len(resp) == len(contra)
        np.testing.assert_allclose(resp['eta'], model.X @ model.beta, rtol=1e-12)

    def test_weights_equal_replication(self):
        """Integer prior weights match replicated rows."""
        np.random.seed(8)
        n = 120
        x = np.random.randn(n)
        y = (np.random.rand(n) < 1 / (1 + np.exp(-x))).astype(float)
        w = np.random.randint(1, 4, n).astype(float)

        weighted = glm(y=y, X=x, weights=w, family=Bernoulli(), epsilon=1e-12)
        replicated = glm(
            y=np.repeat(y, w.astype(int)), X=np.repeat(x, w.astype(int)),
            family=Bernoulli(), epsilon=1e-12
        )

        np.testing.assert_allclose(weighted.coefficients, replicated.coefficients, rtol=1e-6)
        assert weighted.deviance == pytest.approx(replicated.deviance, rel=1e-8)

    def test_iteration_cap(self, contra):
        with pytest.warns(ConvergenceWarning):
            model = glm('use ~ age + urban', data=contra, family=Bernoulli(), maxit=1)
        assert not model.converged
        assert model.iterations == 1

    def test_unknown_control_argument(self, contra):
        with pytest.raises(TypeError, match="Unknown control"):
            glm('use ~ age', data=contra, family=Bernoulli(), max_iter=5)

    def test_summary(self, contra, capsys):
        model = glm('use ~ age + urban', data=contra, family=Bernoulli())
        model.summary()
        out = capsys.readouterr().out

        assert 'GENERALIZED LINEAR MODEL RESULTS' in out
        assert 'bernoulli (link = logit)' in out
        assert 'Pr(>|z|)' in out
        assert 'urban[T.Y]' in out
        assert 'Fisher Scoring iterations' in out


class TestOtherFamilies:
    """Gaussian and Poisson fits."""

    def test_gaussian_matches_ols_inference(self):
        np.random.seed(42)
        n, p = 100, 3
        X = np.random.randn(n, p)
        y = 1.0 + X @ np.array([1.0, 2.0, -1.5]) + 0.5 * np.random.randn(n)

        model = glm(y=y, X=X, family=Gaussian())

        X_full = np.column_stack([np.ones(n), X])
        beta, *_ = np.linalg.lstsq(X_full, y, rcond=None)
        rss = np.sum((y - X_full @ beta) ** 2)
        sigma2 = rss / (n - p - 1)
        se = np.sqrt(np.diag(sigma2 * np.linalg.inv(X_full.T @ X_full)))

        np.testing.assert_allclose(model.coefficients, beta, rtol=1e-10)
        assert model.dispersion == pytest.approx(sigma2, rel=1e-10)
        np.testing.assert_allclose(model.std_errors, se, rtol=1e-8)
        assert model.var_names == ['Intercept', 'x0', 'x1', 'x2']

    def test_poisson_with_offset(self):
        np.random.seed(3)
        n = 500
        exposure = np.random.uniform(1, 10, n)
        x = np.random.randn(n)
        y = np.random.poisson(exposure * np.exp(-1.0 + 0.5 * x)).astype(float)

        model = glm(y=y, X=x, family=Poisson(), offset=np.log(exposure))

        assert model.converged
        np.testing.assert_allclose(model.coefficients, [-1.0, 0.5], atol=0.15)
        assert model.null_deviance > model.deviance
        np.testing.assert_allclose(model.resp['offset'], np.log(exposure))

        pred = model.predict(np.array([0.0]), offset=np.log([2.0]))
        assert pred[0] == pytest.approx(2.0 * np.exp(model.coefficients[0]))

    def test_rank_deficient_design(self):
        np.random.seed(1)
        n = 60
        x = np.random.randn(n)
        y = (np.random.rand(n) < 0.5).astype(float)

        model = glm(y=y, X=np.column_stack([x, 2 * x]), family=Bernoulli())

        assert model.rank == 2
        assert np.sum(np.isnan(model.coefficients)) == 1
        assert np.sum(np.isnan(model.std_errors)) == 1

    def test_requires_inputs(self):
        with pytest.raises(ValueError, match="formula or both"):
            GeneralizedLinearModel(y=np.zeros(3))

    def test_start_values_still_validate_response(self):
        with pytest.raises(ValueError, match="negative values"):
            glm(
                y=np.array([1.0, -3.0, 2.0, 0.0]), X=np.arange(4.0),
                family=Poisson(), start=np.zeros(2)
            )
