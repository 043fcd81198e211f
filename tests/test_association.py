"""Tests for the negative binomial association tests."""

import pytest
import numpy as np

import scopic._utils.association as association
from scopic._utils.association import fit_nb_regression, run_association_tests


def _nb_sample(rng, mu, dispersion=0.2):
    shape = 1.0 / dispersion
    return rng.poisson(rng.gamma(shape=shape, scale=mu / shape))


def test_fit_nb_regression_detects_association():
    rng = np.random.default_rng(42)
    x = rng.uniform(size=300)
    y = _nb_sample(rng, np.exp(0.5 + 2.0 * x))

    coef, pvalue = fit_nb_regression(y, x, max_iter=100)

    assert 1.3 < coef < 2.7
    assert pvalue < 1e-4


def test_fit_nb_regression_no_association():
    rng = np.random.default_rng(7)
    x = rng.uniform(size=300)
    y = _nb_sample(rng, np.full(300, 5.0))

    coef, pvalue = fit_nb_regression(y, x, max_iter=100)

    assert abs(coef) < 1.0
    assert pvalue > 0.001


def test_fit_nb_regression_error_gives_missing(monkeypatch):
    def broken(*args, **kwargs):
        raise np.linalg.LinAlgError("Singular matrix")

    monkeypatch.setattr(association.sm, 'NegativeBinomial', broken)

    coef, pvalue = fit_nb_regression(np.array([1, 2, 3]), np.array([0.1, 0.2, 0.3]))

    assert np.isnan(coef)
    assert np.isnan(pvalue)


def test_fit_nb_regression_nonconvergence_gives_missing(monkeypatch):
    class FakeFit:
        mle_retvals = {'converged': False}
        params = np.array([0.0, 3.0, 0.1])
        pvalues = np.array([0.5, 0.001, 0.5])

    class FakeModel:
        def __init__(self, endog, exog):
            pass

        def fit(self, **kwargs):
            return FakeFit()

    monkeypatch.setattr(association.sm, 'NegativeBinomial', FakeModel)

    coef, pvalue = fit_nb_regression(np.array([1, 2, 3]), np.array([0.1, 0.2, 0.3]))

    assert np.isnan(coef)
    assert np.isnan(pvalue)


def test_run_association_tests_fills_grid(monkeypatch):
    """Each (item, topic) cell gets its own regression result."""
    def fake_fit(y, x, max_iter=100):
        return float(y[0]), float(x[0])

    monkeypatch.setattr(association, 'fit_nb_regression', fake_fit)
    item_counts = np.arange(15).reshape(5, 3)
    topics = np.array([[0.1, 0.9], [0.5, 0.5], [0.7, 0.3]])

    pvalues, coefficients = run_association_tests(item_counts, topics)

    assert pvalues.shape == (5, 2)
    np.testing.assert_allclose(coefficients[:, 0], item_counts[:, 0])
    np.testing.assert_allclose(coefficients[:, 1], item_counts[:, 0])
    np.testing.assert_allclose(pvalues[:, 0], 0.1)
    np.testing.assert_allclose(pvalues[:, 1], 0.9)


def test_run_association_tests_progress(monkeypatch):
    monkeypatch.setattr(association, 'fit_nb_regression', lambda y, x, max_iter=100: (1.0, 0.5))
    item_counts = np.ones((250, 4))
    topics = np.full((4, 2), 0.5)
    calls = []

    run_association_tests(item_counts, topics,
                          progress_callback=lambda *args: calls.append(args))

    assert calls == [
        (1, 0, 250), (1, 100, 250), (1, 200, 250), (1, 250, 250),
        (2, 0, 250), (2, 100, 250), (2, 200, 250), (2, 250, 250),
    ]


def test_run_association_tests_failures_left_missing(monkeypatch):
    def flaky_fit(y, x, max_iter=100):
        if y[0] == 0:
            return np.nan, np.nan
        return 1.5, 0.01

    monkeypatch.setattr(association, 'fit_nb_regression', flaky_fit)
    item_counts = np.array([[0, 1], [2, 3], [0, 5]])
    topics = np.array([[0.2, 0.8], [0.6, 0.4]])

    with pytest.warns(UserWarning, match="4 of 6"):
        pvalues, coefficients = run_association_tests(item_counts, topics)

    assert np.all(np.isnan(pvalues[[0, 2]]))
    assert np.all(np.isnan(coefficients[[0, 2]]))
    np.testing.assert_allclose(pvalues[1], [0.01, 0.01])


def test_run_association_tests_parallel_matches_sequential():
    rng = np.random.default_rng(0)
    topics = rng.dirichlet([1.0, 1.0], size=80)
    mu = np.exp(1.0 + 1.5 * topics[:, [0]].T + np.zeros((6, 1)))
    item_counts = _nb_sample(rng, mu)

    seq = run_association_tests(item_counts, topics, n_jobs=1)
    par = run_association_tests(item_counts, topics, n_jobs=2)

    np.testing.assert_allclose(seq[0], par[0], equal_nan=True)
    np.testing.assert_allclose(seq[1], par[1], equal_nan=True)
