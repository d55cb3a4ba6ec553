"""
Unit tests for univariate module.
"""

import math
import sys
from pathlib import Path

import numpy as np
import pytest
from scipy.stats import genextreme, kstest

# Adjust path to import the package without installing it
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dam_overtopping.config import RETURN_PERIOD_CAP
from dam_overtopping.errors import FitError
from dam_overtopping.univariate import (
    FitResult, fit_gev, gev_cdf, gev_neg_log_likelihood, gev_ppf, gof_tests,
    ks_test, overtopping_risk, to_return_period
)


def gev_sample(mu, beta, xi, size, seed):
    """Draw a GEV sample; SciPy's shape is c = -xi."""
    return genextreme.rvs(-xi, loc=mu, scale=beta, size=size, random_state=seed)


@pytest.fixture
def large_sample():
    return gev_sample(90.0, 10.0, 0.1, 2000, 42)


def test_fit_recovers_parameters(large_sample):
    """Test MLE on a large sample lands near the generating parameters."""
    fit = fit_gev(large_sample)

    assert isinstance(fit, FitResult)
    assert fit.loc == pytest.approx(90.0, abs=1.5)
    assert fit.scale == pytest.approx(10.0, abs=1.0)
    assert fit.shape == pytest.approx(0.1, abs=0.08)
    assert fit.n_obs == 2000
    assert fit.scale > 0


def test_fit_matches_likelihood_optimum(large_sample):
    """Test the fitted parameters are not beaten by SciPy's own MLE."""
    fit = fit_gev(large_sample)
    c, loc, scale = genextreme.fit(large_sample)

    ours = gev_neg_log_likelihood([fit.loc, fit.scale, fit.shape], large_sample)
    theirs = gev_neg_log_likelihood([loc, scale, -c], large_sample)
    assert ours <= theirs + 1e-3


@pytest.mark.parametrize("sample", [
    [100.0] * 30,
    [1.0, 2.0],
    [1.0, np.nan, 3.0, 4.0],
    [1.0, np.inf, 3.0, 4.0],
])
def test_fit_degenerate_samples(sample):
    """Test degenerate samples raise FitError."""
    with pytest.raises(FitError):
        fit_gev(sample)


def test_fit_iteration_bound():
    """Test a fit that runs out of iterations fails instead of looping."""
    sample = gev_sample(90.0, 10.0, 0.1, 30, 1)
    with pytest.raises(FitError):
        fit_gev(sample, max_iter=1)


def test_fit_error_is_value_error():
    """Test FitError can be caught as ValueError."""
    with pytest.raises(ValueError):
        fit_gev([5.0, 5.0, 5.0, 5.0])


def test_neg_log_likelihood_outside_support():
    """Test the likelihood is infinite for invalid parameters."""
    x = np.array([1.0, 2.0, 3.0])
    assert gev_neg_log_likelihood([0.0, -1.0, 0.1], x) == np.inf
    # xi < 0 with upper bound below the data
    assert gev_neg_log_likelihood([0.0, 1.0, -1.0], x) == np.inf


@pytest.mark.parametrize("xi", [0.2, 0.0, -0.2])
def test_neg_log_likelihood_matches_scipy(xi):
    """Test the objective equals the negative summed genextreme log-density."""
    x = gev_sample(850.0, 3.0, xi, 30, 5)
    expected = -np.sum(genextreme.logpdf(x, -xi, loc=850.0, scale=3.0))
    assert gev_neg_log_likelihood([850.0, 3.0, xi], x) == pytest.approx(expected)


@pytest.mark.parametrize("xi", [0.2, 0.0, -0.2])
def test_ppf_matches_scipy(xi):
    """Test the quantile function against scipy.stats.genextreme."""
    fit = FitResult(loc=850.0, scale=3.0, shape=xi)
    p = np.array([0.01, 0.25, 0.5, 0.9, 0.999])
    np.testing.assert_allclose(gev_ppf(p, fit), genextreme.ppf(p, -xi, loc=850.0, scale=3.0))
    assert isinstance(gev_ppf(0.5, fit), float)


@pytest.mark.parametrize("xi", [0.3, 0.1, 0.0, -0.05, -0.3])
def test_cdf_matches_scipy(xi):
    """Test the GEV CDF against scipy.stats.genextreme."""
    fit = FitResult(loc=100.0, scale=8.0, shape=xi)
    x = np.linspace(60.0, 160.0, 41)
    expected = genextreme.cdf(x, -xi, loc=100.0, scale=8.0)
    np.testing.assert_allclose(gev_cdf(x, fit), expected, atol=1e-10)


def test_cdf_support_boundaries():
    """Test the CDF is 0 below the lower bound (xi > 0) and 1 above the upper bound (xi < 0)."""
    heavy = FitResult(loc=0.0, scale=1.0, shape=0.5)   # lower bound at -2
    bounded = FitResult(loc=0.0, scale=1.0, shape=-0.5)  # upper bound at 2

    assert gev_cdf(-2.5, heavy) == 0.0
    assert gev_cdf(-2.0, heavy) == 0.0
    assert gev_cdf(2.5, bounded) == 1.0
    assert gev_cdf(2.0, bounded) == 1.0
    assert bounded.upper_bound == pytest.approx(2.0)
    assert math.isinf(heavy.upper_bound)


def test_cdf_gumbel_limit():
    """Test a near-zero shape uses the Gumbel form."""
    fit = FitResult(loc=140.0, scale=5.0, shape=1e-9)
    assert gev_cdf(150.0, fit) == pytest.approx(math.exp(-math.exp(-2.0)))
    assert fit.family == 'Gumbel'


def test_ppf_inverts_cdf():
    """Test the quantile function inverts the CDF."""
    for xi in (0.2, 0.0, -0.2):
        fit = FitResult(loc=50.0, scale=4.0, shape=xi)
        p = np.array([0.05, 0.5, 0.95])
        np.testing.assert_allclose(gev_cdf(gev_ppf(p, fit), fit), p, atol=1e-10)


def test_overtopping_risk_bounds_and_monotonicity():
    """Test risk stays in [0, 1] and never increases with the threshold."""
    thresholds = np.linspace(0.0, 400.0, 201)
    for mu in (90.0, 150.0, 190.0):
        for beta in (0.5, 5.0, 15.0):
            for xi in (-0.8, -0.2, -0.05, 0.0, 0.1, 0.5, 1.0):
                fit = FitResult(loc=mu, scale=beta, shape=xi)
                risks = np.array([overtopping_risk(t, fit) for t in thresholds])
                assert np.all((risks >= 0.0) & (risks <= 1.0))
                assert np.all(np.diff(risks) <= 1e-12)


def test_overtopping_risk_analytical():
    """Test risk against closed-form exceedance probabilities."""
    # Frechet case: 1 - exp(-(1.1)^-10)
    fit = FitResult(loc=90.0, scale=10.0, shape=0.1)
    assert overtopping_risk(100.0, fit) == pytest.approx(1 - math.exp(-1.1 ** -10))

    # Gumbel case
    fit = FitResult(loc=140.0, scale=5.0, shape=0.0)
    assert overtopping_risk(150.0, fit) == pytest.approx(1 - math.exp(-math.exp(-2.0)))

    # Crest below the lower support bound and above the upper support bound
    assert overtopping_risk(-10.0, FitResult(loc=0.0, scale=1.0, shape=0.5)) == 1.0
    assert overtopping_risk(10.0, FitResult(loc=0.0, scale=1.0, shape=-0.5)) == 0.0


def test_ks_test_matches_scipy_asymptotic():
    """Test ks_test equals SciPy's asymptotic one-sample KS p-value."""
    sample = gev_sample(140.0, 5.0, 0.0, 30, 7)
    fit = fit_gev(sample)
    expected = kstest(sample, 'genextreme', args=(-fit.shape, fit.loc, fit.scale), method='asymp').pvalue

    p = ks_test(sample, fit)
    assert 0.0 <= p <= 1.0
    assert p == pytest.approx(expected, abs=1e-8)


def test_ks_rejects_wrong_distribution():
    """Test the KS p-value is tiny for a badly misspecified fit."""
    sample = gev_sample(140.0, 5.0, 0.0, 50, 3)
    wrong = FitResult(loc=300.0, scale=5.0, shape=0.0)
    assert ks_test(sample, wrong) < 1e-6


def test_fit_then_ks_does_not_reject():
    """Test fitted GEV samples mostly pass the KS test at the 5% level."""
    passed = 0
    trials = 20
    for seed in range(trials):
        sample = gev_sample(90.0, 10.0, 0.1, 50, 100 + seed)
        fit = fit_gev(sample)
        if ks_test(sample, fit) > 0.05:
            passed += 1
    assert passed >= 0.8 * trials


def test_gof_tests_diagnostics():
    """Test goodness-of-fit diagnostics carry KS results and plot coordinates."""
    sample = gev_sample(190.0, 15.0, -0.05, 30, 11)
    fit = fit_gev(sample)
    gof = gof_tests(sample, fit)

    assert gof['ks_pvalue'] == pytest.approx(ks_test(sample, fit))
    assert 0.0 <= gof['ks_statistic'] <= 1.0
    assert len(gof['qq_plot']['empirical']) == 30
    assert len(gof['qq_plot']['theoretical']) == 30
    assert len(gof['pp_plot']['theoretical']) == 30
    assert gof['qq_plot']['empirical'] == sorted(gof['qq_plot']['empirical'])


def test_return_period():
    """Test the return-period transform."""
    assert to_return_period(0.0) == RETURN_PERIOD_CAP == 1e12
    assert to_return_period(0.3) == round(1 / 0.3, 3)
    assert to_return_period(0.5) == 2.0
    assert to_return_period(1.0) == 1.0
    assert to_return_period(None) is None
    assert to_return_period(float('nan')) is None

    with pytest.raises(ValueError):
        to_return_period(-0.1)


if __name__ == "__main__":
    # Run tests manually
    pytest.main(["-xvs", __file__])
