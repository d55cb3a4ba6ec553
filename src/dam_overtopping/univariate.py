# src/dam_overtopping/univariate.py
"""
Module: univariate.py
Responsibilities:
- Fit a GEV distribution to a water-level sample by maximum likelihood
- Evaluate the GEV CDF and quantile function, including support boundaries
- Kolmogorov-Smirnov goodness-of-fit test against a fitted GEV
- Overtopping probability and return period for a crest elevation

Shape convention: xi > 0 is the heavy-tailed (Frechet) case, xi < 0 has a
finite upper bound (Weibull case). SciPy's genextreme uses c = -xi.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np
from scipy.optimize import minimize
from scipy.stats import genextreme, kstest

from dam_overtopping.config import GUMBEL_TOL, MAX_ITER, RETURN_PERIOD_CAP
from dam_overtopping.errors import FitError

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Constants
MIN_SAMPLE_SIZE = 3  # Three parameters need at least three points
EULER_GAMMA = 0.57722
XI_START = 0.1


@dataclass(frozen=True)
class FitResult:
    """Fitted GEV parameters for one window."""
    loc: float
    scale: float
    shape: float
    neg_log_likelihood: float = float('nan')
    n_obs: int = 0
    n_iter: int = 0

    @property
    def family(self) -> str:
        if abs(self.shape) < GUMBEL_TOL:
            return 'Gumbel'
        return 'Frechet' if self.shape > 0 else 'Weibull'

    @property
    def upper_bound(self) -> float:
        """Upper end of the support (inf unless xi < 0)."""
        if self.shape < -GUMBEL_TOL:
            return self.loc - self.scale / self.shape
        return np.inf


def _validate_sample(sample: Sequence[float]) -> np.ndarray:
    x = np.asarray(sample, dtype=float).ravel()

    if x.size < MIN_SAMPLE_SIZE:
        raise FitError(f"Insufficient sample size ({x.size}), minimum required: {MIN_SAMPLE_SIZE}")

    if not np.isfinite(x).all():
        raise FitError("Sample contains NaN or Inf values")

    if np.std(x) == 0:
        raise FitError("Sample has zero variance (all values are identical)")

    return x


def gev_neg_log_likelihood(params: Sequence[float], x: np.ndarray) -> float:
    """
    Negative GEV log-likelihood.

    Returns +inf outside the parameter space (scale <= 0, or a data point
    outside the support implied by the parameters).
    """
    mu, beta, xi = params
    if beta <= 0:
        return np.inf

    nll = -np.sum(genextreme.logpdf(x, -xi, loc=mu, scale=beta))
    if not np.isfinite(nll):
        return np.inf
    return float(nll)


def initial_parameters(x: np.ndarray) -> np.ndarray:
    """Moment-based starting point: Gumbel location/scale, small positive shape."""
    beta0 = np.sqrt(6.0 * np.var(x, ddof=1)) / np.pi
    mu0 = np.mean(x) - EULER_GAMMA * beta0
    x0 = np.array([mu0, beta0, XI_START])

    # Gumbel start is always inside the support
    if not np.isfinite(gev_neg_log_likelihood(x0, x)):
        x0[2] = 0.0
    return x0


def fit_gev(sample: Sequence[float], max_iter: int = MAX_ITER) -> FitResult:
    """
    Fit a GEV distribution by maximum likelihood.

    Parameters
    ----------
    sample : sequence of float
        Water-level observations of one window.
    max_iter : int, optional
        Upper bound on Nelder-Mead iterations.

    Returns
    -------
    FitResult
        Location, scale and shape plus fit diagnostics.

    Raises
    ------
    FitError
        If the sample is degenerate or the optimizer does not converge.
    """
    x = _validate_sample(sample)
    x0 = initial_parameters(x)

    result = minimize(
        gev_neg_log_likelihood,
        x0,
        args=(x,),
        method='Nelder-Mead',
        options={'maxiter': max_iter, 'maxfev': 2 * max_iter, 'xatol': 1e-6, 'fatol': 1e-8},
    )

    if not result.success:
        raise FitError(f"GEV optimization did not converge: {result.message}")

    mu, beta, xi = (float(v) for v in result.x)
    nll = float(result.fun)
    if not np.isfinite(nll) or not np.isfinite([mu, beta, xi]).all() or beta <= 0:
        raise FitError(f"GEV optimization diverged: mu={mu}, beta={beta}, xi={xi}")

    # Likelihood is unbounded for xi < -1
    if xi <= -1.0:
        raise FitError(f"GEV shape estimate {xi:.4f} is outside the regular range (xi > -1)")

    logger.debug(f"GEV fit: mu={mu:.4f}, beta={beta:.4f}, xi={xi:.4f} ({result.nit} iterations)")
    return FitResult(loc=mu, scale=beta, shape=xi,
                     neg_log_likelihood=nll, n_obs=int(x.size), n_iter=int(result.nit))


def gev_cdf(x: Union[float, np.ndarray], fit: FitResult) -> Union[float, np.ndarray]:
    """
    GEV cumulative distribution function.

    Below the lower support bound (xi > 0) the CDF is 0, above the upper
    support bound (xi < 0) it is 1.
    """
    cdf = genextreme.cdf(np.asarray(x, dtype=float), -fit.shape, loc=fit.loc, scale=fit.scale)
    if np.ndim(cdf) == 0:
        return float(cdf)
    return cdf


def gev_ppf(p: Union[float, np.ndarray], fit: FitResult) -> Union[float, np.ndarray]:
    """GEV quantile function for non-exceedance probability p in (0, 1)."""
    q = genextreme.ppf(np.asarray(p, dtype=float), -fit.shape, loc=fit.loc, scale=fit.scale)
    if np.ndim(q) == 0:
        return float(q)
    return q


def overtopping_risk(threshold: float, fit: FitResult) -> float:
    """Probability that the water level exceeds the crest elevation, 1 - F(threshold)."""
    risk = 1.0 - gev_cdf(float(threshold), fit)
    return float(min(1.0, max(0.0, risk)))


def ks_test(sample: Sequence[float], fit: FitResult) -> float:
    """
    Two-sided one-sample Kolmogorov-Smirnov p-value of the sample against
    the fitted GEV, using the asymptotic Kolmogorov distribution.
    """
    x = np.asarray(sample, dtype=float).ravel()
    result = kstest(x, lambda v: gev_cdf(v, fit), method='asymp')
    return float(min(1.0, max(0.0, result.pvalue)))


def gof_tests(sample: Sequence[float], fit: FitResult) -> Dict[str, Any]:
    """
    Goodness-of-fit diagnostics for a GEV fit.

    Parameters
    ----------
    sample : sequence of float
        Window the GEV was fitted to
    fit : FitResult
        Fitted parameters

    Returns
    -------
    Dict[str, Any]
        KS statistic and p-value plus QQ and PP plot coordinates
    """
    x = np.sort(np.asarray(sample, dtype=float).ravel())
    n = x.size

    ks = kstest(x, lambda v: gev_cdf(v, fit), method='asymp')
    results = {
        'ks_statistic': float(ks.statistic),
        'ks_pvalue': float(ks.pvalue),
    }

    # QQ plot coordinates
    pp = np.arange(1, n + 1) / (n + 1)  # plotting positions
    results['qq_plot'] = {
        'empirical': x.tolist(),
        'theoretical': np.atleast_1d(gev_ppf(pp, fit)).tolist()
    }

    # PP plot coordinates
    results['pp_plot'] = {
        'empirical': (np.arange(1, n + 1) / n).tolist(),
        'theoretical': np.atleast_1d(gev_cdf(x, fit)).tolist()
    }

    return results


def to_return_period(risk: Optional[float]) -> Optional[float]:
    """
    Return period 1/risk rounded to 3 decimals.

    A zero probability maps to RETURN_PERIOD_CAP; an absent probability
    (failed fit) stays absent.
    """
    if risk is None or np.isnan(risk):
        return None
    if risk < 0:
        raise ValueError(f"Exceedance probability must be non-negative, got {risk}")
    if risk == 0:
        return RETURN_PERIOD_CAP
    return round(1.0 / risk, 3)
