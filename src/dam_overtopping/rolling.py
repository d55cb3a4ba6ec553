# src/dam_overtopping/rolling.py
"""
Module: rolling.py
Responsibilities:
- Generate the rolling window layout (sliding windows plus one full-span window)
- Extract window samples from an observation series with explicit length checks
- Fit, test and score every window of one structure
- Keep window order regardless of execution order
"""
import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional, Sequence, Tuple

import numpy as np

from dam_overtopping.config import (
    FULL_SPAN_LENGTH, MAX_ITER, WINDOW_LENGTH, n_sliding_windows, n_windows
)
from dam_overtopping.errors import FitError, InsufficientDataError
from dam_overtopping.parallel import process_in_parallel
from dam_overtopping.univariate import FitResult, fit_gev, ks_test, overtopping_risk

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowStatistic:
    """KS p-value and overtopping probability of one window; None when the fit failed."""
    window: int
    ks_pvalue: Optional[float] = None
    overtopping_risk: Optional[float] = None
    fit: Optional[FitResult] = None

    @property
    def is_absent(self) -> bool:
        return self.ks_pvalue is None and self.overtopping_risk is None


def window_bounds(step: int = 1) -> List[Tuple[int, int]]:
    """
    Start/stop indices of every window, in window order.

    Sliding window j covers [j*step, j*step + WINDOW_LENGTH); the last
    window always covers [0, FULL_SPAN_LENGTH) whatever the step.
    """
    bounds = [(j * step, j * step + WINDOW_LENGTH) for j in range(n_sliding_windows(step))]
    bounds.append((0, FULL_SPAN_LENGTH))
    return bounds


def extract_window(series: Sequence[float], start: int, stop: int) -> np.ndarray:
    """
    Slice one window out of the series.

    Raises
    ------
    InsufficientDataError
        If the series ends before the window does.
    """
    values = np.asarray(series, dtype=float)
    if stop > values.size:
        raise InsufficientDataError(
            f"Window [{start}:{stop}] needs {stop} observations, series has {values.size}"
        )
    return values[start:stop]


def analyze_window(
    window: int,
    series: Sequence[float],
    threshold: float,
    step: int = 1,
    max_iter: int = MAX_ITER
) -> WindowStatistic:
    """
    Fit, test and score a single window.

    Fit failures and short series give an absent statistic instead of
    raising, so one bad window never stops the others.
    """
    start, stop = window_bounds(step)[window]
    try:
        sample = extract_window(series, start, stop)
        fit = fit_gev(sample, max_iter=max_iter)
    except (FitError, InsufficientDataError) as e:
        logger.warning(f"Window {window + 1} [{start}:{stop}] skipped: {type(e).__name__}: {e}")
        return WindowStatistic(window=window)

    return WindowStatistic(
        window=window,
        ks_pvalue=ks_test(sample, fit),
        overtopping_risk=overtopping_risk(threshold, fit),
        fit=fit,
    )


def analyze(
    series: Sequence[float],
    threshold: float,
    step: int = 1,
    max_iter: int = MAX_ITER,
    workers: int = 1
) -> List[WindowStatistic]:
    """
    Run the rolling-window GEV analysis for one structure.

    Parameters
    ----------
    series : sequence of float
        Water levels, one per time step; windowing is positional.
    threshold : float
        Crest elevation of the structure.
    step : int, optional
        Stride between sliding windows, default 1.
    max_iter : int, optional
        Iteration bound for each GEV fit.
    workers : int, optional
        Number of processes used for window fits (1=serial, 0=all cores).

    Returns
    -------
    List[WindowStatistic]
        One statistic per window, in window order; length (20 // step) + 2.
    """
    if not isinstance(step, (int, np.integer)) or step < 1:
        raise ValueError(f"step must be a positive integer, got {step!r}")

    values = np.asarray(series, dtype=float)
    total = n_windows(step)
    if values.size < FULL_SPAN_LENGTH:
        logger.warning(f"Series has {values.size} observations; windows beyond it will be absent")

    func = partial(analyze_window, series=values, threshold=threshold, step=step, max_iter=max_iter)

    if workers == 1:
        stats = [func(j) for j in range(total)]
    else:
        stats = process_in_parallel(list(range(total)), func, max_workers=workers or None,
                                    desc="Windows")

    # Resequence by window index
    stats = sorted(stats, key=lambda s: s.window)
    n_absent = sum(s.is_absent for s in stats)
    if n_absent:
        logger.info(f"{n_absent}/{total} windows without a valid GEV fit")
    return stats
