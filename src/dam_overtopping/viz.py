"""
Visualization utilities for dam overtopping frequency analysis.

Plots the per-window KS p-values and overtopping probabilities of each
structure from a result table, and QQ/PP diagnostics of the full-span fit.
"""

import os
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from scipy.stats import genextreme

from dam_overtopping.config import FULL_SPAN_LENGTH
from dam_overtopping.data_io import Structure, series_for
from dam_overtopping.errors import FitError, InsufficientDataError
from dam_overtopping.rolling import extract_window
from dam_overtopping.univariate import FitResult, fit_gev, gof_tests

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
KS_ALPHA = 0.05


def _safe_name(name) -> str:
    return ''.join(ch if ch.isalnum() or ch in '-_' else '_' for ch in str(name))


def _window_values(row: pd.Series, prefix: str) -> np.ndarray:
    cols = [c for c in row.index if str(c).startswith(prefix)]
    cols.sort(key=lambda c: int(str(c)[len(prefix):]))
    return pd.to_numeric(row[cols], errors='coerce').to_numpy(dtype=float)


def plot_structure(row: pd.Series, ax_risk=None, ax_pvalue=None):
    """
    Plot overtopping probability and KS p-value across windows for one structure.

    The sliding windows are drawn as a line; the full-span window (the last
    column) is drawn as a dashed horizontal reference.
    """
    risks = _window_values(row, 'OverRisk_W')
    pvalues = _window_values(row, 'KS_PValue_W')

    if ax_risk is None or ax_pvalue is None:
        fig, (ax_risk, ax_pvalue) = plt.subplots(2, 1, figsize=(10, 7), sharex=True)
    else:
        fig = ax_risk.figure

    sliding = np.arange(1, len(risks))
    ax_risk.plot(sliding, risks[:-1], 'o-', label='Sliding 30-sample windows')
    if np.isfinite(risks[-1]):
        ax_risk.axhline(risks[-1], color='r', linestyle='--', label='Full 50-sample window')
    ax_risk.set_ylabel('Overtopping probability')
    ax_risk.set_title(f"{row['Name']} ({row['Hazard']}, {row['Agency']})")
    ax_risk.grid(True, alpha=0.3)
    ax_risk.legend()

    ax_pvalue.plot(sliding, pvalues[:-1], 's-', color='tab:green')
    if np.isfinite(pvalues[-1]):
        ax_pvalue.axhline(pvalues[-1], color='r', linestyle='--')
    ax_pvalue.axhline(KS_ALPHA, color='k', linestyle=':', label=f'alpha = {KS_ALPHA}')
    ax_pvalue.set_ylim(0, 1)
    ax_pvalue.set_xlabel('Window')
    ax_pvalue.set_ylabel('KS p-value')
    ax_pvalue.grid(True, alpha=0.3)
    ax_pvalue.legend()

    fig.tight_layout()
    return fig


def plot_results(
    results: pd.DataFrame,
    output_dir: PathLike,
    structures: Optional[Sequence[str]] = None,
    dpi: int = 150
) -> List[Path]:
    """
    Save one window-trajectory figure per structure.

    Parameters
    ----------
    results : pd.DataFrame
        Result table as written by the analysis
    output_dir : PathLike
        Directory for PNG files
    structures : sequence of str, optional
        Names to plot; all structures if None
    dpi : int, optional
        Resolution for saved plots. Default is 150.

    Returns
    -------
    List[Path]
        Paths of the saved figures
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    rows = results
    if structures:
        rows = results[results['Name'].astype(str).isin(structures)]
        if rows.empty:
            raise KeyError(f"None of the requested structures found: {list(structures)}")

    saved = []
    for i, (_, row) in enumerate(rows.iterrows()):
        fig = plot_structure(row)
        path = output_dir / f"{i + 1:03d}_{_safe_name(row['Name'])}_windows.png"
        fig.savefig(path, dpi=dpi)
        plt.close(fig)
        saved.append(path)

    logger.info(f"Saved {len(saved)} plots to {os.fspath(output_dir)}")
    return saved


def plot_fit_diagnostics(sample: Sequence[float], fit: FitResult, title: str = ''):
    """
    Histogram with fitted density, QQ plot and PP plot of one GEV fit.

    For a bounded fit (xi < 0) the upper support bound is marked on the
    histogram.
    """
    x = np.asarray(sample, dtype=float)
    gof = gof_tests(x, fit)

    fig, (ax_hist, ax_qq, ax_pp) = plt.subplots(1, 3, figsize=(15, 4.5))

    # Histogram with fitted GEV density
    ax_hist.hist(x, bins=15, density=True, alpha=0.7)
    grid = np.linspace(x.min(), x.max(), 500)
    ax_hist.plot(grid, genextreme.pdf(grid, -fit.shape, loc=fit.loc, scale=fit.scale), 'r-',
                 label=f'GEV (mu={fit.loc:.2f}, beta={fit.scale:.2f}, xi={fit.shape:.3f})')
    if np.isfinite(fit.upper_bound):
        ax_hist.axvline(fit.upper_bound, color='k', linestyle=':', label='Upper bound')
    ax_hist.set_xlabel('Water level')
    ax_hist.set_ylabel('Density')
    ax_hist.set_title(f'{title} ({fit.family})')
    ax_hist.legend()

    # QQ plot
    theo = gof['qq_plot']['theoretical']
    emp = gof['qq_plot']['empirical']
    ax_qq.plot(theo, emp, 'o')
    lo, hi = min(min(theo), min(emp)), max(max(theo), max(emp))
    ax_qq.plot([lo, hi], [lo, hi], 'r--')
    ax_qq.set_xlabel('Theoretical Quantiles')
    ax_qq.set_ylabel('Empirical Quantiles')
    ax_qq.set_title(f'QQ Plot (KS p-value: {gof["ks_pvalue"]:.3f})')

    # PP plot
    ax_pp.plot(gof['pp_plot']['theoretical'], gof['pp_plot']['empirical'], 'o')
    ax_pp.plot([0, 1], [0, 1], 'r--')
    ax_pp.set_xlabel('Theoretical CDF')
    ax_pp.set_ylabel('Empirical CDF')
    ax_pp.set_title('PP Plot')

    fig.tight_layout()
    return fig


def plot_diagnostics(
    structures: Sequence[Structure],
    data: pd.DataFrame,
    output_dir: PathLike,
    names: Optional[Sequence[str]] = None,
    dpi: int = 150
) -> List[Path]:
    """
    Fit the full-span window of each structure and save its diagnostic figure.

    Structures whose full-span fit fails are logged and skipped.

    Parameters
    ----------
    structures : sequence of Structure
        Dams, aligned by position with the columns of data
    data : pd.DataFrame
        Water levels, one column per structure
    output_dir : PathLike
        Directory for PNG files
    names : sequence of str, optional
        Names to plot; all structures if None
    dpi : int, optional
        Resolution for saved plots. Default is 150.

    Returns
    -------
    List[Path]
        Paths of the saved figures
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    saved = []
    for i, structure in enumerate(structures):
        if names and structure.name not in names:
            continue
        try:
            sample = extract_window(series_for(data, i), 0, FULL_SPAN_LENGTH)
            fit = fit_gev(sample)
        except (FitError, InsufficientDataError) as e:
            logger.warning(f"No diagnostics for {structure.name}: {e}")
            continue

        fig = plot_fit_diagnostics(sample, fit, title=structure.name)
        path = output_dir / f"{i + 1:03d}_{_safe_name(structure.name)}_diagnostics.png"
        fig.savefig(path, dpi=dpi)
        plt.close(fig)
        saved.append(path)

    logger.info(f"Saved {len(saved)} diagnostic plots to {os.fspath(output_dir)}")
    return saved
