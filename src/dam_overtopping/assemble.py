# src/dam_overtopping/assemble.py
"""
Module: assemble.py
Responsibilities:
- Merge structure metadata with per-window statistics into the result table
- Derive return-period and GEV parameter tables
- Build a labelled xarray Dataset of the results for NetCDF export
"""
import logging
from typing import List, Mapping, Sequence, Union

import numpy as np
import pandas as pd
import xarray as xr

from dam_overtopping.config import METADATA_COLUMNS
from dam_overtopping.data_io import Structure
from dam_overtopping.errors import MalformedInputError
from dam_overtopping.rolling import WindowStatistic
from dam_overtopping.univariate import to_return_period

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

StatsInput = Union[Mapping[Structure, Sequence[WindowStatistic]], Sequence[Sequence[WindowStatistic]]]


def pvalue_columns(n_windows: int) -> List[str]:
    return [f"KS_PValue_W{n}" for n in range(1, n_windows + 1)]


def risk_columns(n_windows: int) -> List[str]:
    return [f"OverRisk_W{n}" for n in range(1, n_windows + 1)]


def _metadata_row(structure: Structure) -> list:
    return [structure.name, structure.hazard, structure.latitude,
            structure.longitude, structure.agency]


def _value(v):
    return np.nan if v is None else float(v)


def _aligned_stats(structures: Sequence[Structure], per_structure_stats: StatsInput) -> List[List[WindowStatistic]]:
    """Statistics per structure, in structure order, each sorted by window."""
    if isinstance(per_structure_stats, Mapping):
        missing = [s.name for s in structures if s not in per_structure_stats]
        if missing:
            raise MalformedInputError(f"No window statistics for structures: {missing}")
        stats = [per_structure_stats[s] for s in structures]
    else:
        stats = list(per_structure_stats)
        if len(stats) != len(structures):
            raise MalformedInputError(
                f"Got window statistics for {len(stats)} structures, expected {len(structures)}"
            )

    stats = [sorted(s, key=lambda w: w.window) for s in stats]
    lengths = {len(s) for s in stats}
    if len(lengths) > 1:
        raise MalformedInputError(f"Structures have differing window counts: {sorted(lengths)}")
    return stats


def assemble(structures: Sequence[Structure], per_structure_stats: StatsInput) -> pd.DataFrame:
    """
    Build the result table.

    Parameters
    ----------
    structures : sequence of Structure
        Dams in input order
    per_structure_stats : mapping or sequence
        Window statistics per structure, keyed by Structure or aligned by position

    Returns
    -------
    pd.DataFrame
        One row per structure: Name, Hazard, Lat, Lon, Agency, then
        KS_PValue_W1..WK and OverRisk_W1..WK. Absent statistics are NaN.
    """
    stats = _aligned_stats(structures, per_structure_stats)
    k = len(stats[0]) if stats else 0

    rows = []
    for structure, windows in zip(structures, stats):
        pvalues = [_value(w.ks_pvalue) for w in windows]
        risks = [_value(w.overtopping_risk) for w in windows]
        rows.append(_metadata_row(structure) + pvalues + risks)

    columns = METADATA_COLUMNS + pvalue_columns(k) + risk_columns(k)
    df = pd.DataFrame(rows, columns=columns)
    logger.info(f"Assembled results: {len(df)} structures x {k} windows")
    return df


def return_period_table(results: pd.DataFrame) -> pd.DataFrame:
    """Metadata plus ReturnPeriod_W{n} = round(1/OverRisk_W{n}, 3), capped for zero risk."""
    risk_cols = [c for c in results.columns if c.startswith('OverRisk_W')]
    out = results[METADATA_COLUMNS].copy()
    for col in risk_cols:
        rp = results[col].map(lambda r: to_return_period(None if pd.isna(r) else float(r)))
        out[col.replace('OverRisk_', 'ReturnPeriod_')] = rp.astype(float)
    return out


def parameter_table(structures: Sequence[Structure], per_structure_stats: StatsInput) -> pd.DataFrame:
    """Long table of fitted GEV parameters, one row per structure and window."""
    stats = _aligned_stats(structures, per_structure_stats)
    records = []
    for structure, windows in zip(structures, stats):
        for w in windows:
            fit = w.fit
            records.append({
                'Name': structure.name,
                'Window': w.window + 1,
                'Location': np.nan if fit is None else fit.loc,
                'Scale': np.nan if fit is None else fit.scale,
                'Shape': np.nan if fit is None else fit.shape,
                'NegLogLik': np.nan if fit is None else fit.neg_log_likelihood,
                'Family': None if fit is None else fit.family,
            })
    return pd.DataFrame.from_records(
        records, columns=['Name', 'Window', 'Location', 'Scale', 'Shape', 'NegLogLik', 'Family']
    )


def to_dataset(structures: Sequence[Structure], per_structure_stats: StatsInput) -> xr.Dataset:
    """
    Results as an xarray Dataset with dims (structure, window).

    Metadata fields become coordinates along 'structure'; the last window is
    flagged through the 'full_span' coordinate.
    """
    stats = _aligned_stats(structures, per_structure_stats)
    k = len(stats[0]) if stats else 0

    pvals = np.array([[_value(w.ks_pvalue) for w in s] for s in stats], dtype=float).reshape(len(stats), k)
    risks = np.array([[_value(w.overtopping_risk) for w in s] for s in stats], dtype=float).reshape(len(stats), k)
    rps = np.array(
        [[np.nan if np.isnan(r) else to_return_period(r) for r in row] for row in risks],
        dtype=float
    ).reshape(len(stats), k)

    ds = xr.Dataset(
        data_vars={
            'ks_pvalue': (('structure', 'window'), pvals),
            'overtopping_risk': (('structure', 'window'), risks),
            'return_period': (('structure', 'window'), rps),
        },
        coords={
            'structure': [s.name for s in structures],
            'window': np.arange(1, k + 1),
            'hazard': ('structure', [s.hazard for s in structures]),
            'latitude': ('structure', [s.latitude for s in structures]),
            'longitude': ('structure', [s.longitude for s in structures]),
            'agency': ('structure', [s.agency for s in structures]),
            'crest_elevation': ('structure', [s.crest_elevation for s in structures]),
            'full_span': ('window', np.arange(1, k + 1) == k),
        },
    )
    ds['overtopping_risk'].attrs['long_name'] = 'Probability of water level exceeding crest elevation'
    ds['return_period'].attrs['units'] = 'time steps'
    return ds
