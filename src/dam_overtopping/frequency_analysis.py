# src/dam_overtopping/frequency_analysis.py
"""
Module: frequency_analysis.py
Responsibilities:
- Orchestrate the rolling-window analysis over all structures
  * Metadata / observation loading and consistency checks
  * Per-structure rolling GEV analysis (serial or parallel)
  * Result assembly in structure input order
- Save result, return-period, parameter and NetCDF outputs
"""
import os
import logging
from functools import partial
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from dam_overtopping.assemble import assemble, parameter_table, return_period_table, to_dataset
from dam_overtopping.config import FULL_SPAN_LENGTH, MAX_ITER, AnalysisConfig, n_windows
from dam_overtopping.data_io import (
    Structure, check_consistency, load_dam_data, load_dam_info, series_for,
    validate_paths, write_results
)
from dam_overtopping.parallel import process_in_parallel
from dam_overtopping.rolling import WindowStatistic, analyze

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

Task = Tuple[Structure, np.ndarray]


def _absent_stats(step: int) -> List[WindowStatistic]:
    return [WindowStatistic(window=j) for j in range(n_windows(step))]


def process_structure(task: Task, step: int = 1, max_iter: int = MAX_ITER) -> List[WindowStatistic]:
    """
    Rolling-window analysis of one structure.

    Unexpected errors are logged and give an all-absent result so the
    structure still gets its row.
    """
    structure, series = task
    try:
        logger.info(f"Processing structure {structure.name} "
                    f"(crest {structure.crest_elevation:.2f} ft, {len(series)} observations)")
        return analyze(series, structure.crest_elevation, step=step, max_iter=max_iter)
    except Exception as e:
        logger.error(f"Error processing structure {structure.name}: {type(e).__name__}: {e}")
        return _absent_stats(step)


def analyze_structures(
    structures: Sequence[Structure],
    data: pd.DataFrame,
    config: Optional[AnalysisConfig] = None
) -> List[List[WindowStatistic]]:
    """
    Run the rolling analysis for every structure.

    Parameters
    ----------
    structures : sequence of Structure
        Dams, aligned by position with the columns of data
    data : pd.DataFrame
        Water levels, one column per structure
    config : AnalysisConfig, optional
        Run options; defaults to step=1, serial

    Returns
    -------
    List[List[WindowStatistic]]
        Window statistics per structure, in structure order
    """
    config = config or AnalysisConfig()
    check_consistency(structures, data)

    tasks = [(s, series_for(data, i)) for i, s in enumerate(structures)]
    func = partial(process_structure, step=config.step, max_iter=config.max_iter)

    if config.workers == 1 or len(tasks) <= 1:
        results = [func(t) for t in tasks]
    else:
        n_workers = config.workers or os.cpu_count() or 1
        logger.info(f"Running frequency analysis on {len(tasks)} structures with {n_workers} workers...")
        results = process_in_parallel(
            tasks, func, max_workers=n_workers, desc="Structures",
            on_error=lambda item, e: _absent_stats(config.step)
        )

    n_failed = sum(all(w.is_absent for w in r) for r in results)
    logger.info(f"Frequency analysis complete: {len(results) - n_failed} structures with at least "
                f"one fitted window, {n_failed} without")
    return results


def run_frequency_analysis(
    info_path: str,
    data_path: str,
    output_path: str,
    config: Optional[AnalysisConfig] = None,
    return_period_path: Optional[str] = None,
    parameter_path: Optional[str] = None,
    netcdf_path: Optional[str] = None
) -> pd.DataFrame:
    """
    Load inputs, analyse every structure and write the result table.

    Parameters
    ----------
    info_path : str
        Dam metadata CSV
    data_path : str
        Water-level CSV (first column is a row index)
    output_path : str
        Result CSV (Name, Hazard, Lat, Lon, Agency, KS_PValue_W*, OverRisk_W*)
    config : AnalysisConfig, optional
        Run options
    return_period_path : str, optional
        If given, also write the return-period table here
    parameter_path : str, optional
        If given, also write fitted GEV parameters per window here
    netcdf_path : str, optional
        If given, also write the results as a NetCDF dataset here

    Returns
    -------
    pd.DataFrame
        The result table

    Raises
    ------
    FileNotFoundError
        If an input file is missing
    MalformedInputError
        If the inputs are inconsistent
    """
    config = config or AnalysisConfig()
    validate_paths(info_path, data_path)
    structures = load_dam_info(info_path)
    data = load_dam_data(data_path)

    if data.shape[0] < FULL_SPAN_LENGTH:
        logger.warning(f"Observation table has {data.shape[0]} time steps, fewer than "
                       f"{FULL_SPAN_LENGTH}; affected windows will be absent")

    logger.info(f"Step {config.step}: {config.n_sliding} sliding windows + 1 full-span window")
    stats = analyze_structures(structures, data, config)

    results = assemble(structures, stats)
    write_results(results, output_path, config.missing_marker)

    if return_period_path:
        write_results(return_period_table(results), return_period_path, config.missing_marker)

    if parameter_path:
        write_results(parameter_table(structures, stats), parameter_path, config.missing_marker)

    if netcdf_path:
        os.makedirs(os.path.dirname(os.path.abspath(netcdf_path)), exist_ok=True)
        to_dataset(structures, stats).to_netcdf(netcdf_path)
        logger.info(f"Saved dataset to {netcdf_path}")

    return results
