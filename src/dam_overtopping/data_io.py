# src/dam_overtopping/data_io.py
"""
Module: data_io.py
Responsibilities:
- Validate metadata and observation paths
- Load dam metadata CSV into Structure records
- Load the water-level table (one column per dam, first column is a row index)
- Check that metadata and observations line up
- Write result tables to CSV
"""
import os
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from dam_overtopping.config import MISSING_MARKER
from dam_overtopping.errors import MalformedInputError

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Accepted header names per field; positions follow the Dam_info.csv layout
# (name, -, hazard, lat, lon, -, agency)
FIELD_ALIASES: Dict[str, List[str]] = {
    'name': ['NAME', 'DAM_NAME'],
    'hazard': ['HAZARD', 'HAZARD_CLASS', 'HAZARDCLASS'],
    'latitude': ['LATITUDE', 'LAT'],
    'longitude': ['LONGITUDE', 'LON', 'LONG'],
    'agency': ['AGENCY', 'OWNER_AGENCY'],
}
FIELD_POSITIONS = {'name': 0, 'hazard': 2, 'latitude': 3, 'longitude': 4, 'agency': 6}
CREST_ALIASES = ['TOPDAM_FT', 'CREST_ELEVATION', 'CREST_FT']


@dataclass(frozen=True)
class Structure:
    """One monitored dam."""
    name: str
    hazard: str
    latitude: float
    longitude: float
    agency: str
    crest_elevation: float


def validate_paths(info_path: str, data_path: str) -> bool:
    """
    Ensure the metadata CSV and the observation CSV both exist and are readable.

    Raises
    ------
    FileNotFoundError
        If either file doesn't exist
    PermissionError
        If a file exists but isn't readable
    """
    for label, path in (('Metadata', info_path), ('Observation', data_path)):
        if not os.path.isfile(path):
            raise FileNotFoundError(f"{label} file not found: {path}")
        if not os.access(path, os.R_OK):
            raise PermissionError(f"{label} file is not readable: {path}")

    logger.info("Verifying paths...")
    logger.info(f"  Metadata: {info_path}")
    logger.info(f"  Observations: {data_path}")
    return True


def _read_csv(path: str, label: str) -> pd.DataFrame:
    try:
        df = pd.read_csv(path)
    except pd.errors.EmptyDataError:
        raise MalformedInputError(f"{label} file is empty: {path}")
    except pd.errors.ParserError as e:
        raise MalformedInputError(f"Error parsing {label.lower()} file: {e}")

    if df.empty:
        raise MalformedInputError(f"{label} file contains no data: {path}")
    return df


def _find_column(df: pd.DataFrame, aliases: List[str]) -> Optional[str]:
    upper = {str(c).strip().upper(): c for c in df.columns}
    for alias in aliases:
        if alias in upper:
            return upper[alias]
    return None


def structures_from_frame(df: pd.DataFrame) -> List[Structure]:
    """
    Build Structure records from a metadata DataFrame.

    Fields are looked up by header name first and by position otherwise;
    the crest elevation column must be present by name.
    """
    crest_col = _find_column(df, CREST_ALIASES)
    if crest_col is None:
        raise MalformedInputError(
            f"Metadata missing crest elevation column (one of {', '.join(CREST_ALIASES)})"
        )

    columns = {}
    for field, aliases in FIELD_ALIASES.items():
        col = _find_column(df, aliases)
        if col is None:
            pos = FIELD_POSITIONS[field]
            if pos >= len(df.columns):
                raise MalformedInputError(
                    f"Metadata missing '{field}' column and has no column at position {pos + 1}"
                )
            col = df.columns[pos]
            logger.debug(f"Using column '{col}' (position {pos + 1}) for {field}")
        columns[field] = col

    crest = pd.to_numeric(df[crest_col], errors='coerce')
    if crest.isna().any():
        bad = df.loc[crest.isna(), columns['name']].tolist()
        raise MalformedInputError(f"Non-numeric or missing crest elevation for: {bad}")

    lat = pd.to_numeric(df[columns['latitude']], errors='coerce')
    lon = pd.to_numeric(df[columns['longitude']], errors='coerce')

    return [
        Structure(
            name=str(df[columns['name']].iloc[i]),
            hazard=str(df[columns['hazard']].iloc[i]),
            latitude=float(lat.iloc[i]),
            longitude=float(lon.iloc[i]),
            agency=str(df[columns['agency']].iloc[i]),
            crest_elevation=float(crest.iloc[i]),
        )
        for i in range(len(df))
    ]


def load_dam_info(info_path: str) -> List[Structure]:
    """
    Load dam metadata CSV.

    Parameters
    ----------
    info_path : str
        Path to the metadata CSV (e.g. Dam_info.csv)

    Returns
    -------
    List[Structure]
        One record per dam, in file order

    Raises
    ------
    MalformedInputError
        If the file is empty, unparsable, or lacks required columns
    """
    df = _read_csv(info_path, 'Metadata')
    structures = structures_from_frame(df)
    logger.info(f"Loaded metadata: {len(structures)} structures")
    return structures


def load_dam_data(data_path: str) -> pd.DataFrame:
    """
    Load the water-level table.

    The first column of the file is a row index and is dropped; every
    remaining column is one dam, every row one time step.

    Raises
    ------
    MalformedInputError
        If the file is empty, has no dam columns, or holds non-numeric values
    """
    df = _read_csv(data_path, 'Observation')
    df = df.iloc[:, 1:]
    if df.shape[1] == 0:
        raise MalformedInputError(f"Observation file has no structure columns: {data_path}")

    numeric = df.apply(pd.to_numeric, errors='coerce')
    bad = (numeric.isna() & df.notna()).any()
    if bad.any():
        raise MalformedInputError(
            f"Non-numeric water levels in columns: {', '.join(map(str, bad[bad].index))}"
        )

    n_missing = int(numeric.isna().sum().sum())
    if n_missing:
        logger.warning(f"Observation table has {n_missing} missing values")

    logger.info(f"Loaded observations: {numeric.shape[0]} time steps x {numeric.shape[1]} structures")
    return numeric.astype(float)


def check_consistency(structures: List[Structure], data: pd.DataFrame) -> None:
    """Raise MalformedInputError unless there is exactly one observation column per structure."""
    if len(structures) != data.shape[1]:
        raise MalformedInputError(
            f"Metadata lists {len(structures)} structures but observation table has "
            f"{data.shape[1]} columns"
        )


def series_for(data: pd.DataFrame, index: int) -> np.ndarray:
    """Water-level series of the index-th structure."""
    return data.iloc[:, index].to_numpy(dtype=float)


def write_results(df: pd.DataFrame, output_path: str, missing_marker: str = MISSING_MARKER) -> str:
    """Write a result table to CSV without the index; absent values become missing_marker."""
    out_dir = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(out_dir, exist_ok=True)
    df.to_csv(output_path, index=False, na_rep=missing_marker)
    logger.info(f"Saved {len(df)} rows x {df.shape[1]} columns to {output_path}")
    return output_path
