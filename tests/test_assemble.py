"""
Unit tests for assemble module.
"""

import sys
from pathlib import Path

import numpy as np
import pytest
import xarray as xr

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dam_overtopping.assemble import (
    assemble, parameter_table, return_period_table, to_dataset
)
from dam_overtopping.data_io import Structure
from dam_overtopping.errors import MalformedInputError
from dam_overtopping.rolling import WindowStatistic
from dam_overtopping.univariate import FitResult


@pytest.fixture
def structures():
    return [
        Structure("Alpha Dam", "High", 35.1, -97.2, "USACE", 100.0),
        Structure("Beta Dam", "Low", 36.0, -96.5, "State", 200.0),
    ]


@pytest.fixture
def stats():
    fit = FitResult(loc=90.0, scale=10.0, shape=0.1)
    alpha = [
        WindowStatistic(window=0, ks_pvalue=0.8, overtopping_risk=0.25, fit=fit),
        WindowStatistic(window=1),
        WindowStatistic(window=2, ks_pvalue=0.6, overtopping_risk=0.0, fit=fit),
    ]
    beta = [WindowStatistic(window=j) for j in range(3)]
    return [alpha, beta]


def test_assemble_columns_and_order(structures, stats):
    """Test header layout and one row per structure in input order."""
    df = assemble(structures, stats)

    assert list(df.columns) == [
        'Name', 'Hazard', 'Lat', 'Lon', 'Agency',
        'KS_PValue_W1', 'KS_PValue_W2', 'KS_PValue_W3',
        'OverRisk_W1', 'OverRisk_W2', 'OverRisk_W3',
    ]
    assert df.shape == (2, 5 + 2 * 3)
    assert df['Name'].tolist() == ['Alpha Dam', 'Beta Dam']
    assert df.loc[0, 'KS_PValue_W1'] == 0.8
    assert df.loc[0, 'OverRisk_W3'] == 0.0


def test_assemble_absent_is_missing_not_zero(structures, stats):
    """Test absent statistics become NaN rather than 0."""
    df = assemble(structures, stats)

    assert np.isnan(df.loc[0, 'KS_PValue_W2'])
    assert np.isnan(df.loc[0, 'OverRisk_W2'])
    # Structure with all windows absent is still present
    row = df.loc[1]
    assert row['Name'] == 'Beta Dam'
    assert row.iloc[5:].isna().all()


def test_assemble_from_mapping(structures, stats):
    """Test statistics keyed by Structure are placed by structure order."""
    mapping = {structures[1]: stats[1], structures[0]: stats[0]}
    df = assemble(structures, mapping)
    assert df['Name'].tolist() == ['Alpha Dam', 'Beta Dam']
    assert df.loc[0, 'OverRisk_W1'] == 0.25


def test_assemble_resequences_windows(structures, stats):
    """Test statistics delivered out of window order are put back in order."""
    shuffled = [list(reversed(stats[0])), stats[1]]
    df = assemble(structures, shuffled)
    assert df.loc[0, 'KS_PValue_W1'] == 0.8
    assert df.loc[0, 'KS_PValue_W3'] == 0.6


def test_assemble_malformed(structures, stats):
    """Test inconsistent inputs raise MalformedInputError."""
    with pytest.raises(MalformedInputError):
        assemble(structures, stats[:1])
    with pytest.raises(MalformedInputError):
        assemble(structures, [stats[0], stats[1][:2]])
    with pytest.raises(MalformedInputError):
        assemble(structures, {structures[0]: stats[0]})


def test_return_period_table(structures, stats):
    """Test return periods derived from overtopping probabilities."""
    rp = return_period_table(assemble(structures, stats))

    assert list(rp.columns[:5]) == ['Name', 'Hazard', 'Lat', 'Lon', 'Agency']
    assert rp.loc[0, 'ReturnPeriod_W1'] == 4.0
    assert np.isnan(rp.loc[0, 'ReturnPeriod_W2'])
    assert rp.loc[0, 'ReturnPeriod_W3'] == 1e12
    assert rp.loc[1, ['ReturnPeriod_W1', 'ReturnPeriod_W2', 'ReturnPeriod_W3']].isna().all()


def test_parameter_table(structures, stats):
    """Test the long table of fitted parameters."""
    params = parameter_table(structures, stats)

    assert len(params) == 6
    assert params.loc[0, 'Location'] == 90.0
    assert params.loc[0, 'Window'] == 1
    assert np.isnan(params.loc[1, 'Shape'])
    assert params['Name'].tolist()[3:] == ['Beta Dam'] * 3


def test_to_dataset(structures, stats):
    """Test the labelled result dataset."""
    ds = to_dataset(structures, stats)

    assert isinstance(ds, xr.Dataset)
    assert ds['overtopping_risk'].dims == ('structure', 'window')
    assert ds.sizes['structure'] == 2
    assert ds.sizes['window'] == 3
    assert ds['crest_elevation'].values.tolist() == [100.0, 200.0]
    assert ds['full_span'].values.tolist() == [False, False, True]
    assert float(ds['return_period'].values[0, 0]) == 4.0
    assert np.isnan(ds['ks_pvalue'].values[1]).all()


if __name__ == "__main__":
    pytest.main(["-xvs", __file__])
