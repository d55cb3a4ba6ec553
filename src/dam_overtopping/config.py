# src/dam_overtopping/config.py
"""
Module: config.py
Responsibilities:
- Fixed window geometry of the rolling analysis
- Run options shared by the CLI and the analysis driver
"""
from dataclasses import dataclass

# Window geometry
WINDOW_LENGTH = 30      # Length of each sliding window
FULL_SPAN_LENGTH = 50   # Length of the trailing full-span window
SLIDE_SPAN = FULL_SPAN_LENGTH - WINDOW_LENGTH  # Offsets covered by sliding windows

# Numerical constants
RETURN_PERIOD_CAP = 1e12  # Return period reported for zero exceedance probability
GUMBEL_TOL = 1e-6         # |xi| below this is labelled Gumbel
MAX_ITER = 2000           # Optimizer iteration bound per fit

# Output conventions
METADATA_COLUMNS = ['Name', 'Hazard', 'Lat', 'Lon', 'Agency']
MISSING_MARKER = 'NA'


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Options for one frequency analysis run.

    Parameters
    ----------
    step : int
        Stride between consecutive sliding windows, >= 1.
    workers : int
        Number of parallel workers (0=all cores, 1=serial).
    missing_marker : str
        Text written for absent statistics in CSV output.
    max_iter : int
        Iteration bound passed to the GEV optimizer.
    """
    step: int = 1
    workers: int = 1
    missing_marker: str = MISSING_MARKER
    max_iter: int = MAX_ITER

    def __post_init__(self):
        if not isinstance(self.step, int) or self.step < 1:
            raise ValueError(f"step must be a positive integer, got {self.step!r}")
        if self.workers < 0:
            raise ValueError(f"workers must be >= 0, got {self.workers}")
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be >= 1, got {self.max_iter}")

    @property
    def n_sliding(self) -> int:
        """Number of sliding windows."""
        return n_sliding_windows(self.step)

    @property
    def n_windows(self) -> int:
        """Total number of windows including the full-span window."""
        return n_windows(self.step)


def n_sliding_windows(step: int) -> int:
    """Number of sliding windows for a given stride."""
    if step < 1:
        raise ValueError(f"step must be >= 1, got {step}")
    return SLIDE_SPAN // step + 1


def n_windows(step: int) -> int:
    """Sliding windows plus the full-span window."""
    return n_sliding_windows(step) + 1
