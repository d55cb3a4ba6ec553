# src/dam_overtopping/errors.py
"""
Module: errors.py
Responsibilities:
- Exception types raised by the frequency analysis
"""


class OvertoppingError(Exception):
    """Base class for all dam_overtopping errors."""


class FitError(OvertoppingError, ValueError):
    """GEV maximum-likelihood fit failed or the sample was degenerate."""


class InsufficientDataError(OvertoppingError, ValueError):
    """Observation series too short for the requested window."""


class MalformedInputError(OvertoppingError, ValueError):
    """Metadata or observation tables are structurally inconsistent."""
