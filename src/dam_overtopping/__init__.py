"""
Dam Overtopping Frequency Analysis.

Rolling-window GEV frequency analysis of dam water levels. For every
monitored structure a GEV distribution is fitted to sliding 30-sample
windows plus one full 50-sample window, checked with a Kolmogorov-Smirnov
test, and used to estimate the probability that the water level exceeds
the crest elevation.
"""

__version__ = "0.1.0"
