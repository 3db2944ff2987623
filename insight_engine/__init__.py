"""Analytics and insight engine for business time series."""

__version__ = "1.0.0"
