"""
Rule-based trading forecasts: calibration, combination and backtesting.
"""

__version__ = "0.1.0"
