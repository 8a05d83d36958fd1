"""
analytics — Indicator calculations for the relative-rotation chart.

Modules
-------
    analytics.metrics   RS-Ratio / RS-Momentum derivation.
"""
