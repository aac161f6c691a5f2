"""
Progress Reconciliation and Forecasting Engine.

Matches dated progress entries to bill-of-quantities work items, builds
period progress reports and forecasts completion dates and revenue.
"""

__version__ = '1.0.0'
