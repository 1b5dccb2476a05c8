"""
Asset Insight: Forecasting package.

Modules:
    demand    Equipment, software and maintenance demand buckets.
    planning  Planning advice and forecast roll-ups over those buckets.
"""
