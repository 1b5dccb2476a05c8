"""
Asset Insight: decision support for IT asset inventories.

Subpackages:
    analysis        Statistical helpers and the anomaly detector.
    recommendations Heuristic recommendations and the feedback log.
    forecasting     Month-by-month demand forecasts and planning advice.
    workflow        Conditional, auditable workflow execution.
    pipeline        Whole-snapshot analysis run.
"""

__version__ = "0.1.0"
