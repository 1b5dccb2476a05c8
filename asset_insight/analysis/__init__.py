"""
Asset Insight: Analysis package.

Modules:
    stats    Mean, population std-dev, z-score and related helpers.
    anomaly  Equipment, software and company-cost anomaly detectors.
"""
