"""
Asset Insight: Reporting package.

Modules:
    formatters  ASCII terminal rendering for CLI output.
"""
