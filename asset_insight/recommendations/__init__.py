"""
Asset Insight: Recommendations package.

Modules:
    engine    Heuristic generators for equipment, software and company costs.
    learning  Bounded per-user log of reactions to recommendations.
"""
