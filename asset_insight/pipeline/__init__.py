"""Whole-snapshot analysis run combining every engine."""
