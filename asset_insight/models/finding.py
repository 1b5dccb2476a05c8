"""
Anomaly finding models.

``AnomalyFinding`` is one statistically flagged deviation produced by the
``AnomalyDetector``.  Findings are created fresh per detection call and are
never persisted by the engine.

``AnomalySummary`` aggregates a list of findings by severity and type for
dashboards and the CLI.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from asset_insight.taxonomy.asset_taxonomy import AnomalyType, Severity


class AnomalyFinding(BaseModel):
    """A flagged deviation from an expected pattern.

    Attributes:
        type: Detector that produced the finding.
        severity: ``high``, ``medium`` or ``low``.
        subject_id: Asset id the finding is about; ``None`` for company-level
            findings (cost trend, budget variance).
        message: One-line human-readable description.
        confidence: Detector confidence in ``[0, 1]``.
        recommendation: Suggested follow-up.
        data: Supporting numbers (averages, z-scores, ratios ...).
    """

    model_config = ConfigDict(frozen=True)

    type: AnomalyType
    severity: Severity
    subject_id: Optional[str] = None
    message: str
    confidence: float
    recommendation: str
    data: dict[str, Any] = {}

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be in [0.0, 1.0], got {v}.")
        return v

    @field_validator("message", "recommendation")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("message and recommendation must not be empty.")
        return v.strip()


class AnomalySummary(BaseModel):
    """Counts of findings by severity and by type."""

    model_config = ConfigDict(frozen=True)

    total: int
    by_severity: dict[str, int]
    by_type: dict[str, int]
