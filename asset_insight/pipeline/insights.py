"""
Whole-snapshot analysis run.

The ``InsightsRunner`` runs every analysis engine over one
``CompanySnapshot`` in a fixed sequence:

  1. Anomalies:         ``AnomalyDetector.detect_all`` + summary.
  2. Recommendations:   ``RecommendationEngine.generate_all``.
  3. Demand:            equipment, software and maintenance forecasts,
                        each with its roll-up summary.

Failure isolation
-----------------
The engines themselves reduce bad input to "no finding".  Anything that does
escape a step (a misconfigured horizon, a malformed snapshot field) is
recorded in ``errors`` and the remaining steps still run:

  - no step failed:    status "success"
  - some steps failed: status "partial"
  - every step failed: status "failed"

The workflow engine is not part of this run; workflows are triggered
separately by name.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

from asset_insight.analysis.anomaly import AnomalyDetector
from asset_insight.config import AppConfig
from asset_insight.forecasting.demand import DemandPredictionEngine
from asset_insight.models.asset import CompanySnapshot
from asset_insight.models.finding import AnomalyFinding, AnomalySummary
from asset_insight.models.prediction import DemandForecast, ForecastSummary
from asset_insight.models.recommendation import Recommendation
from asset_insight.recommendations.engine import RecommendationEngine
from asset_insight.utils.time_utils import resolve_as_of, utcnow

logger = logging.getLogger(__name__)

_STEP_COUNT = 3


def load_snapshot(path: Path) -> CompanySnapshot:
    """Read a JSON snapshot file into a validated ``CompanySnapshot``.

    Raises:
        FileNotFoundError: ``path`` does not exist.
        json.JSONDecodeError: The file is not valid JSON.
        pydantic.ValidationError: The payload does not fit the snapshot shape.
    """
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    return CompanySnapshot.model_validate(payload)


# ── Result type ───────────────────────────────────────────────────────────────

@dataclass
class InsightsResult:
    """Everything one run produced.

    Attributes:
        run_id:             Random id for log correlation.
        as_of:              Reference date every engine used.
        started_at:         UTC datetime when the run started.
        finished_at:        UTC datetime when the run finished.
        findings:           Anomaly findings, in detection order.
        anomaly_summary:    Findings counted by severity and type.
        recommendations:    Generated recommendations.
        forecasts:          Forecast per kind (equipment/software/maintenance).
        forecast_summaries: Roll-up per forecast kind.
        errors:             Messages of steps that failed.
        status:             "success", "partial" or "failed".
    """

    run_id:             str
    as_of:              date
    started_at:         Optional[datetime]          = None
    finished_at:        Optional[datetime]          = None
    findings:           list[AnomalyFinding]        = field(default_factory=list)
    anomaly_summary:    Optional[AnomalySummary]    = None
    recommendations:    list[Recommendation]        = field(default_factory=list)
    forecasts:          dict[str, DemandForecast]   = field(default_factory=dict)
    forecast_summaries: dict[str, ForecastSummary]  = field(default_factory=dict)
    errors:             list[str]                   = field(default_factory=list)
    status:             str                         = "started"

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "run_id": self.run_id,
            "as_of": self.as_of.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "status": self.status,
            "errors": list(self.errors),
            "anomalies": {
                "summary": (
                    self.anomaly_summary.model_dump(mode="json") if self.anomaly_summary else None
                ),
                "findings": [f.model_dump(mode="json") for f in self.findings],
            },
            "recommendations": [r.model_dump(mode="json") for r in self.recommendations],
            "forecasts": {
                kind: {
                    "forecast": fc.model_dump(mode="json"),
                    "summary": (
                        self.forecast_summaries[kind].model_dump(mode="json")
                        if kind in self.forecast_summaries else None
                    ),
                }
                for kind, fc in self.forecasts.items()
            },
        }


# ── Runner ────────────────────────────────────────────────────────────────────

class InsightsRunner:
    """Runs anomaly detection, recommendations and demand forecasts together.

    Args:
        config: Application config; each engine receives its own section.
        recommender: Optional pre-built engine (e.g. one sharing a
            ``LearningStore`` with the calling service).
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        recommender: Optional[RecommendationEngine] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.detector = AnomalyDetector(self.config.anomaly)
        self.recommender = recommender or RecommendationEngine(self.config.recommendations)
        self.predictor = DemandPredictionEngine(self.config.demand)

    def run(
        self,
        snapshot: CompanySnapshot,
        horizon_months: Optional[int] = None,
    ) -> InsightsResult:
        """Analyse one snapshot.

        The snapshot's ``as_of`` is pinned up front, so every engine measures
        ages and elapsed days against the same date even across midnight.
        """
        as_of = resolve_as_of(snapshot.as_of)
        if snapshot.as_of is None:
            snapshot = snapshot.model_copy(update={"as_of": as_of})

        result = InsightsResult(run_id=uuid4().hex[:12], as_of=as_of, started_at=utcnow())
        logger.info("Insights run starting | run_id=%s | as_of=%s", result.run_id, as_of)

        try:
            result.findings = self.detector.detect_all(snapshot)
            result.anomaly_summary = self.detector.summarize(result.findings)
        except Exception as exc:
            self._record_failure(result, "anomalies", exc)

        try:
            result.recommendations = self.recommender.generate_all(snapshot)
        except Exception as exc:
            self._record_failure(result, "recommendations", exc)

        try:
            forecasts = {
                "equipment": self.predictor.predict_equipment_demand(snapshot, horizon_months),
                "software": self.predictor.predict_software_demand(snapshot, horizon_months),
                "maintenance": self.predictor.predict_maintenance_demand(snapshot, horizon_months),
            }
            result.forecasts = forecasts
            result.forecast_summaries = {
                kind: self.predictor.summarize_forecast(fc.buckets)
                for kind, fc in forecasts.items()
            }
        except Exception as exc:
            self._record_failure(result, "demand", exc)

        if not result.errors:
            result.status = "success"
        elif len(result.errors) < _STEP_COUNT:
            result.status = "partial"
        else:
            result.status = "failed"
        result.finished_at = utcnow()

        logger.info(
            "Insights run %s | run_id=%s | findings=%d recommendations=%d forecasts=%d",
            result.status, result.run_id, len(result.findings),
            len(result.recommendations), len(result.forecasts),
        )
        return result

    @staticmethod
    def _record_failure(result: InsightsResult, step: str, exc: Exception) -> None:
        result.errors.append(f"{step}: {exc}")
        logger.error("Insights step [%s] FAILED: %s | run_id=%s", step, exc, result.run_id)
