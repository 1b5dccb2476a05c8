"""
Tests for the engine output models (finding, recommendation, prediction,
workflow).

What we test
------------
  - Confidence outside [0, 1] is rejected on findings and recommendations.
  - Empty messages / reasoning are rejected.
  - Forecast buckets must cover months 1..N in order.
  - A budget-constrained bucket needs an original cost >= its capped cost.
  - Forecast serialization keeps subclass bucket fields.
  - Workflow definitions accept ``isActive`` and ``type`` aliases.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from asset_insight.models.finding import AnomalyFinding
from asset_insight.models.prediction import (
    DemandForecast,
    EquipmentDemandBucket,
    MaintenanceDemandBucket,
)
from asset_insight.models.recommendation import Recommendation
from asset_insight.models.workflow import WorkflowDefinition
from asset_insight.taxonomy.asset_taxonomy import (
    AnomalyType,
    Priority,
    RecommendationType,
    Severity,
)


def _finding(**overrides) -> AnomalyFinding:
    fields = dict(
        type=AnomalyType.LOW_USAGE,
        severity=Severity.MEDIUM,
        subject_id="eq-1",
        message="Low activity",
        confidence=0.7,
        recommendation="Check usage",
    )
    fields.update(overrides)
    return AnomalyFinding(**fields)


def _bucket(month: int, **overrides) -> EquipmentDemandBucket:
    fields = dict(
        month=month, estimated_cost=100.0, replacements=1, expansion=0,
        equipment_needed=1, preventive_maintenance=0, urgent_maintenance=0,
        maintenance_required=0, priority=Priority.LOW,
    )
    fields.update(overrides)
    return EquipmentDemandBucket(**fields)


class TestFinding:
    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_confidence_range(self, confidence):
        with pytest.raises(ValidationError):
            _finding(confidence=confidence)

    def test_empty_message(self):
        with pytest.raises(ValidationError):
            _finding(message="  ")


class TestRecommendation:
    def test_empty_reasoning(self):
        with pytest.raises(ValidationError):
            Recommendation(
                id="upgrade:eq-1", type=RecommendationType.UPGRADE, priority=Priority.MEDIUM,
                title="t", description="d", reasoning=[], confidence=0.5,
            )


class TestForecast:
    def test_months_must_be_contiguous(self):
        with pytest.raises(ValidationError):
            DemandForecast(
                kind="equipment", horizon_months=2,
                buckets=[_bucket(1), _bucket(3)], confidence=0.5,
            )

    def test_constrained_needs_original_cost(self):
        with pytest.raises(ValidationError):
            _bucket(1, budget_constrained=True)

    def test_original_cost_not_below_capped(self):
        with pytest.raises(ValidationError):
            _bucket(1, budget_constrained=True, original_cost=50.0)

    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError):
            _bucket(1, estimated_cost=-1.0)

    def test_serializes_subclass_fields(self):
        bucket = MaintenanceDemandBucket(
            month=1, estimated_cost=150.0, preventive_maintenance=1,
            corrective_maintenance=0, urgent_repairs=0, technician_hours=2.0,
        )
        forecast = DemandForecast(
            kind="maintenance", horizon_months=1, buckets=[bucket], confidence=1.0,
        )
        dumped = forecast.model_dump(mode="json")
        assert dumped["buckets"][0]["technician_hours"] == 2.0


class TestWorkflowDefinition:
    def test_aliases(self):
        definition = WorkflowDefinition.model_validate({
            "id": "wf",
            "name": "WF",
            "isActive": True,
            "actions": [{"type": "update_status", "params": {"item_id": "x"}}],
        })
        assert definition.is_active is True
        assert definition.actions[0].action == "update_status"
        assert definition.steps == []

    def test_inactive_by_default(self):
        assert WorkflowDefinition(id="wf", name="WF").is_active is False
