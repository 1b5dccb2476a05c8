"""
Demand forecast output models.

A forecast is a fixed-length, month-ordered list of prediction buckets (one
per forecasted month, months ``1..N``) plus the confidence of the forecast,
the intermediate factors it was built from, and planning advice from a
second pass over the finished buckets.

Three bucket shapes exist, one per forecast kind:

  - ``EquipmentDemandBucket``   replacement + expansion units and maintenance
                                jobs, optionally capped by a monthly budget.
  - ``SoftwareDemandBucket``    new licenses and renewals.
  - ``MaintenanceDemandBucket`` preventive / corrective / urgent jobs and
                                the technician hours they need.

All bucket costs are non-negative; the validators enforce it.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, SerializeAsAny, field_validator, model_validator

from asset_insight.taxonomy.asset_taxonomy import PlanningType, Priority

ForecastKind = Literal["equipment", "software", "maintenance"]


class PredictionBucket(BaseModel):
    """Fields shared by every monthly bucket."""

    model_config = ConfigDict(frozen=True)

    month: int
    estimated_cost: float

    @field_validator("month")
    @classmethod
    def validate_month(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"month must be >= 1, got {v}.")
        return v

    @field_validator("estimated_cost")
    @classmethod
    def validate_cost(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"estimated_cost must be non-negative, got {v}.")
        return v


class EquipmentDemandBucket(PredictionBucket):
    """One month of equipment demand.

    Attributes:
        replacements: Units expected to need replacement (cumulative pressure).
        expansion: New units driven by growth.
        equipment_needed: ``replacements + expansion``.
        preventive_maintenance: Assets overdue for preventive maintenance.
        urgent_maintenance: Assets in ``Poor`` condition.
        maintenance_required: ``preventive + urgent``.
        priority: Month priority tier.
        budget_constrained: ``True`` when ``estimated_cost`` was capped.
        original_cost: Uncapped cost; set only when ``budget_constrained``.
    """

    replacements: int
    expansion: int
    equipment_needed: int
    preventive_maintenance: int
    urgent_maintenance: int
    maintenance_required: int
    priority: Priority
    budget_constrained: bool = False
    original_cost: Optional[float] = None

    @model_validator(mode="after")
    def validate_budget_fields(self) -> "EquipmentDemandBucket":
        if self.budget_constrained and self.original_cost is None:
            raise ValueError("original_cost is required when budget_constrained is set.")
        if self.original_cost is not None and self.original_cost < self.estimated_cost:
            raise ValueError(
                f"original_cost ({self.original_cost}) must be >= "
                f"estimated_cost ({self.estimated_cost})."
            )
        return self


class SoftwareDemandBucket(PredictionBucket):
    """One month of software license demand."""

    licenses_needed: int
    renewals_required: int
    new_software: int = 0


class MaintenanceDemandBucket(PredictionBucket):
    """One month of maintenance workload."""

    preventive_maintenance: int
    corrective_maintenance: int
    urgent_repairs: int
    technician_hours: float


class PlanningRecommendation(BaseModel):
    """Planning advice derived from a finished forecast."""

    model_config = ConfigDict(frozen=True)

    type: PlanningType
    priority: Priority
    title: str
    message: str
    actions: list[str]


class ForecastSummary(BaseModel):
    """Roll-up of a bucket list.

    Attributes:
        total_cost: Sum of ``estimated_cost`` over all months.
        average_monthly_cost: ``total_cost / horizon``.
        high_priority_months: Months with ``priority == high`` (equipment only).
        planning_horizon: Number of months.
        budget_recommendation: Average monthly cost with a safety buffer.
    """

    model_config = ConfigDict(frozen=True)

    total_cost: float
    average_monthly_cost: float
    high_priority_months: int
    planning_horizon: int
    budget_recommendation: float


class DemandForecast(BaseModel):
    """A complete fixed-horizon forecast.

    Attributes:
        kind: ``equipment``, ``software`` or ``maintenance``.
        horizon_months: Number of buckets.
        buckets: Month-ordered buckets ``1..horizon_months``.
        confidence: Forecast confidence in ``[0, 1]``.
        factors: Intermediate inputs (age distribution, schedules ...).
        recommendations: Planning advice from the second pass.
    """

    model_config = ConfigDict(frozen=True)

    kind: ForecastKind
    horizon_months: int
    buckets: list[SerializeAsAny[PredictionBucket]]
    confidence: float
    factors: dict[str, Any] = {}
    recommendations: list[PlanningRecommendation] = []

    @model_validator(mode="after")
    def validate_forecast_consistency(self) -> "DemandForecast":
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0.0, 1.0], got {self.confidence}.")
        months = [b.month for b in self.buckets]
        if months != list(range(1, self.horizon_months + 1)):
            raise ValueError(
                f"buckets must cover months 1..{self.horizon_months} in order, got {months}."
            )
        return self
