"""
Second pass over a finished forecast: planning advice and roll-up summary.

Each function reads only the bucket list it is given, so it can be re-run
over a stored forecast without the source snapshot.

Rules
-----
Equipment
    urgent_planning      any month with priority high                → high
    budget_optimization  average monthly cost > 5000                 → medium
Software
    license_renewal      renewals over the horizon > 0               → high
    license_expansion    new licenses over the horizon > 0           → medium
Maintenance
    workload_management  average technician hours per month > 40    → high
    preventive_strategy  months with more than 5 urgent repairs      → medium
"""

from __future__ import annotations

from typing import Optional, Sequence

from asset_insight.config import DemandConfig
from asset_insight.models.prediction import (
    EquipmentDemandBucket,
    ForecastSummary,
    MaintenanceDemandBucket,
    PlanningRecommendation,
    PredictionBucket,
    SoftwareDemandBucket,
)
from asset_insight.taxonomy.asset_taxonomy import PlanningType, Priority


def _average_cost(buckets: Sequence[PredictionBucket]) -> float:
    if not buckets:
        return 0.0
    return sum(b.estimated_cost for b in buckets) / len(buckets)


def equipment_planning(
    buckets: Sequence[EquipmentDemandBucket],
    config: Optional[DemandConfig] = None,
) -> list[PlanningRecommendation]:
    cfg = config or DemandConfig()
    recs: list[PlanningRecommendation] = []

    high_months = [b for b in buckets if b.priority is Priority.HIGH]
    if high_months:
        recs.append(PlanningRecommendation(
            type=PlanningType.URGENT_PLANNING,
            priority=Priority.HIGH,
            title="Urgent planning required",
            message=f"{len(high_months)} month(s) need priority attention",
            actions=[
                "Review the budget for high-demand months",
                "Plan purchases ahead of time",
                "Consider preventive maintenance contracts",
            ],
        ))

    avg_cost = _average_cost(buckets)
    if avg_cost > cfg.planning_avg_cost_threshold:
        recs.append(PlanningRecommendation(
            type=PlanningType.BUDGET_OPTIMIZATION,
            priority=Priority.MEDIUM,
            title="Budget optimization",
            message=f"Average monthly cost: ${avg_cost:.2f}",
            actions=[
                "Consider bulk purchases for volume discounts",
                "Evaluate leasing options",
                "Run a preventive maintenance program",
            ],
        ))
    return recs


def software_planning(buckets: Sequence[SoftwareDemandBucket]) -> list[PlanningRecommendation]:
    recs: list[PlanningRecommendation] = []

    total_renewals = sum(b.renewals_required for b in buckets)
    if total_renewals > 0:
        recs.append(PlanningRecommendation(
            type=PlanningType.LICENSE_RENEWAL,
            priority=Priority.HIGH,
            title="License renewals",
            message=f"{total_renewals} license renewal(s) required",
            actions=[
                "Schedule renewals in advance",
                "Negotiate early-renewal discounts",
                "Evaluate cheaper alternatives",
            ],
        ))

    total_new = sum(b.licenses_needed for b in buckets)
    if total_new > 0:
        recs.append(PlanningRecommendation(
            type=PlanningType.LICENSE_EXPANSION,
            priority=Priority.MEDIUM,
            title="License expansion",
            message=f"{total_new} new license(s) needed",
            actions=[
                "Analyze current usage patterns",
                "Compare per-user and per-device licensing",
                "Evaluate cloud licensing options",
            ],
        ))
    return recs


def maintenance_planning(
    buckets: Sequence[MaintenanceDemandBucket],
    config: Optional[DemandConfig] = None,
) -> list[PlanningRecommendation]:
    cfg = config or DemandConfig()
    recs: list[PlanningRecommendation] = []

    avg_hours = sum(b.technician_hours for b in buckets) / len(buckets) if buckets else 0.0
    if avg_hours > cfg.workload_hours_threshold:
        recs.append(PlanningRecommendation(
            type=PlanningType.WORKLOAD_MANAGEMENT,
            priority=Priority.HIGH,
            title="Workload management",
            message=f"Average of {avg_hours:.1f} technician hours per month",
            actions=[
                "Consider hiring additional technicians",
                "Increase preventive maintenance frequency",
                "Evaluate external service contracts",
            ],
        ))

    urgent_months = [b for b in buckets if b.urgent_repairs > cfg.urgent_repairs_threshold]
    if urgent_months:
        recs.append(PlanningRecommendation(
            type=PlanningType.PREVENTIVE_STRATEGY,
            priority=Priority.MEDIUM,
            title="Preventive strategy",
            message=f"{len(urgent_months)} month(s) with high urgent-repair demand",
            actions=[
                "Run a preventive maintenance program",
                "Replace critical equipment before it fails",
                "Train staff in basic maintenance",
            ],
        ))
    return recs


def summarize_forecast(
    buckets: Sequence[PredictionBucket],
    config: Optional[DemandConfig] = None,
) -> ForecastSummary:
    """Total and average cost, high-priority months and a buffered budget figure.

    Only equipment buckets carry a priority; for the other kinds
    ``high_priority_months`` is 0.
    """
    cfg = config or DemandConfig()
    total = sum(b.estimated_cost for b in buckets)
    avg = _average_cost(buckets)
    high = sum(1 for b in buckets if getattr(b, "priority", None) is Priority.HIGH)
    return ForecastSummary(
        total_cost=total,
        average_monthly_cost=avg,
        high_priority_months=high,
        planning_horizon=len(buckets),
        budget_recommendation=avg * cfg.budget_buffer,
    )
