"""
Multi-factor monthly demand forecasting for equipment, software and maintenance.

Every forecast has the same shape: a monthly loop over ``1..horizon``
producing one bucket per month, a confidence score, the intermediate factors
the buckets were built from, and planning advice from ``planning.py``.

Equipment demand
----------------
    1. Bucket equipment by age: 0-2, 2-4, 4-6, 6-8, 8+ years.
    2. replacements[m] = ceil(n_6_8 * 0.2 * m/12) + ceil(n_8plus * 0.4 * m/12)
       (cumulative replacement pressure, non-decreasing in m).
    3. expansion[m]    = max(0, ceil(avg * (1 + growth * m/12) - avg)),
       avg = mean historical monthly purchases (0 when none).
    4. maintenance     = assets > 180 days since last maintenance (preventive)
                         + assets in Poor condition (urgent).
    5. cost = equipment_needed * 1000 + maintenance_required * 200;
       priority high if needed > 10 or maintenance > 20, medium if > 5 / > 10.
    6. With a budget, each month's cost is capped at budget / 12; capped
       buckets carry ``budget_constrained`` and the uncapped ``original_cost``.

    confidence = (data_quality + historical_consistency) / 2
        data_quality           = 0.5 * share of assets with purchase date,
                                 brand and model, + 0.5 with > 6 history points
        historical_consistency = max(0, 1 - CV(history)); 0.3 with < 3 points

Software demand
---------------
    licenses_needed[m]  = sum over titles with usage > 0.8 of ceil(stock * 0.2)
    renewals_required[m]= titles whose months-to-expiry <= m
    cost = 100 * licenses_needed + 50 * renewals_required

    confidence = (share of titles with expiry and stock
                  + 0.8 if usage telemetry supplied else 0.4) / 2

Maintenance demand
------------------
    preventive  days since maintenance > 180 or age > 3 years
    corrective  status Fair
    urgent      status Poor
    cost  = 150 / 300 / 500 per job; hours = 2 / 4 / 8 per job

    confidence = share of equipment with a non-empty traceability log

The unit costs are stated planning assumptions (``DemandConfig``), not values
derived from data.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Optional, Sequence

from asset_insight.analysis.stats import clamp, coefficient_of_variation, mean
from asset_insight.config import DemandConfig
from asset_insight.forecasting.planning import (
    equipment_planning,
    maintenance_planning,
    software_planning,
    summarize_forecast,
)
from asset_insight.models.asset import AssetRecord, CompanySnapshot
from asset_insight.models.prediction import (
    DemandForecast,
    EquipmentDemandBucket,
    ForecastSummary,
    MaintenanceDemandBucket,
    PredictionBucket,
    SoftwareDemandBucket,
)
from asset_insight.taxonomy.asset_taxonomy import AssetStatus, Priority
from asset_insight.utils.time_utils import months_between, resolve_as_of

logger = logging.getLogger(__name__)

# (label, lower bound inclusive, upper bound exclusive) in years
AGE_BUCKETS: tuple[tuple[str, float, float], ...] = (
    ("0-2", 0.0, 2.0),
    ("2-4", 2.0, 4.0),
    ("4-6", 4.0, 6.0),
    ("6-8", 6.0, 8.0),
    ("8+",  8.0, math.inf),
)


# ── Factor helpers (pure) ─────────────────────────────────────────────────────

def age_distribution(assets: Sequence[AssetRecord], as_of: date) -> dict[str, int]:
    """Count assets per age bucket.  Assets without a purchase date are skipped."""
    dist = {label: 0 for label, _, _ in AGE_BUCKETS}
    for asset in assets:
        if asset.purchase_date is None:
            continue
        age = asset.age_years(as_of)
        for label, lo, hi in AGE_BUCKETS:
            if lo <= age < hi:
                dist[label] += 1
                break
        else:
            # Purchase date after as_of: treat as brand new.
            dist["0-2"] += 1
    return dist


def replacement_schedule(
    distribution: dict[str, int],
    horizon: int,
    config: DemandConfig,
) -> list[int]:
    """Expected cumulative replacements for months ``1..horizon``."""
    return [
        math.ceil(distribution["6-8"] * config.replacement_rate_6_8 * month / 12)
        + math.ceil(distribution["8+"] * config.replacement_rate_8_plus * month / 12)
        for month in range(1, horizon + 1)
    ]


def expansion_schedule(
    historical_purchases: Sequence[float],
    growth_rate: float,
    horizon: int,
) -> list[int]:
    """Growth-driven new units for months ``1..horizon``."""
    avg = mean(historical_purchases)
    return [
        max(0, math.ceil(avg * (1 + growth_rate * month / 12) - avg))
        for month in range(1, horizon + 1)
    ]


def _days_since_maintenance(asset: AssetRecord, as_of: date) -> int:
    days = asset.days_since_maintenance(as_of, fallback_to_purchase=True)
    return days if days is not None else 0


def equipment_confidence(
    assets: Sequence[AssetRecord],
    historical_purchases: Sequence[float],
    config: DemandConfig,
) -> float:
    """Average of data quality and historical consistency, in ``[0, 1]``."""
    quality = 0.0
    if assets:
        quality += 0.5 * sum(1 for a in assets if a.is_complete()) / len(assets)
    if len(historical_purchases) > config.rich_history_points:
        quality += 0.5
    quality = min(quality, 1.0)

    if len(historical_purchases) < config.min_history_points:
        consistency = config.sparse_history_consistency
    else:
        consistency = max(0.0, 1.0 - coefficient_of_variation(historical_purchases))

    return clamp((quality + consistency) / 2)


def _equipment_priority(needed: int, maintenance: int, config: DemandConfig) -> Priority:
    if needed > config.high_equipment_needed or maintenance > config.high_maintenance_required:
        return Priority.HIGH
    if needed > config.medium_equipment_needed or maintenance > config.medium_maintenance_required:
        return Priority.MEDIUM
    return Priority.LOW


# ── Engine ────────────────────────────────────────────────────────────────────

class DemandPredictionEngine:
    """Builds fixed-horizon monthly forecasts from a ``CompanySnapshot``.

    Stateless; identical snapshots produce identical forecasts.

    Args:
        config: Horizon, rates and unit costs.  Defaults to ``DemandConfig()``.
    """

    def __init__(self, config: Optional[DemandConfig] = None) -> None:
        self.config = config or DemandConfig()

    def _horizon(self, horizon_months: Optional[int]) -> int:
        horizon = self.config.horizon_months if horizon_months is None else horizon_months
        if horizon < 1:
            raise ValueError(f"horizon_months must be >= 1, got {horizon}.")
        return horizon

    def predict_equipment_demand(
        self,
        snapshot: CompanySnapshot,
        horizon_months: Optional[int] = None,
    ) -> DemandForecast:
        cfg = self.config
        horizon = self._horizon(horizon_months)
        as_of = resolve_as_of(snapshot.as_of)
        assets = snapshot.equipment

        dist = age_distribution(assets, as_of)
        replacements = replacement_schedule(dist, horizon, cfg)
        expansion = expansion_schedule(snapshot.historical_purchases, snapshot.growth_rate, horizon)
        preventive = sum(
            1 for a in assets if _days_since_maintenance(a, as_of) > cfg.maintenance_interval_days
        )
        urgent = sum(1 for a in assets if a.status is AssetStatus.POOR)
        monthly_budget = snapshot.budget / 12 if snapshot.budget is not None else None

        buckets: list[EquipmentDemandBucket] = []
        for i in range(horizon):
            needed = replacements[i] + expansion[i]
            maintenance = preventive + urgent
            cost = needed * cfg.equipment_unit_cost + maintenance * cfg.maintenance_unit_cost
            constrained = monthly_budget is not None and cost > monthly_budget
            buckets.append(EquipmentDemandBucket(
                month=i + 1,
                replacements=replacements[i],
                expansion=expansion[i],
                equipment_needed=needed,
                preventive_maintenance=preventive,
                urgent_maintenance=urgent,
                maintenance_required=maintenance,
                estimated_cost=monthly_budget if constrained else cost,
                priority=_equipment_priority(needed, maintenance, cfg),
                budget_constrained=constrained,
                original_cost=cost if constrained else None,
            ))

        forecast = DemandForecast(
            kind="equipment",
            horizon_months=horizon,
            buckets=buckets,
            confidence=equipment_confidence(assets, snapshot.historical_purchases, cfg),
            factors={
                "age_distribution": dist,
                "replacement_needs": replacements,
                "expansion_needs": expansion,
                "average_monthly_purchases": mean(snapshot.historical_purchases),
                "preventive_maintenance": preventive,
                "urgent_maintenance": urgent,
                "monthly_budget": monthly_budget,
            },
            recommendations=equipment_planning(buckets, cfg),
        )
        logger.debug(
            "Equipment forecast: %d months, %d constrained, confidence %.2f",
            horizon, sum(1 for b in buckets if b.budget_constrained), forecast.confidence,
        )
        return forecast

    def predict_software_demand(
        self,
        snapshot: CompanySnapshot,
        horizon_months: Optional[int] = None,
    ) -> DemandForecast:
        cfg = self.config
        horizon = self._horizon(horizon_months)
        as_of = resolve_as_of(snapshot.as_of)
        titles = snapshot.software

        # Both quantities are independent of the month except via the expiry test.
        licenses_needed = 0
        high_usage: list[str] = []
        for sw in titles:
            ratio = sw.usage_ratio()
            if ratio is not None and ratio > cfg.license_high_usage:
                licenses_needed += math.ceil(sw.stock * cfg.license_growth_share)
                high_usage.append(sw.id)

        months_to_expiry: dict[str, float] = {}
        for sw in titles:
            if sw.expiry_date is not None:
                months_to_expiry[sw.id] = months_between(as_of, sw.expiry_date)

        buckets: list[SoftwareDemandBucket] = []
        for month in range(1, horizon + 1):
            renewals = sum(1 for m in months_to_expiry.values() if m <= month)
            buckets.append(SoftwareDemandBucket(
                month=month,
                licenses_needed=licenses_needed,
                renewals_required=renewals,
                new_software=0,
                estimated_cost=(
                    licenses_needed * cfg.license_new_cost
                    + renewals * cfg.license_renewal_cost
                ),
            ))

        if titles:
            complete = sum(1 for s in titles if s.expiry_date and s.stock) / len(titles)
        else:
            complete = 0.0
        usage_quality = (
            cfg.usage_data_present_quality if snapshot.current_usage
            else cfg.usage_data_absent_quality
        )

        return DemandForecast(
            kind="software",
            horizon_months=horizon,
            buckets=buckets,
            confidence=clamp((complete + usage_quality) / 2),
            factors={
                "high_usage_titles": high_usage,
                "months_to_expiry": months_to_expiry,
            },
            recommendations=software_planning(buckets),
        )

    def predict_maintenance_demand(
        self,
        snapshot: CompanySnapshot,
        horizon_months: Optional[int] = None,
    ) -> DemandForecast:
        cfg = self.config
        horizon = self._horizon(horizon_months)
        as_of = resolve_as_of(snapshot.as_of)
        assets = snapshot.equipment

        preventive = sum(
            1 for a in assets
            if _days_since_maintenance(a, as_of) > cfg.maintenance_interval_days
            or a.age_years(as_of) > cfg.preventive_age_years
        )
        corrective = sum(1 for a in assets if a.status is AssetStatus.FAIR)
        urgent = sum(1 for a in assets if a.status is AssetStatus.POOR)
        cost = (
            preventive * cfg.preventive_cost
            + corrective * cfg.corrective_cost
            + urgent * cfg.urgent_cost
        )
        hours = (
            preventive * cfg.preventive_hours
            + corrective * cfg.corrective_hours
            + urgent * cfg.urgent_hours
        )

        buckets = [
            MaintenanceDemandBucket(
                month=month,
                preventive_maintenance=preventive,
                corrective_maintenance=corrective,
                urgent_repairs=urgent,
                estimated_cost=cost,
                technician_hours=hours,
            )
            for month in range(1, horizon + 1)
        ]

        if assets:
            confidence = sum(1 for a in assets if a.traceability) / len(assets)
        else:
            confidence = 0.0

        return DemandForecast(
            kind="maintenance",
            horizon_months=horizon,
            buckets=buckets,
            confidence=clamp(confidence),
            factors={
                "preventive_maintenance": preventive,
                "corrective_maintenance": corrective,
                "urgent_repairs": urgent,
            },
            recommendations=maintenance_planning(buckets, cfg),
        )

    def summarize_forecast(self, buckets: Sequence[PredictionBucket]) -> ForecastSummary:
        return summarize_forecast(buckets, self.config)
