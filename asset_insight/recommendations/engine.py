"""
Heuristic recommendation generators.

Generators are grouped by scope and each returns one fully-populated
``Recommendation`` or ``None``:

Equipment (per asset)
---------------------
    maintenance   age > 2y and > 180 days since the last maintenance event
                  (never maintained counts as overdue)          → high
    replacement   age > 5y, or lifetime maintenance cost > 50% of the
                  purchase cost                   → high if age > 7y else medium
    optimization  fewer than 3 of the trailing 10 log entries and status
                  Good                                           → medium
    upgrade       3y < age < 5y                                  → medium

Software (per title)
--------------------
    license_optimization  assigned / stock < 0.5 and stock > 3   → medium
    software_update       expiry in < 90 days   → high if < 30 days else medium
    consolidation         more than one similar title supplied   → low

Company
-------
    budget_alert      latest month > 90% of the budget           → high
    cost_trend        > 15% move between the trailing and prior
                      3-month averages              → high if > 30% else medium
    roi_optimization  portfolio ROI < 10%                        → medium

These heuristics are deliberately independent of the anomaly detector: the
two engines may disagree on thresholds (cost trend 15% here vs 20% there).

Missing optional fields never raise; the affected generator returns ``None``.
Confidence per generator comes from ``RecommendationConfig.confidences``.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Optional, Sequence

from asset_insight.analysis.stats import mean, relative_change
from asset_insight.config import RecommendationConfig
from asset_insight.models.asset import AssetRecord, CompanySnapshot
from asset_insight.models.recommendation import (
    LearningRecord,
    Recommendation,
    RecommendationMetrics,
    RecommendedAction,
)
from asset_insight.recommendations.learning import LearningStore
from asset_insight.taxonomy.asset_taxonomy import AssetStatus, Priority, RecommendationType
from asset_insight.utils.time_utils import resolve_as_of, utcnow

logger = logging.getLogger(__name__)

# subject_id used in recommendation ids for company-level recommendations
COMPANY_SUBJECT = "company"


class RecommendationEngine:
    """Generates recommendations and records user feedback on them.

    The generators are stateless.  The only state is the injected
    ``LearningStore``, touched solely by ``learn_from_action()``.

    Args:
        config: Thresholds and confidences.  Defaults to ``RecommendationConfig()``.
        store:  Feedback log.  Defaults to a fresh ``LearningStore`` bounded by
                ``config.max_learning_records_per_user``.
    """

    def __init__(
        self,
        config: Optional[RecommendationConfig] = None,
        store: Optional[LearningStore] = None,
    ) -> None:
        self.config = config or RecommendationConfig()
        self.store = store if store is not None else LearningStore(
            self.config.max_learning_records_per_user
        )

    def _make(
        self,
        rec_type: RecommendationType,
        priority: Priority,
        subject_id: Optional[str],
        title: str,
        description: str,
        reasoning: list[str],
        actions: list[RecommendedAction],
        impact: dict[str, str],
    ) -> Recommendation:
        return Recommendation(
            id=f"{rec_type.value}:{subject_id or COMPANY_SUBJECT}",
            type=rec_type,
            priority=priority,
            subject_id=subject_id,
            title=title,
            description=description,
            reasoning=reasoning,
            actions=actions,
            estimated_impact=impact,
            confidence=self.config.confidences.get(rec_type.value, 0.5),
        )

    # ── Equipment ─────────────────────────────────────────────────────────────

    def generate_equipment_recommendations(
        self,
        asset: AssetRecord,
        as_of: Optional[date] = None,
    ) -> list[Recommendation]:
        """Run the four equipment generators, in order, on one asset."""
        ref = resolve_as_of(as_of)
        candidates = [
            self.recommend_maintenance(asset, ref),
            self.recommend_replacement(asset, ref),
            self.recommend_optimization(asset),
            self.recommend_upgrade(asset, ref),
        ]
        return [r for r in candidates if r is not None]

    def recommend_maintenance(self, asset: AssetRecord, as_of: date) -> Optional[Recommendation]:
        cfg = self.config
        age = asset.age_years(as_of)
        days = asset.days_since_maintenance(as_of, fallback_to_purchase=False)
        if days is None:
            days = cfg.never_maintained_days
        if not (age > cfg.maintenance_min_age_years and days > cfg.maintenance_overdue_days):
            return None

        return self._make(
            RecommendationType.MAINTENANCE,
            Priority.HIGH,
            asset.id,
            title="Preventive maintenance recommended",
            description=f"{asset.label} has not been maintained in {days} days",
            reasoning=[
                f"Equipment age: {age:.1f} years",
                f"Last maintenance: {days} days ago",
                "Preventive maintenance can prevent costly failures",
            ],
            actions=[
                RecommendedAction(
                    action_type="schedule_maintenance",
                    label="Schedule maintenance",
                    params={"equipment_id": asset.id, "type": "preventive"},
                ),
                RecommendedAction(
                    action_type="create_workflow",
                    label="Start maintenance workflow",
                    params={"workflow_type": "maintenance_required"},
                ),
            ],
            impact={
                "cost_savings": "Prevent costly failures",
                "downtime_reduction": "Reduce downtime",
                "reliability": "Improve equipment reliability",
            },
        )

    def recommend_replacement(self, asset: AssetRecord, as_of: date) -> Optional[Recommendation]:
        cfg = self.config
        age = asset.age_years(as_of)
        total_maintenance = sum(asset.maintenance_costs())
        original_cost = asset.cost or 0.0
        ratio = total_maintenance / original_cost if original_cost > 0 else 0.0
        if not (age > cfg.replacement_age_years or ratio > cfg.maintenance_cost_ratio):
            return None

        return self._make(
            RecommendationType.REPLACEMENT,
            Priority.HIGH if age > cfg.replacement_urgent_age_years else Priority.MEDIUM,
            asset.id,
            title="Equipment replacement recommended",
            description=f"{asset.label} has reached the end of its effective service life",
            reasoning=[
                f"Equipment age: {age:.1f} years",
                f"Maintenance cost: ${total_maintenance:.2f} "
                f"({ratio * 100:.1f}% of purchase cost)",
                "Newer equipment offers better performance and energy efficiency",
            ],
            actions=[
                RecommendedAction(
                    action_type="create_approval_request",
                    label="Request replacement approval",
                    params={
                        "equipment_id": asset.id,
                        "reason": "end_of_life",
                        "estimated_cost": original_cost * cfg.replacement_cost_factor,
                    },
                ),
                RecommendedAction(
                    action_type="generate_report",
                    label="Generate replacement report",
                    params={"type": "replacement_analysis", "equipment_id": asset.id},
                ),
            ],
            impact={
                "cost_savings": "Lower maintenance costs",
                "performance": "Better performance and efficiency",
                "reliability": "Higher reliability",
            },
        )

    def recommend_optimization(self, asset: AssetRecord) -> Optional[Recommendation]:
        cfg = self.config
        activity = len(asset.recent_events(cfg.optimization_window))
        if activity >= cfg.optimization_min_events or asset.status is not AssetStatus.GOOD:
            return None

        return self._make(
            RecommendationType.OPTIMIZATION,
            Priority.MEDIUM,
            asset.id,
            title="Usage optimization recommended",
            description=f"{asset.label} appears to be underused",
            reasoning=[
                f"Recent activity: {activity} event(s) in the latest log entries",
                "The equipment is in good condition but sees little activity",
                "It could be reassigned or put to better use",
            ],
            actions=[
                RecommendedAction(
                    action_type="analyze_usage",
                    label="Analyze usage patterns",
                    params={"equipment_id": asset.id},
                ),
                RecommendedAction(
                    action_type="suggest_reassignment",
                    label="Suggest reassignment",
                    params={"equipment_id": asset.id},
                ),
            ],
            impact={
                "utilization": "Better resource utilization",
                "efficiency": "Better equipment distribution",
                "cost_optimization": "Lower operating costs",
            },
        )

    def recommend_upgrade(self, asset: AssetRecord, as_of: date) -> Optional[Recommendation]:
        cfg = self.config
        age = asset.age_years(as_of)
        if not (cfg.upgrade_min_age_years < age < cfg.upgrade_max_age_years):
            return None

        return self._make(
            RecommendationType.UPGRADE,
            Priority.MEDIUM,
            asset.id,
            title="Equipment upgrade recommended",
            description=f"{asset.label} could benefit from an upgrade",
            reasoning=[
                f"Equipment age: {age:.1f} years",
                "Upgrades can extend the equipment's service life",
                "Better performance and compatibility",
            ],
            actions=[
                RecommendedAction(
                    action_type="research_upgrades",
                    label="Research upgrade options",
                    params={"equipment_id": asset.id},
                ),
                RecommendedAction(
                    action_type="cost_benefit_analysis",
                    label="Cost-benefit analysis",
                    params={"equipment_id": asset.id},
                ),
            ],
            impact={
                "performance": "Improved performance",
                "compatibility": "Stay compatible with current software",
                "lifespan": "Longer service life",
            },
        )

    # ── Software ──────────────────────────────────────────────────────────────

    def generate_software_recommendations(
        self,
        software: AssetRecord,
        similar_software: Optional[Sequence[AssetRecord]] = None,
        as_of: Optional[date] = None,
    ) -> list[Recommendation]:
        """Run the three software generators, in order, on one title.

        Args:
            software:         The title to inspect.
            similar_software: Titles the caller considers functionally similar
                              (grouping is the caller's business).
            as_of:            Reference date for expiry (default: today).
        """
        ref = resolve_as_of(as_of)
        candidates = [
            self.recommend_license_optimization(software),
            self.recommend_software_update(software, ref),
            self.recommend_consolidation(software, similar_software),
        ]
        return [r for r in candidates if r is not None]

    def recommend_license_optimization(self, software: AssetRecord) -> Optional[Recommendation]:
        cfg = self.config
        ratio = software.usage_ratio()
        if ratio is None:
            return None
        if not (ratio < cfg.license_optimization_ratio
                and software.stock > cfg.license_optimization_min_stock):
            return None

        available = software.stock - (software.assigned_licenses or 0)
        name = software.name or software.label
        return self._make(
            RecommendationType.LICENSE_OPTIMIZATION,
            Priority.MEDIUM,
            software.id,
            title="License optimization recommended",
            description=f"Licenses for {name} are underused",
            reasoning=[
                f"Current usage: {ratio * 100:.1f}% of licenses",
                f"Unassigned licenses: {available}",
                "Reducing stock can yield significant savings",
            ],
            actions=[
                RecommendedAction(
                    action_type="analyze_usage_patterns",
                    label="Analyze usage patterns",
                    params={"software_id": software.id},
                ),
                RecommendedAction(
                    action_type="suggest_license_reduction",
                    label="Suggest license reduction",
                    params={
                        "software_id": software.id,
                        "suggested_reduction": math.floor(available * 0.5),
                    },
                ),
            ],
            impact={
                "cost_savings": (
                    f"Estimated savings: ${available * cfg.license_annual_unit_cost:.2f}/year"
                ),
                "optimization": "More efficient license allocation",
            },
        )

    def recommend_software_update(
        self,
        software: AssetRecord,
        as_of: date,
    ) -> Optional[Recommendation]:
        cfg = self.config
        days = software.days_to_expiry(as_of)
        if days is None or days >= cfg.renewal_window_days:
            return None

        name = software.name or software.label
        return self._make(
            RecommendationType.SOFTWARE_UPDATE,
            Priority.HIGH if days < cfg.renewal_urgent_days else Priority.MEDIUM,
            software.id,
            title="Software renewal recommended",
            description=f"The {name} license expires in {days} days",
            reasoning=[
                f"Expiry date: {software.expiry_date.isoformat()}",
                "Renewing keeps the service running",
                "Newer versions may include security fixes",
            ],
            actions=[
                RecommendedAction(
                    action_type="renew_license",
                    label="Renew license",
                    params={"software_id": software.id},
                ),
                RecommendedAction(
                    action_type="evaluate_alternatives",
                    label="Evaluate alternatives",
                    params={"software_id": software.id},
                ),
            ],
            impact={
                "continuity": "Service continuity",
                "security": "Keep receiving security updates",
                "features": "Access to new features",
            },
        )

    def recommend_consolidation(
        self,
        software: AssetRecord,
        similar_software: Optional[Sequence[AssetRecord]],
    ) -> Optional[Recommendation]:
        if not similar_software or len(similar_software) <= 1:
            return None

        ids = [s.id for s in similar_software]
        return self._make(
            RecommendationType.CONSOLIDATION,
            Priority.LOW,
            software.id,
            title="Software consolidation recommended",
            description=f"{len(ids)} similar titles could be consolidated",
            reasoning=[
                "Several titles cover similar functionality",
                "Consolidation can cut costs and complexity",
                "Simpler management and maintenance",
            ],
            actions=[
                RecommendedAction(
                    action_type="compare_software",
                    label="Compare similar software",
                    params={"software_ids": ids},
                ),
                RecommendedAction(
                    action_type="consolidation_analysis",
                    label="Consolidation analysis",
                    params={"software_ids": ids},
                ),
            ],
            impact={
                "cost_reduction": "Lower license costs",
                "simplification": "Simpler software management",
                "maintenance": "Easier maintenance",
            },
        )

    # ── Company ───────────────────────────────────────────────────────────────

    def generate_cost_recommendations(self, snapshot: CompanySnapshot) -> list[Recommendation]:
        """Budget, cost-trend and ROI recommendations for the whole company."""
        as_of = resolve_as_of(snapshot.as_of)
        candidates = [
            self.recommend_budget_alert(snapshot.monthly_costs, snapshot.budget, as_of),
            self.recommend_cost_trend(snapshot.monthly_costs),
            self.recommend_roi_optimization(snapshot.investments, snapshot.returns),
        ]
        return [r for r in candidates if r is not None]

    def recommend_budget_alert(
        self,
        monthly_costs: Sequence[float],
        budget: Optional[float],
        as_of: date,
    ) -> Optional[Recommendation]:
        if not monthly_costs or not budget:
            return None
        current = monthly_costs[-1]
        if not (math.isfinite(current) and math.isfinite(budget)):
            return None
        utilization = current / budget
        if utilization <= self.config.budget_alert_utilization:
            return None

        return self._make(
            RecommendationType.BUDGET_ALERT,
            Priority.HIGH,
            None,
            title="Budget alert",
            description=f"The budget is {utilization * 100:.1f}% used",
            reasoning=[
                f"Current spend: ${current:.2f}",
                f"Budget: ${budget:.2f}",
                "Risk of exceeding the monthly budget",
            ],
            actions=[
                RecommendedAction(
                    action_type="review_expenses",
                    label="Review expenses",
                    params={"month": as_of.strftime("%Y-%m")},
                ),
                RecommendedAction(
                    action_type="adjust_budget",
                    label="Adjust budget",
                    params={"current_budget": budget},
                ),
            ],
            impact={
                "budget_control": "Tighter budget control",
                "cost_optimization": "Identify savings opportunities",
            },
        )

    def recommend_cost_trend(self, monthly_costs: Sequence[float]) -> Optional[Recommendation]:
        cfg = self.config
        window = cfg.trend_window_months
        if len(monthly_costs) < 2 * window:
            return None

        recent_avg = mean(monthly_costs[-window:])
        earlier_avg = mean(monthly_costs[-2 * window:-window])
        trend = relative_change(recent_avg, earlier_avg)
        if trend is None or abs(trend) <= cfg.cost_trend_threshold:
            return None

        increasing = trend > 0
        return self._make(
            RecommendationType.COST_TREND,
            Priority.HIGH if abs(trend) > cfg.cost_trend_high else Priority.MEDIUM,
            None,
            title=f"{'Rising' if increasing else 'Falling'} cost trend",
            description=(
                f"Costs have {'risen' if increasing else 'fallen'} "
                f"{abs(trend) * 100:.1f}% over the last {window} months"
            ),
            reasoning=[
                f"Recent average: ${recent_avg:.2f}",
                f"Previous average: ${earlier_avg:.2f}",
                f"Change: {trend * 100:.1f}%",
            ],
            actions=[
                RecommendedAction(
                    action_type="analyze_cost_drivers",
                    label="Analyze cost drivers",
                    params={"trend_direction": "increasing" if increasing else "decreasing"},
                ),
                RecommendedAction(
                    action_type="create_cost_forecast",
                    label="Create cost forecast",
                    params={"months_ahead": cfg.forecast_months_ahead},
                ),
            ],
            impact={
                "cost_control": "Better cost control",
                "planning": "Better financial planning",
                "optimization": "Identify optimization opportunities",
            },
        )

    def recommend_roi_optimization(
        self,
        investments: Optional[Sequence[float]],
        returns: Optional[Sequence[float]],
    ) -> Optional[Recommendation]:
        cfg = self.config
        if not investments or not returns:
            return None
        total_investment = sum(investments)
        if total_investment <= 0:
            return None
        total_return = sum(returns)
        roi = (total_return - total_investment) / total_investment
        if roi >= cfg.roi_target:
            return None

        return self._make(
            RecommendationType.ROI_OPTIMIZATION,
            Priority.MEDIUM,
            None,
            title="ROI optimization recommended",
            description=f"Current ROI is {roi * 100:.1f}%, below target",
            reasoning=[
                f"Total investment: ${total_investment:.2f}",
                f"Total return: ${total_return:.2f}",
                f"ROI: {roi * 100:.1f}%",
            ],
            actions=[
                RecommendedAction(
                    action_type="analyze_investments",
                    label="Analyze investments",
                    params={"investment_data": list(investments)},
                ),
                RecommendedAction(
                    action_type="optimize_portfolio",
                    label="Optimize portfolio",
                    params={"target_roi": cfg.roi_portfolio_target},
                ),
            ],
            impact={
                "roi_improvement": "Better return on investment",
                "cost_efficiency": "Higher cost efficiency",
                "value_creation": "More value from fewer resources",
            },
        )

    # ── Whole snapshot ────────────────────────────────────────────────────────

    def generate_all(self, snapshot: CompanySnapshot) -> list[Recommendation]:
        """Equipment, software and company recommendations for a snapshot."""
        as_of = resolve_as_of(snapshot.as_of)
        recs: list[Recommendation] = []
        for asset in snapshot.equipment:
            recs.extend(self.generate_equipment_recommendations(asset, as_of))
        for title in snapshot.software:
            recs.extend(self.generate_software_recommendations(title, as_of=as_of))
        recs.extend(self.generate_cost_recommendations(snapshot))
        logger.info("Generated %d recommendation(s).", len(recs))
        return recs

    # ── Feedback ──────────────────────────────────────────────────────────────

    def learn_from_action(
        self,
        user_id: str,
        recommendation_id: str,
        action: str,
        outcome: str,
    ) -> LearningRecord:
        """Append a user's reaction to a recommendation to the learning log."""
        record = LearningRecord(
            user_id=user_id,
            recommendation_id=recommendation_id,
            action=action,
            outcome=outcome,
            recorded_at=utcnow(),
        )
        self.store.append(record)
        logger.debug(
            "Learning record: user=%s rec=%s action=%s outcome=%s",
            user_id, recommendation_id, action, outcome,
        )
        return record

    def get_recommendation_metrics(self, user_id: Optional[str] = None) -> RecommendationMetrics:
        """Acceptance metrics over all users, or a single user."""
        return self.store.metrics(user_id)
