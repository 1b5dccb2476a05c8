"""
Statistical anomaly detection over asset snapshots.

Three detection scopes
----------------------

EQUIPMENT: four independent sub-analyses, run in fixed order, each producing
at most one finding:

    maintenance_frequency
        z-score of the most recent interval (days) between consecutive
        maintenance events against all intervals.  Needs >= 3 events.
        Flags |z| > 0.7; high if |z| > 2; confidence = min(|z| / 3, 1).
    cost_anomaly
        Trailing-3 average maintenance cost vs the all-time average.
        Needs >= 3 costed events.  Flags an increase > 80%.
    performance_degradation
        Expected condition score  max(0.1, 1 - age / 7)  minus the actual
        score from the status table.  Flags a gap > 0.3; high if > 0.6.
    low_usage
        Fewer than 2 entries among the trailing 10 traceability events,
        for any asset not currently in repair.

SOFTWARE: license usage ratio (under < 0.3 with stock > 5, over > 0.9)
and license expiry (< 30 days; high if < 7).

COMPANY: cost trend (trailing-3 vs prior-3 month average, > 20%) and
budget variance (latest month vs budget, > 10%).

Every sub-analysis is pure and returns ``None`` on insufficient input.
Nothing in this module raises on missing optional fields.

All thresholds come from ``AnomalyConfig``.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Optional, Sequence

from asset_insight.analysis.stats import (
    clamp,
    mean,
    relative_change,
    standard_deviation,
    z_score,
)
from asset_insight.config import AnomalyConfig
from asset_insight.models.asset import AssetRecord, CompanySnapshot
from asset_insight.models.finding import AnomalyFinding, AnomalySummary
from asset_insight.taxonomy.asset_taxonomy import AnomalyType, AssetStatus, Severity
from asset_insight.utils.time_utils import days_between, resolve_as_of

logger = logging.getLogger(__name__)


def _maintenance_intervals(asset: AssetRecord) -> list[int]:
    """Day gaps between consecutive maintenance events (chronological)."""
    events = asset.maintenance_events()
    return [days_between(prev.date, curr.date) for prev, curr in zip(events, events[1:])]


def summarize(findings: Sequence[AnomalyFinding]) -> AnomalySummary:
    """Count findings by severity (every tier present) and by type."""
    by_severity = {s.value: 0 for s in Severity}
    by_type: dict[str, int] = {}
    for f in findings:
        by_severity[f.severity.value] += 1
        by_type[f.type.value] = by_type.get(f.type.value, 0) + 1
    return AnomalySummary(total=len(findings), by_severity=by_severity, by_type=by_type)


class AnomalyDetector:
    """Runs the anomaly sub-analyses against assets and company aggregates.

    Stateless: the same inputs (with the same ``as_of``) always produce the
    same findings.

    Args:
        config: Detection thresholds.  Defaults to ``AnomalyConfig()``.
    """

    def __init__(self, config: Optional[AnomalyConfig] = None) -> None:
        self.config = config or AnomalyConfig()

    # ── Equipment ─────────────────────────────────────────────────────────────

    def detect_equipment_anomalies(
        self,
        asset: AssetRecord,
        peers: Optional[Sequence[AssetRecord]] = None,
        as_of: Optional[date] = None,
    ) -> list[AnomalyFinding]:
        """Run all equipment sub-analyses on one asset.

        Args:
            asset:  The asset to inspect.
            peers:  Comparable assets; when supplied, the maintenance-frequency
                    finding also reports the peer-average interval.
            as_of:  Reference date for age computations (default: today).

        Returns:
            Findings in fixed order: maintenance frequency, cost, performance,
            usage.  Empty when nothing is flagged.
        """
        ref = resolve_as_of(as_of)
        candidates = [
            self.analyze_maintenance_frequency(asset, peers),
            self.analyze_cost_pattern(asset),
            self.analyze_performance(asset, ref),
            self.analyze_usage(asset, ref),
        ]
        return [f for f in candidates if f is not None]

    def analyze_maintenance_frequency(
        self,
        asset: AssetRecord,
        peers: Optional[Sequence[AssetRecord]] = None,
    ) -> Optional[AnomalyFinding]:
        cfg = self.config
        if len(asset.maintenance_events()) < cfg.min_maintenance_events:
            return None

        intervals = _maintenance_intervals(asset)
        avg = mean(intervals)
        std = standard_deviation(intervals)
        last = intervals[-1]
        z = abs(z_score(last, avg, std))
        if z <= cfg.maintenance_z_threshold:
            return None

        data = {
            "current_interval": last,
            "average_interval": avg,
            "standard_deviation": std,
            "z_score": z,
        }
        if peers:
            peer_intervals = [
                i for p in peers if p.id != asset.id for i in _maintenance_intervals(p)
            ]
            if peer_intervals:
                data["peer_average_interval"] = mean(peer_intervals)

        return AnomalyFinding(
            type=AnomalyType.MAINTENANCE_FREQUENCY,
            severity=Severity.HIGH if z > cfg.maintenance_z_high else Severity.MEDIUM,
            subject_id=asset.id,
            message=(
                f"Unusual maintenance frequency: last interval {last:.1f} days "
                f"vs average {avg:.1f} days"
            ),
            confidence=min(z / cfg.maintenance_z_scale, 1.0),
            recommendation=(
                "Consider more frequent preventive maintenance"
                if last > avg
                else "The equipment may be over-maintained"
            ),
            data=data,
        )

    def analyze_cost_pattern(self, asset: AssetRecord) -> Optional[AnomalyFinding]:
        cfg = self.config
        costs = asset.maintenance_costs()
        if len(costs) < cfg.min_cost_samples:
            return None

        avg = mean(costs)
        recent_avg = mean(costs[-cfg.cost_recent_window:])
        increase = relative_change(recent_avg, avg)
        if increase is None or increase <= cfg.cost_increase_threshold:
            return None

        return AnomalyFinding(
            type=AnomalyType.COST_ANOMALY,
            severity=Severity.HIGH if increase > cfg.cost_increase_high else Severity.MEDIUM,
            subject_id=asset.id,
            message=f"Significant increase in maintenance costs: {increase * 100:.1f}%",
            confidence=min(increase, 1.0),
            recommendation="Review whether the equipment needs replacement or a major repair",
            data={
                "average_cost": avg,
                "recent_average": recent_avg,
                "cost_increase_percentage": increase * 100,
                "trend": "increasing",
            },
        )

    def analyze_performance(self, asset: AssetRecord, as_of: date) -> Optional[AnomalyFinding]:
        cfg = self.config
        age = asset.age_years(as_of)
        if asset.status is None:
            current = cfg.unknown_status_score
        else:
            current = cfg.status_scores.get(asset.status.value, cfg.unknown_status_score)
        expected = max(cfg.performance_floor, 1.0 - age / cfg.performance_lifespan_years)
        gap = expected - current
        if gap <= cfg.performance_gap_threshold:
            return None

        status_label = asset.status.value if asset.status else "unknown"
        return AnomalyFinding(
            type=AnomalyType.PERFORMANCE_DEGRADATION,
            severity=Severity.HIGH if gap > cfg.performance_gap_high else Severity.MEDIUM,
            subject_id=asset.id,
            message=f"Performance degradation detected. Current status: {status_label}",
            confidence=clamp(gap),
            recommendation="Consider preventive maintenance or replacement",
            data={
                "current_score": current,
                "expected_score": expected,
                "performance_gap": gap,
                "age_years": age,
                "status": status_label,
            },
        )

    def analyze_usage(self, asset: AssetRecord, as_of: date) -> Optional[AnomalyFinding]:
        cfg = self.config
        if asset.status is AssetStatus.IN_REPAIR:
            return None
        recent = asset.recent_events(cfg.usage_window)
        if len(recent) >= cfg.usage_min_events:
            return None

        return AnomalyFinding(
            type=AnomalyType.LOW_USAGE,
            severity=Severity.MEDIUM,
            subject_id=asset.id,
            message="Low activity detected on the equipment",
            confidence=cfg.usage_confidence,
            recommendation="Check whether the equipment is being used as intended",
            data={
                "recent_activity_count": len(recent),
                "days_since_last_activity": (
                    days_between(recent[-1].date, as_of) if recent else 0
                ),
            },
        )

    # ── Software ──────────────────────────────────────────────────────────────

    def detect_software_anomalies(
        self,
        software: AssetRecord,
        as_of: Optional[date] = None,
    ) -> list[AnomalyFinding]:
        """License usage and license expiry findings for one software title."""
        ref = resolve_as_of(as_of)
        candidates = [
            self.analyze_license_usage(software),
            self.analyze_license_expiry(software, ref),
        ]
        return [f for f in candidates if f is not None]

    def analyze_license_usage(self, software: AssetRecord) -> Optional[AnomalyFinding]:
        cfg = self.config
        ratio = software.usage_ratio()
        if ratio is None:
            return None

        data = {
            "total_licenses": software.stock,
            "assigned_licenses": software.assigned_licenses or 0,
            "usage_rate": ratio,
        }
        if ratio < cfg.license_under_ratio and software.stock > cfg.license_under_min_stock:
            return AnomalyFinding(
                type=AnomalyType.UNDERUTILIZED_LICENSE,
                severity=Severity.MEDIUM,
                subject_id=software.id,
                message=f"Underutilized license: {ratio * 100:.1f}% in use",
                confidence=cfg.license_under_confidence,
                recommendation="Consider reducing license stock or redistributing seats",
                data=data,
            )
        # 0.9 itself is over-utilized: 9 of 10 seats leaves no headroom.
        if ratio >= cfg.license_over_ratio:
            return AnomalyFinding(
                type=AnomalyType.OVERUTILIZED_LICENSE,
                severity=Severity.HIGH,
                subject_id=software.id,
                message=f"Overutilized license: {ratio * 100:.1f}% in use",
                confidence=cfg.license_over_confidence,
                recommendation="Consider acquiring more licenses to stay compliant",
                data=data,
            )
        return None

    def analyze_license_expiry(
        self,
        software: AssetRecord,
        as_of: date,
    ) -> Optional[AnomalyFinding]:
        cfg = self.config
        days = software.days_to_expiry(as_of)
        if days is None or days >= cfg.expiry_warning_days:
            return None

        return AnomalyFinding(
            type=AnomalyType.LICENSE_EXPIRING,
            severity=Severity.HIGH if days < cfg.expiry_critical_days else Severity.MEDIUM,
            subject_id=software.id,
            message=f"License expires in {days} days",
            confidence=1.0,
            recommendation="Renew the license now to avoid service interruption",
            data={
                "expiry_date": software.expiry_date.isoformat(),
                "days_to_expiry": days,
                "software_name": software.name or software.label,
            },
        )

    # ── Company-level ─────────────────────────────────────────────────────────

    def detect_cost_anomalies(self, snapshot: CompanySnapshot) -> list[AnomalyFinding]:
        """Cost-trend and budget-variance findings for the whole company."""
        candidates = [
            self.analyze_cost_trend(snapshot.monthly_costs),
            self.analyze_budget_variance(snapshot.monthly_costs, snapshot.budget),
        ]
        return [f for f in candidates if f is not None]

    def analyze_cost_trend(self, monthly_costs: Sequence[float]) -> Optional[AnomalyFinding]:
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
        return AnomalyFinding(
            type=AnomalyType.COST_TREND,
            severity=Severity.HIGH if abs(trend) > cfg.cost_trend_high else Severity.MEDIUM,
            message=(
                f"{'Rising' if increasing else 'Falling'} cost trend: "
                f"{abs(trend) * 100:.1f}%"
            ),
            confidence=min(abs(trend), 1.0),
            recommendation=(
                "Review spending and look for optimizations"
                if increasing
                else "Costs are well controlled; keep the current course"
            ),
            data={
                "recent_average": recent_avg,
                "earlier_average": earlier_avg,
                "trend_percentage": trend * 100,
                "direction": "increasing" if increasing else "decreasing",
            },
        )

    def analyze_budget_variance(
        self,
        monthly_costs: Sequence[float],
        budget: Optional[float],
    ) -> Optional[AnomalyFinding]:
        cfg = self.config
        if not monthly_costs or not budget:
            return None

        current = monthly_costs[-1]
        if not (math.isfinite(current) and math.isfinite(budget)):
            return None
        variance = (current - budget) / budget
        if abs(variance) <= cfg.budget_variance_threshold:
            return None

        over = variance > 0
        return AnomalyFinding(
            type=AnomalyType.BUDGET_VARIANCE,
            severity=(
                Severity.HIGH if abs(variance) > cfg.budget_variance_high else Severity.MEDIUM
            ),
            message=f"Budget variance: {variance * 100:.1f}%",
            confidence=min(abs(variance), 1.0),
            recommendation=(
                "Spending exceeds the budget; review and adjust"
                if over
                else "Spending is under budget; consider additional investment"
            ),
            data={
                "current_cost": current,
                "budget": budget,
                "variance_percentage": variance * 100,
                "over_budget": over,
            },
        )

    # ── Whole snapshot ────────────────────────────────────────────────────────

    def detect_all(self, snapshot: CompanySnapshot) -> list[AnomalyFinding]:
        """Run every detector over every asset in the snapshot.

        Equipment and peripherals go through the equipment analyses (peers are
        the other assets of the same category); software through the license
        analyses; then the company-level cost analyses.
        """
        as_of = resolve_as_of(snapshot.as_of)
        findings: list[AnomalyFinding] = []
        for group in (snapshot.equipment, snapshot.peripherals):
            for asset in group:
                findings.extend(self.detect_equipment_anomalies(asset, group, as_of))
        for title in snapshot.software:
            findings.extend(self.detect_software_anomalies(title, as_of))
        findings.extend(self.detect_cost_anomalies(snapshot))

        logger.info(
            "Anomaly detection: %d finding(s) across %d equipment, %d peripheral(s), "
            "%d software title(s).",
            len(findings), len(snapshot.equipment), len(snapshot.peripherals),
            len(snapshot.software),
        )
        return findings

    def summarize(self, findings: Sequence[AnomalyFinding]) -> AnomalySummary:
        return summarize(findings)
