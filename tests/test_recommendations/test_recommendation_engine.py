"""
Tests for asset_insight/recommendations/engine.py.

What we test
------------
Equipment generators:
  - 6-year-old asset, maintained 200 days ago, Good: maintenance (high) and
    replacement (medium) both fire.
  - Never-maintained assets count as overdue; young assets do not.
  - Replacement fires on lifetime maintenance cost > 50% of purchase cost;
    high past 7 years.
  - Optimization needs status Good and low recent activity.
  - Upgrade window is strictly between 3 and 5 years.

Software generators:
  - License optimization: usage < 50% with stock > 3; suggested reduction.
  - Renewal: medium under 90 days, high under 30.
  - Consolidation needs more than one similar title.

Company generators:
  - Budget alert above 90% utilisation.
  - Cost trend severity; ROI below target; zero investment is None.

Whole snapshot:
  - generate_all() output, deterministic ids, confidence domain, idempotence.
  - Missing optional fields never raise.
"""

from __future__ import annotations

import pytest

from asset_insight.config import RecommendationConfig
from asset_insight.models.asset import AssetRecord
from asset_insight.recommendations.engine import RecommendationEngine
from asset_insight.taxonomy.asset_taxonomy import Priority, RecommendationType
from conftest import AS_OF, days_ago, maintenance, make_asset, make_software


@pytest.fixture
def engine() -> RecommendationEngine:
    return RecommendationEngine()


def _by_type(recs):
    return {r.type: r for r in recs}


# ── Equipment ─────────────────────────────────────────────────────────────────

class TestEquipment:
    def test_six_year_old_good_asset(self, engine):
        asset = make_asset(age_years=6, status="Good", traceability=[maintenance(days_ago(200))])
        recs = _by_type(engine.generate_equipment_recommendations(asset, AS_OF))
        assert recs[RecommendationType.MAINTENANCE].priority is Priority.HIGH
        assert recs[RecommendationType.REPLACEMENT].priority is Priority.MEDIUM

    def test_never_maintained_counts_as_overdue(self, engine):
        rec = engine.recommend_maintenance(make_asset(age_years=3), AS_OF)
        assert rec is not None
        assert "999 days" in rec.description

    def test_young_asset_no_maintenance(self, engine):
        assert engine.recommend_maintenance(make_asset(age_years=1), AS_OF) is None

    def test_recent_maintenance_not_due(self, engine):
        asset = make_asset(age_years=4, traceability=[maintenance(days_ago(100))])
        assert engine.recommend_maintenance(asset, AS_OF) is None

    def test_replacement_on_maintenance_cost(self, engine):
        asset = make_asset(age_years=1, cost=1000.0, traceability=[
            maintenance(days_ago(100), 300.0), maintenance(days_ago(50), 300.0),
        ])
        rec = engine.recommend_replacement(asset, AS_OF)
        assert rec is not None
        assert rec.priority is Priority.MEDIUM
        assert rec.actions[0].params["estimated_cost"] == pytest.approx(800.0)

    def test_replacement_high_past_seven_years(self, engine):
        rec = engine.recommend_replacement(make_asset(age_years=8), AS_OF)
        assert rec.priority is Priority.HIGH

    def test_replacement_without_cost(self, engine):
        assert engine.recommend_replacement(make_asset(age_years=2, cost=None), AS_OF) is None

    def test_optimization(self, engine):
        rec = engine.recommend_optimization(make_asset(status="Good"))
        assert rec.type is RecommendationType.OPTIMIZATION
        assert rec.priority is Priority.MEDIUM

    def test_optimization_requires_good_status(self, engine):
        assert engine.recommend_optimization(make_asset(status="Fair")) is None

    def test_optimization_busy_asset(self, engine):
        asset = make_asset(traceability=[maintenance(days_ago(d)) for d in (30, 20, 10)])
        assert engine.recommend_optimization(asset) is None

    @pytest.mark.parametrize("age,fires", [(3, False), (4, True), (5, False)])
    def test_upgrade_window(self, engine, age, fires):
        rec = engine.recommend_upgrade(make_asset(age_years=age), AS_OF)
        assert (rec is not None) is fires

    def test_bare_asset_never_raises(self, engine):
        bare = AssetRecord(id="bare")
        assert engine.generate_equipment_recommendations(bare, AS_OF) == []


# ── Software ──────────────────────────────────────────────────────────────────

class TestSoftware:
    def test_license_optimization(self, engine):
        rec = engine.recommend_license_optimization(make_software(stock=10, assigned=2))
        assert rec.priority is Priority.MEDIUM
        assert rec.actions[1].params["suggested_reduction"] == 4
        assert rec.estimated_impact["cost_savings"] == "Estimated savings: $800.00/year"

    def test_license_optimization_small_stock(self, engine):
        assert engine.recommend_license_optimization(make_software(stock=3, assigned=0)) is None

    @pytest.mark.parametrize("days,priority", [(60, Priority.MEDIUM), (10, Priority.HIGH)])
    def test_software_update(self, engine, days, priority):
        rec = engine.recommend_software_update(make_software(expires_in_days=days), AS_OF)
        assert rec.priority is priority
        assert f"{days} days" in rec.description

    @pytest.mark.parametrize("days", [90, None])
    def test_software_update_not_due(self, engine, days):
        assert engine.recommend_software_update(make_software(expires_in_days=days), AS_OF) is None

    def test_consolidation(self, engine):
        a, b = make_software("sw-a"), make_software("sw-b")
        rec = engine.recommend_consolidation(a, [a, b])
        assert rec.priority is Priority.LOW
        assert rec.actions[0].params["software_ids"] == ["sw-a", "sw-b"]

    def test_consolidation_needs_two(self, engine):
        a = make_software("sw-a")
        assert engine.recommend_consolidation(a, [a]) is None
        assert engine.recommend_consolidation(a, None) is None


# ── Company ───────────────────────────────────────────────────────────────────

class TestCompany:
    def test_budget_alert(self, engine):
        rec = engine.recommend_budget_alert([800.0, 1000.0], 1000.0, AS_OF)
        assert rec.priority is Priority.HIGH
        assert rec.subject_id is None
        assert rec.id == "budget_alert:company"
        assert rec.actions[0].params["month"] == "2026-01"

    def test_budget_alert_within_budget(self, engine):
        assert engine.recommend_budget_alert([800.0], 1000.0, AS_OF) is None

    def test_budget_alert_without_budget(self, engine):
        assert engine.recommend_budget_alert([800.0], None, AS_OF) is None

    def test_non_finite_costs_produce_nothing(self, engine):
        nan = float("nan")
        assert engine.recommend_budget_alert([800.0, nan], 1000.0, AS_OF) is None
        assert engine.recommend_budget_alert([800.0], float("inf"), AS_OF) is None
        assert engine.recommend_cost_trend([1000.0] * 5 + [nan]) is None

    @pytest.mark.parametrize("recent,priority", [(1200.0, Priority.MEDIUM), (1500.0, Priority.HIGH)])
    def test_cost_trend(self, engine, recent, priority):
        rec = engine.recommend_cost_trend([1000.0] * 3 + [recent] * 3)
        assert rec.priority is priority

    def test_cost_trend_small_move(self, engine):
        assert engine.recommend_cost_trend([1000.0] * 3 + [1100.0] * 3) is None

    def test_roi_below_target(self, engine):
        rec = engine.recommend_roi_optimization([10000.0], [10500.0])
        assert rec.priority is Priority.MEDIUM
        assert "5.0%" in rec.description

    def test_roi_on_target(self, engine):
        assert engine.recommend_roi_optimization([10000.0], [12000.0]) is None

    def test_roi_zero_investment(self, engine):
        assert engine.recommend_roi_optimization([0.0], [100.0]) is None

    def test_roi_missing_data(self, engine):
        assert engine.recommend_roi_optimization(None, [100.0]) is None


# ── Whole snapshot ────────────────────────────────────────────────────────────

class TestGenerateAll:
    def test_sample_snapshot(self, engine, sample_snapshot):
        recs = engine.generate_all(sample_snapshot)
        ids = [r.id for r in recs]
        assert ids == [
            "maintenance:eq-old",
            "replacement:eq-old",
            "optimization:eq-old",
            "replacement:eq-poor",
            "software_update:sw-full",
            "license_optimization:sw-idle",
            "budget_alert:company",
            "cost_trend:company",
            "roi_optimization:company",
        ]

    def test_confidence_and_tiers(self, engine, sample_snapshot):
        for rec in engine.generate_all(sample_snapshot):
            assert 0.0 <= rec.confidence <= 1.0
            assert rec.priority in set(Priority)
            assert rec.reasoning

    def test_confidence_from_config(self, sample_snapshot):
        cfg = RecommendationConfig(confidences={"maintenance": 0.3})
        recs = RecommendationEngine(cfg).generate_all(sample_snapshot)
        by_id = {r.id: r for r in recs}
        assert by_id["maintenance:eq-old"].confidence == 0.3
        # Types missing from the map fall back to 0.5
        assert by_id["budget_alert:company"].confidence == 0.5

    def test_idempotent(self, engine, sample_snapshot):
        first = [r.model_dump(mode="json") for r in engine.generate_all(sample_snapshot)]
        second = [r.model_dump(mode="json") for r in engine.generate_all(sample_snapshot)]
        assert first == second

    def test_empty_snapshot(self, engine, empty_snapshot):
        assert engine.generate_all(empty_snapshot) == []


class TestFeedback:
    def test_learn_and_metrics(self, engine):
        engine.learn_from_action("u1", "maintenance:eq-1", "schedule_maintenance", "accepted")
        engine.learn_from_action("u1", "upgrade:eq-2", "dismiss", "rejected")
        engine.learn_from_action("u2", "replacement:eq-3", "approve", "accepted")

        overall = engine.get_recommendation_metrics()
        assert overall.total_recommendations == 3
        assert overall.accepted_recommendations == 2
        assert overall.acceptance_rate == pytest.approx(2 / 3)
        assert overall.users == 2

        u1 = engine.get_recommendation_metrics("u1")
        assert u1.total_recommendations == 2
        assert u1.acceptance_rate == pytest.approx(0.5)

    def test_generation_does_not_touch_store(self, engine, sample_snapshot):
        engine.generate_all(sample_snapshot)
        assert engine.get_recommendation_metrics().total_recommendations == 0
