"""
Tests for asset_insight/recommendations/learning.py.

What we test
------------
LearningStore:
  - Records are kept per user in append order.
  - Each user's log is bounded; the oldest record is evicted first.
  - Evicted records still count as learning data points.
  - metrics(): acceptance rate over retained records, 0.0 with no data.
  - A non-positive bound is rejected.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from asset_insight.models.recommendation import LearningRecord
from asset_insight.recommendations.learning import LearningStore


def _record(user: str, rec_id: str, outcome: str = "accepted") -> LearningRecord:
    return LearningRecord(
        user_id=user,
        recommendation_id=rec_id,
        action="click",
        outcome=outcome,
        recorded_at=datetime(2026, 1, 15, tzinfo=timezone.utc),
    )


class TestLearningStore:
    def test_records_per_user(self):
        store = LearningStore()
        store.append(_record("u1", "a"))
        store.append(_record("u2", "b"))
        store.append(_record("u1", "c"))
        assert [r.recommendation_id for r in store.records("u1")] == ["a", "c"]
        assert store.users() == ["u1", "u2"]
        assert len(store.records()) == 3

    def test_unknown_user(self):
        assert LearningStore().records("nobody") == []

    def test_bounded_per_user(self):
        store = LearningStore(max_records_per_user=2)
        for rec_id in ("a", "b", "c"):
            store.append(_record("u1", rec_id))
        assert [r.recommendation_id for r in store.records("u1")] == ["b", "c"]
        assert store.logged_count("u1") == 3

    def test_metrics(self):
        store = LearningStore(max_records_per_user=2)
        store.append(_record("u1", "a", "accepted"))
        store.append(_record("u1", "b", "rejected"))
        store.append(_record("u1", "c", "accepted"))
        m = store.metrics()
        assert m.total_recommendations == 2
        assert m.accepted_recommendations == 1
        assert m.acceptance_rate == pytest.approx(0.5)
        assert m.learning_data_points == 3
        assert m.users == 1

    def test_empty_metrics(self):
        m = LearningStore().metrics()
        assert m.acceptance_rate == 0.0
        assert m.users == 0

    def test_clear(self):
        store = LearningStore()
        store.append(_record("u1", "a"))
        store.clear()
        assert store.records() == []
        assert store.logged_count() == 0

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            LearningStore(max_records_per_user=0)
