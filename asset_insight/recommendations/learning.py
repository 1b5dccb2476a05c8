"""
Per-user feedback log for generated recommendations.

Every time a user reacts to a recommendation (accepts it, dismisses it,
defers it ...) the calling layer reports it through
``RecommendationEngine.learn_from_action()``, which appends a
``LearningRecord`` here.  Acceptance metrics are aggregated from the log.

The store is an explicit object owned by the caller: pass one instance to
every engine that should share a log (long-lived service) or create a fresh
one per request.  Each user's log is bounded; once it holds
``max_records_per_user`` records the oldest is evicted on append.  Evicted
records still count towards ``learning_data_points``.
"""

from __future__ import annotations

from collections import deque
from typing import Optional

from asset_insight.models.recommendation import LearningRecord, RecommendationMetrics


class LearningStore:
    """In-memory, bounded, per-user learning log.

    Args:
        max_records_per_user: Records retained per user before the oldest
            is evicted.
    """

    def __init__(self, max_records_per_user: int = 500) -> None:
        if max_records_per_user < 1:
            raise ValueError(
                f"max_records_per_user must be >= 1, got {max_records_per_user}."
            )
        self.max_records_per_user = max_records_per_user
        self._records: dict[str, deque[LearningRecord]] = {}
        self._logged: dict[str, int] = {}

    def append(self, record: LearningRecord) -> None:
        log = self._records.get(record.user_id)
        if log is None:
            log = deque(maxlen=self.max_records_per_user)
            self._records[record.user_id] = log
        log.append(record)
        self._logged[record.user_id] = self._logged.get(record.user_id, 0) + 1

    def records(self, user_id: Optional[str] = None) -> list[LearningRecord]:
        """Retained records for one user, or for everyone (users in first-seen order)."""
        if user_id is not None:
            return list(self._records.get(user_id, ()))
        return [r for log in self._records.values() for r in log]

    def users(self) -> list[str]:
        return list(self._records)

    def logged_count(self, user_id: Optional[str] = None) -> int:
        """Records ever appended, including evicted ones."""
        if user_id is not None:
            return self._logged.get(user_id, 0)
        return sum(self._logged.values())

    def clear(self) -> None:
        self._records.clear()
        self._logged.clear()

    def metrics(self, user_id: Optional[str] = None) -> RecommendationMetrics:
        """Aggregate acceptance statistics over the retained records."""
        retained = self.records(user_id)
        accepted = sum(1 for r in retained if r.is_accepted)
        total = len(retained)
        if user_id is not None:
            users = 1 if user_id in self._records else 0
        else:
            users = len(self._records)
        return RecommendationMetrics(
            total_recommendations=total,
            accepted_recommendations=accepted,
            acceptance_rate=accepted / total if total else 0.0,
            learning_data_points=self.logged_count(user_id),
            users=users,
        )
