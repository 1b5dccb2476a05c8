"""
Recommendation output models.

``Recommendation`` is a suggested action with ordered reasoning, follow-up
action buttons and an estimated-impact map.  Recommendations are ephemeral:
the engine rebuilds them on every call.

``LearningRecord`` and ``RecommendationMetrics`` back the feedback loop:
every user reaction to a recommendation is logged, and acceptance rates are
aggregated from that log.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from asset_insight.taxonomy.asset_taxonomy import Priority, RecommendationType

ACCEPTED_OUTCOME = "accepted"


class RecommendedAction(BaseModel):
    """A follow-up the user can trigger from a recommendation.

    Attributes:
        action_type: Machine-readable action name, e.g. ``"schedule_maintenance"``.
        label: Button label.
        params: Parameters the calling layer passes to the action.
    """

    model_config = ConfigDict(frozen=True)

    action_type: str
    label: str
    params: dict[str, Any] = {}


class Recommendation(BaseModel):
    """A generated suggestion with supporting reasoning and estimated impact.

    Attributes:
        id: Deterministic identifier ``"<type>:<subject>"``; stable across
            calls with the same snapshot so feedback can reference it.
        type: Generator that produced the recommendation.
        priority: ``high``, ``medium`` or ``low``.
        subject_id: Asset id, or ``None`` for company-level recommendations.
        title: Short headline.
        description: One-sentence summary.
        reasoning: Ordered explanation lines (never empty).
        actions: Follow-up actions offered to the user.
        estimated_impact: Impact area → qualitative / quantitative estimate.
        confidence: Generator confidence in ``[0, 1]``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: RecommendationType
    priority: Priority
    subject_id: Optional[str] = None
    title: str
    description: str
    reasoning: list[str]
    actions: list[RecommendedAction] = []
    estimated_impact: dict[str, str] = {}
    confidence: float

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be in [0.0, 1.0], got {v}.")
        return v

    @field_validator("reasoning")
    @classmethod
    def validate_reasoning_not_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("reasoning must contain at least one line.")
        return v


class LearningRecord(BaseModel):
    """One user reaction to a recommendation."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    recommendation_id: str
    action: str
    outcome: str
    recorded_at: datetime

    @property
    def is_accepted(self) -> bool:
        return self.outcome == ACCEPTED_OUTCOME


class RecommendationMetrics(BaseModel):
    """Acceptance statistics aggregated from the learning log.

    Attributes:
        total_recommendations: Logged reactions currently retained.
        accepted_recommendations: Retained reactions with outcome ``"accepted"``.
        acceptance_rate: accepted / total; ``0.0`` with no data.
        learning_data_points: Reactions ever logged, including evicted ones.
        users: Distinct users contributing records.
    """

    model_config = ConfigDict(frozen=True)

    total_recommendations: int
    accepted_recommendations: int
    acceptance_rate: float
    learning_data_points: int
    users: int
