"""
Closed vocabularies for the decision-support engine.

Every tiered or categorical value produced by the engines is one of the enums
below, so downstream consumers (dashboards, exports, workflow conditions) can
compare against stable string values:

  - ``AssetStatus``        physical condition reported by the inventory layer.
  - ``Severity``           how urgent an ``AnomalyFinding`` is.
  - ``Priority``           how urgent a ``Recommendation`` or forecast month is.
  - ``AnomalyType``        which detector produced a finding.
  - ``RecommendationType`` which generator produced a recommendation.
  - ``WorkflowStatus``     lifecycle state of a workflow execution.
  - ``ActionKind``         the closed set of workflow step actions.
  - ``ConditionOperator``  predicates usable in workflow step conditions.

All enums are ``StrEnum`` so they serialize as plain strings in JSON output.

This module has NO imports from any other ``asset_insight`` package.
"""

from enum import StrEnum


class AssetStatus(StrEnum):
    """Physical condition of an inventoried asset."""

    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    IN_REPAIR = "InRepair"


# Labels used by the inventory front-end (Spanish UI) mapped onto AssetStatus.
STATUS_ALIASES: dict[str, AssetStatus] = {
    "bueno":          AssetStatus.GOOD,
    "good":           AssetStatus.GOOD,
    "regular":        AssetStatus.FAIR,
    "fair":           AssetStatus.FAIR,
    "malo":           AssetStatus.POOR,
    "poor":           AssetStatus.POOR,
    "en reparación":  AssetStatus.IN_REPAIR,
    "en reparacion":  AssetStatus.IN_REPAIR,
    "inrepair":       AssetStatus.IN_REPAIR,
    "in_repair":      AssetStatus.IN_REPAIR,
    "in repair":      AssetStatus.IN_REPAIR,
}


class Severity(StrEnum):
    """Severity tier of an anomaly finding."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Priority(StrEnum):
    """Priority tier of a recommendation or forecast bucket."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AnomalyType(StrEnum):
    """Source detector of an ``AnomalyFinding``."""

    # ── Equipment ─────────────────────────────────────────────────────────────
    MAINTENANCE_FREQUENCY = "maintenance_frequency"
    COST_ANOMALY = "cost_anomaly"
    PERFORMANCE_DEGRADATION = "performance_degradation"
    LOW_USAGE = "low_usage"

    # ── Software ──────────────────────────────────────────────────────────────
    UNDERUTILIZED_LICENSE = "underutilized_license"
    OVERUTILIZED_LICENSE = "overutilized_license"
    LICENSE_EXPIRING = "license_expiring"

    # ── Company-level ─────────────────────────────────────────────────────────
    COST_TREND = "cost_trend"
    BUDGET_VARIANCE = "budget_variance"


class RecommendationType(StrEnum):
    """Source generator of a ``Recommendation``."""

    # ── Equipment ─────────────────────────────────────────────────────────────
    MAINTENANCE = "maintenance"
    REPLACEMENT = "replacement"
    OPTIMIZATION = "optimization"
    UPGRADE = "upgrade"

    # ── Software ──────────────────────────────────────────────────────────────
    LICENSE_OPTIMIZATION = "license_optimization"
    SOFTWARE_UPDATE = "software_update"
    CONSOLIDATION = "consolidation"

    # ── Company-level ─────────────────────────────────────────────────────────
    BUDGET_ALERT = "budget_alert"
    COST_TREND = "cost_trend"
    ROI_OPTIMIZATION = "roi_optimization"


class PlanningType(StrEnum):
    """Planning advice emitted by the second pass over a finished forecast."""

    URGENT_PLANNING = "urgent_planning"
    BUDGET_OPTIMIZATION = "budget_optimization"
    LICENSE_RENEWAL = "license_renewal"
    LICENSE_EXPANSION = "license_expansion"
    WORKLOAD_MANAGEMENT = "workload_management"
    PREVENTIVE_STRATEGY = "preventive_strategy"


class WorkflowStatus(StrEnum):
    """Lifecycle of a workflow execution.

    ``RUNNING`` is the only non-terminal state.
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not WorkflowStatus.RUNNING


class ActionKind(StrEnum):
    """Closed set of actions a workflow step may dispatch."""

    SEND_NOTIFICATION = "send_notification"
    CREATE_APPROVAL_REQUEST = "create_approval_request"
    UPDATE_STATUS = "update_status"
    GENERATE_REPORT = "generate_report"
    SCHEDULE_MAINTENANCE = "schedule_maintenance"
    ASSIGN_TASK = "assign_task"


class ConditionOperator(StrEnum):
    """Atomic predicates for workflow step conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    IN = "in"


def parse_status(raw: object) -> AssetStatus | None:
    """Map a raw status label onto ``AssetStatus``; ``None`` if unrecognised."""
    if isinstance(raw, AssetStatus):
        return raw
    if not isinstance(raw, str):
        return None
    return STATUS_ALIASES.get(raw.strip().lower())
