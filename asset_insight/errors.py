"""
Exception hierarchy for Asset Insight.

Only the workflow engine raises.  The analysis engines (anomaly detector,
recommendation engine, demand predictor) reduce every failure mode to "no
finding produced" and never raise these.

    AssetInsightError
    ├── WorkflowNotFoundError   unknown or inactive workflow id (LookupError)
    ├── UnknownActionError      step action outside ``ActionKind`` (ValueError)
    └── InvalidTransitionError  execution status change out of a terminal state
"""

from __future__ import annotations


class AssetInsightError(Exception):
    """Base exception for all Asset Insight errors."""


class WorkflowNotFoundError(AssetInsightError, LookupError):
    """Raised when executing a workflow id that is unregistered or inactive.

    Raised before any execution record is created.
    """

    def __init__(self, workflow_id: str, inactive: bool = False) -> None:
        self.workflow_id = workflow_id
        self.inactive = inactive
        reason = "inactive" if inactive else "not found"
        super().__init__(f"Workflow '{workflow_id}' {reason}.")


class UnknownActionError(AssetInsightError, ValueError):
    """Raised when a workflow step names an action with no registered handler."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Unknown action: '{action}'.")


class InvalidTransitionError(AssetInsightError):
    """Raised when a workflow execution is moved out of a terminal status."""

    def __init__(self, execution_id: str, current: str, requested: str) -> None:
        self.execution_id = execution_id
        super().__init__(
            f"Execution '{execution_id}' cannot transition {current} -> {requested}."
        )
