"""
Workflow definition and execution models.

``WorkflowDefinition`` is registered once per id and replaced wholesale on
re-registration (last write wins, no versioning).  It is frozen; toggling it
active/inactive produces a new copy.

``WorkflowExecution`` is the audit record of one run.  Like a pipeline run
record it is the one mutable model here: ``context``, ``results``,
``current_step`` and the status fields change while the run progresses.
Status changes go through ``mark_completed()`` / ``mark_failed()`` which
enforce the only legal transitions::

    running ──► completed
       └──────► failed

Once terminal, an execution never changes status again.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from asset_insight.errors import InvalidTransitionError
from asset_insight.taxonomy.asset_taxonomy import ConditionOperator, WorkflowStatus
from asset_insight.utils.time_utils import utcnow

ExecutionEventKind = Literal[
    "started", "step_completed", "completed",
    "final_actions_completed", "final_actions_failed", "failed",
]


class StepCondition(BaseModel):
    """An atomic predicate over a dotted path into the execution context.

    Attributes:
        field: Dotted path, e.g. ``"equipment.status"``.
        operator: One of ``ConditionOperator``.
        value: Right-hand operand (a list for ``in``).
    """

    model_config = ConfigDict(frozen=True)

    field: str
    operator: ConditionOperator
    value: Any = None


class WorkflowStep(BaseModel):
    """One step (or final action) of a workflow.

    ``action`` is kept as a plain string so definitions naming an unsupported
    action can still be registered; dispatch rejects them at execution time.
    Final actions may spell the action key ``type``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: str = Field(validation_alias=AliasChoices("action", "type"))
    params: dict[str, Any] = {}
    conditions: Optional[list[StepCondition]] = None


class WorkflowDefinition(BaseModel):
    """A named, ordered sequence of conditional steps plus final actions.

    Attributes:
        id: Registry key.
        name: Display name.
        description: Free-form description.
        triggers: Event names that should start this workflow.
        steps: Ordered steps.
        actions: Final actions, run unconditionally after all steps.
        is_active: Inactive workflows cannot be executed.
        created_at: Registration time.
        updated_at: Last registration / toggle time.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    triggers: list[str] = []
    steps: list[WorkflowStep] = []
    actions: list[WorkflowStep] = []
    is_active: bool = Field(default=False, validation_alias=AliasChoices("is_active", "isActive"))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class StepResult(BaseModel):
    """Result of one executed step, appended to the execution log."""

    model_config = ConfigDict(frozen=True)

    step: int
    action: str
    result: dict[str, Any]
    timestamp: datetime


class ExecutionEvent(BaseModel):
    """One append-only lifecycle event emitted to an ``ExecutionEventSink``."""

    model_config = ConfigDict(frozen=True)

    execution_id: str
    workflow_id: str
    kind: ExecutionEventKind
    at: datetime
    detail: dict[str, Any] = {}


class WorkflowExecution(BaseModel):
    """Audit record of one workflow run.

    Mutable by design: ``context``, ``results``, ``current_step``, ``status``,
    ``error`` and ``completed_at`` are updated during execution.

    Attributes:
        id: Unique execution id, ``<workflow_id>_<hex>``.
        workflow_id: Definition this run belongs to.
        status: ``running`` until it becomes ``completed`` or ``failed``.
        context: Cumulative key-value context; each step's result is merged in.
        current_step: Index of the step being (or last) processed.
        results: Ordered log of executed (not skipped) steps.
        error: Error message once ``failed``, or of a failed final action
            (status then stays ``completed``).
        started_at: When the run began.
        completed_at: When the run reached a terminal status.
    """

    model_config = ConfigDict(frozen=False)

    id: str
    workflow_id: str
    status: WorkflowStatus = WorkflowStatus.RUNNING
    context: dict[str, Any] = {}
    current_step: int = 0
    results: list[StepResult] = []
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def mark_completed(self) -> None:
        self._transition(WorkflowStatus.COMPLETED)

    def mark_failed(self, error: str) -> None:
        self._transition(WorkflowStatus.FAILED)
        self.error = error

    def _transition(self, target: WorkflowStatus) -> None:
        if self.status is not WorkflowStatus.RUNNING:
            raise InvalidTransitionError(self.id, self.status.value, target.value)
        self.status = target
        self.completed_at = utcnow()
