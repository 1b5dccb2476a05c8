"""
Workflow registries and execution event sinks.

``WorkflowStore`` owns the two registries a ``WorkflowEngine`` needs:

  - definitions, keyed by workflow id (re-registration overwrites);
  - executions, keyed by execution id, in insertion order.

The caller controls the store's lifecycle (one per request, or one long-lived
instance shared by several engines).  Executions are bounded: each time an
execution is added, terminal executions older than ``max_age`` are dropped,
then the oldest terminal executions are dropped until at most
``max_executions`` remain.  Running executions are never evicted.

``ExecutionEventSink`` receives one append-only ``ExecutionEvent`` per
lifecycle transition.  Two sinks ship here: ``InMemoryEventSink`` (tests,
inspection) and ``LoggingEventSink`` (writes each event to the log).
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional, Protocol

from asset_insight.models.workflow import ExecutionEvent, WorkflowDefinition, WorkflowExecution
from asset_insight.taxonomy.asset_taxonomy import WorkflowStatus
from asset_insight.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class WorkflowStore:
    """In-memory definition and execution registry with bounded retention.

    Args:
        max_executions:  Upper bound on retained executions (terminal ones
                         are evicted oldest first).
        max_age_hours:   Terminal executions older than this are evicted.
    """

    def __init__(self, max_executions: int = 1000, max_age_hours: float = 24.0) -> None:
        if max_executions < 1:
            raise ValueError(f"max_executions must be >= 1, got {max_executions}.")
        self.max_executions = max_executions
        self.max_age = timedelta(hours=max_age_hours)
        self._definitions: dict[str, WorkflowDefinition] = {}
        self._executions: dict[str, WorkflowExecution] = {}

    # ── Definitions ───────────────────────────────────────────────────────────

    def put_definition(self, definition: WorkflowDefinition) -> None:
        self._definitions[definition.id] = definition

    def get_definition(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        return self._definitions.get(workflow_id)

    def definitions(self) -> list[WorkflowDefinition]:
        return list(self._definitions.values())

    # ── Executions ────────────────────────────────────────────────────────────

    def add_execution(self, execution: WorkflowExecution) -> None:
        self.evict()
        self._executions[execution.id] = execution

    def get_execution(self, execution_id: str) -> Optional[WorkflowExecution]:
        return self._executions.get(execution_id)

    def executions(self, status: Optional[WorkflowStatus] = None) -> list[WorkflowExecution]:
        if status is None:
            return list(self._executions.values())
        return [e for e in self._executions.values() if e.status is status]

    def evict(self) -> int:
        """Apply the retention policy; returns the number of executions dropped.

        Called before each insertion, so after ``add_execution`` the store may
        briefly hold ``max_executions`` + 1 entries only if all are running.
        """
        cutoff = utcnow() - self.max_age
        stale = [
            e.id for e in self._executions.values()
            if e.is_terminal and e.completed_at is not None and e.completed_at < cutoff
        ]
        for execution_id in stale:
            del self._executions[execution_id]

        dropped = len(stale)
        excess = len(self._executions) + 1 - self.max_executions
        if excess > 0:
            terminal = [e.id for e in self._executions.values() if e.is_terminal]
            for execution_id in terminal[:excess]:
                del self._executions[execution_id]
                dropped += 1
            if excess > len(terminal):
                logger.warning(
                    "Execution registry over capacity: %d running execution(s), limit %d.",
                    len(self._executions), self.max_executions,
                )
        if dropped:
            logger.debug("Evicted %d workflow execution(s).", dropped)
        return dropped

    def clear(self) -> None:
        self._definitions.clear()
        self._executions.clear()


# ── Event sinks ───────────────────────────────────────────────────────────────

class ExecutionEventSink(Protocol):
    """Receives lifecycle events; must not raise."""

    def emit(self, event: ExecutionEvent) -> None: ...


class InMemoryEventSink:
    """Keeps every event in a list, in emission order."""

    def __init__(self) -> None:
        self.events: list[ExecutionEvent] = []

    def emit(self, event: ExecutionEvent) -> None:
        self.events.append(event)

    def for_execution(self, execution_id: str) -> list[ExecutionEvent]:
        return [e for e in self.events if e.execution_id == execution_id]


class LoggingEventSink:
    """Writes each event to a logger at INFO (``failed`` at WARNING)."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def emit(self, event: ExecutionEvent) -> None:
        level = logging.WARNING if event.kind == "failed" else logging.INFO
        self._log.log(
            level,
            "workflow=%s execution=%s event=%s",
            event.workflow_id, event.execution_id, event.kind,
            extra={"execution_event": event.model_dump(mode="json")},
        )
