"""
Conditional workflow execution.

Every execution follows the same contract:
  1. ``execute_workflow(id, context)`` looks the definition up.  Unknown or
     inactive ids raise ``WorkflowNotFoundError`` before any execution record
     exists.
  2. A ``WorkflowExecution`` is created with status ``running`` and stored.
  3. Steps run in definition order.  A step whose conditions fail is skipped
     with no log entry.  Otherwise its action is dispatched, the result is
     appended to ``results`` and merged into the cumulative context.
  4. Any error marks the execution ``failed`` (prior results stay), is
     recorded on the execution, and is re-raised.  No retry.
  5. After the last step the execution is ``completed``; the definition's
     final actions then run unconditionally against the final context.  A
     final-action error is recorded in ``error`` and re-raised, but the
     status stays ``completed``: a terminal status never changes.

Each transition is also emitted to the injected ``ExecutionEventSink``.
Steps inside one execution are awaited sequentially; separate executions may
interleave on one event loop, each with its own context.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union
from uuid import uuid4

from asset_insight.config import WorkflowConfig
from asset_insight.errors import WorkflowNotFoundError
from asset_insight.models.workflow import (
    ExecutionEvent,
    ExecutionEventKind,
    StepResult,
    WorkflowDefinition,
    WorkflowExecution,
    WorkflowStep,
)
from asset_insight.taxonomy.asset_taxonomy import ActionKind, WorkflowStatus
from asset_insight.utils.time_utils import utcnow
from asset_insight.workflow.actions import ActionHandler, default_handlers, resolve_handler
from asset_insight.workflow.conditions import evaluate_conditions
from asset_insight.workflow.presets import predefined_workflows
from asset_insight.workflow.store import ExecutionEventSink, WorkflowStore

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Registers workflow definitions and executes them.

    Args:
        store:    Definition / execution registry.  Defaults to a fresh
                  ``WorkflowStore`` sized from ``config``.
        handlers: Action handler map.  Defaults to ``default_handlers()``.
        sink:     Receives lifecycle events.  Optional.
        config:   Registry limits and preset settings.  Defaults to
                  ``WorkflowConfig()``.
    """

    def __init__(
        self,
        store: Optional[WorkflowStore] = None,
        handlers: Optional[Mapping[ActionKind, ActionHandler]] = None,
        sink: Optional[ExecutionEventSink] = None,
        config: Optional[WorkflowConfig] = None,
    ) -> None:
        self.config = config or WorkflowConfig()
        self.store = store if store is not None else WorkflowStore(
            max_executions=self.config.max_executions,
            max_age_hours=self.config.execution_max_age_hours,
        )
        self.handlers: dict[ActionKind, ActionHandler] = dict(
            handlers if handlers is not None else default_handlers()
        )
        self.sink = sink

        if self.config.register_presets:
            for preset in predefined_workflows(active=self.config.activate_presets):
                # Never clobber a definition already held by a shared store.
                if self.store.get_definition(preset.id) is None:
                    self.store.put_definition(preset)

    # ── Registry ──────────────────────────────────────────────────────────────

    def register_workflow(
        self,
        workflow_id: str,
        definition: Union[WorkflowDefinition, Mapping[str, Any]],
    ) -> WorkflowDefinition:
        """Store a definition under ``workflow_id``, replacing any existing one.

        ``definition`` may be a ``WorkflowDefinition`` or a plain mapping in
        the same shape (``isActive`` accepted for ``is_active``).  The stored
        copy always carries ``workflow_id`` and fresh timestamps.
        """
        now = utcnow()
        if isinstance(definition, WorkflowDefinition):
            stored = definition.model_copy(
                update={"id": workflow_id, "created_at": now, "updated_at": now}
            )
        else:
            stored = WorkflowDefinition.model_validate(
                {**definition, "id": workflow_id, "created_at": now, "updated_at": now}
            )
        self.store.put_definition(stored)
        logger.info("Registered workflow '%s' (active=%s).", workflow_id, stored.is_active)
        return stored

    def get_workflow(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        return self.store.get_definition(workflow_id)

    def get_active_workflows(self) -> list[WorkflowDefinition]:
        return [d for d in self.store.definitions() if d.is_active]

    def toggle_workflow(self, workflow_id: str, active: bool) -> Optional[WorkflowDefinition]:
        """Activate or deactivate a workflow; ``None`` if the id is unknown."""
        current = self.store.get_definition(workflow_id)
        if current is None:
            return None
        updated = current.model_copy(update={"is_active": active, "updated_at": utcnow()})
        self.store.put_definition(updated)
        return updated

    def get_running_executions(self) -> list[WorkflowExecution]:
        return self.store.executions(WorkflowStatus.RUNNING)

    def get_executions(self) -> list[WorkflowExecution]:
        return self.store.executions()

    def get_execution(self, execution_id: str) -> Optional[WorkflowExecution]:
        return self.store.get_execution(execution_id)

    # ── Execution ─────────────────────────────────────────────────────────────

    async def execute_workflow(
        self,
        workflow_id: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> WorkflowExecution:
        """Run a registered, active workflow against ``context``.

        Returns:
            The execution record with status ``completed``.

        Raises:
            WorkflowNotFoundError: Unknown or inactive ``workflow_id``
                (raised before any execution record is created).
            UnknownActionError: A step names an unsupported action; the
                execution is recorded as ``failed`` first.
            Exception: Anything raised by an action handler, after the
                execution is recorded as ``failed``.
        """
        definition = self.store.get_definition(workflow_id)
        if definition is None:
            raise WorkflowNotFoundError(workflow_id)
        if not definition.is_active:
            raise WorkflowNotFoundError(workflow_id, inactive=True)

        execution = WorkflowExecution(
            id=f"{workflow_id}_{uuid4().hex[:12]}",
            workflow_id=workflow_id,
            context=dict(context or {}),
        )
        self.store.add_execution(execution)
        logger.info(
            "Workflow [%s] starting | execution_id=%s", workflow_id, execution.id,
            extra={"workflow_id": workflow_id, "execution_id": execution.id},
        )
        self._emit(execution, "started")

        try:
            for index, step in enumerate(definition.steps):
                execution.current_step = index
                if not evaluate_conditions(step.conditions, execution.context):
                    logger.debug(
                        "Workflow [%s] step %d (%s) skipped | execution_id=%s",
                        workflow_id, index, step.action, execution.id,
                    )
                    continue

                result = await self._dispatch(step, execution.context)
                execution.results.append(StepResult(
                    step=index, action=step.action, result=result, timestamp=utcnow(),
                ))
                execution.context = {**execution.context, **result}
                self._emit(execution, "step_completed", {"step": index, "action": step.action})

        except Exception as exc:
            execution.mark_failed(str(exc))
            logger.error(
                "Workflow [%s] FAILED at step %d: %s | execution_id=%s",
                workflow_id, execution.current_step, exc, execution.id,
                extra={"workflow_id": workflow_id, "execution_id": execution.id},
            )
            self._emit(execution, "failed", {"step": execution.current_step, "error": str(exc)})
            raise

        execution.mark_completed()
        logger.info(
            "Workflow [%s] completed | steps_run=%d | execution_id=%s",
            workflow_id, len(execution.results), execution.id,
            extra={"workflow_id": workflow_id, "execution_id": execution.id},
        )
        self._emit(execution, "completed", {"steps_run": len(execution.results)})

        if definition.actions:
            try:
                for action in definition.actions:
                    await self._dispatch(action, execution.context)
            except Exception as exc:
                execution.error = f"final action failed: {exc}"
                logger.error(
                    "Workflow [%s] final actions FAILED: %s | execution_id=%s",
                    workflow_id, exc, execution.id,
                    extra={"workflow_id": workflow_id, "execution_id": execution.id},
                )
                self._emit(execution, "final_actions_failed", {"error": str(exc)})
                raise
            self._emit(execution, "final_actions_completed", {"count": len(definition.actions)})

        return execution

    async def _dispatch(self, step: WorkflowStep, context: dict[str, Any]) -> dict[str, Any]:
        handler = resolve_handler(self.handlers, step.action)
        result = await handler(dict(step.params), context)
        return dict(result or {})

    def _emit(
        self,
        execution: WorkflowExecution,
        kind: ExecutionEventKind,
        detail: Optional[dict[str, Any]] = None,
    ) -> None:
        if self.sink is None:
            return
        event = ExecutionEvent(
            execution_id=execution.id,
            workflow_id=execution.workflow_id,
            kind=kind,
            at=utcnow(),
            detail=detail or {},
        )
        try:
            self.sink.emit(event)
        except Exception as exc:
            # A broken sink must not mask the execution outcome.
            logger.error(
                "Failed to emit %s event for execution_id=%s: %s",
                kind, execution.id, exc,
            )
