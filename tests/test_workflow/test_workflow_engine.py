"""
Tests for asset_insight/workflow/engine.py.

What we test
------------
Registry:
  - register_workflow() accepts a model or a mapping (``isActive`` alias),
    overwrites by id and stamps fresh timestamps.
  - Presets are registered inactive by default and never clobber an
    existing definition in a shared store.
  - toggle_workflow() flips activity; unknown ids return None.

execute_workflow():
  - Unregistered / inactive ids raise before any execution record exists.
  - Every step skipped -> completed, empty result log, no error.
  - [A(condition false), B(condition true, action throws)] -> failed,
    empty result log, error populated, exception re-raised.
  - Unknown action -> UnknownActionError, execution failed.
  - Results merge into the context cumulatively; the caller's dict is
    not mutated.
  - Final actions run against the final context; a failing final action
    records the error, keeps status completed and re-raises.
  - Lifecycle events reach the sink in order; a broken sink is tolerated.
  - Concurrent executions keep independent contexts.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from asset_insight.config import WorkflowConfig
from asset_insight.errors import UnknownActionError, WorkflowNotFoundError
from asset_insight.models.workflow import WorkflowDefinition
from asset_insight.taxonomy.asset_taxonomy import ActionKind, WorkflowStatus
from asset_insight.workflow.actions import default_handlers
from asset_insight.workflow.engine import WorkflowEngine
from asset_insight.workflow.store import InMemoryEventSink, WorkflowStore


async def _boom(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    raise RuntimeError("handler exploded")


async def _echo(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    return {"assigned_to": params.get("assignee"), "seen": sorted(context)}


def _engine(**overrides) -> WorkflowEngine:
    handlers = {**default_handlers(), **overrides.pop("handlers", {})}
    return WorkflowEngine(handlers=handlers, **overrides)


def _definition(steps: list[dict[str, Any]], actions: list[dict[str, Any]] | None = None) -> dict:
    return {"name": "Test", "steps": steps, "actions": actions or [], "isActive": True}


def _run(engine: WorkflowEngine, workflow_id: str, context: dict | None = None):
    return asyncio.run(engine.execute_workflow(workflow_id, context))


# ── Registry ──────────────────────────────────────────────────────────────────

class TestRegistry:
    def test_register_mapping(self):
        engine = _engine()
        stored = engine.register_workflow("wf", _definition([{"action": "send_notification"}]))
        assert stored.id == "wf"
        assert stored.is_active is True
        assert engine.get_workflow("wf") == stored

    def test_register_model_overrides_id(self):
        engine = _engine()
        stored = engine.register_workflow("wf-2", WorkflowDefinition(id="other", name="X"))
        assert stored.id == "wf-2"
        assert engine.get_workflow("other") is None

    def test_reregistration_overwrites(self):
        engine = _engine()
        engine.register_workflow("wf", {"name": "v1"})
        engine.register_workflow("wf", {"name": "v2"})
        assert engine.get_workflow("wf").name == "v2"

    def test_presets_inactive(self):
        engine = _engine()
        ids = {d.id for d in engine.store.definitions()}
        assert {"maintenance_required", "obsolete_equipment", "license_expiring"} <= ids
        assert engine.get_active_workflows() == []

    def test_presets_disabled(self):
        engine = _engine(config=WorkflowConfig(register_presets=False))
        assert engine.store.definitions() == []

    def test_presets_do_not_clobber_shared_store(self):
        store = WorkflowStore()
        first = WorkflowEngine(store=store)
        first.register_workflow("maintenance_required", {"name": "Custom", "isActive": True})
        WorkflowEngine(store=store)
        assert store.get_definition("maintenance_required").name == "Custom"

    def test_toggle(self):
        engine = _engine()
        updated = engine.toggle_workflow("license_expiring", True)
        assert updated.is_active is True
        assert [d.id for d in engine.get_active_workflows()] == ["license_expiring"]
        assert engine.toggle_workflow("license_expiring", False).is_active is False

    def test_toggle_unknown(self):
        assert _engine().toggle_workflow("nope", True) is None


# ── Execution ─────────────────────────────────────────────────────────────────

class TestExecuteWorkflow:
    def test_unregistered_raises_without_record(self):
        engine = _engine()
        with pytest.raises(WorkflowNotFoundError) as exc_info:
            _run(engine, "does-not-exist")
        assert exc_info.value.inactive is False
        assert engine.get_running_executions() == []
        assert engine.get_executions() == []

    def test_inactive_raises_without_record(self):
        engine = _engine()
        with pytest.raises(WorkflowNotFoundError) as exc_info:
            _run(engine, "maintenance_required")
        assert exc_info.value.inactive is True
        assert engine.get_executions() == []

    def test_all_steps_skipped(self):
        engine = _engine()
        never = [{"field": "x", "operator": "equals", "value": 1}]
        engine.register_workflow("wf", _definition([
            {"action": "send_notification", "conditions": never},
            {"action": "assign_task", "conditions": never},
        ]))
        execution = _run(engine, "wf")
        assert execution.status is WorkflowStatus.COMPLETED
        assert execution.results == []
        assert execution.error is None
        assert execution.completed_at is not None

    def test_skipped_then_throwing_step(self):
        engine = _engine(handlers={ActionKind.ASSIGN_TASK: _boom})
        engine.register_workflow("wf", _definition([
            {"action": "send_notification",
             "conditions": [{"field": "go", "operator": "equals", "value": False}]},
            {"action": "assign_task",
             "conditions": [{"field": "go", "operator": "equals", "value": True}]},
        ]))
        with pytest.raises(RuntimeError, match="handler exploded"):
            _run(engine, "wf", {"go": True})

        [execution] = engine.get_executions()
        assert execution.status is WorkflowStatus.FAILED
        assert execution.results == []
        assert execution.error == "handler exploded"
        assert execution.current_step == 1

    def test_failure_keeps_prior_results(self):
        engine = _engine(handlers={ActionKind.ASSIGN_TASK: _boom})
        engine.register_workflow("wf", _definition([
            {"action": "send_notification", "params": {"recipients": ["ops"]}},
            {"action": "assign_task"},
            {"action": "generate_report"},
        ]))
        with pytest.raises(RuntimeError):
            _run(engine, "wf")
        [execution] = engine.get_executions()
        assert [r.action for r in execution.results] == ["send_notification"]

    def test_unknown_action(self):
        engine = _engine()
        engine.register_workflow("wf", _definition([{"action": "launch_rocket"}]))
        with pytest.raises(UnknownActionError):
            _run(engine, "wf")
        [execution] = engine.get_executions()
        assert execution.status is WorkflowStatus.FAILED
        assert "launch_rocket" in execution.error

    def test_context_is_cumulative(self):
        engine = _engine()
        engine.register_workflow("wf", _definition([
            {"action": "send_notification", "params": {"recipients": ["ops"], "message": "hi"}},
            {"action": "update_status", "params": {"item_id": "eq-1", "new_status": "busy"},
             "conditions": [{"field": "notification_sent", "operator": "equals", "value": True}]},
        ]))
        caller_context = {"equipment": {"id": "eq-1"}}
        execution = _run(engine, "wf", caller_context)

        assert [r.step for r in execution.results] == [0, 1]
        assert execution.context["notification_sent"] is True
        assert execution.context["new_status"] == "busy"
        assert execution.context["equipment"] == {"id": "eq-1"}
        assert caller_context == {"equipment": {"id": "eq-1"}}

    def test_handler_sees_prior_results(self):
        engine = _engine(handlers={ActionKind.ASSIGN_TASK: _echo})
        engine.register_workflow("wf", _definition([
            {"action": "create_approval_request", "params": {"approver": "boss"}},
            {"action": "assign_task", "params": {"assignee": "tech-1"}},
        ]))
        execution = _run(engine, "wf")
        assert "approval_request_id" in execution.results[1].result["seen"]

    def test_final_actions_run(self):
        calls: list[dict[str, Any]] = []

        async def record(params, context):
            calls.append(dict(context))
            return {"final": True}

        engine = _engine(handlers={ActionKind.UPDATE_STATUS: record})
        engine.register_workflow("wf", _definition(
            [{"action": "send_notification"}],
            actions=[{"type": "update_status", "params": {"item_id": "eq-1"}}],
        ))
        execution = _run(engine, "wf")
        assert execution.status is WorkflowStatus.COMPLETED
        assert len(calls) == 1
        assert calls[0]["notification_sent"] is True
        # Final actions are not part of the step log.
        assert len(execution.results) == 1

    def test_final_action_failure(self):
        sink = InMemoryEventSink()
        engine = _engine(handlers={ActionKind.UPDATE_STATUS: _boom}, sink=sink)
        engine.register_workflow("wf", _definition(
            [{"action": "send_notification"}],
            actions=[{"type": "update_status"}],
        ))
        with pytest.raises(RuntimeError):
            _run(engine, "wf")
        [execution] = engine.get_executions()
        assert execution.status is WorkflowStatus.COMPLETED
        assert execution.error == "final action failed: handler exploded"
        assert sink.events[-1].kind == "final_actions_failed"

    def test_events(self):
        sink = InMemoryEventSink()
        engine = _engine(sink=sink)
        engine.register_workflow("wf", _definition(
            [{"action": "send_notification"}, {"action": "generate_report"}],
            actions=[{"type": "update_status"}],
        ))
        execution = _run(engine, "wf")
        kinds = [e.kind for e in sink.for_execution(execution.id)]
        assert kinds == [
            "started", "step_completed", "step_completed",
            "completed", "final_actions_completed",
        ]

    def test_failed_event(self):
        sink = InMemoryEventSink()
        engine = _engine(handlers={ActionKind.ASSIGN_TASK: _boom}, sink=sink)
        engine.register_workflow("wf", _definition([{"action": "assign_task"}]))
        with pytest.raises(RuntimeError):
            _run(engine, "wf")
        assert [e.kind for e in sink.events] == ["started", "failed"]
        assert sink.events[-1].detail["error"] == "handler exploded"

    def test_broken_sink_tolerated(self):
        class BrokenSink:
            def emit(self, event):
                raise OSError("disk full")

        engine = _engine(sink=BrokenSink())
        engine.register_workflow("wf", _definition([{"action": "send_notification"}]))
        assert _run(engine, "wf").status is WorkflowStatus.COMPLETED

    def test_execution_ids_unique(self):
        engine = _engine()
        engine.register_workflow("wf", _definition([{"action": "send_notification"}]))
        a, b = _run(engine, "wf"), _run(engine, "wf")
        assert a.id != b.id
        assert a.id.startswith("wf_")
        assert engine.get_execution(a.id) is a

    def test_concurrent_executions_independent(self):
        async def slow_assign(params, context):
            await asyncio.sleep(0)
            return {"owner": context["owner"]}

        engine = _engine(handlers={ActionKind.ASSIGN_TASK: slow_assign})
        engine.register_workflow("wf", _definition([
            {"action": "assign_task"}, {"action": "assign_task"},
        ]))

        async def both():
            return await asyncio.gather(
                engine.execute_workflow("wf", {"owner": "alice"}),
                engine.execute_workflow("wf", {"owner": "bob"}),
            )

        first, second = asyncio.run(both())
        assert [r.result["owner"] for r in first.results] == ["alice", "alice"]
        assert [r.result["owner"] for r in second.results] == ["bob", "bob"]
        assert engine.get_running_executions() == []
