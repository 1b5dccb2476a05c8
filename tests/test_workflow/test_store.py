"""
Tests for asset_insight/workflow/store.py and the execution status machine.

What we test
------------
WorkflowStore:
  - Definitions: put / get / overwrite.
  - Executions: insertion order, status filter.
  - Eviction: stale terminal executions first, then oldest terminal ones
    beyond ``max_executions``; running executions are never evicted.

WorkflowExecution:
  - running -> completed / failed; terminal states never change again.

Event sinks:
  - InMemoryEventSink keeps events in order and filters by execution.
  - LoggingEventSink logs failures at WARNING.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from asset_insight.errors import InvalidTransitionError
from asset_insight.models.workflow import ExecutionEvent, WorkflowDefinition, WorkflowExecution
from asset_insight.taxonomy.asset_taxonomy import WorkflowStatus
from asset_insight.utils.time_utils import utcnow
from asset_insight.workflow.store import InMemoryEventSink, LoggingEventSink, WorkflowStore


def _execution(execution_id: str, status: WorkflowStatus = WorkflowStatus.COMPLETED) -> WorkflowExecution:
    execution = WorkflowExecution(id=execution_id, workflow_id="wf")
    if status is WorkflowStatus.COMPLETED:
        execution.mark_completed()
    elif status is WorkflowStatus.FAILED:
        execution.mark_failed("boom")
    return execution


def _event(execution_id: str, kind: str = "started") -> ExecutionEvent:
    return ExecutionEvent(execution_id=execution_id, workflow_id="wf", kind=kind, at=utcnow())


class TestDefinitions:
    def test_put_get_overwrite(self):
        store = WorkflowStore()
        store.put_definition(WorkflowDefinition(id="wf", name="First"))
        store.put_definition(WorkflowDefinition(id="wf", name="Second"))
        assert store.get_definition("wf").name == "Second"
        assert len(store.definitions()) == 1
        assert store.get_definition("missing") is None


class TestExecutions:
    def test_filter_by_status(self):
        store = WorkflowStore()
        store.add_execution(_execution("a", WorkflowStatus.RUNNING))
        store.add_execution(_execution("b", WorkflowStatus.COMPLETED))
        store.add_execution(_execution("c", WorkflowStatus.FAILED))
        assert [e.id for e in store.executions()] == ["a", "b", "c"]
        assert [e.id for e in store.executions(WorkflowStatus.RUNNING)] == ["a"]
        assert store.get_execution("c").error == "boom"

    def test_capacity_evicts_oldest_terminal(self):
        store = WorkflowStore(max_executions=2)
        for execution_id in ("a", "b", "c"):
            store.add_execution(_execution(execution_id))
        assert [e.id for e in store.executions()] == ["b", "c"]

    def test_running_never_evicted(self):
        store = WorkflowStore(max_executions=2)
        store.add_execution(_execution("r1", WorkflowStatus.RUNNING))
        store.add_execution(_execution("done"))
        store.add_execution(_execution("r2", WorkflowStatus.RUNNING))
        assert [e.id for e in store.executions()] == ["r1", "r2"]

    def test_over_capacity_with_only_running(self, caplog):
        store = WorkflowStore(max_executions=1)
        store.add_execution(_execution("r1", WorkflowStatus.RUNNING))
        with caplog.at_level(logging.WARNING, logger="asset_insight.workflow.store"):
            store.add_execution(_execution("r2", WorkflowStatus.RUNNING))
        assert len(store.executions()) == 2
        assert "over capacity" in caplog.text

    def test_stale_terminal_evicted(self):
        store = WorkflowStore(max_age_hours=1)
        old = _execution("old")
        old.completed_at = utcnow() - timedelta(hours=2)
        store.add_execution(old)
        store.add_execution(_execution("fresh"))
        assert [e.id for e in store.executions()] == ["fresh"]

    def test_clear(self):
        store = WorkflowStore()
        store.add_execution(_execution("a"))
        store.put_definition(WorkflowDefinition(id="wf", name="WF"))
        store.clear()
        assert store.executions() == []
        assert store.definitions() == []

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            WorkflowStore(max_executions=0)


class TestExecutionStatus:
    def test_completed(self):
        execution = _execution("a")
        assert execution.status is WorkflowStatus.COMPLETED
        assert execution.is_terminal
        assert execution.completed_at is not None

    @pytest.mark.parametrize("status", [WorkflowStatus.COMPLETED, WorkflowStatus.FAILED])
    def test_terminal_is_final(self, status):
        execution = _execution("a", status)
        with pytest.raises(InvalidTransitionError):
            execution.mark_completed()
        with pytest.raises(InvalidTransitionError):
            execution.mark_failed("again")
        assert execution.status is status


class TestSinks:
    def test_in_memory(self):
        sink = InMemoryEventSink()
        sink.emit(_event("a"))
        sink.emit(_event("b"))
        sink.emit(_event("a", "completed"))
        assert [e.kind for e in sink.for_execution("a")] == ["started", "completed"]
        assert len(sink.events) == 3

    def test_logging_sink_levels(self, caplog):
        sink = LoggingEventSink()
        with caplog.at_level(logging.INFO, logger="asset_insight.workflow.store"):
            sink.emit(_event("a", "started"))
            sink.emit(_event("a", "failed"))
        levels = [r.levelno for r in caplog.records]
        assert levels == [logging.INFO, logging.WARNING]
