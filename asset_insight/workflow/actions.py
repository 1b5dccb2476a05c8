"""
Workflow action handlers.

Actions form a closed set (``ActionKind``).  Each kind maps to one async
handler ``(params, context) -> dict``; the returned dict is appended to the
execution log and merged into the execution context.

The reference handlers below only log and return synthetic identifiers.  The
calling layer supplies real side-effecting implementations by passing its own
map to ``WorkflowEngine`` (typically ``{**default_handlers(), kind: fn}``).

Dispatch is explicit: every kind -> handler mapping lives in one dict, and a
name outside ``ActionKind`` or without a handler raises ``UnknownActionError``.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping
from uuid import uuid4

from asset_insight.errors import UnknownActionError
from asset_insight.taxonomy.asset_taxonomy import ActionKind

logger = logging.getLogger(__name__)

ActionHandler = Callable[[dict[str, Any], dict[str, Any]], Awaitable[dict[str, Any]]]


def _synthetic_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


# ── Reference handlers ────────────────────────────────────────────────────────

async def send_notification(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    recipients = params.get("recipients")
    message = params.get("message")
    logger.info(
        "Sending %s notification to %s: %s", params.get("type", "email"), recipients, message,
    )
    return {"notification_sent": True, "recipients": recipients, "message": message}


async def create_approval_request(
    params: dict[str, Any],
    context: dict[str, Any],
) -> dict[str, Any]:
    approver = params.get("approver")
    item = params.get("item")
    logger.info(
        "Creating approval request for %s to %s (priority=%s)",
        item, approver, params.get("priority", "medium"),
    )
    return {
        "approval_request_id": _synthetic_id("approval"),
        "approver": approver,
        "item": item,
    }


async def update_status(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    item_id = params.get("item_id")
    new_status = params.get("new_status")
    logger.info("Updating %s status to %s", item_id, new_status)
    return {"item_id": item_id, "new_status": new_status, "updated": True}


async def generate_report(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    report_type = params.get("type")
    fmt = params.get("format", "pdf")
    logger.info("Generating %s report in %s format", report_type, fmt)
    return {"report_id": _synthetic_id("report"), "type": report_type, "format": fmt}


async def schedule_maintenance(
    params: dict[str, Any],
    context: dict[str, Any],
) -> dict[str, Any]:
    equipment_id = params.get("equipment_id")
    scheduled_date = params.get("scheduled_date")
    logger.info(
        "Scheduling %s maintenance for %s on %s",
        params.get("maintenance_type"), equipment_id, scheduled_date,
    )
    return {
        "maintenance_id": _synthetic_id("maint"),
        "equipment_id": equipment_id,
        "scheduled_date": scheduled_date,
    }


async def assign_task(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    task_id = params.get("task_id")
    assignee = params.get("assignee")
    logger.info("Assigning task %s to %s", task_id, assignee)
    return {"task_id": task_id, "assignee": assignee, "assigned": True}


def default_handlers() -> dict[ActionKind, ActionHandler]:
    """A fresh map covering every ``ActionKind`` with the reference handlers."""
    return {
        ActionKind.SEND_NOTIFICATION:       send_notification,
        ActionKind.CREATE_APPROVAL_REQUEST: create_approval_request,
        ActionKind.UPDATE_STATUS:           update_status,
        ActionKind.GENERATE_REPORT:         generate_report,
        ActionKind.SCHEDULE_MAINTENANCE:    schedule_maintenance,
        ActionKind.ASSIGN_TASK:             assign_task,
    }


# ── Dispatch ──────────────────────────────────────────────────────────────────

def resolve_handler(
    handlers: Mapping[ActionKind, ActionHandler],
    action: str,
) -> ActionHandler:
    """Look up the handler for an action name.

    Raises:
        UnknownActionError: ``action`` is not an ``ActionKind`` value, or
            no handler is registered for it.
    """
    try:
        kind = ActionKind(action)
    except ValueError:
        raise UnknownActionError(action) from None
    handler = handlers.get(kind)
    if handler is None:
        raise UnknownActionError(action)
    return handler
