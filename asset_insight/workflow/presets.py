"""
Predefined workflows shipped with the engine.

  maintenance_required  equipment flagged for maintenance: approval (only when
                        ``equipment.status == "maintenance_required"``),
                        notify the maintenance team, schedule the visit; final
                        action marks the equipment ``maintenance_scheduled``.
  obsolete_equipment    equipment past its service life: approval (only when
                        ``equipment.age_years > 5``), replacement report.
  license_expiring      license close to expiry: notify (only when
                        ``license.days_to_expiry < 30``), renewal approval.

Presets are registered inactive unless ``WorkflowConfig.activate_presets``
is set; callers enable them individually with ``toggle_workflow``.
"""

from __future__ import annotations

from typing import Any

from asset_insight.models.workflow import WorkflowDefinition

_PRESETS: tuple[dict[str, Any], ...] = (
    {
        "id": "maintenance_required",
        "name": "Maintenance required",
        "description": "Automates the process when equipment requires maintenance",
        "triggers": ["equipment_status_changed"],
        "steps": [
            {
                "action": "create_approval_request",
                "params": {
                    "approver": "maintenance_manager",
                    "item": "equipment_maintenance",
                    "reason": "Equipment requires maintenance",
                    "priority": "high",
                },
                "conditions": [
                    {"field": "equipment.status", "operator": "equals",
                     "value": "maintenance_required"},
                ],
            },
            {
                "action": "send_notification",
                "params": {
                    "type": "email",
                    "recipients": ["maintenance_team"],
                    "message": "Equipment requires immediate maintenance attention",
                },
            },
            {
                "action": "schedule_maintenance",
                "params": {
                    "maintenance_type": "preventive",
                    "scheduled_date": "next_business_day",
                },
            },
        ],
        "actions": [
            {
                "type": "update_status",
                "params": {"item_id": "equipment_id", "new_status": "maintenance_scheduled"},
            },
        ],
    },
    {
        "id": "obsolete_equipment",
        "name": "Obsolete equipment",
        "description": "Handles equipment that has reached the end of its service life",
        "triggers": ["equipment_age_check"],
        "steps": [
            {
                "action": "create_approval_request",
                "params": {
                    "approver": "it_manager",
                    "item": "equipment_replacement",
                    "reason": "Equipment has reached end of life",
                    "priority": "medium",
                },
                "conditions": [
                    {"field": "equipment.age_years", "operator": "greater_than", "value": 5},
                ],
            },
            {
                "action": "generate_report",
                "params": {
                    "type": "replacement_recommendation",
                    "filters": {"equipment_id": "equipment_id"},
                },
            },
        ],
    },
    {
        "id": "license_expiring",
        "name": "License expiring",
        "description": "Manages software licenses that are about to expire",
        "triggers": ["license_expiry_check"],
        "steps": [
            {
                "action": "send_notification",
                "params": {
                    "type": "email",
                    "recipients": ["software_manager"],
                    "message": "Software license expiring soon",
                },
                "conditions": [
                    {"field": "license.days_to_expiry", "operator": "less_than", "value": 30},
                ],
            },
            {
                "action": "create_approval_request",
                "params": {
                    "approver": "procurement_manager",
                    "item": "license_renewal",
                    "reason": "License renewal required",
                    "priority": "high",
                },
            },
        ],
    },
)


def predefined_workflows(active: bool = False) -> list[WorkflowDefinition]:
    """Fresh definitions of the shipped workflows."""
    return [WorkflowDefinition.model_validate({**p, "is_active": active}) for p in _PRESETS]
