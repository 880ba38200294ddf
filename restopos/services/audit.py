"""Audit log helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from restopos.models import AuditLog

ACTION_CREATE: str = "CREATE"
ACTION_UPDATE: str = "UPDATE"
ACTION_DELETE: str = "DELETE"


def log_action(
    db: Session,
    *,
    actor_name: str | None,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    old_values: dict[str, Any] | None = None,
    new_values: dict[str, Any] | None = None,
) -> None:
    db.add(
        AuditLog(
            actor_name=actor_name,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
        )
    )


def audit_row(
    *,
    actor_name: str | None,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    old_values: dict[str, Any] | None = None,
    new_values: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Return an ``audit_logs`` row for stores written through the REST API."""
    return {
        "actor_name": actor_name,
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "old_values": old_values,
        "new_values": new_values,
    }
