"""Audit trail writes. Entries join the caller's transaction; nothing is committed here."""
from __future__ import annotations
from typing import Any, Dict, Optional
from flask import g, has_request_context
from mall_admin import get_db
from mall_admin.models.audit import AuditLog

SYSTEM_ACTOR_ID = 0


def current_actor_id() -> int:
    if not has_request_context():
        return SYSTEM_ACTOR_ID
    user = getattr(g, 'admin_user', None)
    return user.id if user is not None else SYSTEM_ACTOR_ID


def add_audit(action: str, entity: Optional[str] = None, entity_id: Any = None,
              meta: Optional[Dict[str, Any]] = None) -> AuditLog:
    log = AuditLog(
        actor_user_id=current_actor_id(),
        action=action,
        entity=entity,
        entity_id=None if entity_id is None else str(entity_id),
        meta=dict(meta or {}),
    )
    get_db().add(log)
    return log
