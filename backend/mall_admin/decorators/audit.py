from __future__ import annotations
"""Audit logging decorator for mutating admin routes.

Usage:

@audit_log('ROLE.CREATE', entity='Role', entity_id_key='id', meta_keys=['code'])
def create_role():
    ... return {'id': role.id, 'code': role.code}, 201

@audit_log('ROLE.DELETE', entity='Role', entity_id_arg='role_id')
def delete_role(role_id): ...

Parameters:
  action: audit action code (e.g. ROLE.CREATE)
  entity: optional entity label (Role, Permission, AdminUser)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: path parameter used for entity_id when the key is absent.
  meta_keys: keys projected from the returned JSON into meta.
  meta_builder: callable(data, kwargs) -> dict; overrides meta_keys.

The route's own response is never affected: only successful calls are audited and an
audit write failure is logged and dropped.
"""

from functools import wraps
from typing import Any, Callable, Iterable, Optional
import logging

from mall_admin.services.audit import add_audit
from mall_admin import get_db

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return the JSON-able part of a Flask view return value."""
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, dict], dict]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            if not isinstance(data, dict):
                data = {}
            entity_id = None
            if entity_id_key and entity_id_key in data:
                entity_id = data.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            if meta_builder:
                meta = meta_builder(data, kwargs)
            elif meta_keys:
                meta = {k: data.get(k) for k in meta_keys if k in data}
            else:
                meta = None
            session = get_db()
            try:
                add_audit(action, entity, entity_id, meta)
                session.commit()
            except Exception:
                session.rollback()
                logger.exception('Audit write failed for %s', action)
            return rv
        return wrapper
    return outer
