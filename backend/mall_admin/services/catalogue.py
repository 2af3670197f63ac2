"""Permission catalogue: CRUD over permission nodes plus flat and tree reads.

The catalogue is meant to be a tree via ``parent_id`` but nothing enforces it. Cycles and
button-under-button nesting are accepted, and deleting a node does not touch its children,
so tree construction treats any parent id that does not resolve as a root.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from mall_admin import get_db
from mall_admin.errors import DuplicateCode, NotFound, ParentNotFound, ValidationError
from mall_admin.models.authz import Permission, RolePermission, ALL_KINDS
from mall_admin.utils.validation import require_fields, validate_choice

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('name', 'kind', 'path', 'description', 'sort_order', 'parent_id')


def permission_json(p: Permission) -> Dict[str, Any]:
    return {
        'id': p.id,
        'code': p.code,
        'name': p.name,
        'kind': p.kind,
        'parent_id': p.parent_id,
        'path': p.path,
        'description': p.description,
        'sort_order': p.sort_order,
        'created_at': p.created_at.isoformat() if p.created_at else None,
        'updated_at': p.updated_at.isoformat() if p.updated_at else None,
    }


def get_permission(permission_id: int) -> Permission:
    perm = get_db().get(Permission, permission_id)
    if not perm:
        raise NotFound('Permission not found')
    return perm


def get_permission_by_code(code: str) -> Optional[Permission]:
    return get_db().execute(select(Permission).where(Permission.code == code)).scalar_one_or_none()


def _coerce_parent_id(value) -> Optional[int]:
    if value in (None, ''):
        return None
    if isinstance(value, bool):
        raise ValidationError('parent_id must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError('parent_id must be an integer')


def _coerce_sort_order(value) -> int:
    if value in (None, ''):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError('sort_order must be an integer')


def create_permission(code: str, name: str, kind: str, parent_id: Optional[int] = None,
                      path: Optional[str] = None, description: Optional[str] = None,
                      sort_order: Any = 0) -> Permission:
    require_fields({'code': code, 'name': name, 'kind': kind}, ('code', 'name', 'kind'))
    validate_choice(kind, ALL_KINDS, 'kind')
    parent_id = _coerce_parent_id(parent_id)
    session = get_db()
    if get_permission_by_code(code):
        raise DuplicateCode(f'Permission code "{code}" already exists')
    if parent_id is not None and session.get(Permission, parent_id) is None:
        raise ParentNotFound(f'Parent permission {parent_id} not found')
    perm = Permission(
        code=code,
        name=name,
        kind=kind,
        parent_id=parent_id,
        path=path or None,
        description=description or None,
        sort_order=_coerce_sort_order(sort_order),
    )
    session.add(perm)
    try:
        session.commit()
    except IntegrityError:
        # unique index is the source of truth when two creators race
        session.rollback()
        raise DuplicateCode(f'Permission code "{code}" already exists')
    logger.info('Permission created: %s', code)
    return perm


def update_permission(permission_id: int, **fields) -> Permission:
    session = get_db()
    perm = get_permission(permission_id)
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f'Fields not updatable: {sorted(unknown)}')
    if 'name' in fields and not fields['name']:
        raise ValidationError('name cannot be empty')
    if 'kind' in fields:
        validate_choice(fields['kind'], ALL_KINDS, 'kind')
    if 'parent_id' in fields:
        fields['parent_id'] = _coerce_parent_id(fields['parent_id'])
    if 'parent_id' in fields and fields['parent_id'] is not None:
        parent_id = fields['parent_id']
        if parent_id == perm.id:
            raise ValidationError('A permission cannot be its own parent')
        # No cycle detection beyond the self check; deeper loops are accepted as-is.
        if session.get(Permission, parent_id) is None:
            raise ParentNotFound(f'Parent permission {parent_id} not found')
    if 'sort_order' in fields:
        fields['sort_order'] = _coerce_sort_order(fields['sort_order'])
    for key, value in fields.items():
        setattr(perm, key, value)
    session.commit()
    return perm


def delete_permission(permission_id: int) -> None:
    session = get_db()
    perm = get_permission(permission_id)
    code = perm.code
    # Detach from roles; children are left with a dangling parent_id on purpose.
    session.execute(delete(RolePermission).where(RolePermission.permission_id == perm.id))
    session.delete(perm)
    session.commit()
    # loaded roles still hold the removed links in their collections
    session.expire_all()
    logger.info('Permission deleted: %s', code)


def list_flat() -> List[Permission]:
    return list(get_db().execute(
        select(Permission).order_by(Permission.sort_order.asc(), Permission.id.asc())
    ).scalars())


def build_tree(permissions: List[Permission]) -> List[Dict[str, Any]]:
    """Single pass over an id-indexed arena producing a forest.

    A node whose parent_id is unset or does not resolve to a node in ``permissions``
    becomes a root. Input order is preserved among siblings and roots.
    """
    arena: Dict[int, Dict[str, Any]] = {}
    for p in permissions:
        node = permission_json(p)
        node['children'] = []
        arena[p.id] = node
    roots: List[Dict[str, Any]] = []
    for p in permissions:
        node = arena[p.id]
        parent = arena.get(p.parent_id) if p.parent_id is not None else None
        if parent is not None and parent is not node:
            parent['children'].append(node)
        else:
            roots.append(node)
    return roots


def list_tree() -> List[Dict[str, Any]]:
    return build_tree(list_flat())


__all__ = [
    'permission_json', 'get_permission', 'get_permission_by_code', 'create_permission',
    'update_permission', 'delete_permission', 'list_flat', 'list_tree', 'build_tree',
]
