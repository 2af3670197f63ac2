from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from mall_admin import get_db
from mall_admin.constants.permissions import SYSTEM_ROLE_CODE
from mall_admin.errors import DuplicateCode, ForbiddenCode, NotFound, SystemRoleImmutable, ValidationError
from mall_admin.models.authz import Permission, Role, RolePermission
from mall_admin.utils.validation import is_blank, require_fields

logger = logging.getLogger(__name__)


def is_system_role(role: Role) -> bool:
    return bool(role.is_system) or role.code == SYSTEM_ROLE_CODE


def role_json(r: Role, with_permissions: bool = True) -> Dict[str, Any]:
    data = {
        'id': r.id,
        'code': r.code,
        'name': r.name,
        'description': r.description,
        'is_system': r.is_system,
        'grants_all': r.grants_all,
    }
    if with_permissions:
        perms = sorted((rp.permission for rp in r.permissions), key=lambda p: (p.sort_order, p.id))
        data['permission_ids'] = [p.id for p in perms]
        data['permissions'] = [p.code for p in perms]
    return data


def get_role(role_id: int) -> Role:
    role = get_db().get(Role, role_id)
    if not role:
        raise NotFound('Role not found')
    return role


def get_role_by_code(code: str) -> Optional[Role]:
    return get_db().execute(select(Role).where(Role.code == code)).scalar_one_or_none()


def list_roles() -> List[Role]:
    return list(get_db().execute(select(Role).order_by(Role.id.asc())).scalars())


def _load_permissions(permission_ids: Iterable[int]) -> List[Permission]:
    ids = list(dict.fromkeys(permission_ids))
    if not ids:
        return []
    perms = get_db().execute(select(Permission).where(Permission.id.in_(ids))).scalars().all()
    missing = set(ids) - {p.id for p in perms}
    if missing:
        raise ValidationError(f'Unknown permission ids: {sorted(missing)}')
    by_id = {p.id: p for p in perms}
    return [by_id[i] for i in ids]


def _replace_permissions(role: Role, perms: List[Permission]) -> None:
    role.permissions.clear()
    get_db().flush()
    for p in perms:
        role.permissions.append(RolePermission(permission=p))


def create_role(code: str, name: str, description: Optional[str] = None,
                permission_ids: Iterable[int] = ()) -> Role:
    require_fields({'code': code, 'name': name}, ('code', 'name'))
    if code == SYSTEM_ROLE_CODE:
        raise ForbiddenCode(f'Role code "{SYSTEM_ROLE_CODE}" is reserved')
    session = get_db()
    if get_role_by_code(code):
        raise DuplicateCode(f'Role code "{code}" already exists')
    perms = _load_permissions(permission_ids)
    role = Role(code=code, name=name, description=description or None, is_system=False, grants_all=False)
    for p in perms:
        role.permissions.append(RolePermission(permission=p))
    session.add(role)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise DuplicateCode(f'Role code "{code}" already exists')
    logger.info('Role created: %s (%d permissions)', code, len(perms))
    return role


def update_role(role_id: int, name: Optional[str] = None, description: Optional[str] = None,
                permission_ids: Optional[Iterable[int]] = None, **unexpected) -> Role:
    role = get_role(role_id)
    # Checked before looking at the payload: the system role rejects every write.
    if is_system_role(role):
        raise SystemRoleImmutable()
    if unexpected:
        raise ValidationError(f'Fields not updatable: {sorted(unexpected)}')
    if name is not None and (not isinstance(name, str) or is_blank(name)):
        raise ValidationError('name must be a non-empty string')
    perms = _load_permissions(permission_ids) if permission_ids is not None else None
    if name is not None:
        role.name = name
    if description is not None:
        role.description = description or None
    if perms is not None:
        _replace_permissions(role, perms)
    get_db().commit()
    return role


def delete_role(role_id: int) -> None:
    session = get_db()
    role = get_role(role_id)
    if is_system_role(role):
        raise SystemRoleImmutable('System role cannot be deleted')
    session.delete(role)
    session.commit()
    session.expire_all()
    logger.info('Role deleted: %s', role.code)


__all__ = [
    'is_system_role', 'role_json', 'get_role', 'get_role_by_code', 'list_roles',
    'create_role', 'update_role', 'delete_role',
]
