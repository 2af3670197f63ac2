from __future__ import annotations
from typing import Iterable, Set
from flask import current_app, has_app_context
from sqlalchemy import select
from mall_admin.models.authz import UserRole, RolePermission, Permission, Role
from mall_admin.constants.permissions import SUPERUSER_CODE
from mall_admin import get_db

# Config flag: keep honouring the textual "admin*" super-user convention
FLAG_LEGACY_ADMIN_PREFIX = 'AUTHZ_LEGACY_ADMIN_PREFIX'


def legacy_prefix_enabled() -> bool:
    if has_app_context():
        return bool(current_app.config.get(FLAG_LEGACY_ADMIN_PREFIX, True))
    return True


def effective_permissions(user_id: int) -> Set[str]:
    """Union of the permission codes of every role held by the account.

    Computed from the store on every call, nothing is cached. A role flagged grants_all
    contributes the distinguished SUPERUSER_CODE.
    """
    session = get_db()
    role_ids = select(UserRole.role_id).where(UserRole.user_id == user_id)
    codes = set(session.execute(
        select(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .where(RolePermission.role_id.in_(role_ids))
    ).scalars())
    grants_all = session.execute(
        select(Role.id).where(Role.id.in_(role_ids), Role.grants_all.is_(True)).limit(1)
    ).first()
    if grants_all:
        codes.add(SUPERUSER_CODE)
    return codes


def is_super_user(codes: Iterable[str]) -> bool:
    codes = set(codes)
    if SUPERUSER_CODE in codes:
        return True
    # Textual convention: any code starting with "admin" grants everything, so a code such
    # as "admin_notes:view" does too while the flag is on.
    return legacy_prefix_enabled() and any(c.startswith(SUPERUSER_CODE) for c in codes)


def has_permission(user_id: int, code: str) -> bool:
    codes = effective_permissions(user_id)
    return is_super_user(codes) or code in codes


def has_any(user_id: int, codes: Iterable[str]) -> bool:
    held = effective_permissions(user_id)
    return is_super_user(held) or any(c in held for c in codes)


def has_all(user_id: int, codes: Iterable[str]) -> bool:
    held = effective_permissions(user_id)
    return is_super_user(held) or all(c in held for c in codes)


def check_access(user_id: int, required_code: str) -> bool:
    """Entry point for collaborators outside the authorization core."""
    return has_permission(user_id, required_code)


__all__ = [
    'effective_permissions', 'is_super_user', 'has_permission', 'has_any', 'has_all',
    'check_access', 'legacy_prefix_enabled',
]
