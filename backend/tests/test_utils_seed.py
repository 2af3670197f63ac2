"""Test seeding utilities to reduce duplication.

These helpers create permissions, roles and admin accounts straight through the ORM so a
test can set up exactly the grants it needs before exercising the HTTP layer.
"""
import io
from typing import Dict, Iterable, List, Optional
from openpyxl import Workbook
from mall_admin import get_db
from mall_admin.models.authz import AdminUser, Permission, Role, RolePermission, UserRole, KIND_BUTTON, KIND_MENU
from mall_admin.constants.permissions import SYSTEM_ROLE_CODE


def ensure_permissions(codes: Iterable[str]) -> Dict[str, Permission]:
    """Ensure each permission code exists; return dict code->Permission.

    Kind is derived from the prefix: ``menu:*`` codes are menus, everything else a button.
    """
    session = get_db()
    out: Dict[str, Permission] = {}
    for code in codes:
        obj = session.query(Permission).filter_by(code=code).one_or_none()
        if not obj:
            kind = KIND_MENU if code.startswith('menu:') else KIND_BUTTON
            obj = Permission(code=code, name=code, kind=kind)
            session.add(obj); session.flush()
        out[code] = obj
    session.commit()
    return out


def ensure_role(code: str, perm_codes: Iterable[str] = (), grants_all: bool = False, is_system: bool = False) -> Role:
    session = get_db()
    role = session.query(Role).filter_by(code=code).one_or_none()
    perms = ensure_permissions(perm_codes) if perm_codes else {}
    if not role:
        role = Role(code=code, name=code, is_system=is_system, grants_all=grants_all)
        session.add(role); session.flush()
    existing_perm_ids = {rp.permission_id for rp in session.query(RolePermission).filter_by(role_id=role.id)}
    for p in perms.values():
        if p.id not in existing_perm_ids:
            session.add(RolePermission(role_id=role.id, permission_id=p.id))
    session.commit()
    session.refresh(role)
    return role


def ensure_system_role() -> Role:
    return ensure_role(SYSTEM_ROLE_CODE, grants_all=True, is_system=True)


def ensure_user(username: str, password: str = 'pw', status: str = 'active') -> AdminUser:
    session = get_db()
    u = session.query(AdminUser).filter_by(username=username).one_or_none()
    if not u:
        u = AdminUser(username=username, status=status)
        u.set_password(password)
        session.add(u); session.commit(); session.refresh(u)
    return u


def assign_role(user: AdminUser, role: Role):
    session = get_db()
    if not session.query(UserRole).filter_by(user_id=user.id, role_id=role.id).one_or_none():
        session.add(UserRole(user_id=user.id, role_id=role.id)); session.commit()
        session.refresh(user)


def seed_user_with_codes(username: str, perm_codes: Iterable[str], role_code: Optional[str] = None) -> AdminUser:
    """High level convenience: account + role holding ``perm_codes``."""
    user = ensure_user(username)
    role = ensure_role(role_code or f'role_{username}', perm_codes)
    assign_role(user, role)
    return user


def seed_admin(username: str = 'root') -> AdminUser:
    user = ensure_user(username)
    assign_role(user, ensure_system_role())
    return user


def login(client, username: str, password: str = 'pw') -> str:
    resp = client.post('/admin/login', json={'username': username, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()['token']


def auth_headers(client, username: str, password: str = 'pw') -> Dict[str, str]:
    return {'Authorization': f'Bearer {login(client, username, password)}'}


def make_xlsx(headers: List[str], rows: List[list]) -> bytes:
    """Build an in-memory workbook whose first sheet holds ``headers`` then ``rows``."""
    wb = Workbook()
    ws = wb.active
    ws.append(headers)
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


__all__ = [
    'ensure_permissions', 'ensure_role', 'ensure_system_role', 'ensure_user', 'assign_role',
    'seed_user_with_codes', 'seed_admin', 'login', 'auth_headers', 'make_xlsx',
]
