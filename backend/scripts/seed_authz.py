#!/usr/bin/env python
"""Idempotent seed script for the permission catalogue, the system role and the first admin.

Usage:
    python backend/scripts/seed_authz.py               # seed normally
    python backend/scripts/seed_authz.py --show-roles  # print role -> permission counts (after ensuring seed)
    python backend/scripts/seed_authz.py --dry-run     # run logic then rollback (no DB changes)

The initial account is read from SEED_ADMIN_USERNAME / SEED_ADMIN_PASSWORD.
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, inspect

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from mall_admin import create_app, get_db  # type: ignore
from mall_admin.models.authz import Base, Permission, Role, AdminUser, UserRole, KIND_MENU, KIND_BUTTON, STATUS_ACTIVE
from mall_admin.constants.permissions import DEFAULT_MENU_PERMISSIONS, DEFAULT_BUTTON_PERMISSIONS, SYSTEM_ROLE_CODE


def ensure_permissions(session) -> int:
    """Create missing default permissions, parents before children; existing codes are left alone."""
    by_code = {p.code: p for p in session.execute(select(Permission)).scalars()}
    created = 0
    for kind, rows in ((KIND_MENU, DEFAULT_MENU_PERMISSIONS), (KIND_BUTTON, DEFAULT_BUTTON_PERMISSIONS)):
        for code, name, parent_code, path, sort_order in rows:
            if code in by_code:
                continue
            parent = by_code.get(parent_code) if parent_code else None
            if parent_code and parent is None:
                print(f"[WARN] Parent {parent_code} missing for {code}; created as root")
            perm = Permission(code=code, name=name, kind=kind, path=path, sort_order=sort_order,
                              parent_id=parent.id if parent else None)
            session.add(perm)
            session.flush()
            by_code[code] = perm
            created += 1
    return created


def ensure_system_role(session) -> Role:
    role = session.execute(select(Role).where(Role.code == SYSTEM_ROLE_CODE)).scalar_one_or_none()
    if role is None:
        role = Role(code=SYSTEM_ROLE_CODE, name='Administrator', description='Built-in super user role',
                    is_system=True, grants_all=True)
        session.add(role)
        session.flush()
        print(f"[INFO] Created system role '{SYSTEM_ROLE_CODE}'")
    elif not (role.is_system and role.grants_all):
        # rows created before the capability flag existed
        role.is_system = True
        role.grants_all = True
    return role


def ensure_initial_admin(session, role: Role):
    username = os.getenv('SEED_ADMIN_USERNAME', 'admin')
    user = session.execute(select(AdminUser).where(AdminUser.username == username)).scalar_one_or_none()
    if user is None:
        user = AdminUser(username=username, real_name='Administrator', status=STATUS_ACTIVE)
        user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
        session.add(user)
        session.flush()
        print(f"[INFO] Created initial admin user {username} with temporary password.")
    if not any(ur.role_id == role.id for ur in user.user_roles):
        user.user_roles.append(UserRole(role=role))
    return user


def seed(session) -> dict:
    created_p = ensure_permissions(session)
    role = ensure_system_role(session)
    ensure_initial_admin(session, role)
    session.flush()
    return {'permissions_created': created_p}


def summarize_roles(session):
    rows = []
    for role in session.execute(select(Role).order_by(Role.id)).scalars():
        perms = sorted(rp.permission.code for rp in role.permissions)
        label = 'all (grants_all)' if role.grants_all else ', '.join(perms[:8])
        rows.append((role.code, len(perms), label))
    return rows


def print_role_summary(session):
    rows = summarize_roles(session)
    if not rows:
        print("[INFO] No roles present.")
        return
    code_w = max(len(r[0]) for r in rows)
    print(f"{'Role'.ljust(code_w)} | Count | Sample (up to 8)")
    print('-' * (code_w + 40))
    for code, cnt, sample in rows:
        print(f"{code.ljust(code_w)} | {str(cnt).rjust(5)} | {sample}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed admin permissions, the system role and the initial admin account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_authz.py\n  dry run: seed_authz.py --dry-run\n  show roles: seed_authz.py --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permission counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        session = get_db()
        if not inspect(session.get_bind()).has_table('permissions'):
            # bootstrap without migrations; real environments run alembic upgrade
            Base.metadata.create_all(session.get_bind())
        try:
            result = seed(session)
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Permissions would create: {result['permissions_created']}")
            else:
                session.commit()
                print(f"[DONE] Permissions created: {result['permissions_created']}")
            if args.show_roles:
                print('\nRole Permission Summary:')
                print_role_summary(session)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
