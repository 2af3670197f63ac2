"""Administrative accounts: registration, credential checks and role membership.

Session tokens are flask-jwt-extended access tokens. They carry the account id (as the
JWT identity) and the username only. Permissions are never embedded: every protected
call resolves them again from the store.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
from flask_jwt_extended import create_access_token
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from mall_admin import get_db
from mall_admin.errors import AccountDisabled, DuplicateUsername, InvalidCredentials, NotFound, SystemRoleImmutable, ValidationError
from mall_admin.models.authz import AdminUser, Role, UserRole, ALL_STATUSES, STATUS_ACTIVE
from mall_admin.services.roles import is_system_role
from mall_admin.utils.validation import require_fields, validate_choice

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('email', 'phone', 'real_name')


def account_json(u: AdminUser) -> Dict[str, Any]:
    return {
        'id': u.id,
        'username': u.username,
        'email': u.email,
        'phone': u.phone,
        'real_name': u.real_name,
        'status': u.status,
        'roles': [{'id': ur.role.id, 'code': ur.role.code, 'name': ur.role.name} for ur in u.user_roles],
        'last_login_at': u.last_login_at.isoformat() if u.last_login_at else None,
        'created_at': u.created_at.isoformat() if u.created_at else None,
        'updated_at': u.updated_at.isoformat() if u.updated_at else None,
    }


def get_account(account_id: int) -> AdminUser:
    user = get_db().get(AdminUser, account_id)
    if not user:
        raise NotFound('User not found')
    return user


def get_account_by_username(username: str) -> Optional[AdminUser]:
    return get_db().execute(select(AdminUser).where(AdminUser.username == username)).scalar_one_or_none()


def list_accounts() -> List[AdminUser]:
    return list(get_db().execute(select(AdminUser).order_by(AdminUser.id.asc())).scalars())


def _load_roles(role_ids: Iterable[int]) -> List[Role]:
    ids = list(dict.fromkeys(role_ids))
    if not ids:
        return []
    roles = get_db().execute(select(Role).where(Role.id.in_(ids))).scalars().all()
    missing = set(ids) - {r.id for r in roles}
    if missing:
        raise ValidationError(f'Unknown role ids: {sorted(missing)}')
    return list(roles)


def _new_account(username: str, password: str, profile: Dict[str, Any], roles: List[Role]) -> AdminUser:
    require_fields({'username': username, 'password': password}, ('username', 'password'))
    session = get_db()
    if get_account_by_username(username):
        raise DuplicateUsername(f'Username "{username}" already exists')
    user = AdminUser(username=username, status=STATUS_ACTIVE, **{k: profile.get(k) for k in PROFILE_FIELDS})
    user.set_password(password)
    for role in roles:
        user.user_roles.append(UserRole(role=role))
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise DuplicateUsername(f'Username "{username}" already exists')
    return user


def register(username: str, password: str, **profile) -> AdminUser:
    """Public self-registration: the account starts active with no roles."""
    user = _new_account(username, password, profile, [])
    logger.info('Account registered: %s', username)
    return user


def create_account(username: str, password: str, role_ids: Iterable[int] = (), **profile) -> AdminUser:
    roles = _load_roles(role_ids)
    if any(is_system_role(r) for r in roles):
        raise SystemRoleImmutable('System role membership cannot be changed')
    user = _new_account(username, password, profile, roles)
    logger.info('Account created: %s (%d roles)', username, len(roles))
    return user


def issue_token(user: AdminUser) -> str:
    return create_access_token(identity=str(user.id), additional_claims={'username': user.username})


def authenticate(username: str, password: str) -> Tuple[AdminUser, str]:
    """Verify credentials and return (account, session token).

    Unknown username and wrong password raise the same InvalidCredentials. Status is only
    checked once the password matched, so a wrong guess never reveals it.
    """
    if not username or not password:
        raise InvalidCredentials()
    session = get_db()
    user = get_account_by_username(username)
    if not user or not user.verify_password(password):
        logger.warning('Login failed for %s', username)
        raise InvalidCredentials()
    if user.status != STATUS_ACTIVE:
        logger.warning('Login refused for %s: status %s', username, user.status)
        raise AccountDisabled()
    user.last_login_at = datetime.now(timezone.utc)
    session.commit()
    logger.info('Login succeeded for %s', username)
    return user, issue_token(user)


def update_account(account_id: int, role_ids: Optional[Iterable[int]] = None, status: Optional[str] = None,
                   password: Optional[str] = None, **fields) -> AdminUser:
    session = get_db()
    user = get_account(account_id)
    unknown = set(fields) - set(PROFILE_FIELDS)
    if unknown:
        raise ValidationError(f'Fields not updatable: {sorted(unknown)}')
    if status is not None:
        validate_choice(status, ALL_STATUSES, 'status')
    if password is not None and not password:
        raise ValidationError('password cannot be empty')
    roles = None
    if role_ids is not None:
        roles = _load_roles(role_ids)
        current = {ur.role for ur in user.user_roles}
        changed = current.symmetric_difference(roles)
        if any(is_system_role(r) for r in changed):
            raise SystemRoleImmutable('System role membership cannot be changed')
    # all checks passed, apply
    if status is not None:
        user.status = status
    if password is not None:
        user.set_password(password)
    for key, value in fields.items():
        setattr(user, key, value)
    if roles is not None:
        user.user_roles.clear()
        session.flush()
        for role in roles:
            user.user_roles.append(UserRole(role=role))
    session.commit()
    return user


__all__ = [
    'account_json', 'get_account', 'get_account_by_username', 'list_accounts', 'register',
    'create_account', 'issue_token', 'authenticate', 'update_account',
]
