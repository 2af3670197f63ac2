from flask import Blueprint
from sqlalchemy import select
from mall_admin.constants.permissions import USER_PERMS
from mall_admin.decorators.audit import audit_log
from mall_admin.decorators.auth import admin_permission, current_admin, login_required
from mall_admin.models.authz import AdminUser
from mall_admin.services.accounts import (
    PROFILE_FIELDS, account_json, authenticate, create_account, get_account, register, update_account,
)
from mall_admin.services.policy import effective_permissions
from mall_admin.utils.listing import paginated
from mall_admin.utils.http import json_body
from mall_admin.utils.validation import parse_id_list

auth_bp = Blueprint('auth', __name__)


@auth_bp.post('/register')
def register_account():
    data = json_body()
    user = register(data.get('username'), data.get('password'), **{k: data.get(k) for k in PROFILE_FIELDS})
    return account_json(user), 201


@auth_bp.post('/login')
def login():
    data = json_body()
    user, token = authenticate(data.get('username'), data.get('password'))
    return {
        'token': token,
        'user': account_json(user),
        # informational for the UI only; every request resolves permissions again
        'permissions': sorted(effective_permissions(user.id)),
    }


@auth_bp.get('/me')
@login_required
def me():
    user = current_admin()
    payload = account_json(user)
    payload['permissions'] = sorted(effective_permissions(user.id))
    return payload


@auth_bp.get('/users')
@admin_permission(USER_PERMS['menu'])
def list_users():
    return paginated(select(AdminUser).order_by(AdminUser.id.asc()), account_json)


@auth_bp.post('/users')
@admin_permission(USER_PERMS['menu'], USER_PERMS['add'])
@audit_log('USER.CREATE', entity='AdminUser', entity_id_key='id', meta_keys=['username'])
def create_user():
    data = json_body()
    user = create_account(
        data.get('username'),
        data.get('password'),
        role_ids=parse_id_list(data.get('role_ids'), 'role_ids'),
        **{k: data.get(k) for k in PROFILE_FIELDS},
    )
    return account_json(user), 201


@auth_bp.get('/users/<int:user_id>')
@admin_permission(USER_PERMS['menu'])
def get_user(user_id: int):
    return account_json(get_account(user_id))


@auth_bp.route('/users/<int:user_id>', methods=['PUT', 'PATCH'])
@admin_permission(USER_PERMS['menu'], USER_PERMS['edit'])
@audit_log(
    'USER.UPDATE',
    entity='AdminUser',
    entity_id_arg='user_id',
    meta_builder=lambda data, kw: {'fields': sorted(k for k in json_body() if k != 'password')},
)
def update_user(user_id: int):
    data = json_body()
    fields = {k: data[k] for k in PROFILE_FIELDS + ('status', 'password') if k in data}
    if 'role_ids' in data:
        fields['role_ids'] = parse_id_list(data['role_ids'], 'role_ids')
    user = update_account(user_id, **fields)
    return account_json(user)
