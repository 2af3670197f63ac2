from flask import Blueprint
from sqlalchemy import select
from mall_admin.constants.permissions import ROLE_PERMS
from mall_admin.decorators.audit import audit_log
from mall_admin.decorators.auth import admin_permission
from mall_admin.models.authz import Role
from mall_admin.services.reconciler import import_roles
from mall_admin.services.roles import create_role, delete_role, get_role, role_json, update_role
from mall_admin.utils.listing import paginated
from mall_admin.utils.http import json_body, uploaded_file_bytes
from mall_admin.utils.validation import parse_id_list

roles_bp = Blueprint('roles', __name__)


@roles_bp.get('')
@admin_permission(ROLE_PERMS['menu'])
def list_roles():
    return paginated(select(Role).order_by(Role.id.asc()), role_json)


@roles_bp.post('')
@admin_permission(ROLE_PERMS['menu'], ROLE_PERMS['add'])
@audit_log('ROLE.CREATE', entity='Role', entity_id_key='id', meta_keys=['code', 'permissions'])
def create():
    data = json_body()
    role = create_role(
        data.get('code'),
        data.get('name'),
        description=data.get('description'),
        permission_ids=parse_id_list(data.get('permission_ids'), 'permission_ids'),
    )
    return role_json(role), 201


@roles_bp.get('/<int:role_id>')
@admin_permission(ROLE_PERMS['menu'])
def get(role_id: int):
    return role_json(get_role(role_id))


@roles_bp.route('/<int:role_id>', methods=['PUT', 'PATCH'])
@admin_permission(ROLE_PERMS['menu'], ROLE_PERMS['edit'])
@audit_log('ROLE.UPDATE', entity='Role', entity_id_key='id', meta_keys=['code', 'permissions'])
def update(role_id: int):
    data = json_body()
    fields = {k: data[k] for k in data if k != 'permission_ids'}
    if 'permission_ids' in data:
        fields['permission_ids'] = parse_id_list(data['permission_ids'], 'permission_ids')
    return role_json(update_role(role_id, **fields))


@roles_bp.delete('/<int:role_id>')
@admin_permission(ROLE_PERMS['menu'], ROLE_PERMS['delete'])
@audit_log('ROLE.DELETE', entity='Role', entity_id_arg='role_id')
def delete(role_id: int):
    delete_role(role_id)
    return {'status': 'deleted'}


@roles_bp.post('/import')
@admin_permission(ROLE_PERMS['menu'], ROLE_PERMS['import'])
@audit_log('ROLE.IMPORT', entity='Role', meta_keys=['successCount', 'failedCount'])
def import_file():
    return import_roles(uploaded_file_bytes()).to_dict()
