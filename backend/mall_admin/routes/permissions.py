from flask import Blueprint, request
from mall_admin.constants.permissions import PERMISSION_PERMS
from mall_admin.decorators.audit import audit_log
from mall_admin.decorators.auth import admin_permission
from mall_admin.services.catalogue import (
    UPDATABLE_FIELDS, create_permission, delete_permission, get_permission, list_flat, list_tree,
    permission_json, update_permission,
)
from mall_admin.services.reconciler import import_permissions
from mall_admin.utils.http import json_body, uploaded_file_bytes
from mall_admin.utils.validation import parse_bool

permissions_bp = Blueprint('permissions', __name__)


@permissions_bp.get('')
@admin_permission(PERMISSION_PERMS['menu'])
def list_permissions():
    # the admin screen renders the tree; ?tree=false gives the flat ordered list
    if parse_bool(request.args.get('tree'), default=True):
        return {'data': list_tree()}
    return {'data': [permission_json(p) for p in list_flat()]}


@permissions_bp.post('')
@admin_permission(PERMISSION_PERMS['menu'], PERMISSION_PERMS['add'])
@audit_log('PERMISSION.CREATE', entity='Permission', entity_id_key='id', meta_keys=['code', 'kind'])
def create():
    data = json_body()
    perm = create_permission(
        data.get('code'),
        data.get('name'),
        data.get('kind'),
        parent_id=data.get('parent_id'),
        path=data.get('path'),
        description=data.get('description'),
        sort_order=data.get('sort_order', 0),
    )
    return permission_json(perm), 201


@permissions_bp.get('/<int:permission_id>')
@admin_permission(PERMISSION_PERMS['menu'])
def get(permission_id: int):
    return permission_json(get_permission(permission_id))


@permissions_bp.route('/<int:permission_id>', methods=['PUT', 'PATCH'])
@admin_permission(PERMISSION_PERMS['menu'], PERMISSION_PERMS['edit'])
@audit_log('PERMISSION.UPDATE', entity='Permission', entity_id_key='id', meta_keys=['code'])
def update(permission_id: int):
    data = json_body()
    # code is immutable once roles reference it
    fields = {k: data[k] for k in UPDATABLE_FIELDS if k in data}
    return permission_json(update_permission(permission_id, **fields))


@permissions_bp.delete('/<int:permission_id>')
@admin_permission(PERMISSION_PERMS['menu'], PERMISSION_PERMS['delete'])
@audit_log('PERMISSION.DELETE', entity='Permission', entity_id_arg='permission_id')
def delete(permission_id: int):
    delete_permission(permission_id)
    return {'status': 'deleted'}


@permissions_bp.post('/import')
@admin_permission(PERMISSION_PERMS['menu'], PERMISSION_PERMS['import'])
@audit_log('PERMISSION.IMPORT', entity='Permission', meta_keys=['successCount', 'failedCount'])
def import_file():
    return import_permissions(uploaded_file_bytes()).to_dict()
