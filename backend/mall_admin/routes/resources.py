"""Generic CRUD routes for the gated resource types.

Both blueprints consult the single ``RESOURCE_PERMISSIONS`` table through
``resource_permission``. ``/admin/<resource>`` is admin-only; ``/api/datasources/<type>`` is
also read by the storefront, so callers without an admin session pass through there.
"""
from typing import Any, Dict
from flask import Blueprint
from sqlalchemy import select
from mall_admin import get_db
from mall_admin.constants.permissions import ADMIN_RESOURCES, DATASOURCE_TYPES, RESOURCE_PERMISSIONS
from mall_admin.decorators.audit import audit_log
from mall_admin.decorators.auth import resource_permission
from mall_admin.errors import NotFound, ValidationError
from mall_admin.models.resource_item import ResourceItem
from mall_admin.utils.http import json_body
from mall_admin.utils.listing import paginated

admin_resources_bp = Blueprint('admin_resources', __name__)
datasources_bp = Blueprint('datasources', __name__)

ADMIN_RESOURCE_RULE = '/<any({}):resource>'.format(', '.join(ADMIN_RESOURCES))


def item_json(item: ResourceItem) -> Dict[str, Any]:
    return {
        'id': item.id,
        'resource': item.resource,
        'name': item.name,
        'payload': item.payload or {},
        'sort_order': item.sort_order,
        'updated_at': item.updated_at.isoformat() if item.updated_at else None,
    }


def _get_item(resource: str, item_id: int) -> ResourceItem:
    item = get_db().get(ResourceItem, item_id)
    if item is None or item.resource != resource:
        raise NotFound(f'{resource} item {item_id} not found')
    return item


def _apply_fields(item: ResourceItem, data: Dict[str, Any]) -> None:
    changes: Dict[str, Any] = {}
    if 'name' in data:
        if not isinstance(data['name'], str):
            raise ValidationError('name must be a string')
        changes['name'] = data['name']
    if 'payload' in data:
        if data['payload'] is not None and not isinstance(data['payload'], dict):
            raise ValidationError('payload must be an object')
        changes['payload'] = data['payload'] or {}
    if 'sort_order' in data:
        try:
            changes['sort_order'] = int(data['sort_order'] or 0)
        except (TypeError, ValueError):
            raise ValidationError('sort_order must be an integer')
    for key, value in changes.items():
        setattr(item, key, value)


def list_items(resource: str):
    stmt = (
        select(ResourceItem)
        .where(ResourceItem.resource == resource)
        .order_by(ResourceItem.sort_order.asc(), ResourceItem.id.asc())
    )
    return paginated(stmt, item_json)


def create_item(resource: str):
    item = ResourceItem(resource=resource, name='', payload={}, sort_order=0)
    _apply_fields(item, json_body())
    session = get_db()
    session.add(item)
    session.commit()
    return item_json(item), 201


def update_item(resource: str, item_id: int):
    item = _get_item(resource, item_id)
    _apply_fields(item, json_body())
    get_db().commit()
    return item_json(item)


def delete_item(resource: str, item_id: int):
    session = get_db()
    session.delete(_get_item(resource, item_id))
    session.commit()
    return {'status': 'deleted'}


# --- /admin/<resource> (admin-only) ---

@admin_resources_bp.get(ADMIN_RESOURCE_RULE)
@resource_permission(RESOURCE_PERMISSIONS)
def admin_list(resource: str):
    return list_items(resource)


@admin_resources_bp.post(ADMIN_RESOURCE_RULE)
@resource_permission(RESOURCE_PERMISSIONS)
@audit_log('RESOURCE.CREATE', entity='ResourceItem', entity_id_key='id', meta_keys=['resource'])
def admin_create(resource: str):
    return create_item(resource)


@admin_resources_bp.get(ADMIN_RESOURCE_RULE + '/<int:item_id>')
@resource_permission(RESOURCE_PERMISSIONS)
def admin_get(resource: str, item_id: int):
    return item_json(_get_item(resource, item_id))


@admin_resources_bp.route(ADMIN_RESOURCE_RULE + '/<int:item_id>', methods=['PUT', 'PATCH'])
@resource_permission(RESOURCE_PERMISSIONS)
@audit_log('RESOURCE.UPDATE', entity='ResourceItem', entity_id_key='id', meta_keys=['resource'])
def admin_update(resource: str, item_id: int):
    return update_item(resource, item_id)


@admin_resources_bp.delete(ADMIN_RESOURCE_RULE + '/<int:item_id>')
@resource_permission(RESOURCE_PERMISSIONS)
@audit_log('RESOURCE.DELETE', entity='ResourceItem', entity_id_arg='item_id',
           meta_builder=lambda data, kw: {'resource': kw.get('resource')})
def admin_delete(resource: str, item_id: int):
    return delete_item(resource, item_id)


# --- /api/datasources/<type> (storefront + admin) ---

def _datasource(ds_type: str) -> str:
    if ds_type not in DATASOURCE_TYPES:
        raise NotFound(f'Unknown datasource type: {ds_type}')
    return ds_type


@datasources_bp.get('/<ds_type>')
@resource_permission(RESOURCE_PERMISSIONS, param='ds_type', allow_anonymous=True)
def datasource_list(ds_type: str):
    return list_items(_datasource(ds_type))


@datasources_bp.post('/<ds_type>')
@resource_permission(RESOURCE_PERMISSIONS, param='ds_type', allow_anonymous=True)
def datasource_create(ds_type: str):
    return create_item(_datasource(ds_type))


@datasources_bp.get('/<ds_type>/<int:item_id>')
@resource_permission(RESOURCE_PERMISSIONS, param='ds_type', allow_anonymous=True)
def datasource_get(ds_type: str, item_id: int):
    return item_json(_get_item(_datasource(ds_type), item_id))


@datasources_bp.route('/<ds_type>/<int:item_id>', methods=['PUT', 'PATCH'])
@resource_permission(RESOURCE_PERMISSIONS, param='ds_type', allow_anonymous=True)
def datasource_update(ds_type: str, item_id: int):
    return update_item(_datasource(ds_type), item_id)


@datasources_bp.delete('/<ds_type>/<int:item_id>')
@resource_permission(RESOURCE_PERMISSIONS, param='ds_type', allow_anonymous=True)
def datasource_delete(ds_type: str, item_id: int):
    return delete_item(_datasource(ds_type), item_id)
