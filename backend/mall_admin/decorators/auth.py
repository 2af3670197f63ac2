"""Route decorators wrapping the access gate.

Two route groups exist. Admin-only routes (the default) require a valid session of a
known admin account and answer 401 otherwise. Shared routes (``allow_anonymous=True``)
also serve storefront traffic: a caller without a valid admin session passes through
unchecked, so enforcement there only happens once an admin token is attached.

    @admin_permission('menu:system:role', 'button:role:add')
    def create_role(): ...

    @resource_permission(RESOURCE_PERMISSIONS, param='ds_type', allow_anonymous=True)
    def list_items(ds_type): ...
"""
from functools import wraps
from typing import Callable, Mapping, Optional
from flask import g, request
from mall_admin.errors import NotFound, Unauthenticated
from mall_admin.services.gate import enforce, required_code, required_code_for_resource, resolve_admin
import logging

logger = logging.getLogger(__name__)


def _gate(select_code: Callable[[tuple, dict], Optional[str]], allow_anonymous: bool):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = resolve_admin()
            g.admin_user = user
            if user is None:
                if allow_anonymous:
                    logger.debug('Anonymous pass-through: %s %s', request.method, request.path)
                    return fn(*args, **kwargs)
                raise Unauthenticated()
            code = select_code(args, kwargs)
            if code:
                enforce(user, code)
            return fn(*args, **kwargs)
        return wrapper
    return outer


def admin_permission(menu: str, button: Optional[str] = None, *, allow_anonymous: bool = False):
    """Reads need ``menu``; mutating verbs need ``button`` (falling back to ``menu``)."""
    return _gate(lambda a, kw: required_code(request.method, menu, button), allow_anonymous)


def resource_permission(table: Mapping[str, Mapping[str, str]], param: str = 'resource', *,
                        allow_anonymous: bool = False):
    """Pick the {menu, add, edit, delete} entry by a route parameter, then the sub-code by verb."""
    def select_code(args, kwargs):
        codes = table.get(kwargs.get(param))
        if codes is None:
            raise NotFound(f'Unknown resource type: {kwargs.get(param)}')
        return required_code_for_resource(request.method, codes)
    return _gate(select_code, allow_anonymous)


def login_required(fn):
    """Admin session required, no specific permission."""
    return _gate(lambda a, kw: None, False)(fn)


def current_admin():
    user = getattr(g, 'admin_user', None)
    if user is None:
        raise Unauthenticated()
    return user
