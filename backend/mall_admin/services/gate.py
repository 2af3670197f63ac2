"""Access gate: picks the permission code a request needs and asks the resolver.

Per request the caller is in one of three states: unauthenticated, authenticated but
not a known admin account, or an admin account. Only the last one is checked against
the resolver and ends up allowed or denied. Whether the first two are let through is
decided by the route group (see ``mall_admin.decorators.auth``); nothing is remembered
between requests.
"""
from __future__ import annotations
import logging
from typing import Mapping, Optional
from flask import request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from mall_admin import get_db
from mall_admin.constants.permissions import READ_METHODS
from mall_admin.errors import Forbidden
from mall_admin.models.authz import AdminUser
from mall_admin.services.policy import has_permission

logger = logging.getLogger(__name__)

# verb -> sub-code of a resource table entry
VERB_ACTIONS = {'POST': 'add', 'PUT': 'edit', 'PATCH': 'edit', 'DELETE': 'delete'}


def required_code(method: str, menu: str, button: Optional[str] = None) -> str:
    if method.upper() in READ_METHODS:
        return menu
    return button or menu


def required_code_for_resource(method: str, codes: Mapping[str, str]) -> str:
    method = method.upper()
    if method in READ_METHODS:
        return codes['menu']
    action = VERB_ACTIONS.get(method)
    return codes.get(action) or codes['menu']


def resolve_admin() -> Optional[AdminUser]:
    """Return the admin account behind the request's access token, if any.

    Missing, malformed, expired or foreign tokens and unknown account ids all yield None.
    Header name and type follow the JWT_HEADER_NAME / JWT_HEADER_TYPE settings.
    """
    try:
        if verify_jwt_in_request(optional=True) is None:
            return None
    except (JWTExtendedException, PyJWTError):
        return None
    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError):
        return None
    return get_db().get(AdminUser, user_id)


def enforce(user: AdminUser, code: str) -> None:
    if not has_permission(user.id, code):
        logger.warning('Access denied: user=%s code=%s %s %s', user.id, code, request.method, request.path)
        raise Forbidden(required_code=code)


__all__ = ['required_code', 'required_code_for_resource', 'resolve_admin', 'enforce']
