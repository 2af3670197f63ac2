"""Domain error taxonomy.

Every error is a werkzeug HTTPException so services can raise it directly and the
app-level handler in ``create_app`` renders it with the standard JSON shape. The
bulk reconciler catches these per row instead of letting them escape.
"""
from __future__ import annotations
from typing import Optional
from werkzeug.exceptions import HTTPException


class AuthzError(HTTPException):
    code = 500
    description = 'Unexpected error'

    def __init__(self, description: Optional[str] = None):
        super().__init__(description or self.description)


class ValidationError(AuthzError):
    code = 400
    description = 'Invalid input'


class ParentNotFound(ValidationError):
    description = 'Parent permission not found'


class SpreadsheetError(ValidationError):
    description = 'Spreadsheet could not be read'


class DuplicateCode(AuthzError):
    code = 400
    description = 'Code already exists'


class DuplicateUsername(AuthzError):
    code = 400
    description = 'Username already exists'


class NotFound(AuthzError):
    code = 404
    description = 'Not found'


class Forbidden(AuthzError):
    code = 403
    description = 'Forbidden'

    def __init__(self, description: Optional[str] = None, required_code: Optional[str] = None):
        self.required_code = required_code
        if description is None and required_code:
            description = f'Missing permission: {required_code}'
        super().__init__(description)


class ForbiddenCode(Forbidden):
    description = 'Role code is reserved'


class SystemRoleImmutable(Forbidden):
    description = 'System role cannot be modified'


class Unauthenticated(AuthzError):
    code = 401
    description = 'Authentication required'


class InvalidCredentials(AuthzError):
    code = 401
    description = 'Invalid username or password'


class AccountDisabled(AuthzError):
    code = 403
    description = 'Account is disabled or locked'


__all__ = [
    'AuthzError', 'ValidationError', 'ParentNotFound', 'SpreadsheetError', 'DuplicateCode',
    'DuplicateUsername', 'NotFound', 'Forbidden', 'ForbiddenCode', 'SystemRoleImmutable',
    'Unauthenticated', 'InvalidCredentials', 'AccountDisabled',
]
