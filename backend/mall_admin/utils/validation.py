from __future__ import annotations
"""Reusable validation helpers shared by the stores and the importer.

Failures raise ValidationError so the HTTP layer answers 400 and the importer can turn
them into row diagnostics.
"""
from typing import Any, Iterable, Mapping
from mall_admin.errors import ValidationError


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(data: Mapping[str, Any], fields: Iterable[str]) -> None:
    missing = [f for f in fields if is_blank(data.get(f))]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")


def validate_choice(value: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that value is inside allowed.

    Returns the value (to enable inline usage) or raises ValidationError.
    """
    allowed = tuple(allowed)
    if value not in allowed:
        raise ValidationError(f"{field_name} must be one of {', '.join(allowed)}")
    return value


def parse_id_list(raw: Any, field_name: str) -> list:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple, set)):
        raise ValidationError(f'{field_name} must be a list')
    out = []
    for item in raw:
        try:
            out.append(int(item))
        except (TypeError, ValueError):
            raise ValidationError(f'{field_name} must contain integer ids')
    return out


def parse_bool(raw: Any, default: bool = False) -> bool:
    if raw is None:
        return default
    return str(raw).strip().lower() in ('1', 'true', 'yes', 'on')

__all__ = ['is_blank', 'require_fields', 'validate_choice', 'parse_id_list', 'parse_bool']
