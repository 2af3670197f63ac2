from __future__ import annotations
from typing import Any, Callable, Dict, List, Tuple
from flask import request
from sqlalchemy import Select, func, select
from mall_admin import get_db
from mall_admin.config.pagination import normalize_pagination
from mall_admin.errors import ValidationError


def page_params() -> Tuple[int, int]:
    try:
        return normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        raise ValidationError(str(e))


def apply_pagination(stmt: Select) -> Tuple[list, int, int, int]:
    """Run ``stmt`` for the page requested by ?limit=&offset=; returns (rows, total, limit, offset)."""
    limit, offset = page_params()
    session = get_db()
    total = session.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
    rows = list(session.execute(stmt.offset(offset).limit(limit)).scalars())
    return rows, total, limit, offset


def build_list_payload(rows: List[Dict[str, Any]], total: int, limit: int, offset: int) -> Dict[str, Any]:
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def paginated(stmt: Select, to_json: Callable[[Any], Dict[str, Any]]) -> Dict[str, Any]:
    rows, total, limit, offset = apply_pagination(stmt)
    return build_list_payload([to_json(r) for r in rows], total, limit, offset)


__all__ = ['page_params', 'apply_pagination', 'build_list_payload', 'paginated']
