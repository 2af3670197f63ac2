"""List endpoint paging bounds. Admin screens page the role, account and resource tables."""
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def normalize_pagination(limit_raw, offset_raw):
    """Return (limit, offset) clamped to [1, MAX_LIMIT] and [0, inf).

    Raises ValueError for non-integer input; callers turn it into a 400.
    """
    try:
        limit = int(limit_raw) if limit_raw not in (None, '') else DEFAULT_LIMIT
        offset = int(offset_raw) if offset_raw not in (None, '') else 0
    except (TypeError, ValueError):
        raise ValueError('limit/offset must be int')
    return max(1, min(limit, MAX_LIMIT)), max(0, offset)
