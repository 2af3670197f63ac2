"""Bulk reconciler: spreadsheet rows -> catalogue and role mutations.

Rows are processed sequentially in file order, each one in its own transaction. Row-level
problems (missing fields, bad kind, unknown parent, existing code) are collected as
human-readable diagnostics and never raised; the loop always continues with the next
row. Only a file that cannot be read at all aborts the import with SpreadsheetError.

Existing codes are skipped, not updated, so re-importing the same file is idempotent.
"""
from __future__ import annotations
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
import zlib
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from werkzeug.exceptions import HTTPException

from mall_admin import get_db
from mall_admin.constants.permissions import SYSTEM_ROLE_CODE
from mall_admin.errors import SpreadsheetError
from mall_admin.models.authz import Permission, Role, RolePermission, KIND_BUTTON, KIND_MENU
from mall_admin.services.catalogue import get_permission_by_code
from mall_admin.services.roles import get_role_by_code
from mall_admin.utils.validation import is_blank

logger = logging.getLogger(__name__)

Row = Tuple[int, Dict[str, Any]]

# Header aliases -> canonical field. The Chinese headers match the downloadable import templates.
PERMISSION_HEADERS = {
    'code': 'code', '权限代码': 'code',
    'name': 'name', '权限名称': 'name',
    'kind': 'kind', 'type': 'kind', '权限类型': 'kind',
    'parent_code': 'parent_code', 'parentcode': 'parent_code', '父权限代码': 'parent_code',
    'path': 'path', '路径': 'path',
    'description': 'description', '描述': 'description',
    'sort_order': 'sort_order', 'sortorder': 'sort_order', '排序': 'sort_order',
}
ROLE_HEADERS = {
    'code': 'code', '角色代码': 'code',
    'name': 'name', '角色名称': 'name',
    'description': 'description', '描述': 'description',
    'permission_codes': 'permission_codes', 'permissions': 'permission_codes',
    'permissioncodes': 'permission_codes', '权限代码列表': 'permission_codes',
}

ALL_HEADERS = {**PERMISSION_HEADERS, **ROLE_HEADERS}

KIND_ALIASES = {'menu': KIND_MENU, '菜单': KIND_MENU, 'button': KIND_BUTTON, '按钮': KIND_BUTTON}
CODE_LIST_SEPARATORS = re.compile(r'[,，]')

# SyntaxError covers XML parse errors from both ElementTree and lxml
UNREADABLE = (InvalidFileException, BadZipFile, zlib.error, EOFError, SyntaxError, KeyError, ValueError, OSError)


@dataclass
class ImportReport:
    success_count: int = 0
    failed_count: int = 0
    errors: List[str] = field(default_factory=list)

    def fail(self, row_number: int, message: str) -> None:
        self.failed_count += 1
        self.note(row_number, message)

    def note(self, row_number: int, message: str) -> None:
        text = f'Row {row_number}: {message}'
        self.errors.append(text)
        logger.warning('Import: %s', text)

    def to_dict(self) -> Dict[str, Any]:
        return {'successCount': self.success_count, 'failedCount': self.failed_count, 'errors': list(self.errors)}


def normalize_header(raw: Any) -> str:
    text = str(raw).strip() if raw is not None else ''
    text = re.sub(r'\(.*?\)|（.*?）', '', text).strip()
    return re.sub(r'[\s\-]+', '_', text).lower()


def _cell(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _records(sheet, aliases: Dict[str, str]) -> List[Row]:
    rows = sheet.iter_rows(values_only=True)
    header_row = next(rows, None)
    if header_row is None:
        return []
    columns = [aliases.get(normalize_header(h)) for h in header_row]
    out: List[Row] = []
    for row_number, values in enumerate(rows, start=2):
        record: Dict[str, Any] = {}
        for column, value in zip(columns, values):
            if column and column not in record:
                record[column] = _cell(value)
        if all(is_blank(v) for v in record.values()):
            continue
        out.append((row_number, record))
    return out


def read_rows(data: bytes, aliases: Optional[Dict[str, str]] = None) -> List[Row]:
    """Read the first worksheet; the first row holds the headers.

    Returns (spreadsheet row number, {canonical field: value}) for every non-blank row.
    Unknown columns are ignored. Without ``aliases`` both header sets are recognised.
    """
    aliases = aliases or ALL_HEADERS
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except UNREADABLE as e:
        raise SpreadsheetError(f'Invalid or corrupted xlsx file: {e}') from e
    try:
        if not wb.worksheets:
            raise SpreadsheetError('Workbook has no worksheet')
        # read-only sheets are parsed lazily, so a damaged sheet only fails here
        return _records(wb.worksheets[0], aliases)
    except UNREADABLE as e:
        raise SpreadsheetError(f'Invalid or corrupted xlsx file: {e}') from e
    finally:
        wb.close()


def normalize_kind(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    return KIND_ALIASES.get(str(raw).strip().lower())


def split_codes(raw: Any) -> List[str]:
    if is_blank(raw):
        return []
    return [c.strip() for c in CODE_LIST_SEPARATORS.split(str(raw)) if c.strip()]


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip() or None


def _sort_order(value: Any) -> int:
    if is_blank(value):
        return 0
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(value)
        return int(value)
    return int(str(value).strip())


def _run_row(report: ImportReport, row_number: int, apply) -> None:
    """Run one row's mutation as its own transaction."""
    session = get_db()
    try:
        if apply(report, row_number):
            session.commit()
            report.success_count += 1
        else:
            session.rollback()
    except HTTPException as e:
        session.rollback()
        report.fail(row_number, e.description)
    except Exception as e:  # a bad row must not abort the rest of the file
        session.rollback()
        logger.exception('Import row %s failed', row_number)
        report.fail(row_number, str(e) or type(e).__name__)


def import_permission_rows(rows: Iterable[Row]) -> ImportReport:
    report = ImportReport()
    for row_number, row in rows:
        _run_row(report, row_number, lambda rep, n, row=row: _apply_permission_row(rep, n, row))
    logger.info('Permission import finished: success=%d failed=%d', report.success_count, report.failed_count)
    return report


def _apply_permission_row(report: ImportReport, n: int, row: Dict[str, Any]) -> bool:
    code, name, raw_kind = _text(row.get('code')), _text(row.get('name')), row.get('kind')
    if not code or not name or is_blank(raw_kind):
        report.fail(n, 'code, name and kind are required')
        return False
    kind = normalize_kind(raw_kind)
    if kind is None:
        report.fail(n, f'kind must be menu or button, got "{raw_kind}"')
        return False
    if get_permission_by_code(code):
        report.fail(n, f'permission code "{code}" already exists, skipped')
        return False
    parent_id = None
    parent_code = _text(row.get('parent_code'))
    if parent_code:
        parent = get_permission_by_code(parent_code)
        if parent is None:
            report.fail(n, f'parent permission code "{parent_code}" not found')
            return False
        parent_id = parent.id
    try:
        sort_order = _sort_order(row.get('sort_order'))
    except (TypeError, ValueError):
        report.fail(n, f'sort order must be an integer, got "{row.get("sort_order")}"')
        return False
    get_db().add(Permission(
        code=code,
        name=name,
        kind=kind,
        parent_id=parent_id,
        path=_text(row.get('path')),
        description=_text(row.get('description')),
        sort_order=sort_order,
    ))
    return True


def import_role_rows(rows: Iterable[Row]) -> ImportReport:
    report = ImportReport()
    for row_number, row in rows:
        _run_row(report, row_number, lambda rep, n, row=row: _apply_role_row(rep, n, row))
    logger.info('Role import finished: success=%d failed=%d', report.success_count, report.failed_count)
    return report


def _apply_role_row(report: ImportReport, n: int, row: Dict[str, Any]) -> bool:
    code, name = _text(row.get('code')), _text(row.get('name'))
    if not code or not name:
        report.fail(n, 'code and name are required')
        return False
    if code == SYSTEM_ROLE_CODE:
        report.fail(n, f'role code "{SYSTEM_ROLE_CODE}" is reserved')
        return False
    if get_role_by_code(code):
        report.fail(n, f'role code "{code}" already exists, skipped')
        return False
    role = Role(code=code, name=name, description=_text(row.get('description')), is_system=False, grants_all=False)
    seen = set()
    for perm_code in split_codes(row.get('permission_codes')):
        if perm_code in seen:
            continue
        seen.add(perm_code)
        perm = get_permission_by_code(perm_code)
        if perm is None:
            # reported but does not block the role
            report.note(n, f'permission code "{perm_code}" not found')
            continue
        role.permissions.append(RolePermission(permission=perm))
    get_db().add(role)
    return True


def import_permissions(data: bytes) -> ImportReport:
    return import_permission_rows(read_rows(data, PERMISSION_HEADERS))


def import_roles(data: bytes) -> ImportReport:
    return import_role_rows(read_rows(data, ROLE_HEADERS))


__all__ = [
    'ImportReport', 'read_rows', 'normalize_header', 'normalize_kind', 'split_codes',
    'import_permission_rows', 'import_role_rows', 'import_permissions', 'import_roles',
    'PERMISSION_HEADERS', 'ROLE_HEADERS',
]
