"""Central definitions for permission codes, the built-in role and the gate lookup tables.
Extend cautiously; never rename codes silently. Roles and route tables reference codes as
plain strings, so a rename needs a data migration for role_permissions as well.
"""
from __future__ import annotations
from typing import Dict, List

# Reserved code of the built-in system role. Also surfaces in effective permission sets
# as the distinguished "grants everything" capability.
SYSTEM_ROLE_CODE = 'admin'
SUPERUSER_CODE = 'admin'

READ_METHODS = frozenset({'GET', 'HEAD', 'OPTIONS'})
WRITE_METHODS = frozenset({'POST', 'PUT', 'PATCH', 'DELETE'})

# Route-level codes for the system management screens
USER_PERMS = {'menu': 'menu:system:user', 'add': 'button:user:add', 'edit': 'button:user:edit'}
ROLE_PERMS = {
    'menu': 'menu:system:role',
    'add': 'button:role:add',
    'edit': 'button:role:edit',
    'delete': 'button:role:delete',
    'import': 'button:role:import',
}
PERMISSION_PERMS = {
    'menu': 'menu:system:permission',
    'add': 'button:permission:add',
    'edit': 'button:permission:edit',
    'delete': 'button:permission:delete',
    'import': 'button:permission:import',
}


def _crud(menu: str, name: str) -> Dict[str, str]:
    return {
        'menu': menu,
        'add': f'button:{name}:add',
        'edit': f'button:{name}:edit',
        'delete': f'button:{name}:delete',
    }


# resource type -> {menu, add, edit, delete}; consulted by the resource gate
RESOURCE_PERMISSIONS: Dict[str, Dict[str, str]] = {
    'products': _crud('menu:product:list', 'product'),
    'pages': _crud('menu:operation:page', 'page'),
    'images': _crud('menu:product:image:list', 'image'),
    'carousel': _crud('menu:operation:carousel', 'carousel'),
    'seckill': _crud('menu:operation:seckill', 'seckill'),
    'groupbuy': _crud('menu:operation:groupbuy', 'groupbuy'),
    'productList': _crud('menu:operation:productList', 'productList'),
    'guessYouLike': _crud('menu:operation:guessYouLike', 'guessYouLike'),
}

ADMIN_RESOURCES = ('products', 'pages', 'images')
DATASOURCE_TYPES = ('carousel', 'seckill', 'groupbuy', 'productList', 'guessYouLike')

# code, name, parent code, path, sort order
DEFAULT_MENU_PERMISSIONS: List[tuple] = [
    ('menu:operation', 'Operations', None, '/admin/operation', 1),
    ('menu:product', 'Products', None, '/admin/product', 2),
    ('menu:system', 'System', None, '/admin/system', 3),
    ('menu:operation:page', 'Pages', 'menu:operation', '/admin/operation/page', 11),
    ('menu:operation:carousel', 'Carousel', 'menu:operation', '/admin/operation/carousel', 21),
    ('menu:operation:seckill', 'Flash sales', 'menu:operation', '/admin/operation/seckill', 22),
    ('menu:operation:groupbuy', 'Group buys', 'menu:operation', '/admin/operation/groupbuy', 23),
    ('menu:operation:productList', 'Product lists', 'menu:operation', '/admin/operation/productList', 24),
    ('menu:operation:guessYouLike', 'Recommendations', 'menu:operation', '/admin/operation/guessYouLike', 25),
    ('menu:product:list', 'Product list', 'menu:product', '/admin/product/list', 31),
    ('menu:product:image:list', 'Image list', 'menu:product', '/admin/operation/image/list', 41),
    ('menu:product:image:gallery', 'Static assets', 'menu:product', '/admin/operation/image/gallery', 42),
    ('menu:system:permission', 'Permissions', 'menu:system', '/admin/system/permission', 51),
    ('menu:system:role', 'Roles', 'menu:system', '/admin/system/role', 52),
    ('menu:system:user', 'Users', 'menu:system', '/admin/system/user', 53),
]


def build_button_permissions() -> List[tuple]:
    rows: List[tuple] = []
    order = 0
    for codes in RESOURCE_PERMISSIONS.values():
        for action in ('add', 'edit', 'delete'):
            order += 1
            code = codes[action]
            rows.append((code, code.split(':', 1)[1].replace(':', ' '), codes['menu'], code.split(':', 1)[1], order))
    for table in (USER_PERMS, ROLE_PERMS, PERMISSION_PERMS):
        for action, code in table.items():
            if action == 'menu':
                continue
            order += 1
            rows.append((code, code.split(':', 1)[1].replace(':', ' '), table['menu'], code.split(':', 1)[1], order))
    return rows


DEFAULT_BUTTON_PERMISSIONS = build_button_permissions()

ALL_PERMISSION_CODES = [row[0] for row in DEFAULT_MENU_PERMISSIONS + DEFAULT_BUTTON_PERMISSIONS]
