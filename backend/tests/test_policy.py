from mall_admin.services import roles
from mall_admin.services.policy import check_access, effective_permissions, has_all, has_any, has_permission, is_super_user
from tests.test_utils_seed import assign_role, ensure_permissions, ensure_role, ensure_system_role, ensure_user


def test_editor_scenario_sees_grants_without_caching(app_instance):
    perms = ensure_permissions(['menu:product:list', 'button:product:edit'])
    editor = ensure_role('editor', ['menu:product:list'])
    u1 = ensure_user('u1')
    assign_role(u1, editor)
    assert has_permission(u1.id, 'menu:product:list')
    assert not has_permission(u1.id, 'button:product:edit')
    roles.update_role(editor.id, permission_ids=[perms['menu:product:list'].id, perms['button:product:edit'].id])
    assert has_permission(u1.id, 'button:product:edit')


def test_union_across_roles(app_instance):
    user = ensure_user('multi')
    assign_role(user, ensure_role('a', ['menu:a', 'button:shared']))
    assign_role(user, ensure_role('b', ['menu:b', 'button:shared']))
    assert effective_permissions(user.id) == {'menu:a', 'menu:b', 'button:shared'}
    assert has_any(user.id, ['menu:zzz', 'menu:b'])
    assert has_all(user.id, ['menu:a', 'menu:b'])
    assert not has_all(user.id, ['menu:a', 'menu:zzz'])
    assert not has_any(user.id, [])
    assert has_all(user.id, [])
    assert check_access(user.id, 'menu:a')


def test_account_without_roles_has_nothing(app_instance):
    user = ensure_user('nobody')
    assert effective_permissions(user.id) == set()
    assert not has_permission(user.id, 'menu:system:role')
    assert effective_permissions(999999) == set()


def test_system_role_grants_everything(app_instance):
    root = ensure_user('root')
    assign_role(root, ensure_system_role())
    assert 'admin' in effective_permissions(root.id)
    assert has_permission(root.id, 'button:never:defined')
    assert has_any(root.id, [])


def test_admin_prefixed_code_grants_everything(app_instance):
    user = ensure_user('legacy')
    assign_role(user, ensure_role('legacy_admins', ['admin:dashboard']))
    assert has_permission(user.id, 'button:role:delete')
    assert has_all(user.id, ['menu:x', 'menu:y'])


def test_admin_prefix_can_be_switched_off(app_instance):
    app_instance.config['AUTHZ_LEGACY_ADMIN_PREFIX'] = False
    user = ensure_user('notes')
    assign_role(user, ensure_role('notes', ['admin_notes:view']))
    assert has_permission(user.id, 'admin_notes:view')
    assert not has_permission(user.id, 'button:role:delete')
    # the capability flag keeps working without the prefix rule
    root = ensure_user('root')
    assign_role(root, ensure_system_role())
    assert has_permission(root.id, 'button:role:delete')


def test_is_super_user_on_code_sets(app_instance):
    assert is_super_user({'admin'})
    assert is_super_user({'menu:a', 'administrator'})
    assert not is_super_user({'menu:admin'})
    assert not is_super_user(set())
