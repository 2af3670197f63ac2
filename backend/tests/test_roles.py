import pytest
from mall_admin.errors import DuplicateCode, ForbiddenCode, NotFound, SystemRoleImmutable, ValidationError
from mall_admin.services import roles
from mall_admin.services.policy import effective_permissions
from tests.test_utils_seed import assign_role, auth_headers, ensure_permissions, ensure_system_role, ensure_user, seed_admin


def test_create_role_with_permissions(app_instance):
    perms = ensure_permissions(['menu:product:list', 'button:product:add'])
    role = roles.create_role('editor', 'Editor', permission_ids=[p.id for p in perms.values()])
    data = roles.role_json(role)
    assert data['code'] == 'editor'
    assert sorted(data['permissions']) == ['button:product:add', 'menu:product:list']
    assert roles.get_role_by_code('editor').id == role.id


def test_reserved_and_duplicate_codes(app_instance):
    with pytest.raises(ForbiddenCode):
        roles.create_role('admin', 'Another admin')
    roles.create_role('editor', 'Editor')
    with pytest.raises(DuplicateCode):
        roles.create_role('editor', 'Editor 2')
    with pytest.raises(ValidationError):
        roles.create_role('viewer', 'Viewer', permission_ids=[999])
    assert roles.get_role_by_code('viewer') is None


def test_update_replaces_permission_set(app_instance):
    perms = ensure_permissions(['menu:a', 'menu:b'])
    role = roles.create_role('editor', 'Editor', permission_ids=[perms['menu:a'].id])
    user = ensure_user('alice')
    assign_role(user, role)
    assert effective_permissions(user.id) == {'menu:a'}
    roles.update_role(role.id, name='Renamed', permission_ids=[perms['menu:b'].id])
    assert roles.get_role(role.id).name == 'Renamed'
    assert effective_permissions(user.id) == {'menu:b'}
    roles.update_role(role.id, permission_ids=[])
    assert effective_permissions(user.id) == set()


def test_system_role_is_immutable(app_instance):
    system = ensure_system_role()
    with pytest.raises(SystemRoleImmutable):
        roles.update_role(system.id, name='Still admin')
    # rejected even when nothing would change
    with pytest.raises(SystemRoleImmutable):
        roles.update_role(system.id)
    with pytest.raises(SystemRoleImmutable):
        roles.delete_role(system.id)
    assert roles.get_role(system.id).name == 'admin'


def test_delete_role_revokes_its_permissions(app_instance):
    perms = ensure_permissions(['menu:a'])
    role = roles.create_role('editor', 'Editor', permission_ids=[perms['menu:a'].id])
    user = ensure_user('bob')
    assign_role(user, role)
    roles.delete_role(role.id)
    assert effective_permissions(user.id) == set()
    with pytest.raises(NotFound):
        roles.get_role(role.id)


def test_concurrent_duplicate_role_maps_to_duplicate_code(app_instance, monkeypatch):
    roles.create_role('editor', 'Editor')
    monkeypatch.setattr(roles, 'get_role_by_code', lambda code: None)
    with pytest.raises(DuplicateCode):
        roles.create_role('editor', 'Editor again')
    monkeypatch.undo()
    assert roles.get_role_by_code('editor').name == 'Editor'
    assert len(roles.list_roles()) == 1


@pytest.mark.parametrize('name', [5, '   ', '', ['Editor']])
def test_update_rejects_bad_names(app_instance, name):
    role = roles.create_role('editor', 'Editor')
    with pytest.raises(ValidationError):
        roles.update_role(role.id, name=name)
    assert roles.get_role(role.id).name == 'Editor'


def test_update_with_non_string_name_answers_400(client):
    seed_admin()
    role = roles.create_role('editor', 'Editor')
    resp = client.put(f'/admin/roles/{role.id}', json={'name': 5}, headers=auth_headers(client, 'root'))
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'ValidationError'
