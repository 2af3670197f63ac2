import pytest
from datetime import timedelta
from flask_jwt_extended import create_access_token
from mall_admin.constants.permissions import RESOURCE_PERMISSIONS
from mall_admin.services.gate import required_code, required_code_for_resource
from tests.test_utils_seed import auth_headers, login, seed_admin, seed_user_with_codes


@pytest.mark.parametrize('method,expected', [
    ('GET', 'menu:system:role'),
    ('HEAD', 'menu:system:role'),
    ('OPTIONS', 'menu:system:role'),
    ('POST', 'button:role:add'),
    ('put', 'button:role:add'),
    ('DELETE', 'button:role:add'),
])
def test_required_code_by_verb(method, expected):
    assert required_code(method, 'menu:system:role', 'button:role:add') == expected


def test_required_code_falls_back_to_menu():
    assert required_code('POST', 'menu:system:role') == 'menu:system:role'
    assert required_code_for_resource('PATCH', {'menu': 'menu:x'}) == 'menu:x'


def test_resource_table_lookup():
    codes = RESOURCE_PERMISSIONS['products']
    assert required_code_for_resource('GET', codes) == 'menu:product:list'
    assert required_code_for_resource('POST', codes) == 'button:product:add'
    assert required_code_for_resource('PUT', codes) == 'button:product:edit'
    assert required_code_for_resource('PATCH', codes) == 'button:product:edit'
    assert required_code_for_resource('DELETE', codes) == 'button:product:delete'


def test_admin_only_routes_reject_anonymous(client):
    for path in ('/admin/roles', '/admin/permissions', '/admin/users', '/admin/products'):
        resp = client.get(path)
        assert resp.status_code == 401, path
        assert resp.get_json()['error']['code'] == 'Unauthenticated'
    assert client.post('/admin/products', json={'name': 'x'}).status_code == 401


def test_denial_names_the_missing_code(client):
    seed_user_with_codes('viewer', ['menu:product:list'])
    headers = auth_headers(client, 'viewer')
    assert client.get('/admin/products', headers=headers).status_code == 200
    resp = client.post('/admin/products', json={'name': 'Lamp'}, headers=headers)
    assert resp.status_code == 403
    err = resp.get_json()['error']
    assert err['code'] == 'Forbidden'
    assert err['required_permission'] == 'button:product:add'


def test_resource_crud_with_button_codes(client):
    seed_user_with_codes('editor', ['menu:operation:page', 'button:page:add', 'button:page:edit'])
    headers = auth_headers(client, 'editor')
    created = client.post('/admin/pages', json={'name': 'Home', 'payload': {'blocks': []}}, headers=headers)
    assert created.status_code == 201, created.get_json()
    item_id = created.get_json()['id']
    upd = client.put(f'/admin/pages/{item_id}', json={'name': 'Landing', 'sort_order': 2}, headers=headers)
    assert upd.status_code == 200
    assert upd.get_json()['name'] == 'Landing'
    assert client.delete(f'/admin/pages/{item_id}', headers=headers).status_code == 403
    # another resource type is a separate grant
    assert client.get('/admin/images', headers=headers).status_code == 403
    listing = client.get('/admin/pages', headers=headers).get_json()
    assert [i['name'] for i in listing['data']] == ['Landing']
    assert client.get('/admin/pages/9999', headers=headers).status_code == 404


def test_unknown_admin_resource_is_404(client):
    seed_admin()
    headers = auth_headers(client, 'root')
    assert client.get('/admin/widgets', headers=headers).status_code == 404


def test_datasources_pass_anonymous_callers_through(client):
    assert client.get('/api/datasources/carousel').status_code == 200
    created = client.post('/api/datasources/carousel', json={'name': 'Banner'})
    assert created.status_code == 201
    assert client.get('/api/datasources/nope').status_code == 404
    # a token of an unknown account is treated like no session
    ghost = {'Authorization': f"Bearer {create_access_token(identity='999')}"}
    assert client.get('/api/datasources/carousel', headers=ghost).status_code == 200


def test_datasources_enforce_for_admin_sessions(client):
    seed_user_with_codes('ops', ['menu:operation:carousel'])
    headers = auth_headers(client, 'ops')
    assert client.get('/api/datasources/carousel', headers=headers).status_code == 200
    resp = client.post('/api/datasources/carousel', json={'name': 'Banner'}, headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()['error']['required_permission'] == 'button:carousel:add'
    assert client.get('/api/datasources/seckill', headers=headers).status_code == 403
    seed_admin()
    root = auth_headers(client, 'root')
    assert client.post('/api/datasources/seckill', json={'name': 'Flash'}, headers=root).status_code == 201


def test_system_screens_use_their_button_codes(client):
    seed_user_with_codes('roles_ro', ['menu:system:role', 'menu:system:permission'])
    headers = auth_headers(client, 'roles_ro')
    assert client.get('/admin/roles', headers=headers).status_code == 200
    assert client.get('/admin/permissions', headers=headers).status_code == 200
    resp = client.post('/admin/roles', json={'code': 'x', 'name': 'X'}, headers=headers)
    assert resp.get_json()['error']['required_permission'] == 'button:role:add'
    resp = client.post('/admin/permissions/import', headers=headers)
    assert resp.get_json()['error']['required_permission'] == 'button:permission:import'


def test_token_header_follows_jwt_settings(app_instance, client):
    seed_admin()
    token = login(client, 'root')
    app_instance.config['JWT_HEADER_TYPE'] = 'Token'
    assert client.get('/admin/roles', headers={'Authorization': f'Token {token}'}).status_code == 200
    assert client.get('/admin/roles', headers={'Authorization': f'Bearer {token}'}).status_code == 401
    app_instance.config['JWT_HEADER_NAME'] = 'X-Admin-Token'
    assert client.get('/admin/roles', headers={'X-Admin-Token': f'Token {token}'}).status_code == 200


def test_expired_or_garbled_tokens_count_as_no_session(client):
    user = seed_admin()
    expired = create_access_token(identity=str(user.id), expires_delta=timedelta(seconds=-60))
    for value in (f'Bearer {expired}', 'Bearer not-a-jwt', 'Bearer'):
        resp = client.get('/admin/roles', headers={'Authorization': value})
        assert resp.status_code == 401, value
        assert client.get('/api/datasources/carousel', headers={'Authorization': value}).status_code == 200
