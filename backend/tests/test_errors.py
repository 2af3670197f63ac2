from tests.test_utils_seed import auth_headers, seed_admin


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['error']['status'] == 404
    assert body['error']['code'] == 'NotFound'
    assert 'detail' in body['error']


def test_domain_errors_share_the_shape(client):
    seed_admin()
    headers = auth_headers(client, 'root')
    resp = client.post('/admin/permissions', json={'code': 'menu:x', 'name': 'X', 'kind': 'menu', 'parent_id': 99},
                       headers=headers)
    assert resp.status_code == 400
    err = resp.get_json()['error']
    assert err == {'status': 400, 'title': 'Bad Request', 'code': 'ParentNotFound',
                   'detail': 'Parent permission 99 not found'}


def test_system_role_update_is_forbidden_over_http(client):
    seed_admin()
    headers = auth_headers(client, 'root')
    roles = client.get('/admin/roles', headers=headers).get_json()['data']
    admin_role = next(r for r in roles if r['code'] == 'admin')
    for verb in (client.put, client.patch):
        resp = verb(f"/admin/roles/{admin_role['id']}", json={}, headers=headers)
        assert resp.status_code == 403
        assert resp.get_json()['error']['code'] == 'SystemRoleImmutable'
    assert client.delete(f"/admin/roles/{admin_role['id']}", headers=headers).status_code == 403


def test_internal_error_shape(client, monkeypatch):
    seed_admin()
    headers = auth_headers(client, 'root')
    import mall_admin.routes.roles as roles_mod

    def boom(*a, **k):
        raise RuntimeError('explode')
    monkeypatch.setattr(roles_mod, 'paginated', boom)
    resp = client.get('/admin/roles', headers=headers)
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error']['code'] == 'InternalServerError'
    assert 'explode' not in body['error']['detail']


def test_healthz(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}
