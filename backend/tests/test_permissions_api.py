from tests.test_utils_seed import auth_headers, seed_admin


def _create(client, headers, **body):
    resp = client.post('/admin/permissions', json=body, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def test_tree_and_flat_listing(client):
    seed_admin()
    headers = auth_headers(client, 'root')
    system = _create(client, headers, code='menu:system', name='System', kind='menu', sort_order=1)
    _create(client, headers, code='menu:system:role', name='Roles', kind='menu', parent_id=system['id'])
    tree = client.get('/admin/permissions', headers=headers).get_json()['data']
    assert [n['code'] for n in tree] == ['menu:system']
    assert [c['code'] for c in tree[0]['children']] == ['menu:system:role']
    flat = client.get('/admin/permissions?tree=false', headers=headers).get_json()['data']
    assert [p['code'] for p in flat] == ['menu:system:role', 'menu:system']
    assert 'children' not in flat[0]


def test_update_and_delete(client):
    seed_admin()
    headers = auth_headers(client, 'root')
    parent = _create(client, headers, code='menu:a', name='A', kind='menu')
    child = _create(client, headers, code='button:b', name='B', kind='button', parent_id=parent['id'])
    resp = client.put(f"/admin/permissions/{child['id']}", json={'name': 'Bee', 'code': 'ignored'}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['name'] == 'Bee' and resp.get_json()['code'] == 'button:b'
    self_parent = client.patch(f"/admin/permissions/{child['id']}", json={'parent_id': child['id']}, headers=headers)
    assert self_parent.status_code == 400
    assert client.delete(f"/admin/permissions/{parent['id']}", headers=headers).status_code == 200
    assert client.get(f"/admin/permissions/{parent['id']}", headers=headers).status_code == 404
    # the orphaned child is listed as a root
    tree = client.get('/admin/permissions', headers=headers).get_json()['data']
    assert [n['code'] for n in tree] == ['button:b']


def test_duplicate_code_over_http(client):
    seed_admin()
    headers = auth_headers(client, 'root')
    _create(client, headers, code='menu:a', name='A', kind='menu')
    resp = client.post('/admin/permissions', json={'code': 'menu:a', 'name': 'A', 'kind': 'menu'}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'DuplicateCode'
