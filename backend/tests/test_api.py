import uuid

from fastapi.testclient import TestClient
from sqlmodel import Session

from achievo.database import engine
from achievo.main import app
from achievo.models import Role
from achievo.schemas import UserCreate
from achievo.services import UserService

client = TestClient(app)


def _name(prefix):
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def _register(username, password="pw12345", birth_date="1990-05-01", **extra):
    body = {'username': username, 'password': password, 'birth_date': birth_date, **extra}
    return client.post('/auth/register', json=body)


def _login(username, password="pw12345"):
    r = client.post('/auth/login', json={'username': username, 'password': password})
    assert r.status_code == 200
    return {'Authorization': f"Bearer {r.json()['access_token']}"}


def _make_admin(username, password="pw12345"):
    with Session(engine) as session:
        UserService(session).add_user(
            UserCreate(username=username, password=password, birth_date="1980-01-01", role=Role.ADMIN)
        )


def test_health_and_request_id():
    r = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r.status_code == 200
    assert r.json() == {'status': 'ok'}
    assert r.headers['X-Request-ID'] == 'abc123'


def test_register_forces_user_role_and_hides_password():
    name = _name('alice')
    r = _register(name, role='ADMIN')
    assert r.status_code == 201
    body = r.json()
    assert body['username'] == name
    assert body['role'] == 'USER'
    assert 'password' not in body and 'password_hash' not in body


def test_register_conflict_and_bad_date():
    name = _name('alice')
    assert _register(name).status_code == 201
    dup = _register(name)
    assert dup.status_code == 409
    assert name in dup.json()['detail']
    bad = _register(_name('bob'), birth_date='2020/01/01')
    assert bad.status_code == 400
    assert '2020/01/01' in bad.json()['detail']


def test_login_rejects_bad_credentials():
    name = _name('alice')
    _register(name)
    r = client.post('/auth/login', json={'username': name, 'password': 'wrong'})
    assert r.status_code == 401


def test_users_require_authentication():
    r = client.get('/users')
    assert r.status_code in (401, 403)
    r = client.get('/users', headers={'Authorization': 'Bearer invalid.token.here'})
    assert r.status_code == 401


def test_get_and_update_self():
    name = _name('alice')
    user_id = _register(name).json()['id']
    headers = _login(name)

    r = client.get(f'/users/{user_id}', headers=headers)
    assert r.status_code == 200
    assert r.json()['birth_date'] == '1990-05-01'

    update = {'username': name, 'password': 'pw12345', 'birth_date': '2000-01-01', 'email': 'a@example.com'}
    r = client.put('/users/me', json=update, headers=headers)
    assert r.status_code == 200
    assert r.json()['email'] == 'a@example.com'
    assert r.json()['birth_date'] == '1990-05-01'

    assert client.get('/users/999999', headers=headers).status_code == 404
    assert any(u['id'] == user_id for u in client.get('/users', headers=headers).json())


def test_rename_keeps_session_and_conflicts_are_409():
    name, other = _name('alice'), _name('bob')
    user_id = _register(name).json()['id']
    _register(other)
    headers = _login(name)

    r = client.put('/users/me', json={'username': other, 'password': 'pw12345', 'birth_date': '1990-05-01'},
                   headers=headers)
    assert r.status_code == 409

    renamed = _name('alicia')
    r = client.put('/users/me', json={'username': renamed, 'password': 'pw12345', 'birth_date': '1990-05-01'},
                   headers=headers)
    assert r.status_code == 200
    assert client.get(f'/users/{user_id}', headers=headers).json()['username'] == renamed


def test_delete_permissions():
    alice, bob, carol = _name('alice'), _name('bob'), _name('carol')
    alice_id = _register(alice).json()['id']
    _register(bob)
    _make_admin(carol)

    r = client.delete(f'/users/{alice_id}', headers=_login(bob))
    assert r.status_code == 403

    admin_headers = _login(carol)
    r = client.delete(f'/users/{alice_id}', headers=admin_headers)
    assert r.status_code == 204
    assert client.get(f'/users/{alice_id}', headers=admin_headers).status_code == 404


def test_only_admin_can_add_users_with_roles():
    plain, admin = _name('bob'), _name('carol')
    _register(plain)
    _make_admin(admin)
    body = {'username': _name('dave'), 'password': 'pw12345', 'birth_date': '1995-03-03', 'role': 'ADMIN'}

    assert client.post('/users', json=body, headers=_login(plain)).status_code == 403
    r = client.post('/users', json=body, headers=_login(admin))
    assert r.status_code == 201
    assert r.json()['role'] == 'ADMIN'


def test_achievement_endpoints():
    author, booker = _name('alice'), _name('bob')
    _register(author)
    _register(booker)
    author_headers, booker_headers = _login(author), _login(booker)

    r = client.post('/achievements', json={'name': 'Marathon', 'description': '42k'}, headers=author_headers)
    assert r.status_code == 201
    achievement_id = r.json()['id']
    assert client.get(f'/achievements/{achievement_id}').json()['name'] == 'Marathon'
    assert client.get('/achievements/999999').status_code == 404

    r = client.post(f'/achievements/{achievement_id}/book', headers=booker_headers)
    assert r.status_code == 201
    booking_id = r.json()['id']
    assert client.post(f'/achievements/{achievement_id}/book', headers=booker_headers).status_code == 409

    assert client.post(f'/bookings/{booking_id}/complete', headers=author_headers).status_code == 403
    r = client.post(f'/bookings/{booking_id}/complete', headers=booker_headers)
    assert r.status_code == 200
    assert r.json()['completed'] is True
    assert [b['id'] for b in client.get('/bookings/me', headers=booker_headers).json()] == [booking_id]

    assert client.delete(f'/achievements/{achievement_id}', headers=booker_headers).status_code == 403
    assert client.delete(f'/achievements/{achievement_id}', headers=author_headers).status_code == 204
    assert client.get('/bookings/me', headers=booker_headers).json() == []


def test_user_with_id_zero_can_authenticate():
    name = _name('zero')
    with Session(engine) as session:
        UserService(session).add_user(UserCreate(id=0, username=name, password='pw12345', birth_date='1990-05-01'))
    headers = _login(name)
    r = client.get('/users/0', headers=headers)
    assert r.status_code == 200
    assert r.json()['username'] == name
