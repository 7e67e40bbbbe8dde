import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from fishlog.errors import make_error, map_db_error
from fishlog.services.photos import PhotoStorage, validate_photo_path


class FakeDriverError(Exception):
    def __init__(self, message, pgcode=None):
        super().__init__(message)
        self.pgcode = pgcode


def _integrity(message, pgcode=None):
    return IntegrityError('INSERT', {}, FakeDriverError(message, pgcode))


@pytest.mark.parametrize('exc, code, field', [
    (_integrity('duplicate key value', '23505'), 'conflict', None),
    (_integrity('UNIQUE constraint failed: rods.user_id, rods.name'), 'conflict', None),
    (_integrity('violates check constraint "catches_weight_check"', '23514'), 'validation_error', 'weight_g'),
    (_integrity('CHECK constraint failed: catches_length_check'), 'validation_error', 'length_mm'),
    (_integrity('violates foreign key', '23503'), 'not_found', None),
    (_integrity('FOREIGN KEY constraint failed'), 'not_found', None),
])
def test_map_db_error(exc, code, field):
    error = map_db_error(exc)

    assert error.code == code
    if field:
        assert error.details['field'] == field


def test_unknown_db_error_is_internal(caplog):
    exc = OperationalError('SELECT', {}, FakeDriverError('connection refused to 10.0.0.5'))

    error = map_db_error(exc)

    assert error.code == 'internal_error'
    assert error.http_status == 500
    assert 'connection refused' not in error.message
    assert 'Unmapped datastore error' in caplog.text


def test_error_body_omits_empty_details():
    assert make_error('not_found').to_dict() == {'code': 'not_found', 'message': 'Resource not found'}
    assert make_error('validation_error', field='name', reason='required').to_dict() == {
        'code': 'validation_error',
        'message': 'Request validation failed',
        'details': {'field': 'name', 'reason': 'required'},
    }


def test_unknown_route_uses_error_body(api):
    response = api.get('/api/v1/nothing-here')

    assert response.status_code == 404
    assert response.get_json() == {'error': {'code': 'not_found', 'message': 'Resource not found'}}


def test_wrong_method_is_not_found(api):
    response = api.put('/api/v1/rods')

    assert response.status_code == 404
    assert response.get_json()['error']['code'] == 'not_found'


def test_health(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok', 'database': 'sqlite'}


def test_species_list_and_get(api, species):
    names = [item['name'] for item in api.get('/api/v1/fish-species').get_json()['data']]
    perch = api.get(f"/api/v1/fish-species/{species['Perch']}")

    assert names == ['Perch', 'Pike', 'Zander']
    assert perch.get_json()['name'] == 'Perch'
    assert api.get('/api/v1/fish-species', query_string={'q': 'ike'}).get_json()['data'][0]['name'] == 'Pike'


def test_seed_species_command(app):
    result = app.test_cli_runner().invoke(args=['seed-species'])
    again = app.test_cli_runner().invoke(args=['seed-species'])

    assert 'Added 16 fish species' in result.output
    assert 'Added 0 fish species' in again.output


@pytest.mark.parametrize('path, owner, reason', [
    ('u1/fish.jpg', 'u1', None),
    ('u1/fish.jpeg', 'u1', None),
    ('u1/fish.PNG', 'u1', None),
    ('u1/../u2/fish.jpg', 'u1', 'invalid photo path'),
    ('u2/fish.jpg', 'u1', 'photo path must be inside the user folder'),
    ('u1/', 'u1', 'photo path must be <user_id>/<file>'),
    ('u1/fish.bmp', 'u1', 'photo must be one of: jpg, jpeg, png, webp'),
])
def test_validate_photo_path(path, owner, reason):
    assert validate_photo_path(path, owner) == reason


def test_photo_storage_url(tmp_path):
    (tmp_path / 'u1').mkdir()
    (tmp_path / 'u1' / 'fish.jpg').write_bytes(b'jpeg')
    storage = PhotoStorage(str(tmp_path), '/media/')

    assert storage.url_for('u1/fish.jpg') == '/media/u1/fish.jpg'
    assert storage.url_for('u1/other.jpg') is None
    assert storage.url_for(None) is None
