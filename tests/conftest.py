import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from fishlog.main import create_app
from fishlog.models.database import FishSpecies, db

JWT_SECRET = 'test-secret'


def make_token(owner_id, secret=JWT_SECRET, expires_in=timedelta(hours=1)):
    return jwt.encode(
        {'sub': owner_id, 'exp': datetime.now(timezone.utc) + expires_in},
        secret,
        algorithm='HS256',
    )


def iso(value):
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


class FakeProvider:
    """Stands in for the AccuWeather client"""

    def __init__(self):
        self.hours = []
        self.error = None
        self.calls = []

    def fetch_weather(self, lat, lng):
        self.calls.append((lat, lng))
        if self.error:
            raise self.error
        return [dict(hour) for hour in self.hours]


class ApiClient:
    """Test client that sends the owner's bearer token"""

    def __init__(self, client, owner_id):
        self.client = client
        self.owner_id = owner_id
        self.headers = {'Authorization': f'Bearer {make_token(owner_id)}'}

    def get(self, url, **kwargs):
        return self.client.get(url, headers=self.headers, **kwargs)

    def post(self, url, **kwargs):
        return self.client.post(url, headers=self.headers, **kwargs)

    def put(self, url, **kwargs):
        return self.client.put(url, headers=self.headers, **kwargs)

    def patch(self, url, **kwargs):
        return self.client.patch(url, headers=self.headers, **kwargs)

    def delete(self, url, **kwargs):
        return self.client.delete(url, headers=self.headers, **kwargs)


class Factory:
    """Creates records through the API and returns their JSON"""

    def __init__(self, api):
        self.api = api

    def equipment(self, kind, name):
        response = self.api.post(f'/api/v1/{kind}', json={'name': name})
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    def rod(self, name):
        return self.equipment('rods', name)

    def lure(self, name):
        return self.equipment('lures', name)

    def groundbait(self, name):
        return self.equipment('groundbaits', name)

    def trip(self, **fields):
        body = {'started_at': '2025-01-10T08:00:00Z', 'status': 'active'}
        body.update(fields)
        response = self.api.post('/api/v1/trips', json=body)
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    def recent_trip(self, hours_ago=2, **fields):
        started = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
        return self.trip(started_at=iso(started), **fields)

    def catch(self, trip_id, **fields):
        response = self.api.post(f'/api/v1/trips/{trip_id}/catches', json=fields)
        assert response.status_code == 201, response.get_json()
        return response.get_json()


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f"sqlite:///{tmp_path / 'test.db'}",
        'JWT_SECRET': JWT_SECRET,
        'WEATHER_API_KEY': '',
        'PHOTO_STORAGE_ROOT': str(tmp_path / 'photos'),
    })
    app.extensions['weather_provider'] = FakeProvider()
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def owner_id():
    return str(uuid.uuid4())


@pytest.fixture
def api(client, owner_id):
    return ApiClient(client, owner_id)


@pytest.fixture
def other_api(client):
    return ApiClient(client, str(uuid.uuid4()))


@pytest.fixture
def make(api):
    return Factory(api)


@pytest.fixture
def provider(app):
    return app.extensions['weather_provider']


@pytest.fixture
def species(app):
    rows = [FishSpecies(name=name) for name in ('Pike', 'Perch', 'Zander')]
    db.session.add_all(rows)
    db.session.commit()
    return {row.name: row.id for row in rows}
