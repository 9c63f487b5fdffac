import json

import pytest
from fastapi.testclient import TestClient

from ramzishare.app import create_app
from ramzishare.config import Settings
from ramzishare.relay import Connection


class FakeConnection(Connection):
    def __init__(self, conn_id=None):
        super().__init__(conn_id)
        self.frames = []

    async def send_text(self, text):
        self.frames.append(json.loads(text))

    def events(self):
        return [f['event'] for f in self.frames]

    def last(self, event):
        for f in reversed(self.frames):
            if f['event'] == event:
                return f['data']
        return None


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
def settings(tmp_path):
    return Settings(storage_dir=tmp_path / 'store',
                    client_dist_dir=tmp_path / 'dist',
                    fallback_pages_dir=tmp_path / 'pages')


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def upload(client, name, content, public=False, password=None):
    data = {'public': 'true' if public else 'false'}
    if password is not None:
        data['password'] = password
    return client.post('/upload', files={'file': (name, content)}, data=data)


def listing(client):
    resp = client.get('/api/files')
    assert resp.status_code == 200
    return resp.json()['files']
