from datetime import datetime

import pytest
from fastapi.testclient import TestClient  # type: ignore

from matchcast.config import Settings
from matchcast.events import decode_event
from matchcast.fastapi_app import create_app


class RecordingChannel:
    """Stands in for a subscriber connection and keeps every frame written."""

    def __init__(self):
        self.frames = []
        self.closed = False

    def write(self, frame):
        if self.closed:
            raise RuntimeError("write after close")
        self.frames.append(frame)

    def close(self):
        self.closed = True

    @property
    def events(self):
        return [decode_event(f) for f in self.frames]

    @property
    def types(self):
        return [e["type"] for e in self.events]


class BrokenChannel:
    """A subscriber whose socket is already gone."""

    def __init__(self):
        self.writes = 0
        self.closed = False

    def write(self, frame):
        self.writes += 1
        raise BrokenPipeError("client went away")

    def close(self):
        self.closed = True


@pytest.fixture
def recording():
    return RecordingChannel


@pytest.fixture
def broken():
    return BrokenChannel


@pytest.fixture
def settings():
    return Settings(database_url="sqlite:///:memory:", ping_interval=0.05, queue_size=10)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def service(app):
    return app.state.service


@pytest.fixture
def registry(app):
    return app.state.registry


@pytest.fixture
def match_data():
    def _make(team_a="A", team_b="B", when=datetime(2026, 5, 1, 18, 0), **extra):
        data = {
            "team_a": team_a,
            "team_b": team_b,
            "location": "Estadio Central",
            "competition": "Liga",
            "scheduled_at": when,
        }
        data.update(extra)
        return data

    return _make
