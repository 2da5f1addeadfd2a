import pytest

from fake_carla import FakeServer

from carla_bootstrap.model import ConnectionEndpoint
from carla_bootstrap.session import SessionClient


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def api(server):
    return server.api()


@pytest.fixture
def session(api):
    return SessionClient.connect(ConnectionEndpoint(), api=api)


@pytest.fixture
def world(session, server):
    return session.load_world(server.maps[0])
