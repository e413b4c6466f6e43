import pytest
from fastapi.testclient import TestClient

from railops.core.state import RailwayState
from railops.main import create_app

SEED = 42


@pytest.fixture
def state():
    return RailwayState.build(seed=SEED)


@pytest.fixture
def client(state):
    app = create_app(state=state, start_background=False)
    with TestClient(app) as c:
        yield c
