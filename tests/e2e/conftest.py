import pytest
from fastapi.testclient import TestClient

from api.dependencies import Services
from api_server import create_app
from scheduling import ScheduleService


@pytest.fixture
def client(store, manager, notifier, verifier, clock):
    services = Services(
        verifier=verifier,
        sessions=manager,
        schedule=ScheduleService(store, notifier, clock=clock),
    )
    return TestClient(create_app(services))
