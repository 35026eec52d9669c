import pytest
from fastapi.testclient import TestClient

from classgrid.main import app


@pytest.fixture()
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
