"""Fixtures for Web API tests."""

import pytest
from fastapi.testclient import TestClient

from unitize.web.api import create_app


@pytest.fixture
def client():
    """Test client over the data directory inside tmp_path."""
    app = create_app()
    return TestClient(app)


@pytest.fixture
def user_id(client):
    """Create a user through the API and return its id."""
    response = client.post("/api/progress", json={"name": "Ana", "email": "ana@example.com"})
    assert response.status_code == 200
    return response.json()["data"]["id"]
