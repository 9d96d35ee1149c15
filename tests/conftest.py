import pytest
from fastapi.testclient import TestClient

from stockledger.main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        c.post("/reset")
        yield c
