import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import Session
from database import get_database
from main import app
from repository import OwnerScope

OWNER = ("owner@example.com", "secret123")
OTHER = ("other@example.com", "secret456")


@pytest.fixture
def database():
    return mongomock.MongoClient().db


@pytest.fixture
def scope(database):
    return OwnerScope(database, Session(owner_email=OWNER[0], owner_name="Asha"))


@pytest.fixture
def other_scope(database):
    return OwnerScope(database, Session(owner_email=OTHER[0], owner_name="Ravi"))


def _register(client, email, password, name):
    res = client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "owner_name": name,
        "shop_name": f"{name}'s Laundry",
        "mobile": "9876543210",
        "address": "12 MG Road, Pune",
    })
    assert res.status_code == 200, res.text


@pytest.fixture
def client(database):
    app.dependency_overrides[get_database] = lambda: database
    with TestClient(app) as c:
        _register(c, OWNER[0], OWNER[1], "Asha")
        _register(c, OTHER[0], OTHER[1], "Ravi")
        c.auth = OWNER
        yield c
    app.dependency_overrides.clear()
