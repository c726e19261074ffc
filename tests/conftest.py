import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from physik.catalog import Catalog
from physik.config import DEFAULT_CATALOG_DIR, Settings
from physik.solver import Solver


@pytest.fixture(scope="session")
def catalog():
    return Catalog.from_dir(DEFAULT_CATALOG_DIR)


@pytest.fixture
def solver(catalog):
    return Solver(catalog)


@pytest.fixture
def settings():
    # plain http in tests, cheap hashes
    return Settings(catalog_dir=str(DEFAULT_CATALOG_DIR), session_cookie_secure=False,
                    bcrypt_rounds=4, log_level="WARNING")


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def login(client):
    """Register + log in; the client keeps the session cookie afterwards."""
    def _login(username="anna", password="geheim123", email="anna@example.org"):
        r = client.post("/api/register", json={"username": username, "password": password, "email": email})
        assert r.status_code == 201
        r = client.post("/api/login", json={"username": username, "password": password})
        assert r.status_code == 200
        return r.json()["user"]
    return _login
