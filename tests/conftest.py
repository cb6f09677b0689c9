import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from secretwall.app import create_app
from secretwall.auth.passwords import CredentialHasher
from secretwall.auth.service import Authenticator
from secretwall.auth.session import SessionManager
from secretwall.auth.users import InMemoryUserStore
from secretwall.infra.user_repo import YamlUserStore

TEST_SECRET_KEY = "test-secret-key"


@pytest.fixture()
def hasher() -> CredentialHasher:
    # Cheapest argon2 parameters; production defaults are far slower.
    return CredentialHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture()
def sessions() -> SessionManager:
    return SessionManager(secret_key=TEST_SECRET_KEY, max_age=3600)


@pytest.fixture()
def store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture()
def yaml_store(tmp_path: Path) -> YamlUserStore:
    return YamlUserStore(tmp_path / "data" / "users.yml", timeout=1.0)


@pytest.fixture()
def auth(store, hasher, sessions) -> Authenticator:
    return Authenticator(store, hasher, sessions)


@pytest.fixture()
def app(store, hasher, sessions):
    return create_app(store=store, hasher=hasher, sessions=sessions)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)
