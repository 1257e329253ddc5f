import pytest
from fastapi.testclient import TestClient

from ngotes import config
from ngotes.storage.notes_store import NotesStore
from ngotes.utils.jwt_auth import create_access_token


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    # isolate data dir per test; config is read at call time
    monkeypatch.setenv("APP_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("NOTES_DB_NAME", "ngotes-test")
    monkeypatch.setenv("JWT_SECRET", "dev-secret-for-tests")
    monkeypatch.setenv("JWT_EXP_MINUTES", "15")
    return tmp_path


@pytest.fixture()
def client():
    from ngotes.main import app
    return TestClient(app)


@pytest.fixture()
def auth_headers():
    def make(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return make


@pytest.fixture()
def store():
    """A connected store over the same collection the API uses."""
    s = NotesStore(config.data_dir() / config.db_name()).connect()
    yield s
    s.close()
