import pytest

from config import TestConfig
from recruit import create_app
from recruit.databases import ensure_data_shape


@pytest.fixture
def app(tmp_path):
    class Config(TestConfig):
        DATA_PATH = str(tmp_path / "data.json")
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    return create_app(Config)


@pytest.fixture
def remote_app(tmp_path):
    """App whose record store mirrors to an in-memory SQLite database."""
    class Config(TestConfig):
        DATA_PATH = str(tmp_path / "data.json")
        UPLOAD_FOLDER = str(tmp_path / "uploads")
        REMOTE_STORE_ENABLED = True
        SQLALCHEMY_DATABASE_URI = "sqlite://"

    return create_app(Config)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["record_store"]


@pytest.fixture
def login(client):
    def _login(name="Tester"):
        client.post("/login", data={"name": name})
        return client
    return _login


@pytest.fixture
def data():
    return ensure_data_shape({})


@pytest.fixture
def seeded(store):
    """A job and one candidate for it, saved in the store."""
    from recruit.services import pipeline

    d = store.load()
    d["jobs"].append({"id": "job_1", "title": "Backend Engineer", "headcount": 2, "state": "open"})
    c = pipeline.create_candidate(d, {"name": "Zhang San", "jobId": "job_1", "source": "Referral"}, "Tester")
    store.save(d)
    return c["id"]
