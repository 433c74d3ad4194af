import pytest
from fastapi.testclient import TestClient

from pm_tracker.auth.security import create_user
from pm_tracker.config import Settings
from pm_tracker.db import Database
from pm_tracker.main import create_app
from pm_tracker.schemas.pm import PmMachineCreate
from pm_tracker.services.machines import PmMachineStore
from pm_tracker.services.notes import MachineNoteStore

from .helpers import machine_data


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret",
        auto_create_db=False,
        enable_metrics=False,
        rate_limit="10000/minute",
    )


@pytest.fixture
def database(settings):
    database = Database.from_settings(settings)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return PmMachineStore(db)


@pytest.fixture
def notes(db):
    return MachineNoteStore(db)


@pytest.fixture
def app(settings, database):
    return create_app(settings=settings, database=database)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def user(database):
    session = database.session()
    try:
        return create_user(session, "operator", "operator-pass", "Op", "Erator")
    finally:
        session.close()


@pytest.fixture
def auth_client(client, user):
    resp = client.post("/auth/login", json={"identifier": "operator", "password": "operator-pass"})
    assert resp.status_code == 200, resp.text
    client.headers["Authorization"] = f"Bearer {resp.json()['access_token']}"
    return client


@pytest.fixture
def make_machine(store):
    def _make(id_msn, **overrides):
        return store.create(PmMachineCreate.model_validate(machine_data(id_msn, **overrides)))

    return _make

