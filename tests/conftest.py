from __future__ import annotations

import os
import tempfile

# teamshare.main builds a module-level app from the environment at import time.
os.environ.setdefault("MEMORY_STORE", "true")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="teamshare-tests-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from teamshare.core.settings import DEFAULT_ASSIGNMENTS, Settings
from teamshare.main import create_app
from teamshare.services.uploads import ContentStore
from teamshare.storage import MemoryRecordStore, RecordStore, SqlRecordStore

ADMIN_PASSWORD = "instructor-secret"
DELETE_PASSWORD = "delete-secret"
LEGACY_PASSWORDS = {1: "legacy-team-one", 2: "legacy-team-two", 3: "legacy-team-three", 4: "legacy-team-four"}
STRONG_PASSWORD = "Str0ng!Passw0rd"
ASSIGNMENT = DEFAULT_ASSIGNMENTS[0]
OTHER_ASSIGNMENT = DEFAULT_ASSIGNMENTS[1]


def build_sqlite_store() -> SqlRecordStore:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlRecordStore(engine)
    store.create_schema()
    return store


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        jwt_secret="test-jwt-secret",
        bcrypt_rounds=4,
        admin_password=ADMIN_PASSWORD,
        admin_delete_password=DELETE_PASSWORD,
        team_1_password=LEGACY_PASSWORDS[1],
        team_2_password=LEGACY_PASSWORDS[2],
        team_3_password=LEGACY_PASSWORDS[3],
        team_4_password=LEGACY_PASSWORDS[4],
        uploads_dir=str(tmp_path / "uploads"),
        memory_store=True,
    )


@pytest.fixture(params=["memory", "sql"])
def store(request) -> RecordStore:
    backend = MemoryRecordStore() if request.param == "memory" else build_sqlite_store()
    yield backend
    backend.close()


@pytest.fixture()
def content(settings) -> ContentStore:
    return ContentStore(settings.ensure_uploads_dir())


@pytest.fixture()
def app(settings, store):
    return create_app(settings, store=store)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def login_team(client: TestClient, team_number: int, password: str | None = None) -> dict[str, str]:
    response = client.post(
        "/api/login",
        json={"team_number": team_number, "password": password or LEGACY_PASSWORDS[team_number]},
    )
    assert response.status_code == 200, response.text
    return auth_headers(response.json()["access_token"])


def login_admin(client: TestClient) -> dict[str, str]:
    response = client.post("/api/admin-login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    return auth_headers(response.json()["access_token"])


def step_up(headers: dict[str, str], password: str = DELETE_PASSWORD) -> dict[str, str]:
    return {**headers, "X-Admin-Password": password}


def upload(
    client: TestClient,
    headers: dict[str, str],
    *,
    filename: str = "deck.pdf",
    data: bytes = b"%PDF-1.4 slides",
    label: str = "Week 1 deck",
    assignment: str = ASSIGNMENT,
    **form,
):
    return client.post(
        "/api/files/upload",
        headers=headers,
        files=[("files", (filename, data, "application/octet-stream"))],
        data={"label": label, "assignment": assignment, **form},
    )


def upload_one(client: TestClient, headers: dict[str, str], **kwargs) -> dict:
    response = upload(client, headers, **kwargs)
    assert response.status_code == 200, response.text
    return response.json()["files"][0]


def open_assignment(client: TestClient, admin: dict[str, str], assignment: str, is_open: bool) -> None:
    response = client.put(
        "/api/assignment-settings",
        headers=admin,
        json={"assignment": assignment, "is_open_view": is_open},
    )
    assert response.status_code == 200, response.text
