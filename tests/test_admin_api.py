from __future__ import annotations

import logging
import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from teamshare import main as main_module
from teamshare.core.security import create_access_token
from teamshare.main import create_app

from conftest import (
    ADMIN_PASSWORD,
    ASSIGNMENT,
    STRONG_PASSWORD,
    auth_headers,
    login_admin,
    login_team,
    open_assignment,
    step_up,
    upload_one,
)


def test_teams_list_is_admin_only(client):
    team_1 = login_team(client, 1)
    client.post("/api/register", json={"team_number": 6, "team_name": "Sixers", "password": STRONG_PASSWORD})
    admin = login_admin(client)

    assert client.get("/api/admin/teams", headers=team_1).status_code == 403
    response = client.get("/api/admin/teams", headers=admin)
    assert response.status_code == 200
    teams = {team["team_number"]: team for team in response.json()}
    assert set(teams) == {1, 6}
    assert teams[1]["team_name"] == "Team 1"
    assert teams[1]["has_password"] is False
    assert teams[1]["last_login"] is not None
    assert teams[6]["team_name"] == "Sixers"
    assert teams[6]["has_password"] is True


@pytest.mark.parametrize(
    "method, path",
    [
        ("delete", "/api/admin/files/all"),
        ("delete", "/api/admin/teams/2/files"),
        ("delete", "/api/admin/teams/2"),
    ],
)
def test_destructive_routes_need_step_up(client, method, path):
    admin = login_admin(client)
    team = login_team(client, 2)

    assert getattr(client, method)(path, headers=team).status_code == 403
    assert getattr(client, method)(path, headers=admin).status_code == 401
    wrong = getattr(client, method)(path, headers=step_up(admin, "wrong"))
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "invalid_admin_password"
    # The login secret is not the delete secret when both are configured.
    assert getattr(client, method)(path, headers=step_up(admin, ADMIN_PASSWORD)).status_code == 401
    assert getattr(client, method)(path, headers=step_up(admin)).status_code == 200


def test_step_up_falls_back_to_admin_password(settings, store):
    client = TestClient(create_app(settings.model_copy(update={"admin_delete_password": None}), store=store))
    admin = login_admin(client)
    response = client.delete("/api/admin/files/all", headers=step_up(admin, ADMIN_PASSWORD))
    assert response.status_code == 200


def test_step_up_without_configured_secret(settings, store):
    unconfigured = settings.model_copy(update={"admin_password": None, "admin_delete_password": None})
    client = TestClient(create_app(unconfigured, store=store))
    admin = auth_headers(create_access_token({"sub": "0", "admin": True}, unconfigured))

    response = client.delete("/api/admin/files/all", headers=step_up(admin, "anything"))
    assert response.status_code == 503
    assert response.json()["detail"] == "admin_password_not_configured"


def test_elevated_delete_of_any_file(client, store, content):
    admin = login_admin(client)
    team_2 = login_team(client, 2)
    created = upload_one(client, team_2)

    response = client.delete(f"/api/admin/files/{created['id']}", headers=step_up(admin))
    assert response.status_code == 200
    assert store.get_file(created["id"]) is None
    assert not content.exists(created["stored_name"])

    again = client.delete(f"/api/admin/files/{created['id']}", headers=step_up(admin))
    assert again.status_code == 404


def test_bulk_team_delete_survives_missing_blob(client, store, content, caplog):
    admin = login_admin(client)
    team_4 = login_team(client, 4)
    team_2 = login_team(client, 2)
    created = [upload_one(client, team_4, label=f"File {i}") for i in range(5)]
    survivor = upload_one(client, team_2)
    content.delete(created[2]["stored_name"])

    with caplog.at_level(logging.WARNING, logger="teamshare.services.uploads"):
        response = client.delete("/api/admin/teams/4/files", headers=step_up(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["deleted_count"] == 5
    assert body["blob_failures"] == [created[2]["stored_name"]]
    assert store.list_files_by_team(4) == []
    assert store.get_file(survivor["id"]) is not None
    assert any(created[2]["stored_name"] in record.getMessage() for record in caplog.records)


def test_delete_team_removes_files_then_account(client, store):
    admin = login_admin(client)
    team_3 = login_team(client, 3)
    upload_one(client, team_3)
    upload_one(client, team_3)

    response = client.delete("/api/admin/teams/3", headers=step_up(admin))
    assert response.status_code == 200
    assert response.json()["files_deleted"] == 2
    assert store.get_team_by_number(3) is None
    assert store.list_files_by_team(3) == []

    assert client.delete("/api/admin/teams/3", headers=step_up(admin)).status_code == 404


def test_instructor_account_cannot_be_deleted(client):
    admin = login_admin(client)
    response = client.delete("/api/admin/teams/0", headers=step_up(admin))
    assert response.status_code == 400


def test_delete_all_files(client, store):
    admin = login_admin(client)
    upload_one(client, login_team(client, 1))
    upload_one(client, admin)

    response = client.delete("/api/admin/files/all", headers=step_up(admin))
    assert response.json()["deleted_count"] == 2
    assert store.list_files() == []


def test_reset_server(client, store, content):
    admin = login_admin(client)
    open_assignment(client, admin, ASSIGNMENT, True)
    upload_one(client, login_team(client, 1))
    upload_one(client, login_team(client, 2))

    wrong = client.post("/api/admin/reset-server", headers=step_up(admin), json={"confirm_text": "reset"})
    assert wrong.status_code == 400
    assert len(store.list_files()) == 2

    response = client.post(
        "/api/admin/reset-server",
        headers=step_up(admin),
        json={"confirm_text": "RESET ALL DATA"},
    )
    assert response.status_code == 200
    body = response.json()
    assert (body["files_deleted"], body["users_deleted"], body["assignments_reset"]) == (2, 2, 1)
    assert store.list_files() == []
    assert store.list_teams() == []
    assert store.get_assignment_setting(ASSIGNMENT).is_open_view is False
    assert list(content.root.iterdir()) == []

    clean = client.post(
        "/api/admin/reset-server",
        headers=step_up(admin),
        json={"confirm_text": "RESET ALL DATA"},
    )
    assert clean.json()["message"] == "Server reset successful: 1 assignments reset"


def test_assignment_settings_views(client):
    admin = login_admin(client)
    team = login_team(client, 1)
    open_assignment(client, admin, ASSIGNMENT, True)

    full = client.get("/api/assignment-settings", headers=admin).json()
    assert set(full[0]) == {"id", "assignment", "is_open_view", "updated_at"}

    public = client.get("/api/assignment-settings", headers=team).json()
    assert public == [{"assignment": ASSIGNMENT, "is_open_view": True}]

    denied = client.put(
        "/api/assignment-settings",
        headers=team,
        json={"assignment": ASSIGNMENT, "is_open_view": False},
    )
    assert denied.status_code == 403

    invalid = client.put(
        "/api/assignment-settings",
        headers=admin,
        json={"assignment": ASSIGNMENT, "is_open_view": "maybe"},
    )
    assert invalid.status_code == 422


def test_healthz_reports_backend(client, store):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "store": store.kind}


def test_metrics_endpoint(client):
    client.get("/healthz")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "teamshare_http_requests_total" in response.text
    assert 'route="/healthz"' in response.text
    assert "teamshare_files_uploaded_total" in response.text


def test_lifespan_builds_and_seeds_store(settings):
    app = create_app(settings)
    with TestClient(app) as client:
        expected = len(settings.default_assignments)
        deadline = time.monotonic() + 5
        while len(app.state.store.list_assignment_settings()) < expected and time.monotonic() < deadline:
            time.sleep(0.01)
        admin = login_admin(client)
        names = [row["assignment"] for row in client.get("/api/assignment-settings", headers=admin).json()]
        assert client.get("/healthz").json()["store"] == "memory"
    assert sorted(names) == sorted(settings.default_assignments)


def test_shutdown_waits_for_seeding_before_closing_store(settings, monkeypatch):
    events = []
    real_store = main_module.create_record_store(settings)
    monkeypatch.setattr(real_store, "close", lambda: events.append("closed"))
    monkeypatch.setattr(main_module, "create_record_store", lambda _settings: real_store)

    def slow_seed(store, assignments):
        time.sleep(0.3)
        events.append("seeded")

    monkeypatch.setattr(main_module, "seed_default_assignments", slow_seed)

    app = create_app(settings)
    with TestClient(app) as client:
        assert client.get("/healthz").status_code == 200
    assert app.state.seed_task.done()
    assert events == ["seeded", "closed"]


def test_store_outage_is_reported_as_unavailable(client, store, monkeypatch):
    admin = login_admin(client)

    def outage(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(store, "list_files", outage)
    monkeypatch.setattr(store, "ping", outage)

    listing = client.get("/api/files", headers=admin)
    assert listing.status_code == 503
    assert listing.json() == {"detail": "storage_unavailable"}
    assert client.get("/healthz").status_code == 503
