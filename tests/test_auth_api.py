from __future__ import annotations

from teamshare.core.security import create_access_token
from teamshare.schemas.team import TeamCreate

from conftest import LEGACY_PASSWORDS, STRONG_PASSWORD, auth_headers, login_admin, login_team


def _register(client, team_number=5, password=STRONG_PASSWORD, team_name="Rockets"):
    return client.post(
        "/api/register",
        json={"team_number": team_number, "team_name": team_name, "password": password},
    )


def test_register_then_login(client):
    response = _register(client)
    assert response.status_code == 201
    assert response.json()["team"] == {"team_number": 5, "team_name": "Rockets"}

    headers = login_team(client, 5, STRONG_PASSWORD)
    me = client.get("/api/user", headers=headers)
    assert me.status_code == 200
    assert me.json() == {"team_number": 5, "is_admin": False, "team_name": "Rockets"}


def test_register_twice_conflicts(client):
    assert _register(client, team_number=3).status_code == 201
    response = _register(client, team_number=3, team_name="Comets")
    assert response.status_code == 409


def test_register_taken_name_conflicts(client):
    assert _register(client, team_number=3, team_name="Rockets").status_code == 201
    response = _register(client, team_number=6, team_name="ROCKETS")
    assert response.status_code == 409
    assert response.json()["detail"] == "Team name already taken"


def test_register_weak_password_lists_reasons(client):
    response = _register(client, password="short")
    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Password does not meet requirements"
    assert len(body["errors"]) >= 3


def test_register_invalid_team_name(client):
    response = _register(client, team_name="no!")
    assert response.status_code == 400
    assert response.json()["errors"]


def test_register_team_number_out_of_range(client):
    assert _register(client, team_number=0).status_code == 422
    assert _register(client, team_number=10).status_code == 422


def test_register_reports_bad_name_before_name_clash(client, store):
    store.create_team(TeamCreate(team_number=7, team_name="Rockets!"))
    response = _register(client, team_number=6, team_name="rockets!")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid team name"


def test_legacy_login_creates_account(client, store):
    assert store.get_team_by_number(1) is None

    response = client.post("/api/login", json={"team_number": 1, "password": LEGACY_PASSWORDS[1]})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["team_number"] == 1

    account = store.get_team_by_number(1)
    assert account is not None
    assert account.password_hash is None
    assert account.last_login is not None


def test_registration_replaces_legacy_secret(client):
    login_team(client, 2)
    assert _register(client, team_number=2).status_code == 201

    legacy = client.post("/api/login", json={"team_number": 2, "password": LEGACY_PASSWORDS[2]})
    assert legacy.status_code == 401
    login_team(client, 2, STRONG_PASSWORD)


def test_login_failures(client):
    wrong = client.post("/api/login", json={"team_number": 1, "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.headers["www-authenticate"] == "Bearer"

    # No legacy secret configured for team 8.
    assert client.post("/api/login", json={"team_number": 8, "password": ""}).status_code == 401
    assert client.post("/api/login", json={"team_number": 12, "password": "x"}).status_code == 401


def test_inactive_account_cannot_login(client, store):
    store.create_team(TeamCreate(team_number=4, is_active=False))
    response = client.post("/api/login", json={"team_number": 4, "password": LEGACY_PASSWORDS[4]})
    assert response.status_code == 401


def test_admin_login(client):
    headers = login_admin(client)
    me = client.get("/api/user", headers=headers)
    assert me.json() == {"team_number": 0, "is_admin": True, "team_name": "Admin"}

    assert client.post("/api/admin-login", json={"password": "guess"}).status_code == 401


def test_user_requires_valid_token(client, settings):
    assert client.get("/api/user").status_code == 401
    assert client.get("/api/user", headers=auth_headers("garbage")).status_code == 401

    forged = create_access_token({"sub": "3", "admin": True}, settings)
    assert client.get("/api/user", headers=auth_headers(forged)).status_code == 401

    other_key = settings.model_copy(update={"jwt_secret": "elsewhere"})
    foreign = create_access_token({"sub": "3", "admin": False}, other_key)
    assert client.get("/api/user", headers=auth_headers(foreign)).status_code == 401


def test_change_password(client):
    _register(client, team_number=5)
    headers = login_team(client, 5, STRONG_PASSWORD)

    response = client.put(
        "/api/user/password",
        headers=headers,
        json={"current_password": STRONG_PASSWORD, "new_password": "An0ther!Secret"},
    )
    assert response.status_code == 200
    login_team(client, 5, "An0ther!Secret")
    assert client.post("/api/login", json={"team_number": 5, "password": STRONG_PASSWORD}).status_code == 401


def test_change_password_from_legacy_secret(client):
    headers = login_team(client, 1)
    response = client.put(
        "/api/user/password",
        headers=headers,
        json={"current_password": LEGACY_PASSWORDS[1], "new_password": STRONG_PASSWORD},
    )
    assert response.status_code == 200
    login_team(client, 1, STRONG_PASSWORD)


def test_change_password_rejections(client):
    headers = login_team(client, 1)

    wrong = client.put(
        "/api/user/password",
        headers=headers,
        json={"current_password": "incorrect", "new_password": STRONG_PASSWORD},
    )
    assert wrong.status_code == 401

    weak = client.put(
        "/api/user/password",
        headers=headers,
        json={"current_password": LEGACY_PASSWORDS[1], "new_password": "weak"},
    )
    assert weak.status_code == 400
    assert weak.json()["errors"]

    admin = client.put(
        "/api/user/password",
        headers=login_admin(client),
        json={"current_password": "x", "new_password": STRONG_PASSWORD},
    )
    assert admin.status_code == 403


def test_logout(client):
    assert client.post("/api/logout").json() == {"message": "Logout successful"}
