from __future__ import annotations

from datetime import timedelta

import pytest
from jose import JWTError

from teamshare.core.security import (
    create_access_token,
    decode_token,
    generate_reset_token,
    get_password_hash,
    validate_password_strength,
    validate_team_name,
    verify_password,
)


def test_hash_is_salted_and_verifies():
    first = get_password_hash("Str0ng!Passw0rd", rounds=4)
    second = get_password_hash("Str0ng!Passw0rd", rounds=4)

    assert first != second
    assert verify_password("Str0ng!Passw0rd", first)
    assert verify_password("Str0ng!Passw0rd", second)
    assert not verify_password("str0ng!Passw0rd", first)


def test_verify_rejects_missing_or_malformed_digest():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "")
    assert not verify_password("anything", "not-a-bcrypt-digest")


def test_strong_password_passes():
    result = validate_password_strength("Str0ng!Passw0rd")
    assert result.ok
    assert result.reasons == []


def test_weak_password_reports_every_rule():
    result = validate_password_strength("abc")

    assert not result.ok
    assert len(result.reasons) == 4
    assert any("12 characters" in reason for reason in result.reasons)
    assert any("uppercase" in reason for reason in result.reasons)
    assert any("number" in reason for reason in result.reasons)
    assert any("special character" in reason for reason in result.reasons)


@pytest.mark.parametrize(
    "password, missing",
    [
        ("STR0NG!PASSW0RD", "lowercase"),
        ("str0ng!passw0rd", "uppercase"),
        ("Strong!Password", "number"),
        ("Str0ngPassw0rdX", "special character"),
    ],
)
def test_single_missing_class_is_reported(password, missing):
    result = validate_password_strength(password)
    assert len(result.reasons) == 1
    assert missing in result.reasons[0]


@pytest.mark.parametrize("name", ["Team Rocket", "ab_", "x-y-z", "A" * 50])
def test_valid_team_names(name):
    assert validate_team_name(name).ok


@pytest.mark.parametrize("name", ["", "ab", "A" * 51, "Rocket!", "team/one", "Team\n"])
def test_invalid_team_names(name):
    assert not validate_team_name(name).ok


def test_empty_team_name_lists_all_failures():
    reasons = validate_team_name("").reasons
    assert "Team name is required" in reasons
    assert len(reasons) >= 2


def test_reset_tokens_are_unique():
    assert generate_reset_token() != generate_reset_token()


def test_access_token_round_trip(settings):
    token = create_access_token({"sub": "3", "admin": False}, settings)
    payload = decode_token(token, settings)

    assert payload["sub"] == "3"
    assert payload["admin"] is False
    assert payload["exp"] > payload["iat"]


def test_expired_token_is_rejected(settings):
    token = create_access_token({"sub": "3"}, settings, expires_delta=timedelta(minutes=-5))
    with pytest.raises(JWTError):
        decode_token(token, settings)


def test_token_signed_with_other_secret_is_rejected(settings):
    other = settings.model_copy(update={"jwt_secret": "someone-else"})
    token = create_access_token({"sub": "3"}, other)
    with pytest.raises(JWTError):
        decode_token(token, settings)
