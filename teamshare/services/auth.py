from __future__ import annotations

import logging
import secrets
from typing import Optional

from teamshare.core.exceptions import Conflict, Forbidden, NotFound, Unauthenticated, ValidationFailed
from teamshare.core.logging import log_security_event
from teamshare.core.security import (
    create_access_token,
    get_password_hash,
    validate_password_strength,
    validate_team_name,
    verify_password,
)
from teamshare.core.settings import Settings
from teamshare.schemas.auth import LoginResponse, RegisterRequest, RequesterRead
from teamshare.schemas.team import TeamAccount, TeamCreate
from teamshare.services.permissions import ADMIN_TEAM_NUMBER, Requester
from teamshare.storage.base import RecordStore

logger = logging.getLogger(__name__)

ADMIN_DISPLAY_NAME = "Admin"


def _secret_matches(candidate: str, expected: Optional[str]) -> bool:
    if not expected:
        return False
    return secrets.compare_digest(candidate.encode(), expected.encode())


def _legacy_password_matches(settings: Settings, team_number: int, password: str) -> bool:
    return _secret_matches(password, settings.legacy_team_password(team_number))


def issue_login(requester: Requester, settings: Settings, team_name: Optional[str] = None) -> LoginResponse:
    token = create_access_token({"sub": str(requester.team_number), "admin": requester.is_admin}, settings)
    return LoginResponse(
        access_token=token,
        user=RequesterRead(team_number=requester.team_number, is_admin=requester.is_admin, team_name=team_name),
    )


def register_team(store: RecordStore, settings: Settings, payload: RegisterRequest) -> TeamAccount:
    """Set a team's own password, creating the account if it does not exist yet.

    Teams that so far logged in with the shared legacy secret keep their
    account; only teams that already registered a password are refused.
    """
    existing = store.get_team_by_number(payload.team_number)
    if existing and existing.password_hash:
        raise Conflict("Team number already registered")

    team_name = (payload.team_name or "").strip() or None
    if team_name:
        name_check = validate_team_name(team_name)
        if not name_check.ok:
            raise ValidationFailed("Invalid team name", errors=name_check.reasons)
        if not store.is_team_name_available(team_name, exclude_team_number=payload.team_number):
            raise Conflict("Team name already taken")

    strength = validate_password_strength(payload.password)
    if not strength.ok:
        raise ValidationFailed("Password does not meet requirements", errors=strength.reasons)

    password_hash = get_password_hash(payload.password, rounds=settings.bcrypt_rounds)

    if existing:
        store.update_team_password(payload.team_number, password_hash)
        account = store.get_team_by_number(payload.team_number)
    else:
        account = store.create_team(
            TeamCreate(team_number=payload.team_number, team_name=team_name, password_hash=password_hash)
        )
    if account is None:
        raise NotFound("Team not found")
    log_security_event("team_registered", extra={"team_number": payload.team_number})
    return account


def authenticate_team(store: RecordStore, settings: Settings, team_number: int, password: str) -> TeamAccount:
    if not 1 <= team_number <= 9:
        raise Unauthenticated("Invalid team number")

    account = store.get_team_by_number(team_number)
    if account and not account.is_active:
        log_security_event("login_inactive", extra={"team_number": team_number})
        raise Unauthenticated("Invalid team number or password")

    if account and account.password_hash:
        if not verify_password(password, account.password_hash):
            log_security_event("login_failed", extra={"team_number": team_number})
            raise Unauthenticated("Invalid team number or password")
    elif _legacy_password_matches(settings, team_number, password):
        if account is None:
            try:
                account = store.create_team(TeamCreate(team_number=team_number))
            except Conflict:
                # Another request materialised the account first.
                account = store.get_team_by_number(team_number)
            logger.info("Created account for team %d from legacy login", team_number)
    else:
        log_security_event("login_failed", extra={"team_number": team_number})
        raise Unauthenticated("Invalid team number or password")

    store.update_team_login(team_number)
    log_security_event("login_succeeded", extra={"team_number": team_number})
    return store.get_team_by_number(team_number) or account


def authenticate_admin(settings: Settings, password: str) -> Requester:
    if not _secret_matches(password, settings.admin_password):
        log_security_event("admin_login_failed")
        raise Unauthenticated("Invalid admin password")
    log_security_event("admin_login_succeeded")
    return Requester(team_number=ADMIN_TEAM_NUMBER, is_admin=True)


def change_password(
    store: RecordStore,
    settings: Settings,
    requester: Requester,
    current_password: str,
    new_password: str,
) -> None:
    if requester.is_admin:
        raise Forbidden("The admin password is set through configuration")

    account = store.get_team_by_number(requester.team_number)
    if account is None:
        raise NotFound("User not found")

    if account.password_hash:
        current_valid = verify_password(current_password, account.password_hash)
    else:
        current_valid = _legacy_password_matches(settings, requester.team_number, current_password)
    if not current_valid:
        log_security_event("password_change_failed", extra={"team_number": requester.team_number})
        raise Unauthenticated("Current password is incorrect")

    strength = validate_password_strength(new_password)
    if not strength.ok:
        raise ValidationFailed("New password does not meet requirements", errors=strength.reasons)

    store.update_team_password(requester.team_number, get_password_hash(new_password, rounds=settings.bcrypt_rounds))
    log_security_event("password_changed", extra={"team_number": requester.team_number})
