from __future__ import annotations

from fastapi import APIRouter, Depends, status

from teamshare.core.deps import get_current_requester, get_settings_dep, get_store
from teamshare.core.settings import Settings
from teamshare.schemas.auth import (
    AdminLoginRequest,
    LoginRequest,
    LoginResponse,
    PasswordChangeRequest,
    RegisteredTeam,
    RegisterRequest,
    RegisterResponse,
    RequesterRead,
)
from teamshare.schemas.base import MessageResponse
from teamshare.services import auth as auth_service
from teamshare.services.auth import ADMIN_DISPLAY_NAME
from teamshare.services.permissions import Requester
from teamshare.storage.base import RecordStore

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings_dep),
) -> RegisterResponse:
    account = auth_service.register_team(store, settings, payload)
    return RegisterResponse(message="Team registered successfully", team=RegisteredTeam.from_account(account))


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings_dep),
) -> LoginResponse:
    account = auth_service.authenticate_team(store, settings, payload.team_number, payload.password)
    requester = Requester(team_number=account.team_number, is_admin=False)
    return auth_service.issue_login(requester, settings, team_name=account.team_name)


@router.post("/admin-login", response_model=LoginResponse)
def admin_login(
    payload: AdminLoginRequest,
    settings: Settings = Depends(get_settings_dep),
) -> LoginResponse:
    requester = auth_service.authenticate_admin(settings, payload.password)
    return auth_service.issue_login(requester, settings, team_name=ADMIN_DISPLAY_NAME)


@router.get("/user", response_model=RequesterRead)
def current_user(
    requester: Requester = Depends(get_current_requester),
    store: RecordStore = Depends(get_store),
) -> RequesterRead:
    if requester.is_admin:
        team_name = ADMIN_DISPLAY_NAME
    else:
        account = store.get_team_by_number(requester.team_number)
        team_name = account.team_name if account else None
    return RequesterRead(team_number=requester.team_number, is_admin=requester.is_admin, team_name=team_name)


@router.put("/user/password", response_model=MessageResponse)
def update_password(
    payload: PasswordChangeRequest,
    requester: Requester = Depends(get_current_requester),
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings_dep),
) -> MessageResponse:
    auth_service.change_password(store, settings, requester, payload.current_password, payload.new_password)
    return MessageResponse(message="Password updated successfully")


@router.post("/logout", response_model=MessageResponse)
def logout() -> MessageResponse:
    # Tokens are stateless; the client discards its copy.
    return MessageResponse(message="Logout successful")
