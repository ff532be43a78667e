from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from teamshare.core.exceptions import Forbidden, Unauthenticated
from teamshare.core.logging import log_security_event
from teamshare.core.security import decode_token
from teamshare.core.settings import Settings
from teamshare.services.permissions import ADMIN_TEAM_NUMBER, Requester
from teamshare.services.uploads import ContentStore
from teamshare.storage.base import RecordStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_content_store(request: Request) -> ContentStore:
    return request.app.state.content


def get_current_requester(
    request: Request,
    token: Optional[str] = Security(oauth2_scheme),
    settings: Settings = Depends(get_settings_dep),
) -> Requester:
    if not token:
        raise Unauthenticated("Authentication required")
    try:
        payload = decode_token(token, settings)
        raw_team = payload.get("sub")
        if raw_team is None:
            log_security_event("token_missing_sub", request=request)
            raise Unauthenticated("Could not validate credentials")
        team_number = int(raw_team)
    except (JWTError, ValueError, TypeError):
        log_security_event("token_invalid", request=request)
        raise Unauthenticated("Could not validate credentials")

    is_admin = bool(payload.get("admin"))
    if is_admin != (team_number == ADMIN_TEAM_NUMBER):
        log_security_event("token_inconsistent", request=request, extra={"team_number": team_number})
        raise Unauthenticated("Could not validate credentials")
    return Requester(team_number=team_number, is_admin=is_admin)


def require_admin(requester: Requester = Depends(get_current_requester)) -> Requester:
    if not requester.is_admin:
        raise Forbidden("Admin access required")
    return requester
