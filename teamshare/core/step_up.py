"""Step-up credential for destructive admin actions.

Endpoints that delete files, teams or reset the server add
``Depends(require_step_up)`` next to the admin session check. The client
re-enters the shared admin secret and sends it in the ``X-Admin-Password``
header on that same request, so a hijacked admin session alone cannot
destroy data.
"""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header, Request

from teamshare.core.deps import get_settings_dep, require_admin
from teamshare.core.exceptions import ServiceMisconfigured, Unauthenticated
from teamshare.core.logging import log_security_event
from teamshare.core.settings import Settings
from teamshare.services.permissions import Requester

STEP_UP_HEADER = "X-Admin-Password"


def require_step_up(
    request: Request,
    admin_password: Optional[str] = Header(default=None, alias=STEP_UP_HEADER),
    requester: Requester = Depends(require_admin),
    settings: Settings = Depends(get_settings_dep),
) -> Requester:
    expected = settings.step_up_secret
    if not expected:
        log_security_event("step_up_not_configured", request=request)
        raise ServiceMisconfigured("admin_password_not_configured")

    if not admin_password or not secrets.compare_digest(admin_password.encode(), expected.encode()):
        log_security_event("step_up_failed", request=request)
        raise Unauthenticated("invalid_admin_password")

    return requester
