"""Domain errors raised by services and rendered by a single handler in ``main``."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class TeamShareError(Exception):
    status_code = 500
    default_detail = "internal_error"

    def __init__(self, detail: Optional[str] = None, *, errors: Optional[List[str]] = None) -> None:
        self.detail = detail or self.default_detail
        self.errors = list(errors or [])
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.detail}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationFailed(TeamShareError):
    """Input was well-formed but broke one or more rules; ``errors`` lists every rule."""

    status_code = 400
    default_detail = "validation_failed"


class NotFound(TeamShareError):
    status_code = 404
    default_detail = "not_found"


class Forbidden(TeamShareError):
    status_code = 403
    default_detail = "forbidden"


class Unauthenticated(TeamShareError):
    status_code = 401
    default_detail = "not_authenticated"


class Conflict(TeamShareError):
    status_code = 409
    default_detail = "conflict"


class StorageUnavailable(TeamShareError):
    status_code = 503
    default_detail = "storage_unavailable"


class ServiceMisconfigured(TeamShareError):
    status_code = 503
    default_detail = "service_misconfigured"
