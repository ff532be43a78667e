from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from fastapi import Request, Response
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from teamshare.core.security import decode_token

# Attributes copied from a record's ``extra`` into the JSON line.
CONTEXT_FIELDS = (
    "event",
    "request_id",
    "team_number",
    "is_admin",
    "client",
    "path",
    "method",
    "status_code",
    "latency_ms",
    "details",
)

security_logger = logging.getLogger("security")


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update({key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)})
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


def _request_context(request: Request) -> dict[str, Any]:
    return {
        "request_id": getattr(request.state, "request_id", None) or request.headers.get("x-request-id"),
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else None,
    }


def _token_identity(request: Request) -> Tuple[Optional[int], Optional[bool]]:
    """Team number and admin flag from the bearer token, without failing the request."""
    scheme, _, token = (request.headers.get("authorization") or "").partition(" ")
    settings = getattr(request.app.state, "settings", None)
    if scheme.lower() != "bearer" or not token.strip() or settings is None:
        return None, None
    try:
        claims = decode_token(token.strip(), settings)
        return int(claims["sub"]), bool(claims.get("admin"))
    except (JWTError, KeyError, ValueError, TypeError):
        return None, None


def log_security_event(event: str, *, request: Optional[Request] = None, extra: Optional[dict] = None) -> None:
    fields: dict[str, Any] = {"event": event}
    if request is not None:
        fields.update(_request_context(request))
    if extra:
        fields["details"] = dict(extra)
    security_logger.info(event, extra=fields)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log line per request. Echoes or assigns ``X-Request-Id``."""

    def __init__(self, app, logger_name: str = "teamshare.access") -> None:
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        team_number, is_admin = _token_identity(request)
        context = _request_context(request)
        context.update(team_number=team_number, is_admin=is_admin)

        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception("unhandled_exception", extra={**context, "latency_ms": _elapsed_ms(started)})
            raise

        context.update(status_code=response.status_code, latency_ms=_elapsed_ms(started))
        self.logger.info("request", extra=context)
        if response.status_code == 403 and team_number is not None:
            security_logger.info("forbidden", extra={**context, "event": "forbidden"})

        response.headers["X-Request-Id"] = request_id
        return response
