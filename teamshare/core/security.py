from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional

from jose import jwt
from passlib.context import CryptContext

from teamshare.core.settings import Settings


PASSWORD_MIN_LENGTH = 12
PASSWORD_SYMBOLS = "@$!%*?&"
TEAM_NAME_MIN_LENGTH = 3
TEAM_NAME_MAX_LENGTH = 50

_TEAM_NAME_PATTERN = re.compile(r"[A-Za-z0-9 _-]+")


@dataclass(frozen=True)
class ValidationResult:
    reasons: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.reasons


@lru_cache(maxsize=8)
def _crypt_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def get_password_hash(password: str, *, rounds: int = 12) -> str:
    return _crypt_context(rounds).hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return _crypt_context(12).verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised or corrupt digest
        return False


def validate_password_strength(password: str) -> ValidationResult:
    reasons: List[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        reasons.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        reasons.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        reasons.append("Password must contain at least one uppercase letter")
    if not re.search(r"[0-9]", password):
        reasons.append("Password must contain at least one number")
    if not any(ch in PASSWORD_SYMBOLS for ch in password):
        reasons.append(f"Password must contain at least one special character ({PASSWORD_SYMBOLS})")
    return ValidationResult(reasons)


def validate_team_name(team_name: str) -> ValidationResult:
    reasons: List[str] = []
    if not team_name or not team_name.strip():
        reasons.append("Team name is required")
    if len(team_name) < TEAM_NAME_MIN_LENGTH:
        reasons.append(f"Team name must be at least {TEAM_NAME_MIN_LENGTH} characters long")
    if len(team_name) > TEAM_NAME_MAX_LENGTH:
        reasons.append(f"Team name must be at most {TEAM_NAME_MAX_LENGTH} characters long")
    if not _TEAM_NAME_PATTERN.fullmatch(team_name):
        reasons.append("Team name can only contain letters, numbers, spaces, hyphens, and underscores")
    return ValidationResult(reasons)


def generate_reset_token() -> str:
    return str(uuid.uuid4())


def create_access_token(
    data: Dict[str, Any],
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    minutes = settings.access_token_expire_minutes if settings.access_token_expire_minutes > 0 else 60
    expire = now + (expires_delta or timedelta(minutes=minutes))
    to_encode.setdefault("iat", now)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.algorithm)


def decode_token(token: str, settings: Settings) -> Dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.algorithm])
