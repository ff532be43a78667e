from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from teamshare.schemas.base import ORMModel


class TeamAccount(ORMModel):
    id: str
    team_number: int
    team_name: Optional[str] = None
    password_hash: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    last_login: Optional[datetime] = None
    password_reset_token: Optional[str] = None
    token_expiry: Optional[datetime] = None


class TeamCreate(BaseModel):
    team_number: int
    team_name: Optional[str] = None
    password_hash: Optional[str] = None
    is_active: bool = True


class TeamSummary(BaseModel):
    team_number: int
    team_name: str
    has_password: bool
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    @classmethod
    def from_account(cls, account: TeamAccount) -> "TeamSummary":
        return cls(
            team_number=account.team_number,
            team_name=account.team_name or f"Team {account.team_number}",
            has_password=bool(account.password_hash),
            is_active=account.is_active,
            created_at=account.created_at,
            last_login=account.last_login,
        )


class TeamDeleteResult(BaseModel):
    message: str
    files_deleted: int
    blob_failures: List[str] = Field(default_factory=list)
