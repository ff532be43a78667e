from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from teamshare.schemas.team import TeamAccount


class RegisterRequest(BaseModel):
    team_number: int = Field(ge=1, le=9)
    team_name: Optional[str] = None
    password: str


class RegisterResponse(BaseModel):
    message: str
    team: "RegisteredTeam"


class RegisteredTeam(BaseModel):
    team_number: int
    team_name: Optional[str] = None

    @classmethod
    def from_account(cls, account: TeamAccount) -> "RegisteredTeam":
        return cls(team_number=account.team_number, team_name=account.team_name)


class LoginRequest(BaseModel):
    team_number: int
    password: str


class AdminLoginRequest(BaseModel):
    password: str


class RequesterRead(BaseModel):
    team_number: int
    is_admin: bool
    team_name: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: RequesterRead


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=1)


RegisterResponse.model_rebuild()
