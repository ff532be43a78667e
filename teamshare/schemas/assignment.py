from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, StrictBool

from teamshare.schemas.base import ORMModel


class AssignmentSetting(ORMModel):
    id: str
    assignment: str
    is_open_view: bool
    updated_at: datetime


class AssignmentSettingPublic(ORMModel):
    assignment: str
    is_open_view: bool


class AssignmentSettingUpdate(BaseModel):
    assignment: str = Field(min_length=1)
    is_open_view: StrictBool
