from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


RESET_CONFIRMATION = "RESET ALL DATA"


class ResetServerRequest(BaseModel):
    confirm_text: str


class ResetServerResult(BaseModel):
    message: str
    files_deleted: int = 0
    users_deleted: int = 0
    assignments_reset: int = 0
    blob_failures: List[str] = Field(default_factory=list)
