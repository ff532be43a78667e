from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from teamshare.schemas.base import ORMModel


class FileRecord(ORMModel):
    id: str
    label: str
    original_name: str
    stored_name: str
    file_type: str
    file_size: int
    team_number: int
    assignment: str
    tags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    is_visible: bool = True
    uploaded_at: datetime


class FileCreate(BaseModel):
    label: str
    original_name: str
    stored_name: str
    file_type: str
    file_size: int
    team_number: int
    assignment: str
    tags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    is_visible: bool = True


class FileDetailsUpdate(BaseModel):
    """Partial edit of a file's label, description and tags.

    Only fields present in the request body are applied. A blank label is
    ignored rather than clearing the label; ``description: null`` clears the
    description; ``tags: null`` is ignored.
    """

    label: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None

    def changes(self) -> Dict[str, Any]:
        provided = self.model_fields_set
        changes: Dict[str, Any] = {}
        if "label" in provided and self.label and self.label.strip():
            changes["label"] = self.label
        if "description" in provided:
            changes["description"] = self.description
        if "tags" in provided and self.tags is not None:
            changes["tags"] = list(self.tags)
        return changes


class VisibilityUpdate(BaseModel):
    is_visible: bool


class FileUpdateResponse(BaseModel):
    message: str
    file: FileRecord


class RejectedFile(BaseModel):
    filename: str
    reasons: List[str]


class UploadResponse(BaseModel):
    message: str
    files: List[FileRecord]
    rejected: List[RejectedFile] = Field(default_factory=list)


class FileDeleteResult(BaseModel):
    message: str
    deleted_count: int
    blob_failures: List[str] = Field(default_factory=list)
