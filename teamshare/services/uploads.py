from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from teamshare.core.exceptions import ValidationFailed
from teamshare.core.observability import files_uploaded_total, upload_rejections_total
from teamshare.core.settings import Settings
from teamshare.schemas.file import FileCreate, FileRecord, RejectedFile
from teamshare.services.permissions import Requester
from teamshare.storage.base import RecordStore

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class FileTooLarge(Exception):
    pass


class ContentStore:
    """Write-once blobs in the uploads directory, addressed by stored filename."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, stored_name: str) -> Path:
        name = Path(stored_name).name
        if not name or name != stored_name:
            raise ValueError(f"Invalid stored filename: {stored_name!r}")
        return self.root / name

    def exists(self, stored_name: str) -> bool:
        return self.path_for(stored_name).is_file()

    def write_stream(self, stored_name: str, source: BinaryIO, *, max_bytes: int) -> int:
        """Copy ``source`` to the blob area; raises FileTooLarge past ``max_bytes``."""
        path = self.path_for(stored_name)
        written = 0
        with path.open("xb") as target:
            while True:
                chunk = source.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise FileTooLarge(stored_name)
                target.write(chunk)
        return written

    def delete(self, stored_name: str) -> bool:
        """Best-effort removal. Failures are logged and reported as False."""
        try:
            self.path_for(stored_name).unlink()
        except (OSError, ValueError) as exc:
            logger.warning("Failed to delete stored file %s: %s", stored_name, exc)
            return False
        return True


def generate_stored_name(extension: str) -> str:
    return f"{int(time.time() * 1000)}-{uuid4().hex[:12]}{extension}"


def parse_tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def known_assignments(store: RecordStore, settings: Settings) -> List[str]:
    names = [setting.assignment for setting in store.list_assignment_settings()]
    return names or list(settings.default_assignments)


class UploadForm(BaseModel):
    label: str
    assignment: str
    tags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    is_visible: bool = True

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value


@dataclass
class UploadCandidate:
    filename: str
    stream: BinaryIO


@dataclass
class UploadBatchResult:
    uploaded: List[FileRecord] = field(default_factory=list)
    rejected: List[RejectedFile] = field(default_factory=list)


def validate_upload_request(
    form: UploadForm,
    file_count: int,
    *,
    allowed_assignments: Sequence[str],
    settings: Settings,
) -> None:
    """Request-level checks made before any bytes are written."""
    errors: List[str] = []
    if file_count == 0:
        errors.append("No files uploaded")
    if file_count > settings.max_files_per_upload:
        errors.append(f"At most {settings.max_files_per_upload} files can be uploaded at once")
    if not form.label.strip():
        errors.append("Label is required")
    if form.assignment not in allowed_assignments:
        errors.append(f"Unknown assignment: {form.assignment}")
    if errors:
        raise ValidationFailed("Invalid upload", errors=errors)


class UploadGateway:
    """Stores each uploaded file and creates its record, one file at a time.

    A batch is not atomic: a rejected file has its bytes removed, while
    siblings already committed stay in place.
    """

    def __init__(self, store: RecordStore, content: ContentStore, settings: Settings) -> None:
        self.store = store
        self.content = content
        self.settings = settings

    def upload(
        self,
        requester: Requester,
        form: UploadForm,
        candidates: Iterable[UploadCandidate],
    ) -> UploadBatchResult:
        candidates = list(candidates)
        validate_upload_request(
            form,
            len(candidates),
            allowed_assignments=known_assignments(self.store, self.settings),
            settings=self.settings,
        )

        result = UploadBatchResult()
        for candidate in candidates:
            record, reasons = self._store_one(requester, form, candidate)
            if record is not None:
                result.uploaded.append(record)
                files_uploaded_total.inc()
            else:
                result.rejected.append(RejectedFile(filename=candidate.filename, reasons=reasons))
                upload_rejections_total.inc()
        return result

    def _store_one(self, requester: Requester, form: UploadForm, candidate: UploadCandidate):
        original_name = Path(candidate.filename or "").name
        extension = Path(original_name).suffix.lower()
        if extension not in self.settings.allowed_extensions:
            allowed = ", ".join(ext.lstrip(".").upper() for ext in self.settings.allowed_extensions)
            return None, [f"File type not supported. Only {allowed} files are allowed."]

        stored_name = generate_stored_name(extension)
        try:
            size = self.content.write_stream(stored_name, candidate.stream, max_bytes=self.settings.max_upload_bytes)
        except FileTooLarge:
            self.content.delete(stored_name)
            limit_mb = self.settings.max_upload_bytes // (1024 * 1024)
            return None, [f"File exceeds the {limit_mb} MB limit"]
        except FileExistsError:
            # Name collision: the existing blob belongs to another record.
            logger.error("Stored filename collision for %s", stored_name)
            return None, ["Could not store file"]
        except OSError:
            logger.exception("Could not write upload %s", original_name)
            self.content.delete(stored_name)
            return None, ["Could not store file"]

        data = FileCreate(
            label=form.label.strip(),
            original_name=original_name,
            stored_name=stored_name,
            file_type=extension,
            file_size=size,
            team_number=requester.owner_team_number,
            assignment=form.assignment,
            tags=list(form.tags),
            description=form.description,
            is_visible=form.is_visible if requester.is_admin else True,
        )
        try:
            record = self.store.create_file(data)
        except Exception:
            logger.exception("Could not create file record for %s", original_name)
            self.content.delete(stored_name)
            return None, ["Could not save file record"]
        return record, []
