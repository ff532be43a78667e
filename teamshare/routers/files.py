from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse

from teamshare.core.deps import get_content_store, get_current_requester, get_settings_dep, get_store
from teamshare.core.exceptions import ValidationFailed
from teamshare.core.settings import Settings
from teamshare.schemas.file import (
    FileDeleteResult,
    FileDetailsUpdate,
    FileRecord,
    FileUpdateResponse,
    UploadResponse,
    VisibilityUpdate,
)
from teamshare.services import files as file_service
from teamshare.services.permissions import Requester
from teamshare.services.uploads import ContentStore, UploadCandidate, UploadForm, UploadGateway, parse_tags
from teamshare.storage.base import RecordStore

router = APIRouter(prefix="/api/files", tags=["files"])


@router.get("", response_model=List[FileRecord])
def list_files(
    search: Optional[str] = Query(None),
    team: Optional[int] = Query(None),
    type: Optional[str] = Query(None),
    assignment: Optional[str] = Query(None),
    requester: Requester = Depends(get_current_requester),
    store: RecordStore = Depends(get_store),
) -> List[FileRecord]:
    return file_service.list_files_for(
        store,
        requester,
        search=search,
        team=team,
        file_type=type,
        assignment=assignment,
    )


@router.post("/upload", response_model=UploadResponse)
def upload_files(
    files: Optional[List[UploadFile]] = File(default=None),
    label: str = Form(default=""),
    assignment: str = Form(default=""),
    tags: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    is_visible: bool = Form(default=True),
    requester: Requester = Depends(get_current_requester),
    store: RecordStore = Depends(get_store),
    content: ContentStore = Depends(get_content_store),
    settings: Settings = Depends(get_settings_dep),
) -> UploadResponse:
    form = UploadForm(
        label=label,
        assignment=assignment,
        tags=parse_tags(tags),
        description=description,
        is_visible=is_visible,
    )
    candidates = [UploadCandidate(filename=upload.filename or "", stream=upload.file) for upload in files or []]
    result = UploadGateway(store, content, settings).upload(requester, form, candidates)

    if not result.uploaded:
        raise ValidationFailed(
            "No files were uploaded",
            errors=[f"{rejected.filename}: {reason}" for rejected in result.rejected for reason in rejected.reasons],
        )
    message = "Files uploaded successfully"
    if result.rejected:
        message = f"{len(result.uploaded)} of {len(candidates)} files uploaded"
    return UploadResponse(message=message, files=result.uploaded, rejected=result.rejected)


@router.get("/{file_id}/download")
def download_file(
    file_id: str,
    requester: Requester = Depends(get_current_requester),
    store: RecordStore = Depends(get_store),
    content: ContentStore = Depends(get_content_store),
):
    file, path = file_service.resolve_download(store, content, requester, file_id)
    return FileResponse(path=path, filename=file.original_name, media_type="application/octet-stream")


@router.put("/{file_id}/visibility", response_model=FileUpdateResponse)
def update_visibility(
    file_id: str,
    payload: VisibilityUpdate,
    requester: Requester = Depends(get_current_requester),
    store: RecordStore = Depends(get_store),
) -> FileUpdateResponse:
    updated = file_service.set_visibility(store, requester, file_id, payload.is_visible)
    return FileUpdateResponse(message="File visibility updated successfully", file=updated)


@router.put("/{file_id}", response_model=FileUpdateResponse)
def update_file(
    file_id: str,
    payload: FileDetailsUpdate,
    requester: Requester = Depends(get_current_requester),
    store: RecordStore = Depends(get_store),
) -> FileUpdateResponse:
    updated = file_service.update_details(store, requester, file_id, payload)
    return FileUpdateResponse(message="File updated successfully", file=updated)


@router.delete("/{file_id}", response_model=FileDeleteResult)
def delete_own_file(
    file_id: str,
    requester: Requester = Depends(get_current_requester),
    store: RecordStore = Depends(get_store),
    content: ContentStore = Depends(get_content_store),
) -> FileDeleteResult:
    report = file_service.delete_owned_file(store, content, requester, file_id)
    return FileDeleteResult(
        message="File deleted successfully",
        deleted_count=report.deleted,
        blob_failures=report.blob_failures,
    )
