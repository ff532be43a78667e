from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from teamshare.core.deps import get_content_store, get_store, require_admin
from teamshare.core.step_up import require_step_up
from teamshare.schemas.admin import ResetServerRequest, ResetServerResult
from teamshare.schemas.file import FileDeleteResult
from teamshare.schemas.team import TeamDeleteResult, TeamSummary
from teamshare.services import admin as admin_service
from teamshare.services.permissions import ADMIN_TEAM_NUMBER, Requester
from teamshare.services.uploads import ContentStore
from teamshare.storage.base import RecordStore

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/teams", response_model=List[TeamSummary])
def list_teams(
    _admin: Requester = Depends(require_admin),
    store: RecordStore = Depends(get_store),
) -> List[TeamSummary]:
    return [
        TeamSummary.from_account(account)
        for account in store.list_teams()
        if account.team_number != ADMIN_TEAM_NUMBER
    ]


@router.delete("/teams/{team_number}/files", response_model=FileDeleteResult)
def delete_team_files(
    team_number: int,
    _admin: Requester = Depends(require_step_up),
    store: RecordStore = Depends(get_store),
    content: ContentStore = Depends(get_content_store),
) -> FileDeleteResult:
    report = admin_service.delete_team_files(store, content, team_number)
    return FileDeleteResult(
        message=f"Deleted {report.deleted} files for Team {team_number}",
        deleted_count=report.deleted,
        blob_failures=report.blob_failures,
    )


@router.delete("/teams/{team_number}", response_model=TeamDeleteResult)
def delete_team(
    team_number: int,
    _admin: Requester = Depends(require_step_up),
    store: RecordStore = Depends(get_store),
    content: ContentStore = Depends(get_content_store),
) -> TeamDeleteResult:
    return admin_service.delete_team(store, content, team_number)


@router.delete("/files/all", response_model=FileDeleteResult)
def delete_all_files(
    _admin: Requester = Depends(require_step_up),
    store: RecordStore = Depends(get_store),
    content: ContentStore = Depends(get_content_store),
) -> FileDeleteResult:
    report = admin_service.delete_all_files(store, content)
    return FileDeleteResult(
        message="All files deleted successfully",
        deleted_count=report.deleted,
        blob_failures=report.blob_failures,
    )


@router.delete("/files/{file_id}", response_model=FileDeleteResult)
def delete_any_file(
    file_id: str,
    _admin: Requester = Depends(require_step_up),
    store: RecordStore = Depends(get_store),
    content: ContentStore = Depends(get_content_store),
) -> FileDeleteResult:
    report = admin_service.delete_any_file(store, content, file_id)
    return FileDeleteResult(
        message="File deleted successfully",
        deleted_count=report.deleted,
        blob_failures=report.blob_failures,
    )


@router.post("/reset-server", response_model=ResetServerResult)
def reset_server(
    payload: ResetServerRequest,
    _admin: Requester = Depends(require_step_up),
    store: RecordStore = Depends(get_store),
    content: ContentStore = Depends(get_content_store),
) -> ResetServerResult:
    return admin_service.reset_server(store, content, payload.confirm_text)
